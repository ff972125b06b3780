from __future__ import annotations

import argparse
import os
import signal
import threading
from collections.abc import Callable
from types import FrameType

import structlog
import uvicorn

from valhalla_api.config import Settings, get_settings
from valhalla_api.main import create_app


FORCED_EXIT_CODE = 1


def _signal_name(sig: int | None) -> str | None:
    if sig is None:
        return None
    try:
        return signal.Signals(sig).name
    except ValueError:
        return str(sig)


class ShutdownCoordinator:
    """Runs shutdown at most once and force-exits if draining takes too long."""

    def __init__(
        self,
        timeout: float,
        *,
        on_shutdown: Callable[[], None],
        exit_fn: Callable[[int], object] = os._exit,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.timeout = timeout
        self._on_shutdown = on_shutdown
        self._exit_fn = exit_fn
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._requested = False
        self._watchdog: threading.Timer | None = None
        self._log = structlog.get_logger("server")

    @property
    def requested(self) -> bool:
        return self._requested

    def request(self, sig: int | None = None) -> bool:
        """Start a graceful shutdown; returns False if one is already underway."""
        with self._lock:
            if self._requested:
                self._log.warning("shutdown_already_in_progress", signal=_signal_name(sig))
                return False
            self._requested = True

        self._log.info("shutdown_requested", signal=_signal_name(sig), timeout=self.timeout)
        self._watchdog = self._timer_factory(self.timeout, self._force_exit)
        self._watchdog.daemon = True
        self._watchdog.start()
        self._on_shutdown()
        return True

    def complete(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
        self._log.info("server_closed")

    def _force_exit(self) -> None:
        self._log.error("shutdown_timed_out", timeout=self.timeout)
        self._exit_fn(FORCED_EXIT_CODE)


class APIServer(uvicorn.Server):
    """uvicorn server whose signal handling goes through a ShutdownCoordinator."""

    def __init__(self, config: uvicorn.Config, *, shutdown_timeout: float) -> None:
        super().__init__(config)
        self.shutdown_coordinator = ShutdownCoordinator(shutdown_timeout, on_shutdown=self._stop_accepting)

    def _stop_accepting(self) -> None:
        # uvicorn closes its listeners and drains open connections once set.
        self.should_exit = True

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        self.shutdown_coordinator.request(sig)


def run(settings: Settings | None = None, *, host: str | None = None, port: int | None = None) -> int:
    settings = settings or get_settings()
    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=host or settings.host,
        port=port if port is not None else settings.port,
        log_config=None,
    )
    server = APIServer(config, shutdown_timeout=settings.shutdown_timeout)
    server.run()
    server.shutdown_coordinator.complete()
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Valhalla API server")
    parser.add_argument("--host", default=None, help="Interface to bind (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: PORT or 3000)")
    args = parser.parse_args(argv)

    raise SystemExit(run(host=args.host, port=args.port))
