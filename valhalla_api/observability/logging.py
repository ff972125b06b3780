from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger


_CONFIGURED = False


def _service_adder(service: str):
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return add_service


def configure_logging(
    level: int | str = logging.INFO,
    *,
    json_logs: bool = False,
    service: str = "valhalla-api",
    force: bool = False,
) -> None:
    """Configure structlog + stdlib logging.

    Production deployments render one JSON object per line; everything else
    gets colorized console output. Safe to call multiple times (no-op after
    first call unless `force` is set).
    """

    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_adder(service),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[
            *pre_chain,
            # Let ProcessorFormatter render stdlib log records too.
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer: Any
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # Keep uvicorn's own loggers consistent with our handler.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.propagate = False
        logger.setLevel(level)

    # The request middleware already emits one access event per request.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _CONFIGURED = True


def log_unhandled_async_error(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Event loop exception handler for errors no task or future ever retrieved."""
    exc = context.get("exception")
    origin = context.get("future") or context.get("task") or context.get("handle")
    structlog.get_logger("asyncio").error(
        "unhandled_rejection",
        reason=repr(exc) if exc is not None else context.get("message"),
        origin=repr(origin) if origin is not None else None,
        exc_info=exc,
    )


def install_async_error_logging(loop: asyncio.AbstractEventLoop | None = None) -> None:
    (loop or asyncio.get_running_loop()).set_exception_handler(log_unhandled_async_error)
