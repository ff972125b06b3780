from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import Headers, MutableHeaders

from valhalla_api.observability.metrics import UNMATCHED_ROUTE, MetricsRegistry


def _route_template(scope: dict[str, Any]) -> str:
    route = scope.get("route")
    path = getattr(route, "path", None)
    return path if isinstance(path, str) else UNMATCHED_ROUTE


class RequestContextMiddleware:
    """Adds request_id context, access logs, and HTTP metrics.

    Every HTTP request, routed or not, is recorded exactly once.
    """

    def __init__(self, app: Callable[..., Any], metrics: MetricsRegistry) -> None:
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path", "")
        method = scope.get("method", "GET")
        query = scope.get("query_string", b"").decode("latin-1")
        url = f"{path}?{query}" if query else path
        user_agent = Headers(scope=scope).get("user-agent")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed = perf_counter() - start

            # Update metrics first so they update even if logging misbehaves.
            self.metrics.record_request(method, _route_template(scope), status_code, elapsed)

            structlog.get_logger("access").info(
                "http_request",
                method=method,
                url=url,
                status=status_code,
                duration=f"{round(elapsed * 1000.0, 2)}ms",
                user_agent=user_agent,
            )

            structlog.contextvars.clear_contextvars()
