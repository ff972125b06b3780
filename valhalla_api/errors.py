from __future__ import annotations

import traceback
from http import HTTPStatus
from typing import Any, Callable

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from valhalla_api.context import get_context
from valhalla_api.services.runtime import utc_timestamp


GENERIC_ERROR_MESSAGE = "An error occurred"


def status_for(exc: BaseException) -> int:
    """HTTP status for an unhandled exception: its own `status` if set, else 500."""
    status = getattr(exc, "status", None)
    if isinstance(status, int) and 400 <= status <= 599:
        return status
    return 500


def request_url(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def error_body(error: str, message: str) -> dict[str, str]:
    return {"error": error, "message": message, "timestamp": utc_timestamp()}


def not_found_response(message: str) -> JSONResponse:
    return JSONResponse(status_code=404, content=error_body("Not Found", message))


def _reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # An unsupported method on a known path is still an unmatched route.
        if exc.status_code in (404, 405) and exc.detail in ("Not Found", "Method Not Allowed"):
            return not_found_response(f"Cannot {request.method} {request_url(request)}")

        message = exc.detail if isinstance(exc.detail, str) else _reason(exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(_reason(exc.status_code), message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content=error_body("Bad Request", problems or "Invalid request"))


def unexpected_error_response(request: Request, exc: Exception) -> JSONResponse:
    structlog.get_logger("errors").error(
        "unhandled_error",
        error=str(exc),
        stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        url=request_url(request),
        method=request.method,
    )

    status_code = status_for(exc)
    message = str(exc)
    if get_context(request).settings.is_production and status_code >= 500:
        message = GENERIC_ERROR_MESSAGE
    return JSONResponse(
        status_code=status_code,
        content=error_body("Internal Server Error", message),
    )


class BoundaryErrorMiddleware:
    """Innermost middleware turning any uncaught exception into a JSON error.

    Sitting inside the header and request-context middleware, its responses
    carry the same security, CORS and request-id headers as any other.
    """

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal response_started
            if message.get("type") == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            response = unexpected_error_response(Request(scope, receive), exc)
            await response(scope, receive, send)
