"""Error Handlers — map exceptions on HTTP routes to the JSON error envelope.

Invariants:
    - RelayError → its own http_status and to_response() body
    - Anything else → 500 with a fixed body; internals only reach the logs

Design Decisions:
    - HTTP routes raise typed errors (readiness raises DatabaseError) instead of
      building failure responses themselves
    - WebSocket traffic never reaches these handlers: the engine answers with
      notices and the chat route with close codes
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from relay.core.errors import ErrorCategory, ErrorSeverity, RelayError

logger = logging.getLogger(__name__)

_INTERNAL_ERROR_BODY = {
    "error": {
        "code": "INTERNAL_ERROR",
        "message": "An unexpected error occurred",
        "category": ErrorCategory.INTERNAL.value,
        "severity": ErrorSeverity.CRITICAL.value,
    },
}


async def handle_relay_error(request: Request, exc: RelayError) -> JSONResponse:
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        "%s on %s: %s", exc.code, request.url.path, exc.message,
        extra={"error_code": exc.code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled %s on %s", type(exc).__name__, request.url.path,
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_INTERNAL_ERROR_BODY,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the relay's exception handlers on the app."""
    app.add_exception_handler(RelayError, handle_relay_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
