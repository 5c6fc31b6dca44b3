"""Request logging middleware with request id propagation."""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger("app.middleware.structured")

REQUEST_ID_HEADER = "X-Request-ID"

_RESET = "\u001b[0m"
_STATUS_COLORS = {2: "\u001b[32m", 4: "\u001b[33m", 5: "\u001b[31m"}
_DEFAULT_COLOR = "\u001b[36m"


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one colored key=value line per HTTP request.

    The caller's ``X-Request-ID`` is reused when present, otherwise a new one
    is generated; either way it is echoed back on the response so that voice
    runs started over HTTP can be matched with pipeline log lines.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                format_line(request, request_id, 500, started, error=repr(exc)),
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(format_line(request, request_id, response.status_code, started))
        return response


def format_line(
    request: Request,
    request_id: str,
    status_code: int,
    started: float,
    *,
    error: str | None = None,
) -> str:
    """Render the request summary wrapped in an ANSI color for its status class."""

    duration_ms = round((time.perf_counter() - started) * 1000, 2)
    fields = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "status": status_code,
        "duration_ms": duration_ms,
        "client_ip": request.client.host if request.client else None,
    }
    if error is not None:
        fields["error"] = error

    message = " ".join(f"{key}={'-' if value is None else value}" for key, value in fields.items())
    color = _STATUS_COLORS.get(status_code // 100, _DEFAULT_COLOR)
    return f"{color}{message}{_RESET}"


__all__ = ["REQUEST_ID_HEADER", "StructuredLoggingMiddleware", "format_line"]
