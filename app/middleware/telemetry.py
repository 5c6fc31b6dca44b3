"""Request instrumentation for the HTTP surface of the bot."""

from __future__ import annotations

import time
from typing import Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from app.telemetry import observe_request

# Scrapes and probes would otherwise dominate the request histograms.
DEFAULT_UNTRACKED_PATHS = ("/metrics", "/health")


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Record Prometheus request metrics and expose the handling time."""

    def __init__(self, app: ASGIApp, untracked_paths: Iterable[str] = DEFAULT_UNTRACKED_PATHS) -> None:
        super().__init__(app)
        self._untracked = frozenset(untracked_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self._untracked:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            observe_request(request.method, _route_label(request), 500, time.perf_counter() - started)
            raise

        elapsed = time.perf_counter() - started
        observe_request(request.method, _route_label(request), response.status_code, elapsed)
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        return response


def _route_label(request: Request) -> str:
    # Route templates keep label cardinality bounded, e.g. /voice/runs.
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or request.url.path


__all__ = ["DEFAULT_UNTRACKED_PATHS", "TelemetryMiddleware"]
