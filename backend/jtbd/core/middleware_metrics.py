"""
Middleware for collecting HTTP request metrics
"""
import re
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from jtbd.core.metrics import (http_errors_total,
                               http_request_duration_seconds,
                               http_requests_total)

_UUID_SEGMENT = re.compile(r"/[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}(?=/|$)")


def endpoint_label(request: Request) -> str:
    """
    Route template for the request ("/api/forces/{row_id}") so series
    aggregate per route. Unmatched paths fall back to the raw path with
    UUID segments collapsed.
    """
    route = request.scope.get("route")
    if route is not None and getattr(route, "path", None):
        return route.path
    return _UUID_SEGMENT.sub("/{id}", request.url.path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests, errors and latency for every route except /metrics"""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500
        error_type = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as e:
            error_type = type(e).__name__
            raise
        finally:
            labels = {
                "method": request.method,
                "endpoint": endpoint_label(request),
                "status_code": str(status_code),
            }
            http_requests_total.labels(**labels).inc()
            http_request_duration_seconds.labels(**labels).observe(time.perf_counter() - started)
            if status_code >= 400:
                http_errors_total.labels(**labels, error_type=error_type or f"http_{status_code}").inc()
