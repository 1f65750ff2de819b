"""
Per-request log context: request id, method and path on every record
"""
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from jtbd.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

# Polled by probes and scrapers; logged at debug only
QUIET_PATHS = frozenset(["/health", "/metrics"])


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Tags log records with the request and echoes X-Request-ID back"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        path = request.url.path
        LoggingConfig.set_context(request_id=request_id, method=request.method, path=path)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Request crashed",
                extra={"duration_ms": round((time.perf_counter() - started) * 1000)},
            )
            raise
        else:
            if response.status_code >= 500:
                log = logger.error
            elif path in QUIET_PATHS:
                log = logger.debug
            else:
                log = logger.info
            log(
                f"{request.method} {path} -> {response.status_code}",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000),
                },
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            LoggingConfig.clear_context()
