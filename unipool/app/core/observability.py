"""
Observability: logging setup and request middleware.

Every request gets a correlation id (taken from `X-Correlation-ID` when the
client sends one) and one structured access-log record.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from unipool.app.core.config import settings

logger = logging.getLogger("unipool.requests")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

CORRELATION_HEADER = "X-Correlation-ID"

# Probes are logged at debug so they do not drown the access log
QUIET_PATHS = {"/health"}


def configure_logging() -> None:
    """Configure root logging once; later calls only adjust the level."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(settings.log_level.upper())
        return
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)


def _log_level(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = str(duration_ms)

        path = request.url.path
        logger.log(
            _log_level(path, response.status_code),
            "%s %s -> %s",
            request.method,
            path,
            response.status_code,
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "ip": request.client.host if request.client else "unknown",
            }
        )
        return response
