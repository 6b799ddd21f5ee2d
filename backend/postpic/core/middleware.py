"""FastAPI middleware for request correlation and access logging."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from postpic.core.logging import bind_correlation_id, log_error, log_info

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds a correlation ID for the request and echoes it back.

    The caller's ``X-Correlation-ID`` is reused when present so an upload
    can be traced across services.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())

        with bind_correlation_id(correlation_id):
            response = await call_next(request)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One access log record per request, including upload size."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            log_error(
                logger,
                f"{request.method} {request.url.path} raised",
                exception=e,
                http_method=request.method,
                http_path=request.url.path,
            )
            raise

        log_info(
            logger,
            f"{request.method} {request.url.path} -> {response.status_code}",
            http_method=request.method,
            http_path=request.url.path,
            status_code=response.status_code,
            content_length=request.headers.get("content-length"),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
