"""Access logging and X-Request-ID propagation."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .request_id import bound_request_id

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID (or mint one), echo it back and log the request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        with bound_request_id(request.headers.get(REQUEST_ID_HEADER)) as request_id:
            started = time.perf_counter()
            fields = {"method": request.method, "path": request.url.path}
            try:
                response = await call_next(request)
            except Exception:
                fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
                logger.exception(f"{request.method} {request.url.path} raised", extra=fields)
                raise

            fields["status_code"] = response.status_code
            fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            log = logger.warning if response.status_code >= 500 else logger.info
            log(f"{request.method} {request.url.path} -> {response.status_code}", extra=fields)

            response.headers[REQUEST_ID_HEADER] = request_id
            return response
