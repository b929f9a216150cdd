"""Request logging middleware for the bridge.

Each request gets an ID (the caller's X-Request-ID when usable), one access
log line tagged with the mail provider, and the ID echoed back in the
response headers, error responses included.
"""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .request_id import bound_request_id, request_id_from_header

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _provider(request: Request) -> str:
    settings = getattr(request.app.state, "settings", None)
    return getattr(settings, "MAIL_PROVIDER", "unknown")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request_id_from_header(request.headers.get(REQUEST_ID_HEADER))
        context = {
            "method": request.method,
            "path": request.url.path,
            "provider": _provider(request),
        }

        with bound_request_id(request_id):
            started = time.perf_counter()
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    f"{request.method} {request.url.path} failed: {e}",
                    extra={
                        **context,
                        "error_type": type(e).__name__,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    },
                    exc_info=True,
                )
                raise

            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    **context,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
