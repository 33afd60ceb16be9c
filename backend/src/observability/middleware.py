"""Request context middleware.

Binds a request id for the duration of the request, echoes it in the
X-Request-ID response header and writes one access log line per request.
Query strings are never logged: they may carry redirect targets or search
terms typed by users.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .context import REQUEST_ID_HEADER, accept_request_id, bind_request_id, reset_request_id
from .logging_config import get_logger

logger = get_logger("secureshop.access")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Outermost application middleware; everything below sees the request id."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = bind_request_id(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "Request aborted",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
                exc_info=True,
            )
            reset_request_id(token)
            raise

        identity = getattr(request.state, "identity", None)
        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "user_id": identity.id if identity else None,
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        reset_request_id(token)
        return response
