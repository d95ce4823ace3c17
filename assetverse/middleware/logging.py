# assetverse/middleware/logging.py
import time
import uuid
from typing import Callable, Awaitable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from loguru import logger

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID (reusing the caller's if sent) and logs its outcome."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        route = f"{request.method} {request.url.path}"
        peer = request.client.host if request.client else "-"

        with logger.contextualize(request_id=request_id):
            logger.info(f"RID:{request_id} START {route} from {peer}")
            try:
                response = await call_next(request)
            except Exception as e:
                elapsed = (time.perf_counter() - started) * 1000
                logger.error(f"RID:{request_id} FAILED {route} after {elapsed:.1f}ms: {e}", exc_info=True)
                raise

            elapsed = (time.perf_counter() - started) * 1000
            caller = getattr(request.state, "email", None) or "anonymous"
            level = "ERROR" if response.status_code >= 500 else "INFO"
            logger.log(level, f"RID:{request_id} END {route} -> {response.status_code} ({elapsed:.1f}ms, caller={caller})")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
