"""
Request timing and logging middleware
"""
import logging
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class TimingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log request timing and the active storage mode
    """
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        # Process request
        response = await call_next(request)

        # Calculate duration
        duration_ms = (time.time() - start_time) * 1000

        repository = getattr(request.app.state, "repository", None)
        mode = repository.mode.value if repository is not None else "starting"

        logger.info(
            f"[TIMING] {request.method} {request.url.path} | mode={mode} | "
            f"duration={duration_ms:.2f}ms | status={response.status_code}"
        )

        return response
