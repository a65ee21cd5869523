"""
Admission control for incoming HTTP requests.
"""

import asyncio

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from bors.core.logging import get_logger

logger = get_logger(__name__)


class ConcurrencyLimitMiddleware(BaseHTTPMiddleware):
    """Let at most `max_requests` requests run at once; the rest wait for a slot."""

    def __init__(self, app, max_requests: int):
        super().__init__(app)
        self.max_requests = max_requests
        self.slots = asyncio.Semaphore(max_requests)

    async def dispatch(self, request: Request, call_next):
        if self.slots.locked():
            logger.debug(
                "%s %s waits: %d requests in flight",
                request.method,
                request.url.path,
                self.max_requests,
            )
        async with self.slots:
            return await call_next(request)
