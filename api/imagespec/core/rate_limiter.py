"""In-process sliding-window rate limiter."""

import logging
import time
from typing import Callable, Dict, List, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class InMemoryRateLimiter:
    """Sliding window of ``max_requests`` per ``window_seconds`` per identifier.

    State lives in this process only; each worker counts separately.
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_seconds: int = 900,
        max_clients: int = 10000,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._max_clients = max_clients
        self._clock = clock
        self.clients: Dict[str, List[float]] = {}

    def now(self) -> float:
        return self._clock()

    def check_rate_limit(self, identifier: str) -> Tuple[bool, int, int]:
        """Record a request if allowed.

        Returns:
            Tuple of (allowed, remaining_requests, reset_timestamp)
        """
        current_time = self.now()
        window_start = current_time - self.window_seconds

        if len(self.clients) > self._max_clients:
            self._cleanup(window_start)

        requests = [t for t in self.clients.get(identifier, []) if t > window_start]

        if len(requests) >= self.max_requests:
            self.clients[identifier] = requests
            reset_time = int(requests[0] + self.window_seconds)
            return False, 0, reset_time

        requests.append(current_time)
        self.clients[identifier] = requests
        remaining = self.max_requests - len(requests)
        reset_time = int(requests[0] + self.window_seconds)
        return True, remaining, reset_time

    def reset_limit(self, identifier: str) -> None:
        self.clients.pop(identifier, None)

    def _cleanup(self, window_start: float) -> None:
        old_count = len(self.clients)
        self.clients = {
            key: stamps for key, stamps in self.clients.items()
            if stamps and stamps[-1] > window_start
        }
        logger.debug(f"Cleaned up {old_count - len(self.clients)} idle rate limiting entries")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply ``InMemoryRateLimiter`` per client address.

    ``X-Forwarded-For`` and ``X-Real-IP`` are only honoured when
    ``trust_proxy_headers`` is set, i.e. when a reverse proxy in front of the
    service overwrites them. Otherwise the socket peer address is the key.
    """

    def __init__(self, app: ASGIApp, limiter: InMemoryRateLimiter, trust_proxy_headers: bool = False):
        super().__init__(app)
        self.limiter = limiter
        self.trust_proxy_headers = trust_proxy_headers

    async def dispatch(self, request: Request, call_next):
        identifier = self._get_identifier(request)
        allowed, remaining, reset_time = self.limiter.check_rate_limit(identifier)

        if not allowed:
            retry_after = max(1, reset_time - int(self.limiter.now()))
            logger.warning(
                "Rate limit exceeded",
                extra={"identifier": identifier, "path": request.url.path},
            )
            return JSONResponse(
                content={
                    "error": "RateLimitExceeded",
                    "message": (
                        f"Rate limit of {self.limiter.max_requests} requests per "
                        f"{self.limiter.window_seconds} seconds exceeded"
                    ),
                    "retry_after_seconds": retry_after
                },
                status_code=429,
                headers={
                    "X-RateLimit-Limit": str(self.limiter.max_requests),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset_time),
                    "Retry-After": str(retry_after)
                }
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(self.limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset_time)
        return response

    def _get_identifier(self, request: Request) -> str:
        return f"ip:{self._get_client_ip(request)}"

    def _get_client_ip(self, request: Request) -> str:
        if self.trust_proxy_headers:
            forwarded_for = request.headers.get("x-forwarded-for")
            if forwarded_for:
                # First hop is the original client
                return forwarded_for.split(",")[0].strip()

            real_ip = request.headers.get("x-real-ip")
            if real_ip:
                return real_ip.strip()

        if request.client:
            return request.client.host

        return "unknown"
