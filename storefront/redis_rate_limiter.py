"""Redis-backed rate limiter."""
import hashlib
import logging
import time
from typing import Optional, Tuple

import redis
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.auth import extract_bearer_token
from storefront.config import RATE_LIMIT_PER_MINUTE_IP, RATE_LIMIT_PER_MINUTE_USER
from storefront.monitoring import rate_limit_exceeded_counter

logger = logging.getLogger(__name__)


def client_ip_of(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def session_key_of(request: Request) -> Optional[str]:
    """Stable, non-reversible key for the caller's session token."""
    token = extract_bearer_token(request.headers.get("authorization"))
    if token is None:
        return None
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


class RedisRateLimiter(BaseHTTPMiddleware):
    """
    Sliding window rate limiter shared by all service instances.

    Two tiers:
    - Per IP: higher limit, several customers can share an address
    - Per session: lower limit for logged in callers
    """

    def __init__(
        self,
        app,
        redis_client: redis.Redis,
        requests_per_minute_ip: int = RATE_LIMIT_PER_MINUTE_IP,
        requests_per_minute_user: int = RATE_LIMIT_PER_MINUTE_USER,
        window_seconds: int = 60
    ):
        """
        Initialize Redis-backed rate limiter.

        Args:
            app: FastAPI application
            redis_client: Redis connection
            requests_per_minute_ip: Max requests per IP per window
            requests_per_minute_user: Max requests per session per window
            window_seconds: Sliding window size in seconds
        """
        super().__init__(app)
        self.redis = redis_client
        self.requests_per_minute_ip = requests_per_minute_ip
        self.requests_per_minute_user = requests_per_minute_user
        self.window_seconds = window_seconds

    def _check_rate_limit(
        self,
        key: str,
        limit: int,
        window: int
    ) -> Tuple[bool, int]:
        """
        Check rate limit using a Redis sorted set of request timestamps.

        Args:
            key: Redis key for this limit (e.g., "rate:ip:192.168.1.1")
            limit: Maximum requests allowed
            window: Time window in seconds

        Returns:
            Tuple of (is_allowed, current_count)
        """
        try:
            current_time = time.time()

            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, current_time - window)
            pipe.zcard(key)
            pipe.zadd(key, {str(current_time): current_time})
            pipe.expire(key, window + 1)
            results = pipe.execute()

            # Count before the current request
            count = results[1]
            return count < limit, count + 1

        except redis.RedisError as e:
            logger.error(f"Redis rate limit error: {e}")
            # Fail open
            return True, 0

    def _reject(self, limit_type: str, limit: int) -> JSONResponse:
        rate_limit_exceeded_counter.add(1, {"limit_type": limit_type})
        return JSONResponse(
            status_code=429,
            content={"detail": f"Rate limit exceeded. Maximum {limit} requests per minute."},
            headers={"Retry-After": str(self.window_seconds)}
        )

    async def dispatch(self, request: Request, call_next):
        """
        Process request with dual-tier rate limiting.

        Returns:
            Response, or 429 if rate limited
        """
        client_ip = client_ip_of(request)

        ip_allowed, ip_count = self._check_rate_limit(
            f"rate:ip:{client_ip}",
            self.requests_per_minute_ip,
            self.window_seconds
        )
        if not ip_allowed:
            logger.warning(
                f"Rate limit exceeded for IP {client_ip}: "
                f"{ip_count}/{self.requests_per_minute_ip} requests"
            )
            return self._reject("ip", self.requests_per_minute_ip)

        session_key = session_key_of(request)
        if session_key:
            user_allowed, user_count = self._check_rate_limit(
                f"rate:session:{session_key}",
                self.requests_per_minute_user,
                self.window_seconds
            )
            if not user_allowed:
                logger.warning(
                    f"Rate limit exceeded for session {session_key}: "
                    f"{user_count}/{self.requests_per_minute_user} requests"
                )
                return self._reject("session", self.requests_per_minute_user)

        return await call_next(request)
