"""
Rate Limiting Middleware

Fixed-window counter per caller (access-token subject, else client IP).
Redis-backed and fail-open: if Redis is down, requests are allowed.
"""
import time
import logging
from typing import Tuple
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from core.auth import ACCESS_TOKEN_COOKIE
from core.cache import get_redis_client
from core.exceptions import error_body
from core.security import decode_access_token

logger = logging.getLogger(__name__)

EXEMPT_PATHS = {"/", "/health", "/ping", "/docs", "/openapi.json", "/redoc"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Allow `limit` requests per caller per `window` seconds."""

    def __init__(self, app, limit: int = 100, window: int = 600):
        super().__init__(app)
        self.limit = limit
        self.window = window

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        caller = self._get_caller_id(request)
        allowed, remaining, reset_time = self._check_rate_limit(caller)

        if not allowed:
            logger.warning(f"Rate limit exceeded for {caller}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_body(
                    "Too many requests from this IP, please try again later",
                    "RATE_LIMITED",
                ),
                headers={
                    "X-RateLimit-Limit": str(self.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset_time),
                    "Retry-After": str(max(0, reset_time - int(time.time()))),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset_time)
        return response

    def _get_caller_id(self, request: Request) -> str:
        """User ID from the access-token cookie, falling back to the client IP."""
        token = request.cookies.get(ACCESS_TOKEN_COOKIE)
        if token:
            payload = decode_access_token(token)
            if payload and payload.get("sub"):
                return f"user:{payload['sub']}"

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _check_rate_limit(self, caller: str) -> Tuple[bool, int, int]:
        """
        Count this request against the caller's current window.

        Returns:
            (allowed, remaining, reset_time)
        """
        redis_client = get_redis_client()

        if not redis_client:
            return True, self.limit, int(time.time()) + self.window

        key = f"rate_limit:{caller}"

        try:
            count = redis_client.incr(key)
            if count == 1:
                redis_client.expire(key, self.window)

            ttl = redis_client.ttl(key)
            reset_time = int(time.time()) + (ttl if ttl > 0 else self.window)

            if count > self.limit:
                return False, 0, reset_time
            return True, self.limit - count, reset_time

        except Exception as e:
            # Fail open
            logger.error(f"Rate limit check error: {e}")
            return True, self.limit, int(time.time()) + self.window


def check_rate_limit_backend() -> bool:
    """
    Report whether the limiter can count requests.

    Without Redis every request is allowed; say so once instead of failing
    open silently.
    """
    if get_redis_client() is None:
        logger.warning(
            "Rate limiting is enabled but Redis is unreachable at REDIS_URL; "
            "requests will not be limited"
        )
        return False
    return True
