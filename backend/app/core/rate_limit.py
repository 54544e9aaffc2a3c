"""
Rate limiting for the B2B Commerce backend
Uses in-memory storage with sliding window algorithm
"""
import time
from typing import Dict, Optional, Tuple
from collections import defaultdict

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from app.core.api_keys import KEY_PREFIX
from app.core.config import settings


class RateLimiter:
    """
    In-memory rate limiter using sliding window algorithm.

    For production with multiple instances, consider using Redis.
    """

    def __init__(self):
        # {identifier: [(timestamp, count), ...]}
        self._requests: Dict[str, list] = defaultdict(list)
        self._last_cleanup = time.time()
        self._cleanup_interval = 60  # seconds

    def _cleanup_old_entries(self, window_seconds: int = 60):
        """Remove entries older than the largest window we care about"""
        now = time.time()

        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds * 2

        for identifier in list(self._requests.keys()):
            self._requests[identifier] = [
                (ts, count) for ts, count in self._requests[identifier]
                if ts > cutoff
            ]
            if not self._requests[identifier]:
                del self._requests[identifier]

        self._last_cleanup = now

    def is_allowed(
        self,
        identifier: str,
        max_requests: int,
        window_seconds: int = 60
    ) -> Tuple[bool, int, int]:
        """
        Check if a request is allowed under the rate limit.

        Returns:
            Tuple of (is_allowed, remaining_requests, retry_after_seconds)
        """
        self._cleanup_old_entries(window_seconds)

        now = time.time()
        window_start = now - window_seconds

        requests_in_window = [
            (ts, count) for ts, count in self._requests[identifier]
            if ts > window_start
        ]
        total_requests = sum(count for _, count in requests_in_window)

        if total_requests >= max_requests:
            if requests_in_window:
                oldest_timestamp = min(ts for ts, _ in requests_in_window)
                retry_after = int(oldest_timestamp + window_seconds - now) + 1
            else:
                retry_after = 1
            return False, 0, retry_after

        self._requests[identifier].append((now, 1))

        remaining = max_requests - total_requests - 1
        return True, remaining, 0

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()

# Paths that are exempt from rate limiting
EXEMPT_PATHS = {
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def rate_limit_headers(limit: int, remaining: int, retry_after: Optional[int] = None) -> Dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
    }
    if retry_after is not None:
        headers["X-RateLimit-Reset"] = str(retry_after)
        headers["Retry-After"] = str(retry_after)
    return headers


class RateLimitExceeded(Exception):
    """Raised from dependencies; main.py turns it into the same 429 the middleware sends"""

    def __init__(self, limit: int, retry_after: int, message: str = "Rate limit exceeded. Please slow down."):
        super().__init__(message)
        self.limit = limit
        self.retry_after = retry_after
        self.message = message


def rate_limit_exceeded_response(limit: int, retry_after: int,
                                 message: str = "Rate limit exceeded. Please slow down.") -> JSONResponse:
    # JSONResponse rather than HTTPException so CORS headers still apply
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "success": False,
            "message": message,
            "error_code": "RATE_LIMIT_EXCEEDED",
            "data": None,
        },
        headers=rate_limit_headers(limit, 0, retry_after),
    )


def get_client_ip(request: Request) -> str:
    """Client IP: first X-Forwarded-For entry, then X-Real-IP, then the socket peer"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware that applies rate limiting based on authentication status.

    Rate limits:
    - Authenticated users (JWT): AUTHENTICATED_RATE_LIMIT req/min
    - Unauthenticated: UNAUTHENTICATED_RATE_LIMIT req/min, keyed by client IP
    - API key requests are skipped here; the API key dependency applies
      each key's own rate_limit_per_minute once the key is resolved, and
      charges rejected keys to the client IP via apply_ip_rate_limit

    Headers returned:
    - X-RateLimit-Limit: Maximum requests per window
    - X-RateLimit-Remaining: Remaining requests in current window
    - X-RateLimit-Reset / Retry-After: Seconds until retry (when limited)
    """

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        # CORS preflight
        if request.method == "OPTIONS":
            return await call_next(request)

        api_key = request.headers.get(settings.API_KEY_HEADER)
        if api_key and api_key.startswith(KEY_PREFIX):
            response = await call_next(request)
            response.headers.update(getattr(request.state, "rate_limit_headers", {}))
            return response

        identifier, limit = self._get_identifier_and_limit(request)

        is_allowed, remaining, retry_after = rate_limiter.is_allowed(
            identifier=identifier,
            max_requests=limit,
            window_seconds=60
        )

        if not is_allowed:
            return rate_limit_exceeded_response(limit, retry_after)

        response = await call_next(request)
        response.headers.update(rate_limit_headers(limit, remaining))
        return response

    def _get_identifier_and_limit(self, request: Request) -> Tuple[str, int]:
        """JWT bearer token first, then client IP"""
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token_hash = hash(auth_header)
            return f"jwt:{token_hash}", settings.AUTHENTICATED_RATE_LIMIT

        return f"ip:{get_client_ip(request)}", settings.UNAUTHENTICATED_RATE_LIMIT


def apply_api_key_rate_limit(request: Request, api_key_id: str, limit: int) -> Tuple[bool, int, int]:
    """
    Sliding-window check for one API key.

    The X-RateLimit headers are left on request.state; RateLimitMiddleware
    copies them onto the outgoing response.
    """
    is_allowed, remaining, retry_after = rate_limiter.is_allowed(
        identifier=f"api_key:{api_key_id}",
        max_requests=limit,
        window_seconds=60
    )
    if is_allowed:
        request.state.rate_limit_headers = rate_limit_headers(limit, remaining)
    return is_allowed, remaining, retry_after


def apply_ip_rate_limit(request: Request) -> Tuple[bool, int, int]:
    """Charge a request to its client IP bucket, shared with anonymous traffic"""
    return rate_limiter.is_allowed(
        identifier=f"ip:{get_client_ip(request)}",
        max_requests=settings.UNAUTHENTICATED_RATE_LIMIT,
        window_seconds=60
    )
