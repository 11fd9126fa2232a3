"""
Redis-based rate limiting middleware.

Sliding-window limits keyed by client IP, stored in
Redis sorted sets so every API worker shares the same counters. The job
board defaults are 100 requests per 15 minutes per IP, plus a stricter
per-minute limit on the login / registration / OTP endpoints.
"""

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import redis.asyncio as redis
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

AUTH_PATHS = [
    "/api/v1/auth/login",
    "/api/v1/auth/register",
    "/api/v1/auth/send-otp",
    "/api/v1/auth/verify-otp",
]


class RateLimitStrategy(str, Enum):
    """Rate limiting strategy types."""
    IP_ADDRESS = "ip"


class RateLimitWindow(str, Enum):
    """Time window types for rate limiting."""
    MINUTE = "minute"
    FIFTEEN_MINUTES = "15m"
    HOUR = "hour"
    DAY = "day"


WINDOW_SECONDS = {
    RateLimitWindow.MINUTE: 60,
    RateLimitWindow.FIFTEEN_MINUTES: 15 * 60,
    RateLimitWindow.HOUR: 3600,
    RateLimitWindow.DAY: 86400,
}


@dataclass
class RateLimitRule:
    """Rate limit rule configuration."""
    strategy: RateLimitStrategy
    window: RateLimitWindow
    max_requests: int
    paths: Optional[List[str]] = None  # Path prefixes the rule applies to
    methods: Optional[List[str]] = None  # Specific HTTP methods
    exempt_ips: Optional[List[str]] = None  # IPs exempt from this rule


def default_rules(per_window: int = 100, auth_per_minute: int = 5) -> List[RateLimitRule]:
    """Job board defaults: strict on auth entry points, generous elsewhere."""
    return [
        RateLimitRule(
            strategy=RateLimitStrategy.IP_ADDRESS,
            window=RateLimitWindow.MINUTE,
            max_requests=auth_per_minute,
            paths=AUTH_PATHS,
            methods=["POST"],
        ),
        RateLimitRule(
            strategy=RateLimitStrategy.IP_ADDRESS,
            window=RateLimitWindow.FIFTEEN_MINUTES,
            max_requests=per_window,
            paths=["/api/"],
        ),
    ]


class SlidingWindowRateLimiter:
    """
    Redis-based sliding window rate limiter.

    Each key is a sorted set of request timestamps; entries older than the
    window are trimmed before counting.
    """

    def __init__(self, redis_client: Redis):
        """
        Initialize rate limiter.

        Args:
            redis_client: Async Redis client instance
        """
        self.redis = redis_client

    async def is_allowed(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
        cost: int = 1,
    ) -> tuple[bool, Dict[str, Any]]:
        """
        Check if request is allowed under rate limit.

        Args:
            key: Unique identifier for the rate limit
            max_requests: Maximum requests allowed in window
            window_seconds: Time window in seconds
            cost: Cost of this request

        Returns:
            Tuple of (is_allowed, metadata)
            metadata contains: limit, remaining, reset, retry_after, current
        """
        now = time.time()
        window_start = now - window_seconds

        try:
            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zcard(key)
            member = f"{now}:{uuid.uuid4().hex[:8]}"
            pipe.zadd(key, {member: now})
            pipe.expire(key, window_seconds + 60)
            results = await pipe.execute()

            # Count before this request was added
            current_count = results[1]

            remaining = max(0, max_requests - current_count - cost)
            reset_time = int(now + window_seconds)
            is_allowed = (current_count + cost) <= max_requests

            if not is_allowed:
                # Time until the oldest request leaves the window
                oldest_scores = await self.redis.zrange(key, 0, 0, withscores=True)
                if oldest_scores:
                    retry_after = int(oldest_scores[0][1] + window_seconds - now)
                else:
                    retry_after = window_seconds

                # Rejected requests don't count
                await self.redis.zrem(key, member)
            else:
                retry_after = 0

            return is_allowed, {
                'limit': max_requests,
                'remaining': remaining,
                'reset': reset_time,
                'retry_after': max(0, retry_after),
                'current': current_count,
            }

        except RedisConnectionError as e:
            logger.error(f"Redis connection error in rate limiter: {e}")
            return True, self._fail_open(max_requests, now, window_seconds, 'redis_unavailable')

        except (RedisError, OSError, TimeoutError) as e:
            logger.error(f"Redis error in rate limiter: {e}")
            return True, self._fail_open(max_requests, now, window_seconds, 'redis_error')

    @staticmethod
    def _fail_open(
        max_requests: int, now: float, window_seconds: int, reason: str
    ) -> Dict[str, Any]:
        return {
            'limit': max_requests,
            'remaining': max_requests,
            'reset': int(now + window_seconds),
            'retry_after': 0,
            'error': reason,
        }

    async def reset(self, key: str) -> bool:
        """
        Reset rate limit for a specific key.

        Args:
            key: Rate limit key to reset

        Returns:
            True if reset successful
        """
        try:
            await self.redis.delete(key)
            return True
        except RedisError as e:
            logger.error(f"Failed to reset rate limit for {key}: {e}")
            return False


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware.

    Features:
    - Per-IP rules, optionally scoped to paths and methods
    - Forwarding headers honoured only from trusted proxies
    - Sliding window algorithm backed by Redis
    - Fails open if Redis is unavailable
    - ``X-RateLimit-*`` headers on every limited response
    """

    def __init__(
        self,
        app: ASGIApp,
        redis_url: str,
        rules: Optional[List[RateLimitRule]] = None,
        key_prefix: str = "ratelimit",
        enable_headers: bool = True,
        redis_client: Optional[Redis] = None,
        trusted_proxies: Optional[List[str]] = None,
    ):
        """
        Initialize rate limiting middleware.

        Args:
            app: The ASGI application
            redis_url: Redis connection URL
            rules: Rate limit rules to apply (defaults to ``default_rules()``)
            key_prefix: Prefix for Redis keys
            enable_headers: Whether to add rate limit headers to responses
            redis_client: Pre-built client (tests)
            trusted_proxies: Peer addresses whose X-Forwarded-For / X-Real-IP
                headers are believed
        """
        super().__init__(app)
        self.redis_url = redis_url
        self.redis_client: Optional[Redis] = redis_client
        self.limiter: Optional[SlidingWindowRateLimiter] = (
            SlidingWindowRateLimiter(redis_client) if redis_client else None
        )
        self.rules = rules if rules is not None else default_rules()
        self.key_prefix = key_prefix
        self.enable_headers = enable_headers
        self.trusted_proxies = set(trusted_proxies or [])

    def _initialize(self):
        """Create the Redis client lazily (connections open on first command)."""
        if self.limiter is None:
            self.redis_client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
                health_check_interval=30,
            )
            self.limiter = SlidingWindowRateLimiter(self.redis_client)
            logger.info("Rate limiter initialized")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request with rate limiting.

        Args:
            request: The incoming request
            call_next: The next middleware/handler

        Returns:
            Response from the application or rate limit error
        """
        if request.url.path in ['/health', '/ready']:
            return await call_next(request)

        self._initialize()

        result = await self._check_rate_limits(request)

        if not result['allowed']:
            logger.warning(
                f"Rate limit exceeded: {request.method} {request.url.path} "
                f"from {self._get_client_ip(request)}"
            )
            response = JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    'error': {
                        'code': 'RATE_LIMIT_EXCEEDED',
                        'message': 'Too many requests. Please try again later.',
                        'path': request.url.path,
                        'method': request.method,
                        'details': {'retry_after': result['retry_after']},
                    }
                },
            )
            if self.enable_headers:
                self._add_rate_limit_headers(response, result)
            return response

        response = await call_next(request)

        if self.enable_headers and result['limit']:
            self._add_rate_limit_headers(response, result)

        return response

    async def _check_rate_limits(self, request: Request) -> Dict[str, Any]:
        """
        Check all applicable rate limits for a request.

        Args:
            request: The incoming request

        Returns:
            Dictionary with the most restrictive result
        """
        results = {
            'allowed': True,
            'limit': 0,
            'remaining': 0,
            'reset': 0,
            'retry_after': 0,
        }

        for rule in self._get_applicable_rules(request):
            if rule.exempt_ips and self._get_client_ip(request) in rule.exempt_ips:
                continue

            key = self._generate_key(request, rule)
            allowed, metadata = await self.limiter.is_allowed(
                key=key,
                max_requests=rule.max_requests,
                window_seconds=WINDOW_SECONDS[rule.window],
            )

            if not allowed:
                results['allowed'] = False
                results['retry_after'] = max(results['retry_after'], metadata['retry_after'])

            if results['limit'] == 0 or metadata['remaining'] < results['remaining']:
                results['limit'] = metadata['limit']
                results['remaining'] = metadata['remaining']
                results['reset'] = metadata['reset']

        return results

    def _get_applicable_rules(self, request: Request) -> List[RateLimitRule]:
        """
        Get rate limit rules applicable to the request.

        Args:
            request: The incoming request

        Returns:
            List of applicable rules
        """
        applicable = []
        for rule in self.rules:
            if rule.paths and not any(request.url.path.startswith(p) for p in rule.paths):
                continue
            if rule.methods and request.method not in rule.methods:
                continue
            applicable.append(rule)
        return applicable

    def _generate_key(self, request: Request, rule: RateLimitRule) -> str:
        """
        Generate the rate limit key for the client IP.

        Args:
            request: The incoming request
            rule: The rate limit rule

        Returns:
            Rate limit key
        """
        parts = [self.key_prefix, rule.strategy.value, rule.window.value]

        if rule.paths:
            # Keep per-rule counters apart when several rules share a strategy
            parts.append(hashlib.sha256("|".join(rule.paths).encode()).hexdigest()[:8])

        parts.append(self._get_client_ip(request))
        return ":".join(parts)

    def _get_client_ip(self, request: Request) -> str:
        peer = request.client.host if request.client else 'unknown'
        # Clients can set these headers themselves
        if peer not in self.trusted_proxies:
            return peer

        forwarded_for = request.headers.get('x-forwarded-for')
        if forwarded_for:
            return forwarded_for.split(',')[0].strip()

        real_ip = request.headers.get('x-real-ip')
        if real_ip:
            return real_ip

        return peer

    def _add_rate_limit_headers(self, response: Response, result: Dict[str, Any]):
        response.headers['X-RateLimit-Limit'] = str(result['limit'])
        response.headers['X-RateLimit-Remaining'] = str(result['remaining'])
        response.headers['X-RateLimit-Reset'] = str(result['reset'])

        if not result['allowed']:
            response.headers['Retry-After'] = str(result['retry_after'])
