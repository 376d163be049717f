"""
Redis-based rate limiting for write endpoints.
Implements a fixed window counter per user (or client IP for anonymous calls).
"""
import logging
from functools import lru_cache
from typing import Tuple

import redis
from django.conf import settings
from rest_framework.exceptions import Throttled

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_redis_client() -> redis.Redis:
    """Lazily build the shared Redis client."""
    return redis.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=5
    )


def get_client_ip(request):
    """Extract client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', 'unknown')


def parse_rate(rate: str) -> Tuple[int, int]:
    """Parse ``"<requests>/<seconds>"`` into a tuple of ints."""
    max_requests, window_seconds = rate.split('/', 1)
    return int(max_requests), int(window_seconds)


class RateLimitMixin:
    """
    Mixin for DRF views that limits selected HTTP methods.

    Runs after authentication so logged-in users are counted by account.
    Fails open when Redis is unreachable.

    Usage:
        class MyView(RateLimitMixin, generics.CreateAPIView):
            rate_limit_setting = 'ORDER_RATE_LIMIT'
            rate_limit_methods = ('POST',)
    """
    rate_limit_setting = 'ORDER_RATE_LIMIT'
    rate_limit_default = '20/60'
    rate_limit_methods = ('POST',)
    rate_limit_scope = None

    def get_rate_limit(self) -> Tuple[int, int]:
        return parse_rate(getattr(settings, self.rate_limit_setting, self.rate_limit_default))

    def get_rate_limit_key(self, request) -> str:
        scope = self.rate_limit_scope or self.__class__.__name__
        if request.user and request.user.is_authenticated:
            ident = f"user:{request.user.pk}"
        else:
            ident = f"ip:{get_client_ip(request)}"
        return f"rate_limit:{scope}:{ident}"

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.rate_limit_headers = {}

        if request.method not in self.rate_limit_methods:
            return
        if not getattr(settings, 'RATE_LIMIT_ENABLED', True):
            return

        max_requests, window_seconds = self.get_rate_limit()
        key = self.get_rate_limit_key(request)

        try:
            client = get_redis_client()
            current_count = client.incr(key)
            ttl = client.ttl(key)
            # A key without expiry would never reset
            if current_count == 1 or ttl < 0:
                client.expire(key, window_seconds)
                ttl = window_seconds
        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            return

        self.rate_limit_headers = {
            'X-RateLimit-Limit': str(max_requests),
            'X-RateLimit-Remaining': str(max(0, max_requests - current_count)),
            'X-RateLimit-Reset': str(ttl),
        }

        if current_count > max_requests:
            logger.warning(f"Rate limit exceeded for {key}: {current_count}/{max_requests}")
            raise Throttled(
                wait=ttl,
                detail=f'Maximum {max_requests} requests per {window_seconds} seconds allowed.'
            )

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        for header, value in getattr(self, 'rate_limit_headers', {}).items():
            response[header] = value
        return response
