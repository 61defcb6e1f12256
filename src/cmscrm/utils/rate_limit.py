# src/cmscrm/utils/rate_limit.py
"""
Request throttling via slowapi (in-memory storage, keyed by client IP).

The default limit applies to every route through SlowAPIMiddleware; login has
its own stricter limit against password guessing. RATE_LIMIT_ENABLED=false
turns both off (tests).
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.cmscrm.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED,
    strategy="fixed-window",
)


def auth_rate_limit():
    """Rate limit for the login endpoint."""
    return limiter.limit(settings.LOGIN_RATE_LIMIT)
