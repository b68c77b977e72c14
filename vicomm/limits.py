from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from vicomm.config import settings

# Shared limiter for the application, per-route limits override the default
limiter = Limiter(
    key_func=get_remote_address, default_limits=[settings.RATE_LIMIT_DEFAULT]
)

__all__ = [
    "limiter",
    "RateLimitExceeded",
    "SlowAPIMiddleware",
]
