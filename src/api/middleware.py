"""Request rate limiting (slowapi), keyed by client address."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)

# Per-route limit applied with ``@limiter.limit(RATE_LIMIT)``.
RATE_LIMIT = settings.rate_limit
