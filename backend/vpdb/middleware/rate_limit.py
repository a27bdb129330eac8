"""Rate limiting middleware for API protection"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from vpdb.config import settings


def get_identifier(request: Request) -> str:
    """
    Get identifier for rate limiting based on authentication

    Priority:
    1. User ID (from a valid JWT or application token)
    2. IP address (for anonymous requests)
    """
    auth = getattr(request.state, "auth", None)
    if auth is not None and auth.user_id:
        return f"user:{auth.user_id}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_identifier,
    default_limits=settings.RATE_LIMIT_DEFAULT,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


RATE_LIMITS = {
    # login attempts
    "authenticate": "10/minute",
    "storage_authenticate": "100/minute",

    # writes
    "create_token": "20/hour",
    "rate": "100/hour",
    "comment": "50/hour",
}


def get_rate_limit(endpoint: str) -> str:
    """Get rate limit for specific endpoint"""
    return RATE_LIMITS.get(endpoint, settings.RATE_LIMIT_DEFAULT[0])
