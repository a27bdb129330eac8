"""Middleware modules for authentication, caching and production features"""
from vpdb.middleware.authentication import AuthenticationMiddleware
from vpdb.middleware.cache import CacheMiddleware
from vpdb.middleware.monitoring import (
    MonitoringMiddleware,
    record_auth_failure,
    record_authorization_failure,
    record_cache_invalidation,
    record_cache_result,
    record_moderation_action
)
from vpdb.middleware.rate_limit import limiter, get_rate_limit

__all__ = [
    "AuthenticationMiddleware",
    "CacheMiddleware",
    "MonitoringMiddleware",
    "record_auth_failure",
    "record_authorization_failure",
    "record_cache_invalidation",
    "record_cache_result",
    "record_moderation_action",
    "limiter",
    "get_rate_limit"
]
