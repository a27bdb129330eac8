"""Monitoring and observability middleware"""
import time
from typing import Callable
from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from vpdb.utils.logger import logger


# ===== Prometheus Metrics =====

# Request metrics
http_requests_total = Counter(
    "vpdb_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "vpdb_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"]
)

# Cache metrics
api_cache_total = Counter(
    "vpdb_api_cache_total",
    "API cache lookups",
    ["result"]  # hit, miss
)

api_cache_invalidations_total = Counter(
    "vpdb_api_cache_invalidations_total",
    "Cache entries removed by invalidation",
    ["reason"]
)

moderation_actions_total = Counter(
    "vpdb_moderation_actions_total",
    "Total moderation actions",
    ["entity", "action"]
)

# Error metrics
http_errors_total = Counter(
    "vpdb_http_errors_total",
    "Total HTTP errors",
    ["method", "endpoint", "status"]
)

authentication_failures_total = Counter(
    "vpdb_authentication_failures_total",
    "Total authentication failures",
    ["status"]  # 400, 401, 403
)

authorization_failures_total = Counter(
    "vpdb_authorization_failures_total",
    "Total authorization failures",
    ["reason"]  # scope, plan, acl
)


class MonitoringMiddleware(BaseHTTPMiddleware):
    """Middleware for monitoring and metrics collection"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and collect metrics"""
        start_time = time.time()

        method = request.method
        endpoint = request.url.path

        request_id = request.headers.get("x-request-id", f"req_{int(time.time() * 1000)}")
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            status = response.status_code

            route = request.scope.get("route")
            if route is not None:
                endpoint = getattr(route, "path", endpoint)

            duration = time.time() - start_time
            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=status
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(duration)

            if duration > 1.0:
                logger.warning(
                    f"Slow request detected: {method} {endpoint}",
                    extra={
                        "request_id": request_id,
                        "method": method,
                        "path": request.url.path,
                        "duration": duration,
                        "status": status
                    }
                )

            if status >= 400:
                http_errors_total.labels(
                    method=method,
                    endpoint=endpoint,
                    status=status
                ).inc()

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration:.3f}s"

            return response

        except Exception as e:
            duration = time.time() - start_time
            http_errors_total.labels(
                method=method,
                endpoint=endpoint,
                status=500
            ).inc()

            logger.error(
                f"Request failed: {method} {endpoint}",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": request.url.path,
                    "duration": duration,
                    "error": str(e)
                },
                exc_info=True
            )
            raise


def record_cache_result(result: str):
    """Record a cache hit or miss"""
    api_cache_total.labels(result=result).inc()


def record_cache_invalidation(reason: str, count: int):
    """Record how many cached responses an invalidation removed"""
    if count:
        api_cache_invalidations_total.labels(reason=reason).inc(count)


def record_moderation_action(entity: str, action: str):
    """Record a moderation action"""
    moderation_actions_total.labels(entity=entity, action=action).inc()


def record_auth_failure(status_code: int):
    """Record authentication failure"""
    authentication_failures_total.labels(status=status_code).inc()


def record_authorization_failure(reason: str):
    """Record authorization failure"""
    authorization_failures_total.labels(reason=reason).inc()
