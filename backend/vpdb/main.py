"""FastAPI application entry point"""
from contextlib import asynccontextmanager

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException

from vpdb.api import (
    authenticate,
    backglasses,
    builds,
    comments,
    events,
    games,
    health,
    media,
    misc,
    profile,
    ratings,
    releases,
    roms,
    stars,
    tokens,
    users,
)
from vpdb.api.helpers import validation_errors
from vpdb.config import settings
from vpdb.middleware import AuthenticationMiddleware, CacheMiddleware, limiter
from vpdb.utils.cache import ApiCache, CacheConfig
from vpdb.utils.errors import ApiError, ApiValidationError
from vpdb.utils.logger import logger, setup_logging

# Setup logging
setup_logging(settings.LOG_LEVEL)

CACHE_ROUTES = (
    games.CACHE_ROUTES
    + releases.CACHE_ROUTES
    + backglasses.CACHE_ROUTES
    + roms.CACHE_ROUTES
    + builds.CACHE_ROUTES
    + comments.CACHE_ROUTES
    + media.CACHE_ROUTES
)

# List endpoint of every model, cleared when one of its entities changes
CACHE_ENDPOINTS = (
    ("game", "/v1/games"),
    ("release", "/v1/releases"),
    ("backglass", "/v1/backglasses"),
    ("rom", "/v1/roms"),
    ("medium", "/v1/media"),
)

API_ROUTERS = (
    misc.router,
    authenticate.router,
    profile.router,
    users.router,
    tokens.router,
    games.router,
    releases.router,
    backglasses.router,
    roms.router,
    builds.router,
    comments.router,
    media.router,
    ratings.router,
    stars.router,
    events.router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    logger.info(f"{settings.API_NAME} API starting up", extra={
        "version": settings.API_VERSION,
        "log_level": settings.LOG_LEVEL,
        "rate_limiting": settings.RATE_LIMIT_ENABLED,
        "monitoring": settings.METRICS_ENABLED,
        "legacy_api": settings.LEGACY_API_ENABLED,
    })
    yield
    # Shutdown
    logger.info(f"{settings.API_NAME} API shutting down")
    app.state.redis.close()


# Create FastAPI app
app = FastAPI(
    title=settings.API_NAME,
    description="Visual Pinball database API",
    version=settings.API_VERSION,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    lifespan=lifespan,
)

app.state.redis = redis.from_url(settings.REDIS_URL, decode_responses=True)
app.state.api_cache = ApiCache(app.state.redis, CacheConfig(routes=CACHE_ROUTES, endpoints=CACHE_ENDPOINTS))
app.state.limiter = limiter

# ===== Middleware Setup =====
# Request order: monitoring -> CORS -> authentication -> cache -> rate limit

if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(SlowAPIMiddleware)

app.add_middleware(CacheMiddleware)
app.add_middleware(AuthenticationMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Token-Refresh", "X-User-Dirty", "X-Cache-Api", "X-User-Id", "X-List-Page",
                    "X-List-Size", "X-List-Count", "Link", "X-Request-ID"],
)

# Monitoring middleware
if settings.METRICS_ENABLED:
    from vpdb.middleware.monitoring import MonitoringMiddleware
    app.add_middleware(MonitoringMiddleware)

    # Prometheus metrics
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/health", "/health/ready", "/health/live"],
        inprogress_name="vpdb_requests_inprogress",
        inprogress_labels=True,
    )
    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint=settings.METRICS_PATH, include_in_schema=False)

# ===== Route Setup =====

app.include_router(health.router)
for router in API_ROUTERS:
    app.include_router(router, prefix="/v1")
    if settings.LEGACY_API_ENABLED:
        app.include_router(router, prefix="/api", include_in_schema=False)
app.include_router(authenticate.storage_router, prefix="/storage/v1")


# ===== Error Handlers =====

@app.exception_handler(ApiValidationError)
async def api_validation_error_handler(request: Request, exc: ApiValidationError):
    return JSONResponse(status_code=exc.status_code, content={"errors": exc.errors})


@app.exception_handler(HTTPException)
async def api_error_handler(request: Request, exc: HTTPException):
    """Render ``ApiError`` and plain HTTP errors as ``{"error": message}``"""
    message = exc.message if isinstance(exc, ApiError) else str(exc.detail)
    if isinstance(exc, ApiError) and exc.log:
        logger.warning(
            str(exc.detail),
            extra={"path": request.url.path, "method": request.method, "status": exc.status_code},
        )
    if exc.status_code >= 500:
        logger.error(
            f"Internal error: {exc.detail}",
            extra={"path": request.url.path, "method": request.method, "status": exc.status_code},
        )
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content={"errors": validation_errors(exc)})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors"""
    logger.warning(
        "Rate limit exceeded",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc.detail),
        },
    )
    return JSONResponse(
        status_code=429,
        content={"error": f"Too many requests. Please try again later ({exc.detail})."},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for uncaught errors"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error."})
