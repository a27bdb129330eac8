"""API response cache middleware.

Sits behind the authentication middleware so the cache key can include the
user. Only GET and HEAD requests on configured routes are looked up, only
successful GET responses are stored. Requests carrying a bad credential go
straight to the route so the client gets its error.
"""
from typing import Callable

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from vpdb.middleware.monitoring import record_cache_result
from vpdb.utils.auth import AuthState
from vpdb.utils.cache import CachedResponse
from vpdb.utils.logger import logger

CACHE_HEADER = "X-Cache-Api"

# never part of the cache key, storage tokens may be passed in the URL
_IGNORED_QUERY_PARAMS = {"token"}


class CacheMiddleware(BaseHTTPMiddleware):
    """Serve and store responses of cacheable routes"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method not in ("GET", "HEAD"):
            return await call_next(request)

        api_cache = request.app.state.api_cache
        matched = api_cache.match(request.url.path)
        if matched is None:
            return await call_next(request)

        auth: AuthState = getattr(request.state, "auth", None) or AuthState()
        if auth.error is not None and auth.credentials_provided:
            return await call_next(request)

        route, params = matched
        path = request.url.path
        query = [(k, v) for k, v in request.query_params.multi_items() if k not in _IGNORED_QUERY_PARAMS]
        key = api_cache.cache_key(auth.user_id, path, query)

        cached = await run_in_threadpool(api_cache.get, key)
        if cached is not None:
            record_cache_result("hit")
            if request.method == "GET" and route.counter is not None:
                cached = await run_in_threadpool(api_cache.update_counter, key, route, params, cached)
            logger.debug("Cache hit", extra={"cache_key": key, "path": path})
            response = Response(content=cached.body, status_code=cached.status, headers=cached.headers)
            response.headers[CACHE_HEADER] = "HIT"
            return response

        record_cache_result("miss")
        response = await call_next(request)
        response.headers[CACHE_HEADER] = "MISS"
        if request.method != "GET" or not 200 <= response.status_code < 300:
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        headers = dict(response.headers)
        await run_in_threadpool(
            api_cache.store,
            key,
            route,
            params,
            auth.user_id,
            path,
            CachedResponse(status=response.status_code, headers=headers, body=body.decode("utf-8")),
        )
        return Response(content=body, status_code=response.status_code, headers=headers)
