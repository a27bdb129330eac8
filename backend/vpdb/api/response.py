"""Uniform success responses.

Handlers end with ``return success(ctx, body, status_code)``. Routers built
with :func:`api_router` refuse anything else with a 500, so headers gathered
during authorization (``X-User-Dirty``) can't be lost by a handler returning
a bare dict.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from sqlalchemy.orm import Query

from vpdb.config import settings
from vpdb.utils.errors import ApiError


class ApiResponse(JSONResponse):
    """JSON response produced by :func:`success`. ``None`` renders an empty body."""

    def render(self, content: Any) -> bytes:
        if content is None:
            return b""
        return super().render(content)


@dataclass
class Pagination:
    page: int
    per_page: int
    count: int = 0

    def apply(self, query: Query) -> List[Any]:
        """Count the full result, then return the requested page"""
        self.count = query.order_by(None).count()
        return query.offset((self.page - 1) * self.per_page).limit(self.per_page).all()

    def headers(self, request: Request) -> Dict[str, str]:
        headers = {
            "X-List-Page": str(self.page),
            "X-List-Size": str(self.per_page),
            "X-List-Count": str(self.count),
        }
        last_page = -(-self.count // self.per_page) if self.per_page else 1
        links: Dict[str, int] = {}
        if self.page > 2:
            links["first"] = 1
        if self.page > 1:
            links["prev"] = self.page - 1
        if self.page < last_page:
            links["next"] = self.page + 1
        if self.page < last_page - 1:
            links["last"] = last_page
        if links:
            headers["Link"] = ", ".join(
                f'<{request.url.include_query_params(page=page, per_page=self.per_page)}>; rel="{rel}"'
                for rel, page in links.items()
            )
        return headers


def pagination(request: Request, default_per_page: Optional[int] = None, max_per_page: Optional[int] = None) -> Pagination:
    """Read ``page`` and ``per_page`` from the query"""
    default_per_page = default_per_page or settings.PAGINATION_DEFAULT
    max_per_page = max_per_page or settings.PAGINATION_MAX
    page = _to_int(request.query_params.get("page"))
    per_page = _to_int(request.query_params.get("per_page"))
    return Pagination(
        page=max(page, 1) if page else 1,
        per_page=max(0, min(per_page, max_per_page)) if per_page else default_per_page,
    )


def _to_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def success(
    ctx: Any,
    body: Any = None,
    status_code: int = status.HTTP_200_OK,
    pagination: Optional[Pagination] = None,
    headers: Optional[Dict[str, str]] = None,
) -> ApiResponse:
    """Build the response of a handler.

    Args:
        ctx:         Request context, its collected headers are applied.
        body:        Pydantic model(s), dict, list or ``None`` for no body.
        status_code: HTTP status.
        pagination:  Adds ``X-List-*`` and ``Link`` headers.
        headers:     Additional response headers.
    """
    response_headers = dict(ctx.headers)
    if pagination is not None:
        response_headers.update(pagination.headers(ctx.request))
    if headers:
        response_headers.update(headers)
    content = jsonable_encoder(body) if body is not None else None
    return ApiResponse(content=content, status_code=status_code, headers=response_headers)


class ApiRoute(APIRoute):
    """Route that insists on handlers returning :func:`success`"""

    def get_route_handler(self) -> Callable:
        handler = super().get_route_handler()
        path = self.path

        async def api_route_handler(request: Request):
            response = await handler(request)
            if not isinstance(response, ApiResponse):
                raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Handler of {path} must return success().", log=True)
            return response

        return api_route_handler


def api_router(**kwargs: Any) -> APIRouter:
    return APIRouter(route_class=ApiRoute, **kwargs)
