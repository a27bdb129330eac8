"""API dependencies for authentication and authorization.

Every handler receives a :class:`Context`, built by one of three factories:

- :func:`plain` - no authentication at all.
- :func:`anon`  - the user is loaded if the request carries a valid
  credential. Sending no credential is fine, sending a bad one is not.
- :func:`auth`  - a user is required and must pass, in order, the scope
  check (401), the plan check (403) and the ACL check (403).

Authentication itself already happened in the authentication middleware,
these dependencies only act on the resulting ``request.state.auth``.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import BackgroundTasks, Depends, Request, status
from redis import Redis
from sqlalchemy.orm import Session

from vpdb.database import get_db
from vpdb.middleware.monitoring import record_authorization_failure
from vpdb.models.token import Token
from vpdb.models.user import User
from vpdb.utils import scope
from vpdb.utils.acl import acl
from vpdb.utils.auth import AuthState
from vpdb.utils.cache import ApiCache
from vpdb.utils.errors import ApiError
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope


@dataclass
class Context:
    """Everything a handler needs to know about the current request"""
    request: Request
    db: Session
    redis: Redis
    api_cache: ApiCache
    background: BackgroundTasks
    auth: AuthState
    user: Optional[User] = None
    headers: Dict[str, str] = field(default_factory=dict)   # added to the response by success()

    @property
    def ip(self) -> str:
        forwarded = self.request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return self.request.client.host if self.request.client else "0.0.0.0"

    @property
    def query(self):
        return self.request.query_params

    def is_allowed(self, resource: str, permission: str) -> bool:
        return acl.is_allowed(self.user, resource, permission)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _auth_state(request: Request) -> AuthState:
    return getattr(request.state, "auth", None) or AuthState()


def _build_context(request: Request, background_tasks: BackgroundTasks, db: Session) -> Context:
    return Context(
        request=request,
        db=db,
        redis=request.app.state.redis,
        api_cache=request.app.state.api_cache,
        background=background_tasks,
        auth=_auth_state(request),
    )


def _load_user(db: Session, state: AuthState) -> Optional[User]:
    if not state.user_id:
        return None
    return db.query(User).filter(User.id == state.user_id).first()


def _format_scopes(scopes: Optional[List[Any]]) -> str:
    return '", "'.join(scope.values(scopes or []))


def _invalid_scope(state: AuthState, required: Optional[List[Scope]]) -> ApiError:
    return ApiError(
        status.HTTP_401_UNAUTHORIZED,
        f'Your token has an invalid scope: [ "{_format_scopes(state.token_scopes)}" ] '
        f'(required: [ "{_format_scopes(required)}" ])',
        log=True,
    )


def _authorize(
    ctx: Context,
    resource: Optional[str],
    permission: Optional[str],
    scopes: Optional[List[Scope]],
    plan_attrs: Optional[Dict[str, Any]],
) -> None:
    """Scope, plan and ACL checks. Every denial is logged with the actor."""
    user = ctx.user
    extra = {"user_id": user.id, "path": ctx.request.url.path, "method": ctx.request.method}

    if not scope.is_valid(scopes, ctx.auth.token_scopes):
        record_authorization_failure("scope")
        raise _invalid_scope(ctx.auth, scopes)

    for key, value in (plan_attrs or {}).items():
        if user.plan_config.get(key) != value:
            record_authorization_failure("plan")
            logger.warning(
                f"User <{user.email}> with plan \"{user.plan}\" was denied access to {ctx.request.url.path} "
                f"({key} is {user.plan_config.get(key)} instead of {value})",
                extra=extra,
            )
            raise ApiError(status.HTTP_403_FORBIDDEN, "Access denied.")

    if resource and permission and not acl.is_allowed(user, resource, permission):
        record_authorization_failure("acl")
        logger.warning(
            f"User <{user.email}> tried to access {ctx.request.url.path} but was denied "
            f"access due to missing permissions to {resource}/{permission}",
            extra=extra,
        )
        raise ApiError(status.HTTP_403_FORBIDDEN, "Access denied.")


def _touch_app_token(db: Session, token_pk: Optional[int]) -> None:
    if token_pk is None:
        return
    db.query(Token).filter(Token.pk == token_pk).update({Token.last_used_at: datetime.utcnow()})
    db.commit()


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------

def plain() -> Callable:
    """Context without authentication"""

    def _plain_dep(
        request: Request,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
    ) -> Context:
        return _build_context(request, background_tasks, db)

    return _plain_dep


def anon() -> Callable:
    """Context with an optional user"""

    def _anon_dep(
        request: Request,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
    ) -> Context:
        ctx = _build_context(request, background_tasks, db)
        if ctx.auth.error is not None:
            if ctx.auth.credentials_provided:
                raise ctx.auth.error
            return ctx
        ctx.user = _load_user(db, ctx.auth)
        return ctx

    return _anon_dep


def auth(
    resource: Optional[str] = None,
    permission: Optional[str] = None,
    scopes: Optional[List[Scope]] = None,
    plan_attrs: Optional[Dict[str, Any]] = None,
) -> Callable:
    """Return a FastAPI dependency that requires an authorized user.

    Usage::

        @router.post("")
        def create_game(body: GameCreate, ctx: Context = Depends(auth("games", "add", [Scope.ALL]))):
            ...

    Args:
        resource:   ACL resource, e.g. ``releases``.
        permission: ACL permission on the resource, e.g. ``update-own``.
        scopes:     Token scopes accepted by the route. At least one must match.
        plan_attrs: Plan attributes the user's plan must have, e.g. ``{"enable_app_tokens": True}``.

    A route requiring the ``service`` scope without resource and permission
    is a service resource: application tokens may call it without acting as
    a user.
    """
    is_service_resource = bool(scopes) and scope.is_valid([Scope.SERVICE], scopes) and not resource and not permission

    def _auth_dep(
        request: Request,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
    ) -> Context:
        ctx = _build_context(request, background_tasks, db)
        state = ctx.auth

        if is_service_resource and state.token_type == "application" and scope.is_valid(scopes, state.token_scopes):
            if state.error is not None:
                _touch_app_token(db, state.app_token_pk)
            else:
                ctx.user = _load_user(db, state)
            return ctx

        if state.error is not None:
            # scope first, a service token without user headers should see the scope error
            if state.token_scopes is not None and not scope.is_valid(scopes, state.token_scopes):
                record_authorization_failure("scope")
                raise _invalid_scope(state, scopes)
            raise state.error

        user = _load_user(db, state)
        if not user:
            raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong, authenticated but no user.")
        ctx.user = user

        _authorize(ctx, resource, permission, scopes, plan_attrs)

        # tell the client its cached user data is stale
        dirty_key = f"dirty_user_{user.id}"
        dirty = ctx.redis.get(dirty_key)
        if dirty:
            logger.info(f"User <{user.email}> is dirty, telling them in header.", extra={"user_id": user.id})
            ctx.headers["X-User-Dirty"] = str(dirty)
            ctx.redis.delete(dirty_key)
        else:
            ctx.headers["X-User-Dirty"] = "0"
        return ctx

    # Give FastAPI a unique name so it doesn't collapse distinct dependencies
    _auth_dep.__name__ = f"auth_{resource or 'any'}_{(permission or 'any').replace('-', '_')}"
    return _auth_dep
