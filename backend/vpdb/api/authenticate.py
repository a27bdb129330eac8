"""Login endpoints: API tokens and path-bound storage tokens"""
from datetime import datetime, timedelta
from typing import Dict

from fastapi import Depends, Request, status

from vpdb.api.deps import Context, auth, plain
from vpdb.api.response import api_router, success
from vpdb.config import settings
from vpdb.middleware.monitoring import record_auth_failure
from vpdb.middleware.rate_limit import get_rate_limit, limiter
from vpdb.models.token import Token
from vpdb.models.user import User
from vpdb.schemas.token import AuthenticateRequest, AuthenticateResponse, StorageAuthenticateRequest
from vpdb.schemas.user import UserDetailed
from vpdb.utils import scope
from vpdb.utils.auth import APP_TOKEN_PATTERN, verify_password
from vpdb.utils.errors import ApiError
from vpdb.utils.events import log_event
from vpdb.utils.jwt_utils import create_api_token, create_storage_token
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(tags=["authentication"])
storage_router = api_router(tags=["authentication"])


def _with_password(ctx: Context, body: AuthenticateRequest) -> User:
    user = ctx.db.query(User).filter(User.username == body.username).first()
    if not user or not verify_password(body.password or "", user.password_hash):
        logger.warning(
            f"Authentication denied for user \"{body.username}\" (wrong password or unknown user)",
            extra={"action": "authenticate", "path": ctx.request.url.path},
        )
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Wrong username or password.")
    return user


def _with_login_token(ctx: Context, value: str) -> User:
    if not APP_TOKEN_PATTERN.match(value):
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Incorrect login token.")

    token = ctx.db.query(Token).filter(Token.token == value).first()
    if not token:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid token.")
    if token.type != "personal":
        raise ApiError(status.HTTP_401_UNAUTHORIZED, f'Cannot use token of type "{token.type}" for authentication.')
    if not scope.is_identical(token.scopes, [Scope.LOGIN]):
        raise ApiError(status.HTTP_401_UNAUTHORIZED, 'Token to exchange for JWT must exclusively be "login".')
    if token.expires_at < datetime.utcnow():
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Token has expired.")
    if not token.is_active:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Token is inactive.")

    token.last_used_at = datetime.utcnow()
    ctx.db.commit()
    return token.created_by


@router.post("/authenticate")
@limiter.limit(get_rate_limit("authenticate"))
def authenticate(request: Request, body: AuthenticateRequest, ctx: Context = Depends(plain())):
    """
    Exchange credentials for a short term API token

    Either ``username`` and ``password`` or a personal ``token`` with the
    ``login`` scope as the only scope.
    """
    if body.token:
        user = _with_login_token(ctx, body.token)
        how = "token"
    elif body.username and body.password:
        user = _with_password(ctx, body)
        how = "password"
    else:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "You must supply a username and password or a login token.")

    if not user.is_active:
        record_auth_failure(status.HTTP_403_FORBIDDEN)
        raise ApiError(status.HTTP_403_FORBIDDEN, "Inactive account. Please contact an administrator.")

    ctx.user = user
    token = create_api_token(user.id)
    expires = datetime.utcnow() + timedelta(seconds=settings.API_TOKEN_LIFETIME)

    logger.info(
        f"User <{user.email}> successfully authenticated using {how}.",
        extra={"user_id": user.id, "action": "authenticate"},
    )
    log_event(ctx, "authenticate", {"provider": "local", "how": how}, user=user, is_public=False)
    return success(ctx, AuthenticateResponse(token=token, expires=expires, user=UserDetailed.model_validate(user)))


@storage_router.post("/authenticate")
@limiter.limit(get_rate_limit("storage_authenticate"))
def authenticate_storage(
    request: Request,
    body: StorageAuthenticateRequest,
    ctx: Context = Depends(auth(scopes=[Scope.ALL])),
):
    """Sign one storage token per path, each only valid for ``GET``/``HEAD`` on that path"""
    paths = [body.paths] if isinstance(body.paths, str) else body.paths
    tokens: Dict[str, str] = {path: create_storage_token(ctx.user.id, path) for path in paths}
    logger.info(f"Signed {len(tokens)} storage token(s)", extra={"user_id": ctx.user.id, "action": "storage_authenticate"})
    return success(ctx, tokens)
