"""Application token endpoints"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import Body, Depends, Request, status
from jose import JWTError

from vpdb.api.deps import Context, auth, plain
from vpdb.api.helpers import assert_fields, validate
from vpdb.api.response import api_router, success
from vpdb.config import settings
from vpdb.middleware.rate_limit import get_rate_limit, limiter
from vpdb.models.token import Token
from vpdb.schemas.token import TokenCreate, TokenInfo, TokenResponse, TokenUpdate, TokenWithSecret
from vpdb.utils import scope
from vpdb.utils.auth import APP_TOKEN_PATTERN, generate_app_token, generate_id, verify_password
from vpdb.utils.errors import ApiError, ApiValidationError, field_error
from vpdb.utils.jwt_utils import decode_token
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(prefix="/tokens", tags=["tokens"])

TOKEN_TYPES = ["personal", "application"]
UPDATABLE_FIELDS = ["label", "is_active", "scopes"]

PERSONAL_TOKEN_LIFETIME = timedelta(days=365)
APPLICATION_TOKEN_LIFETIME = timedelta(days=3650)


def _validate_scopes(token_type: str, scopes) -> None:
    allowed = scope.values(scope.get_scopes(token_type))
    invalid = [value for value in scopes if value not in allowed]
    if invalid:
        raise ApiValidationError([field_error(
            "scopes",
            f'Invalid scope{"" if len(invalid) == 1 else "s"} for {token_type} tokens: [ "{", ".join(invalid)}" ]. '
            f'Allowed: [ "{", ".join(allowed)}" ].',
            scopes,
        )])


def _check_password(ctx: Context, body: TokenCreate) -> None:
    # a fresh login may create login tokens without password
    if ctx.auth.token_type == "jwt":
        if not scope.has(body.scopes, Scope.LOGIN) and not body.password:
            raise ApiError(
                status.HTTP_401_UNAUTHORIZED,
                "You cannot create other tokens but login tokens without supplying a password, "
                'even when logged with a "short term" token.',
                log=True,
            )
    elif not body.password:
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            'When logged with a "long term" token (either from a X-Token-Refresh header or '
            "from an access token), you must provide your password.",
            log=True,
        )

    if body.password:
        if not ctx.user.password_set:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "First set a password under your profile before adding tokens.")
        if not verify_password(body.password, ctx.user.password_hash):
            raise ApiError(status.HTTP_401_UNAUTHORIZED, "Wrong password.", log=True)


def _find_own(ctx: Context, token_id: str) -> Token:
    token = ctx.db.query(Token).filter(Token.id == token_id, Token.created_by_pk == ctx.user.pk).first()
    if not token:
        raise ApiError(status.HTTP_404_NOT_FOUND, f'No token found with ID "{token_id}".')
    return token


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("create_token"))
def create_token(request: Request, body: TokenCreate, ctx: Context = Depends(auth("tokens", "add", [Scope.ALL]))):
    """
    Create a token

    Personal tokens act as their creator. Application tokens belong to an
    authentication provider and need the ``tokens/application-token``
    permission. Tokens with the ``all`` scope need a plan that enables them.
    """
    plan = ctx.user.plan_config
    if scope.has(body.scopes, Scope.ALL) and not plan.get("enable_app_tokens"):
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            f'Your current plan "{plan["id"]}" does not allow the creation of application tokens. '
            f"Upgrade or contact an admin.",
        )

    _check_password(ctx, body)
    _validate_scopes(body.type, body.scopes)

    if body.type == "application":
        if not ctx.is_allowed("tokens", "application-token"):
            raise ApiError(status.HTTP_401_UNAUTHORIZED, "Permission denied.")
        if body.provider not in settings.AUTH_PROVIDERS:
            raise ApiValidationError([field_error(
                "provider",
                f'Provider must be one of: [ "{", ".join(settings.AUTH_PROVIDERS)}" ].',
                body.provider,
            )])
        label = body.label
        lifetime = APPLICATION_TOKEN_LIFETIME
    else:
        label = body.label or ctx.request.headers.get("user-agent") or "Personal token"
        lifetime = PERSONAL_TOKEN_LIFETIME

    token = Token(
        id=generate_id(),
        token=generate_app_token(),
        label=label or body.provider,
        type=body.type,
        scopes=list(body.scopes),
        provider=body.provider if body.type == "application" else None,
        is_active=True,
        expires_at=datetime.utcnow() + lifetime,
        created_by_pk=ctx.user.pk,
    )
    ctx.db.add(token)
    ctx.db.commit()
    ctx.db.refresh(token)

    logger.info(f'Token "{token.label}" successfully created.', extra={"user_id": ctx.user.id, "action": "create_token"})
    return success(ctx, TokenWithSecret.model_validate(token), status.HTTP_201_CREATED)


@router.get("")
def list_tokens(ctx: Context = Depends(auth("tokens", "list", [Scope.ALL]))):
    """Own personal tokens, or with ``type=application`` all application tokens (admins)"""
    query = ctx.db.query(Token)
    token_type = ctx.query.get("type")
    if token_type:
        if token_type not in TOKEN_TYPES:
            raise ApiError(
                status.HTTP_400_BAD_REQUEST,
                f'Invalid type "{token_type}". Valid types are: [ "{", ".join(TOKEN_TYPES)}" ].',
            )
        if token_type == "application" and not ctx.is_allowed("tokens", "application-token"):
            raise ApiError(status.HTTP_403_FORBIDDEN, "No permission to list application tokens.")
    token_type = token_type or "personal"

    query = query.filter(Token.type == token_type)
    if token_type == "personal":
        query = query.filter(Token.created_by_pk == ctx.user.pk)
    tokens = query.order_by(Token.created_at.desc()).all()
    return success(ctx, [TokenResponse.model_validate(token) for token in tokens])


@router.get("/{token}")
def view_token(token: str, ctx: Context = Depends(plain())):
    """Check a token, application token or JWT, and return what is known about it"""
    if APP_TOKEN_PATTERN.match(token):
        app_token = ctx.db.query(Token).filter(Token.token == token).first()
        if not app_token:
            raise ApiError(status.HTTP_404_NOT_FOUND, "Invalid token.")
        info = TokenInfo(
            label=app_token.label,
            type=app_token.type,
            scopes=list(app_token.scopes or []),
            created_at=app_token.created_at,
            expires_at=app_token.expires_at,
            is_active=app_token.is_active,
        )
        if app_token.type == "application":
            info.provider = app_token.provider
        else:
            info.for_user = app_token.created_by.id
        return success(ctx, info)

    try:
        claims = decode_token(token)
    except JWTError:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Invalid token.")

    info = TokenInfo(
        type="jwt-refreshed" if claims.get("irt") else "jwt",
        scopes=list(claims.get("scp") or []),
        expires_at=datetime.fromtimestamp(claims.get("exp") or 0, tz=timezone.utc),
        is_active=True,   # JWTs cannot be revoked
        for_user=claims.get("iss"),
        for_path=claims.get("path"),
    )
    return success(ctx, info)


@router.patch("/{token_id}")
def update_token(
    token_id: str,
    body: Dict[str, Any] = Body(...),
    ctx: Context = Depends(auth("tokens", "update-own", [Scope.ALL])),
):
    token = _find_own(ctx, token_id)
    assert_fields(body, UPDATABLE_FIELDS)
    changes = validate(TokenUpdate, body).model_dump(exclude_unset=True)
    if changes.get("scopes") is not None:
        _validate_scopes(token.type, changes["scopes"])

    for name, value in changes.items():
        if value is not None:
            setattr(token, name, value)
    ctx.db.commit()
    ctx.db.refresh(token)

    logger.info(f'Token "{token.label}" successfully updated.', extra={"user_id": ctx.user.id, "action": "update_token"})
    return success(ctx, TokenResponse.model_validate(token))


@router.delete("/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_token(token_id: str, ctx: Context = Depends(auth("tokens", "delete-own", [Scope.ALL]))):
    token = _find_own(ctx, token_id)
    ctx.db.delete(token)
    ctx.db.commit()

    logger.info(f"Deleted token {token_id}", extra={"user_id": ctx.user.id, "action": "delete_token"})
    return success(ctx, None, status.HTTP_204_NO_CONTENT)
