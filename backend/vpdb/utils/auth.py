"""Authentication utilities.

A request's credential is resolved once, at the boundary, into one of two
types and handed to the matching strategy:

- :class:`AppTokenCredential` - 32 or more hex characters, a database-backed
  token. Personal tokens act as their owner, application tokens act as the
  user named in the ``X-Vpdb-User-Id`` or ``X-User-Id`` header.
- :class:`JwtCredential` - anything else, a signed JWT.

Authentication never rejects a request by itself. The outcome, including any
error, is stored in an :class:`AuthState` and the route dependencies decide
whether it matters.
"""
import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union

from fastapi import status
from jose import JWTError
from sqlalchemy.orm import Session
from starlette.requests import Request

from vpdb.config import settings
from vpdb.models.token import Token
from vpdb.models.user import User, UserProvider
from vpdb.utils.errors import ApiError
from vpdb.utils.jwt_utils import create_api_token, decode_token
from vpdb.utils.logger import logger

APP_TOKEN_PATTERN = re.compile(r"^[0-9a-f]{32,}$", re.IGNORECASE)

VPDB_USER_ID_HEADER = "x-vpdb-user-id"
PROVIDER_USER_ID_HEADER = "x-user-id"

_PBKDF2_ITERATIONS = 100_000


# ---------------------------------------------------------------------------
# Secrets and passwords
# ---------------------------------------------------------------------------

def generate_id() -> str:
    """Generate a short public ID"""
    return secrets.token_urlsafe(9)


def generate_app_token() -> str:
    """Generate an application token secret (32 hex chars)"""
    return secrets.token_hex(16)


def hash_password(password: str) -> str:
    """Hash a password with PBKDF2-SHA256 and a random salt"""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _PBKDF2_ITERATIONS).hex()
    return f"pbkdf2_sha256${_PBKDF2_ITERATIONS}${salt}${digest}"


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        _, iterations, salt, digest = password_hash.split("$")
    except ValueError:
        return False
    candidate = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations)).hex()
    return hmac.compare_digest(candidate, digest)


# ---------------------------------------------------------------------------
# Auth state and credentials
# ---------------------------------------------------------------------------

@dataclass
class AuthState:
    """Outcome of authenticating a request, stored on ``request.state.auth``"""
    user_id: Optional[str] = None
    token_type: Optional[str] = None          # jwt, jwt-refreshed, personal, application
    token_scopes: Optional[List[str]] = None
    app_token_pk: Optional[int] = None
    provider: Optional[str] = None
    error: Optional[ApiError] = None
    credentials_provided: bool = False
    response_headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AppTokenCredential:
    value: str
    from_url: bool


@dataclass(frozen=True)
class JwtCredential:
    value: str
    from_url: bool


Credential = Union[AppTokenCredential, JwtCredential]


def parse_credential(value: str, from_url: bool) -> Credential:
    if APP_TOKEN_PATTERN.match(value):
        return AppTokenCredential(value=value, from_url=from_url)
    return JwtCredential(value=value, from_url=from_url)


def retrieve_credential(request: Request) -> Credential:
    """Read the credential from the authorization header or the ``token`` query parameter.

    The header wins if both are present.

    Raises:
        ApiError 401: no credential, or a header not in ``Bearer <token>`` format.
    """
    header_name = settings.AUTHORIZATION_HEADER
    header = request.headers.get(header_name)
    if header:
        parts = header.split(" ")
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise ApiError(
                status.HTTP_401_UNAUTHORIZED,
                f'Bad Authorization header. Format is "{header_name}: Bearer [token]"',
            )
        return parse_credential(parts[1], from_url=False)

    token = request.query_params.get("token")
    if token:
        return parse_credential(token, from_url=True)

    raise ApiError(status.HTTP_401_UNAUTHORIZED, "Unauthorized. You need to provide credentials for this resource")


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def authenticate_app_token(db: Session, credential: AppTokenCredential, request: Request, state: AuthState) -> User:
    """Authenticate with a database-backed application token"""
    if credential.from_url:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Application tokens must be provided in the header.")

    app_token = db.query(Token).filter(Token.token == credential.value).first()
    if not app_token:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid application token.")

    owner = app_token.created_by
    if app_token.type == "personal" and not owner.plan_config.get("enable_app_tokens"):
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            f'Your current plan "{owner.plan_config["id"]}" does not allow the use of personal tokens. '
            f'Upgrade or contact an admin.',
        )

    if app_token.expires_at < datetime.utcnow():
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Application token has expired.")

    if not app_token.is_active:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Token is inactive.")

    state.app_token_pk = app_token.pk
    state.token_type = app_token.type
    state.token_scopes = list(app_token.scopes or [])

    if app_token.type == "application":
        state.provider = app_token.provider
        user = _resolve_provider_user(db, app_token.provider, request)
    else:
        user = owner

    app_token.last_used_at = datetime.utcnow()
    db.commit()
    return user


def _resolve_provider_user(db: Session, provider: str, request: Request) -> User:
    user_id = request.headers.get(VPDB_USER_ID_HEADER)
    provider_user_id = request.headers.get(PROVIDER_USER_ID_HEADER)

    if user_id:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ApiError(status.HTTP_400_BAD_REQUEST, f'No user with ID "{user_id}".')
        if provider not in user.providers:
            raise ApiError(status.HTTP_400_BAD_REQUEST, f"Provided user has not been authenticated with {provider}.")
        return user

    if provider_user_id:
        user = db.query(User).join(UserProvider).filter(
            UserProvider.provider == provider,
            UserProvider.provider_id == str(provider_user_id),
        ).first()
        if not user:
            raise ApiError(
                status.HTTP_400_BAD_REQUEST,
                f'No user with ID "{provider_user_id}" for provider "{provider}".',
            )
        return user

    raise ApiError(
        status.HTTP_400_BAD_REQUEST,
        f'Must provide "{VPDB_USER_ID_HEADER}" or "{PROVIDER_USER_ID_HEADER}" header when using application token.',
    )


def authenticate_jwt(db: Session, credential: JwtCredential, request: Request, state: AuthState) -> User:
    """Authenticate with a JSON Web Token"""
    try:
        claims = decode_token(credential.value)
    except JWTError as exc:
        logger.debug(f"JWT decode failed: {exc}")
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Bad JSON Web Token")

    now = int(datetime.now(timezone.utc).timestamp())
    exp = claims.get("exp") or 0
    if exp < now:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Token has expired")

    path = claims.get("path")
    if credential.from_url and not path:
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            "Tokens that are valid for any path cannot be provided as query parameter.",
        )

    request_path = request.url.path
    if path and (path != request_path or request.method not in ("GET", "HEAD")):
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            f'Token is only valid for "GET/HEAD {path}" but got "{request.method} {request_path}".',
        )

    user = db.query(User).filter(User.id == claims.get("iss")).first()
    if not user:
        raise ApiError(status.HTTP_403_FORBIDDEN, f"No user with ID {claims.get('iss')} found.", log=True)

    # sliding session: short term tokens get a fresh one on every request
    if exp - (claims.get("iat") or 0) == settings.API_TOKEN_LIFETIME:
        state.response_headers["X-Token-Refresh"] = create_api_token(user.id, is_refresh_token=True)

    state.token_scopes = list(claims.get("scp") or [])
    state.token_type = "jwt-refreshed" if claims.get("irt") else "jwt"
    return user


_STRATEGIES: Dict[type, Callable[[Session, Credential, Request, AuthState], User]] = {
    AppTokenCredential: authenticate_app_token,
    JwtCredential: authenticate_jwt,
}


def authenticate_request(db: Session, request: Request) -> AuthState:
    """Resolve the identity behind a request. Never raises ``ApiError``."""
    state = AuthState()
    try:
        credential = retrieve_credential(request)
    except ApiError as err:
        state.error = err
        state.credentials_provided = settings.AUTHORIZATION_HEADER.lower() in request.headers
        return state

    state.credentials_provided = True
    try:
        user = _STRATEGIES[type(credential)](db, credential, request, state)
    except ApiError as err:
        db.rollback()
        state.error = err
        return state

    state.user_id = user.id
    state.response_headers["X-User-Id"] = user.id
    return state
