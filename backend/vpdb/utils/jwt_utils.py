"""JWT utilities - HS256 signing and verification of API and storage tokens"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from jose import jwt

from vpdb.config import settings
from vpdb.utils.scope import Scope

JWT_ALGORITHM = "HS256"


def _now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def create_api_token(
    user_id: str,
    is_refresh_token: bool = False,
    scopes: Optional[List[str]] = None,
    now: Optional[int] = None,
) -> str:
    """Sign a short term API token.

    Args:
        user_id:          Public ID of the user, stored as ``iss``.
        is_refresh_token: Stored as ``irt``. Refreshed tokens are treated as
                          "long term" when creating app tokens.
        scopes:           Stored as ``scp``, defaults to ``["all"]``.

    Returns:
        Signed JWT string.
    """
    issued_at = now if now is not None else _now()
    payload: Dict[str, Any] = {
        "iss": user_id,
        "iat": issued_at,
        "exp": issued_at + settings.API_TOKEN_LIFETIME,
        "irt": is_refresh_token,
        "scp": scopes or [Scope.ALL.value],
    }
    return jwt.encode(payload, settings.SECRET, algorithm=JWT_ALGORITHM)


def create_storage_token(user_id: str, path: str, now: Optional[int] = None) -> str:
    """Sign a token only valid for ``GET``/``HEAD`` on ``path``. May be passed as query parameter."""
    issued_at = now if now is not None else _now()
    payload: Dict[str, Any] = {
        "iss": user_id,
        "iat": issued_at,
        "exp": issued_at + settings.STORAGE_TOKEN_LIFETIME,
        "path": path,
        "scp": [Scope.STORAGE.value],
    }
    return jwt.encode(payload, settings.SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify the signature and return the claims.

    Expiration is not checked here, callers compare ``exp`` themselves so an
    expired token can be told apart from a forged one.

    Raises:
        JWTError: on a malformed token or a bad signature.
    """
    return jwt.decode(
        token,
        settings.SECRET,
        algorithms=[JWT_ALGORITHM],
        options={"verify_exp": False},
    )
