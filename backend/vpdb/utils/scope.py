"""Token scopes.

Scopes are coarse capability tags on a token, orthogonal to ACL permissions.
A route declares the scopes it accepts; a token passes if it carries at least
one of them.
"""
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Union


class Scope(str, Enum):
    ALL = "all"              # everything, including token management
    LOGIN = "login"          # exchange the token for a JWT
    COMMUNITY = "community"  # rate, star, comment
    SERVICE = "service"      # provider resources (application tokens)
    CREATE = "create"        # upload and create content
    STORAGE = "storage"      # download files


# Scopes a token of the given type may be created with
_TOKEN_TYPE_SCOPES = {
    "personal": [Scope.ALL, Scope.LOGIN, Scope.COMMUNITY, Scope.CREATE, Scope.STORAGE],
    "application": [Scope.COMMUNITY, Scope.CREATE, Scope.STORAGE, Scope.SERVICE],
}

ScopeList = Optional[Sequence[Union[Scope, str]]]


def get_scopes(token_type: str) -> List[Scope]:
    """Return the scopes a token of ``token_type`` can be created with"""
    return list(_TOKEN_TYPE_SCOPES.get(token_type, []))


def is_valid(required_scopes: Union[ScopeList, str], token_scopes: ScopeList) -> bool:
    """Check whether a token's scopes satisfy the required ones.

    ``None`` means no restriction. A token type name (``personal`` or
    ``application``) is resolved to that type's creatable scopes.
    """
    if required_scopes is None:
        return True
    if isinstance(required_scopes, str):
        required_scopes = get_scopes(required_scopes)
    required = {_value(s) for s in required_scopes}
    return any(_value(scope) in required for scope in token_scopes or [])


def has(scopes: ScopeList, scope: Union[Scope, str]) -> bool:
    """Check whether ``scope`` is part of ``scopes``"""
    return _value(scope) in {_value(s) for s in scopes or []}


def is_identical(first: ScopeList, second: ScopeList) -> bool:
    """Check whether two scope lists contain the same scopes"""
    return {_value(s) for s in first or []} == {_value(s) for s in second or []}


def values(scopes: Iterable[Union[Scope, str]]) -> List[str]:
    return [_value(s) for s in scopes]


def _value(scope: Union[Scope, str]) -> str:
    return scope.value if isinstance(scope, Scope) else str(scope)
