"""Role based access control.

Permissions are granted to roles per resource. Roles inherit everything
their parents are granted, so ``root`` ends up with every permission::

    root -> admin -> member
         -> moderator -> contributor -> game-contributor -> member
                                     -> release-contributor -> member
                                     -> backglass-contributor -> member

A user's roles are stored on the user row, so checking a permission needs no
round trip.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

ROLES: List[Dict[str, Any]] = [
    {
        "id": "root",
        "name": "Root",
        "description": "Super user. Can create, edit and delete everything including admins.",
        "parents": ["admin", "moderator"],
    }, {
        "id": "admin",
        "name": "Administrator",
        "description": "User administrator. Can edit users and roles. Inherits from member.",
        "parents": ["member"],
    }, {
        "id": "moderator",
        "name": "Moderator",
        "description": "Can moderate and delete all entities. Inherits from contributor.",
        "parents": ["contributor"],
    }, {
        "id": "contributor",
        "name": "Contributor",
        "description": "Can upload releases, backglasses and ROMs without approval, as well as "
                       "add and edit games. Inherits from all other contributors.",
        "parents": ["game-contributor", "release-contributor", "backglass-contributor"],
    }, {
        "id": "game-contributor",
        "name": "Game Contributor",
        "description": "Can add and edit game data. Inherits from member.",
        "parents": ["member"],
    }, {
        "id": "release-contributor",
        "name": "Release Contributor",
        "description": "Can upload releases without approval. Inherits from member.",
        "parents": ["member"],
    }, {
        "id": "backglass-contributor",
        "name": "Backglass Contributor",
        "description": "Can upload backglasses without approval. Inherits from member.",
        "parents": ["member"],
    }, {
        "id": "member",
        "name": "Member",
        "description": "A registered member. This role every user has by default.",
        "parents": [],
    },
]

PERMISSIONS: Dict[str, Dict[str, List[str]]] = {
    "admin": {
        "cache": ["delete"],
        "roles": ["list"],
        "tokens": ["application-token"],
        "users": ["update", "list", "full-details"],
    },
    "moderator": {
        "backglasses": ["delete", "moderate", "update", "view-restricted"],
        "builds": ["delete", "update"],
        "comments": ["update"],
        "games": ["delete"],
        "media": ["delete"],
        "releases": ["moderate", "view-restricted", "update"],
        "roms": ["delete", "moderate", "view-restricted"],
    },
    "contributor": {
        "roms": ["add", "delete-own"],
    },
    "game-contributor": {
        "games": ["update", "add"],
    },
    "release-contributor": {
        "releases": ["auto-approve"],
    },
    "backglass-contributor": {
        "backglasses": ["auto-approve"],
    },
    "member": {
        "backglasses": ["add", "delete-own", "update-own", "star"],
        "builds": ["add", "delete-own"],
        "comments": ["add", "update-own"],
        "games": ["rate", "star"],
        "media": ["add", "delete-own", "star"],
        "releases": ["add", "delete-own", "update-own", "rate", "star"],
        "tokens": ["add", "delete-own", "update-own", "list"],
        "user": ["view", "update"],
        "users": ["view", "search", "star"],
    },
}


class Acl:
    """Answers "can user U do permission P on resource R"."""

    def __init__(self, permissions: Mapping[str, Mapping[str, List[str]]], roles: Iterable[Dict[str, Any]]):
        self._permissions = permissions
        self._parents = {role["id"]: list(role["parents"]) for role in roles}

    def expand_roles(self, roles: Iterable[str]) -> Set[str]:
        """Return the given roles plus every role they inherit from"""
        expanded: Set[str] = set()
        pending = list(roles)
        while pending:
            role = pending.pop()
            if role in expanded:
                continue
            expanded.add(role)
            pending.extend(self._parents.get(role, []))
        return expanded

    def permissions(self, user: Optional[Any]) -> Dict[str, List[str]]:
        """All permissions of a user, grouped by resource"""
        if user is None:
            return {}
        result: Dict[str, Set[str]] = {}
        for role in self.expand_roles(user.roles or []):
            for resource, perms in self._permissions.get(role, {}).items():
                result.setdefault(resource, set()).update(perms)
        return {resource: sorted(perms) for resource, perms in sorted(result.items())}

    def is_allowed(self, user: Optional[Any], resource: str, permission: str) -> bool:
        if user is None:
            return False
        for role in self.expand_roles(user.roles or []):
            if permission in self._permissions.get(role, {}).get(resource, []):
                return True
        return False

    def is_valid_role(self, role: str) -> bool:
        return role in self._parents


acl = Acl(PERMISSIONS, ROLES)
