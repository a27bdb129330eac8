"""Tests for token scopes and the ACL"""
from types import SimpleNamespace

from vpdb.utils import scope
from vpdb.utils.acl import acl
from vpdb.utils.scope import Scope


def test_is_valid_needs_one_matching_scope():
    """A token passes if it carries at least one of the required scopes"""
    assert scope.is_valid([Scope.ALL, Scope.COMMUNITY], ["community"])
    assert not scope.is_valid([Scope.ALL], ["login"])
    assert not scope.is_valid([Scope.ALL], [])


def test_is_valid_without_restriction():
    """No required scopes means no restriction"""
    assert scope.is_valid(None, ["login"])
    assert scope.is_valid(None, None)


def test_is_valid_with_token_type():
    """A token type name resolves to the scopes it can be created with"""
    assert scope.is_valid("application", ["service"])
    assert not scope.is_valid("application", ["all"])
    assert scope.is_valid("personal", ["login"])


def test_has_and_is_identical():
    assert scope.has(["all", "login"], Scope.LOGIN)
    assert not scope.has(["all"], "login")
    assert scope.is_identical([Scope.LOGIN], ["login"])
    assert not scope.is_identical(["login", "all"], ["login"])


def test_get_scopes_of_unknown_type():
    assert scope.get_scopes("personal")[0] == Scope.ALL
    assert scope.get_scopes("unknown") == []


def test_roles_inherit_permissions():
    """Root ends up with the permissions of every role"""
    root = SimpleNamespace(roles=["root"])
    member = SimpleNamespace(roles=["member"])

    assert acl.is_allowed(root, "cache", "delete")
    assert acl.is_allowed(root, "releases", "moderate")
    assert acl.is_allowed(root, "releases", "add")
    assert not acl.is_allowed(member, "releases", "moderate")
    assert acl.is_allowed(member, "releases", "add")
    assert not acl.is_allowed(None, "releases", "add")


def test_contributor_roles():
    contributor = SimpleNamespace(roles=["contributor"])
    game_contributor = SimpleNamespace(roles=["game-contributor"])

    assert acl.is_allowed(contributor, "releases", "auto-approve")
    assert acl.is_allowed(contributor, "roms", "add")
    assert acl.is_allowed(game_contributor, "games", "add")
    assert not acl.is_allowed(game_contributor, "releases", "auto-approve")


def test_permissions_are_grouped_by_resource():
    permissions = acl.permissions(SimpleNamespace(roles=["admin"]))
    assert permissions["users"] == ["full-details", "list", "update"]
    assert "moderate" not in permissions.get("releases", [])
    assert acl.permissions(None) == {}


def test_valid_roles():
    assert acl.is_valid_role("moderator")
    assert not acl.is_valid_role("superhero")
