"""Profile of the logged user"""
from typing import Any, Dict

from fastapi import Body, Depends

from vpdb.api.deps import Context, auth
from vpdb.api.helpers import assert_fields, validate
from vpdb.api.response import api_router, success
from vpdb.models.user import User
from vpdb.schemas.user import ProfileResponse, ProfileUpdate, UserDetailed
from vpdb.utils.acl import acl
from vpdb.utils.auth import hash_password, verify_password
from vpdb.utils.errors import ApiValidationError, field_error
from vpdb.utils.events import log_event
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(prefix="/profile", tags=["profile"])

UPDATABLE_FIELDS = ["name", "username", "email", "current_password", "password"]


def serialize(user: User) -> ProfileResponse:
    return ProfileResponse(
        **UserDetailed.model_validate(user).model_dump(),
        permissions=acl.permissions(user),
        plan_config=user.plan_config,
    )


def _assert_unique(ctx: Context, field: str, value: str) -> None:
    column = getattr(User, field)
    if ctx.db.query(User).filter(column == value, User.pk != ctx.user.pk).first():
        raise ApiValidationError([field_error(field, f"User with this {field} already exists.", value)])


def _change_password(ctx: Context, user: User, update: ProfileUpdate) -> None:
    if user.password_set:
        if not update.current_password:
            raise ApiValidationError([field_error("current_password", "You must provide your current password.")])
        if not verify_password(update.current_password, user.password_hash):
            logger.warning(
                f"User <{user.email}> provided wrong current password while changing.",
                extra={"user_id": user.id, "action": "change_password"},
            )
            raise ApiValidationError([field_error("current_password", "Invalid password.")])
        user.password_hash = hash_password(update.password)
        log_event(ctx, "change_password", user=user, is_public=False)
        return

    # first password: creates a local account
    if not (update.username or user.username):
        raise ApiValidationError([field_error("username", "You must provide a username when creating a local account.")])
    user.password_hash = hash_password(update.password)
    log_event(ctx, "create_local_account", {"username": update.username or user.username}, user=user, is_public=False)


@router.get("")
def view_profile(ctx: Context = Depends(auth("user", "view", [Scope.ALL]))):
    """The logged user with effective permissions and plan"""
    return success(ctx, serialize(ctx.user))


@router.patch("")
def update_profile(body: Dict[str, Any] = Body(...), ctx: Context = Depends(auth("user", "update", [Scope.ALL]))):
    """
    Update the logged user

    Changing the password requires ``current_password`` once a password is
    set. The username can only be chosen while none is set.
    """
    assert_fields(body, UPDATABLE_FIELDS)
    update = validate(ProfileUpdate, body)
    user = ctx.user
    old = {"name": user.name, "email": user.email}

    if update.username and user.username and update.username != user.username:
        raise ApiValidationError([field_error("username", "Cannot change username for already local account.", update.username)])
    if update.username and not user.username:
        _assert_unique(ctx, "username", update.username)
        user.username = update.username

    if update.name:
        _assert_unique(ctx, "name", update.name)
        user.name = update.name
    if update.email:
        _assert_unique(ctx, "email", update.email)
        user.email = update.email
    if update.password:
        _change_password(ctx, user, update)

    ctx.db.commit()
    ctx.db.refresh(user)

    new = {"name": user.name, "email": user.email}
    if new != old:
        log_event(ctx, "update_user", {"old": old, "new": new}, user=user, is_public=False)
    ctx.api_cache.invalidate_for_user(user.id)
    return success(ctx, serialize(user))
