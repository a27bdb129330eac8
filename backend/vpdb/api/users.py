"""User endpoints, for admins and authentication providers"""
from typing import Any, Dict

from fastapi import Body, Depends, status

from vpdb.api.deps import Context, auth
from vpdb.api.helpers import check_read_only_fields, get_or_404, validate
from vpdb.api.response import api_router, pagination, success
from vpdb.config import settings
from vpdb.models.user import User, UserProvider
from vpdb.schemas.user import ProviderUserUpdate, UserDetailed, UserReduced, UserUpdate
from vpdb.utils.acl import acl
from vpdb.utils.auth import generate_id
from vpdb.utils.errors import ApiError, ApiValidationError, field_error
from vpdb.utils.events import log_event
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(prefix="/users", tags=["users"])

UPDATABLE_FIELDS = ["name", "username", "email", "roles", "plan", "is_active"]


def serialize(ctx: Context, user: User):
    if ctx.is_allowed("users", "full-details"):
        return UserDetailed.model_validate(user)
    return UserReduced.model_validate(user)


@router.put("")
def create_or_update_provider_user(
    body: ProviderUserUpdate,
    ctx: Context = Depends(auth(scopes=[Scope.SERVICE])),
):
    """
    Create or update a user authenticated by the calling provider

    A user already linked to the provider ID is returned unchanged (200). A
    user with the same email is linked to the provider (200). Otherwise a new
    user is created (201).
    """
    provider = ctx.auth.provider
    if not provider:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Only application tokens can create provider users.")
    provider_id = str(body.provider_id)

    user = ctx.db.query(User).join(UserProvider).filter(
        UserProvider.provider == provider,
        UserProvider.provider_id == provider_id,
    ).first()
    if user:
        return success(ctx, UserDetailed.model_validate(user))

    user = ctx.db.query(User).filter(User.email == body.email).first()
    if user:
        user.provider_links.append(UserProvider(provider=provider, provider_id=provider_id, name=body.name))
        ctx.db.commit()
        ctx.db.refresh(user)
        logger.info(f"Linked user <{user.email}> to {provider}", extra={"user_id": user.id, "action": "link_provider"})
        log_event(ctx, "authenticate", {"provider": provider}, user=user, is_public=False)
        return success(ctx, UserDetailed.model_validate(user))

    if ctx.db.query(User).filter(User.username == body.username).first():
        raise ApiValidationError([field_error("username", "User with this username already exists.", body.username)])
    user = User(
        id=generate_id(),
        name=body.name or body.username,
        username=body.username,
        email=body.email,
        roles=["member"],
        plan=settings.DEFAULT_PLAN,
        provider_links=[UserProvider(provider=provider, provider_id=provider_id, name=body.name)],
    )
    ctx.db.add(user)
    ctx.db.commit()
    ctx.db.refresh(user)

    logger.info(f"Created user <{user.email}> from {provider}", extra={"user_id": user.id, "action": "create_user"})
    log_event(ctx, "registration", {"provider": provider}, user=user, is_public=False)
    return success(ctx, UserDetailed.model_validate(user), status.HTTP_201_CREATED)


@router.get("")
def list_users(ctx: Context = Depends(auth("users", "search", [Scope.ALL]))):
    """Search users by ``q`` (at least three characters). Listing without query is for admins."""
    query = ctx.db.query(User)
    q = (ctx.query.get("q") or "").strip()
    if q:
        if len(q) < 3:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "Query must contain at least three characters.")
        query = query.filter(User.name.ilike(f"%{q}%") | User.username.ilike(f"%{q}%"))
    elif not ctx.is_allowed("users", "list"):
        raise ApiError(status.HTTP_403_FORBIDDEN, "Access denied.")

    page = pagination(ctx.request)
    users = page.apply(query.order_by(User.name.asc()))
    return success(ctx, [serialize(ctx, user) for user in users], pagination=page)


@router.get("/{user_id}")
def view_user(user_id: str, ctx: Context = Depends(auth("users", "view", [Scope.ALL]))):
    return success(ctx, serialize(ctx, get_or_404(ctx.db, User, user_id, "user")))


@router.patch("/{user_id}")
def update_user(
    user_id: str,
    body: Dict[str, Any] = Body(...),
    ctx: Context = Depends(auth("users", "update", [Scope.ALL])),
):
    """
    Update a user (admins)

    The user is flagged dirty so their next authenticated request carries
    ``X-User-Dirty``.
    """
    user = get_or_404(ctx.db, User, user_id, "user")
    old = UserDetailed.model_validate(user).model_dump(mode="json")

    errors = check_read_only_fields(body, old, UPDATABLE_FIELDS)
    if errors:
        raise ApiValidationError(errors)
    update = validate(UserUpdate, {name: value for name, value in body.items() if name in UPDATABLE_FIELDS})

    errors = [
        field_error("roles", f'Role "{role}" does not exist.', role)
        for role in update.roles if not acl.is_valid_role(role)
    ]
    if "root" in update.roles and "root" not in (user.roles or []) and "root" not in (ctx.user.roles or []):
        errors.append(field_error("roles", "Only root users can grant the root role.", "root"))
    if update.plan and update.plan not in [plan["id"] for plan in settings.PLANS]:
        errors.append(field_error("plan", f'Plan "{update.plan}" does not exist.', update.plan))
    for name in ("username", "email"):
        value = getattr(update, name)
        if ctx.db.query(User).filter(getattr(User, name) == value, User.pk != user.pk).first():
            errors.append(field_error(name, f"User with this {name} already exists.", value))
    if errors:
        raise ApiValidationError(errors)

    for name, value in update.model_dump(exclude_none=True).items():
        setattr(user, name, value)
    ctx.db.commit()
    ctx.db.refresh(user)

    ctx.redis.incr(f"dirty_user_{user.id}")
    ctx.api_cache.invalidate_for_user(user.id)
    log_event(ctx, "update_user", {"old": old, "new": UserDetailed.model_validate(user)}, user=user, is_public=False)
    logger.info(f"Updated user <{user.email}>", extra={"user_id": ctx.user.id, "action": "update_user"})

    return success(ctx, UserDetailed.model_validate(user))
