"""Release endpoints"""
from typing import Any, Dict

from fastapi import Body, Depends, status

from vpdb.api.deps import Context, anon, auth
from vpdb.api.helpers import assert_fields, get_or_404, sort_order, validate
from vpdb.api.moderate import moderate, notify_pending
from vpdb.api.response import api_router, pagination, success
from vpdb.api.stars import is_starred
from vpdb.models.game import Game
from vpdb.models.medium import Medium
from vpdb.models.moderation import ModerationEvent
from vpdb.models.release import Release
from vpdb.models.social import Rating, Star
from vpdb.schemas.release import ModerationRequest, ModerationResponse, ReleaseCreate, ReleaseResponse, ReleaseUpdate
from vpdb.utils import moderation
from vpdb.utils.auth import generate_id
from vpdb.utils.cache import CacheRoute
from vpdb.utils.errors import ApiError, ApiValidationError, field_error
from vpdb.utils.events import log_event
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(prefix="/releases", tags=["releases"])

CACHE_ROUTES = (
    CacheRoute("/v1/releases", resources=("release",)),
    CacheRoute("/v1/releases/{release_id}", entities=(("release", "release_id"),)),
)

UPDATABLE_FIELDS = ["name", "description"]

_SORT_COLUMNS = {
    "name": Release.name,
    "created_at": Release.created_at,
    "modified_at": Release.modified_at,
    "rating": Release.rating_average,
    "stars": Release.counter_stars,
}


def serialize(ctx: Context, release: Release, detailed: bool = False) -> ReleaseResponse:
    data = ReleaseResponse.model_validate(release)
    data.starred = is_starred(ctx, "release", release)
    if detailed and moderation.can_see_moderation(release, ctx.user):
        data.moderation = ModerationResponse(**moderation.serialize(ctx.db, release))
    return data


def _log_payload(release: Release) -> Dict[str, Any]:
    return {"release": {"id": release.id, "name": release.name}, "game": {"id": release.game.id, "title": release.game.title}}


def _assert_owner_or(ctx: Context, release: Release, permission: str, message: str) -> None:
    if release.created_by_pk != ctx.user.pk and not ctx.is_allowed("releases", permission):
        raise ApiError(status.HTTP_403_FORBIDDEN, message)


@router.get("")
def list_releases(ctx: Context = Depends(anon())):
    """
    List releases

    Only approved releases are listed unless a moderator passes ``moderation``.
    Query parameters: ``q`` (name search), ``game_id``, ``moderation``, ``sort``
    and pagination.
    """
    query = moderation.apply_list_filter(ctx.db.query(Release), Release, ctx.user, ctx.query.get("moderation"))

    q = (ctx.query.get("q") or "").strip()
    if q:
        if len(q) < 2:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "Query must contain at least two characters.")
        query = query.filter(Release.name.ilike(f"%{q}%"))

    game_id = ctx.query.get("game_id")
    if game_id:
        query = query.join(Game).filter(Game.id == game_id)

    query = query.order_by(sort_order(ctx.request, "-created_at", _SORT_COLUMNS))
    page = pagination(ctx.request, 12, 60)
    releases = page.apply(query)
    return success(ctx, [serialize(ctx, release) for release in releases], pagination=page)


@router.get("/{release_id}")
def view_release(release_id: str, ctx: Context = Depends(anon())):
    """Release details. Unapproved releases are only visible to their author and moderators."""
    release = get_or_404(ctx.db, Release, release_id, "release")
    moderation.assert_visible(release, ctx.user)
    return success(ctx, serialize(ctx, release, detailed=True))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_release(body: ReleaseCreate, ctx: Context = Depends(auth("releases", "add", [Scope.ALL, Scope.CREATE]))):
    """Submit a release. It's pending until approved, unless the author may auto-approve."""
    game = ctx.db.query(Game).filter(Game.id == body.game_id).first()
    if not game:
        raise ApiValidationError([field_error("game_id", f'No game with ID "{body.game_id}".', body.game_id)])

    release = Release(
        id=generate_id(),
        name=body.name,
        description=body.description,
        game_pk=game.pk,
        created_by_pk=ctx.user.pk,
    )
    ctx.db.add(release)
    moderation.handle_create(ctx.db, release, ctx.user)
    if release.is_approved:
        game.counter_releases = Game.counter_releases + 1
    ctx.db.commit()
    ctx.db.refresh(release)

    logger.info(f"Created release: {release.id}", extra={"user_id": ctx.user.id, "action": "create_release"})
    log_event(ctx, "create_release", _log_payload(release), game=game, release=release, is_public=release.is_approved)
    notify_pending(ctx, release, release.name)
    ctx.api_cache.invalidate_entity("release", release.id, game=game.id)
    if release.is_approved:
        ctx.api_cache.invalidate_entity("game", game.id)

    return success(ctx, serialize(ctx, release, detailed=True), status.HTTP_201_CREATED)


@router.patch("/{release_id}")
def update_release(
    release_id: str,
    body: Dict[str, Any] = Body(...),
    ctx: Context = Depends(auth("releases", "update-own", [Scope.ALL, Scope.CREATE])),
):
    """Update name or description of a release (author or moderator)"""
    release = get_or_404(ctx.db, Release, release_id, "release")
    _assert_owner_or(ctx, release, "update", "Only moderators or authors of the release can update it.")
    assert_fields(body, UPDATABLE_FIELDS)

    changes = validate(ReleaseUpdate, body).model_dump(exclude_unset=True)
    before = {name: getattr(release, name) for name in changes}
    for name, value in changes.items():
        setattr(release, name, value)
    ctx.db.commit()
    ctx.db.refresh(release)

    log_event(ctx, "update_release", {"old": before, "new": changes}, game=release.game, release=release,
              is_public=release.is_approved)
    ctx.api_cache.invalidate_entity("release", release.id, game=release.game.id)

    return success(ctx, serialize(ctx, release, detailed=True))


@router.delete("/{release_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_release(release_id: str, ctx: Context = Depends(auth("releases", "delete-own", [Scope.ALL, Scope.CREATE]))):
    """Delete a release (author or moderator)"""
    release = get_or_404(ctx.db, Release, release_id, "release")
    _assert_owner_or(ctx, release, "moderate", "Only moderators or authors of the release can delete it.")

    game = release.game
    payload = _log_payload(release)
    was_approved = release.is_approved

    ctx.db.query(Medium).filter(Medium.release_pk == release.pk).delete(synchronize_session=False)
    ctx.db.query(ModerationEvent).filter(
        ModerationEvent.entity_type == "release", ModerationEvent.entity_pk == release.pk
    ).delete(synchronize_session=False)
    for relation in (Rating, Star):
        ctx.db.query(relation).filter(relation.entity_type == "release", relation.entity_pk == release.pk).delete(
            synchronize_session=False
        )
    ctx.db.delete(release)
    if was_approved:
        game.counter_releases = Game.counter_releases - 1
    ctx.db.commit()

    logger.info(f"Deleted release: {release_id}", extra={"user_id": ctx.user.id, "action": "delete_release"})
    log_event(ctx, "delete_release", payload, game=game)
    ctx.api_cache.invalidate_entity("release", release_id, game=game.id)
    ctx.api_cache.invalidate_entity("game", game.id)

    return success(ctx, None, status.HTTP_204_NO_CONTENT)


@router.post("/{release_id}/moderate")
def moderate_release(
    release_id: str,
    body: ModerationRequest,
    ctx: Context = Depends(auth("releases", "moderate", [Scope.ALL])),
):
    """
    Moderate a release

    ``action`` is one of ``approve``, ``refuse`` (requires ``message``) or
    ``moderate`` (back to pending).
    """
    release = get_or_404(ctx.db, Release, release_id, "release")
    was_approved = release.is_approved
    result = moderate(ctx, release, body, release.name, game=release.game, release=release)

    if release.is_approved != was_approved:
        game = release.game
        game.counter_releases = Game.counter_releases + (1 if release.is_approved else -1)
        ctx.db.commit()

    return success(ctx, result)
