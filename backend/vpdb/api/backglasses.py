"""Backglass endpoints"""
from typing import Any, Dict, Optional

from fastapi import Body, Depends, status

from vpdb.api.deps import Context, anon, auth
from vpdb.api.helpers import assert_fields, get_or_404, validate
from vpdb.api.moderate import moderate, notify_pending
from vpdb.api.response import api_router, pagination, success
from vpdb.models.game import Game
from vpdb.models.moderation import ModerationEvent
from vpdb.models.release import Backglass
from vpdb.models.social import Star
from vpdb.schemas.release import BackglassCreate, BackglassResponse, BackglassUpdate, ModerationRequest, ModerationResponse
from vpdb.utils import moderation
from vpdb.utils.auth import generate_id
from vpdb.utils.cache import CacheRoute
from vpdb.utils.errors import ApiError, ApiValidationError, field_error
from vpdb.utils.events import log_event
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(tags=["backglasses"])

CACHE_ROUTES = (
    CacheRoute("/v1/backglasses", resources=("backglass",)),
    CacheRoute("/v1/backglasses/{backglass_id}", entities=(("backglass", "backglass_id"),)),
    CacheRoute("/v1/games/{game_id}/backglasses", resources=("backglass",), entities=(("game", "game_id"),)),
)

UPDATABLE_FIELDS = ["description"]


def serialize(ctx: Context, backglass: Backglass, detailed: bool = False) -> BackglassResponse:
    data = BackglassResponse.model_validate(backglass)
    if detailed and moderation.can_see_moderation(backglass, ctx.user):
        data.moderation = ModerationResponse(**moderation.serialize(ctx.db, backglass))
    return data


def _label(backglass: Backglass) -> str:
    return f"{backglass.game.title} ({backglass.id})"


def _list(ctx: Context, game: Optional[Game] = None):
    query = moderation.apply_list_filter(ctx.db.query(Backglass), Backglass, ctx.user, ctx.query.get("moderation"))
    if game is not None:
        query = query.filter(Backglass.game_pk == game.pk)
    query = query.order_by(Backglass.created_at.desc())
    page = pagination(ctx.request)
    backglasses = page.apply(query)
    return success(ctx, [serialize(ctx, backglass) for backglass in backglasses], pagination=page)


def _create(ctx: Context, body: BackglassCreate, game_id: Optional[str]):
    if not game_id:
        raise ApiValidationError([field_error("game_id", "Game ID is required.", game_id)])
    game = ctx.db.query(Game).filter(Game.id == game_id).first()
    if not game:
        raise ApiValidationError([field_error("game_id", f'No game with ID "{game_id}".', game_id)])

    backglass = Backglass(id=generate_id(), description=body.description, game_pk=game.pk, created_by_pk=ctx.user.pk)
    ctx.db.add(backglass)
    moderation.handle_create(ctx.db, backglass, ctx.user)
    ctx.db.commit()
    ctx.db.refresh(backglass)

    logger.info(f"Created backglass: {backglass.id}", extra={"user_id": ctx.user.id, "action": "create_backglass"})
    log_event(
        ctx,
        "create_backglass",
        {"backglass": {"id": backglass.id}, "game": {"id": game.id, "title": game.title}},
        game=game,
        backglass=backglass,
        is_public=backglass.is_approved,
    )
    notify_pending(ctx, backglass, _label(backglass))
    ctx.api_cache.invalidate_entity("backglass", backglass.id, game=game.id)

    return success(ctx, serialize(ctx, backglass, detailed=True), status.HTTP_201_CREATED)


@router.get("/backglasses")
def list_backglasses(ctx: Context = Depends(anon())):
    """List approved backglasses, or filter by ``moderation`` as moderator"""
    return _list(ctx)


@router.get("/games/{game_id}/backglasses")
def list_game_backglasses(game_id: str, ctx: Context = Depends(anon())):
    """List the backglasses of a game"""
    return _list(ctx, get_or_404(ctx.db, Game, game_id, "game"))


@router.get("/backglasses/{backglass_id}")
def view_backglass(backglass_id: str, ctx: Context = Depends(anon())):
    backglass = get_or_404(ctx.db, Backglass, backglass_id, "backglass")
    moderation.assert_visible(backglass, ctx.user)
    return success(ctx, serialize(ctx, backglass, detailed=True))


@router.post("/backglasses", status_code=status.HTTP_201_CREATED)
def create_backglass(body: BackglassCreate, ctx: Context = Depends(auth("backglasses", "add", [Scope.ALL, Scope.CREATE]))):
    """Submit a backglass, ``game_id`` in the body"""
    return _create(ctx, body, body.game_id)


@router.post("/games/{game_id}/backglasses", status_code=status.HTTP_201_CREATED)
def create_game_backglass(
    game_id: str,
    body: BackglassCreate,
    ctx: Context = Depends(auth("backglasses", "add", [Scope.ALL, Scope.CREATE])),
):
    """Submit a backglass for the game in the path"""
    return _create(ctx, body, game_id)


@router.patch("/backglasses/{backglass_id}")
def update_backglass(
    backglass_id: str,
    body: Dict[str, Any] = Body(...),
    ctx: Context = Depends(auth("backglasses", "update-own", [Scope.ALL, Scope.CREATE])),
):
    backglass = get_or_404(ctx.db, Backglass, backglass_id, "backglass")
    if backglass.created_by_pk != ctx.user.pk and not ctx.is_allowed("backglasses", "update"):
        raise ApiError(status.HTTP_403_FORBIDDEN, "Only moderators or authors of the backglass can update it.")
    assert_fields(body, UPDATABLE_FIELDS)

    changes = validate(BackglassUpdate, body).model_dump(exclude_unset=True)
    for name, value in changes.items():
        setattr(backglass, name, value)
    ctx.db.commit()
    ctx.db.refresh(backglass)

    log_event(ctx, "update_backglass", {"new": changes}, game=backglass.game, backglass=backglass,
              is_public=backglass.is_approved)
    ctx.api_cache.invalidate_entity("backglass", backglass.id, game=backglass.game.id)

    return success(ctx, serialize(ctx, backglass, detailed=True))


@router.delete("/backglasses/{backglass_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_backglass(
    backglass_id: str,
    ctx: Context = Depends(auth("backglasses", "delete-own", [Scope.ALL, Scope.CREATE])),
):
    backglass = get_or_404(ctx.db, Backglass, backglass_id, "backglass")
    if backglass.created_by_pk != ctx.user.pk and not ctx.is_allowed("backglasses", "delete"):
        raise ApiError(status.HTTP_403_FORBIDDEN, "Only moderators or authors of the backglass can delete it.")

    game = backglass.game
    ctx.db.query(ModerationEvent).filter(
        ModerationEvent.entity_type == "backglass", ModerationEvent.entity_pk == backglass.pk
    ).delete(synchronize_session=False)
    ctx.db.query(Star).filter(Star.entity_type == "backglass", Star.entity_pk == backglass.pk).delete(
        synchronize_session=False
    )
    ctx.db.delete(backglass)
    ctx.db.commit()

    log_event(ctx, "delete_backglass", {"backglass": {"id": backglass_id}}, game=game)
    ctx.api_cache.invalidate_entity("backglass", backglass_id, game=game.id)

    return success(ctx, None, status.HTTP_204_NO_CONTENT)


@router.post("/backglasses/{backglass_id}/moderate")
def moderate_backglass(
    backglass_id: str,
    body: ModerationRequest,
    ctx: Context = Depends(auth("backglasses", "moderate", [Scope.ALL])),
):
    backglass = get_or_404(ctx.db, Backglass, backglass_id, "backglass")
    return success(ctx, moderate(ctx, backglass, body, _label(backglass), game=backglass.game, backglass=backglass))
