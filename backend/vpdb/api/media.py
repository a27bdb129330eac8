"""Medium endpoints"""
from typing import Optional

from fastapi import Depends, status

from vpdb.api.deps import Context, anon, auth
from vpdb.api.helpers import get_or_404
from vpdb.api.response import api_router, pagination, success
from vpdb.models.game import Game
from vpdb.models.medium import Medium
from vpdb.models.release import Release
from vpdb.models.social import Star
from vpdb.schemas.medium import MediumCreate, MediumResponse
from vpdb.utils.auth import generate_id
from vpdb.utils.cache import CacheRoute
from vpdb.utils.errors import ApiError, ApiValidationError, field_error
from vpdb.utils.events import log_event
from vpdb.utils.scope import Scope

router = api_router(tags=["media"])

CACHE_ROUTES = (
    CacheRoute("/v1/media/{medium_id}", entities=(("medium", "medium_id"),)),
    CacheRoute("/v1/games/{game_id}/media", resources=("medium",), entities=(("game", "game_id"),)),
)


def _related(medium: Medium) -> dict:
    return {"game": medium.game.id} if medium.game is not None else {}


@router.get("/games/{game_id}/media")
def list_game_media(game_id: str, ctx: Context = Depends(anon())):
    game = get_or_404(ctx.db, Game, game_id, "game")
    query = ctx.db.query(Medium).filter(Medium.game_pk == game.pk)
    category = ctx.query.get("category")
    if category:
        query = query.filter(Medium.category == category)
    page = pagination(ctx.request)
    media = page.apply(query.order_by(Medium.created_at.desc()))
    return success(ctx, [MediumResponse.model_validate(medium) for medium in media], pagination=page)


@router.get("/media/{medium_id}")
def view_medium(medium_id: str, ctx: Context = Depends(anon())):
    return success(ctx, MediumResponse.model_validate(get_or_404(ctx.db, Medium, medium_id, "medium")))


@router.post("/media", status_code=status.HTTP_201_CREATED)
def create_medium(body: MediumCreate, ctx: Context = Depends(auth("media", "add", [Scope.ALL, Scope.CREATE]))):
    """Attach a medium to exactly one of a game or a release"""
    if bool(body.game_id) == bool(body.release_id):
        raise ApiValidationError([field_error("game_id", "Reference either a game or a release.", body.game_id)])

    game: Optional[Game] = None
    release: Optional[Release] = None
    if body.game_id:
        game = ctx.db.query(Game).filter(Game.id == body.game_id).first()
        if not game:
            raise ApiValidationError([field_error("game_id", f'No game with ID "{body.game_id}".', body.game_id)])
    else:
        release = ctx.db.query(Release).filter(Release.id == body.release_id).first()
        if not release:
            raise ApiValidationError([field_error("release_id", f'No release with ID "{body.release_id}".', body.release_id)])
        game = release.game

    medium = Medium(
        id=generate_id(),
        category=body.category,
        description=body.description,
        game_pk=game.pk if body.game_id else None,
        release_pk=release.pk if release is not None else None,
        created_by_pk=ctx.user.pk,
    )
    ctx.db.add(medium)
    ctx.db.commit()
    ctx.db.refresh(medium)

    log_event(ctx, "create_medium", {"medium": {"id": medium.id, "category": medium.category}}, game=game, release=release)
    ctx.api_cache.invalidate_entity("medium", medium.id, **_related(medium))
    return success(ctx, MediumResponse.model_validate(medium), status.HTTP_201_CREATED)


@router.delete("/media/{medium_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_medium(medium_id: str, ctx: Context = Depends(auth("media", "delete-own", [Scope.ALL, Scope.CREATE]))):
    medium = get_or_404(ctx.db, Medium, medium_id, "medium")
    if medium.created_by_pk != ctx.user.pk and not ctx.is_allowed("media", "delete"):
        raise ApiError(status.HTTP_403_FORBIDDEN, "Only moderators or owners of the medium can delete it.")

    related = _related(medium)
    ctx.db.query(Star).filter(Star.entity_type == "medium", Star.entity_pk == medium.pk).delete(synchronize_session=False)
    ctx.db.delete(medium)
    ctx.db.commit()

    log_event(ctx, "delete_medium", {"medium": {"id": medium_id}})
    ctx.api_cache.invalidate_entity("medium", medium_id, **related)
    return success(ctx, None, status.HTTP_204_NO_CONTENT)
