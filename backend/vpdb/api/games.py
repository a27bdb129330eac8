"""Game endpoints"""
from typing import Any, Dict, Optional

from fastapi import Body, Depends, status
from sqlalchemy.orm import Session

from vpdb import database
from vpdb.api.deps import Context, anon, auth
from vpdb.api.helpers import check_read_only_fields, get_or_404, query_list, sort_order, validate
from vpdb.api.response import api_router, pagination, success
from vpdb.models.game import Game
from vpdb.models.release import Release
from vpdb.models.social import Rating, Star
from vpdb.schemas.game import GameCreate, GameDetails, GameReleaseSummary, GameResponse, GameUpdate
from vpdb.utils.cache import CacheCounter, CacheRoute
from vpdb.utils.errors import ApiError, ApiValidationError, field_error
from vpdb.utils.events import log_event
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(prefix="/games", tags=["games"])


def _count_view(db: Session, game_id: str) -> Optional[int]:
    """Increment the view counter of a game and return the new value"""
    db.query(Game).filter(Game.id == game_id).update(
        {Game.counter_views: Game.counter_views + 1}, synchronize_session=False
    )
    db.commit()
    return db.query(Game.counter_views).filter(Game.id == game_id).scalar()


def count_cached_view(game_id: str) -> Optional[int]:
    """View counter of a game served from the cache"""
    db = database.SessionLocal()
    try:
        return _count_view(db, game_id)
    finally:
        db.close()


CACHE_ROUTES = (
    CacheRoute("/v1/games", resources=("game",)),
    CacheRoute(
        "/v1/games/{game_id}",
        entities=(("game", "game_id"),),
        counter=CacheCounter(param="game_id", name="views", increment=count_cached_view),
    ),
)

UPDATABLE_FIELDS = ["title", "year", "manufacturer", "game_type", "ipdb_number", "description"]

_SORT_COLUMNS = {
    "title": Game.title,
    "year": Game.year,
    "rating": Game.rating_average,
    "stars": Game.counter_stars,
    "popularity": Game.counter_views,
    "created_at": Game.created_at,
}


def _details(game: Game) -> GameDetails:
    details = GameDetails.model_validate(game)
    details.releases = [
        GameReleaseSummary.model_validate(release)
        for release in sorted(game.releases, key=lambda r: r.created_at, reverse=True)
        if release.is_approved
    ]
    return details


def _log_payload(game: Game) -> Dict[str, Any]:
    return {"game": {"id": game.id, "title": game.title, "year": game.year, "manufacturer": game.manufacturer}}


@router.get("")
def list_games(ctx: Context = Depends(anon())):
    """
    List games

    Query parameters: ``q`` (title search, at least two characters), ``mfg``
    (comma separated manufacturers), ``sort`` and pagination.
    """
    query = ctx.db.query(Game)

    q = (ctx.query.get("q") or "").strip()
    if q:
        if len(q) < 2:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "Query must contain at least two characters.")
        query = query.filter(Game.title.ilike(f"%{q}%"))

    manufacturers = query_list(ctx.request, "mfg")
    if manufacturers:
        query = query.filter(Game.manufacturer.in_(manufacturers))

    query = query.order_by(sort_order(ctx.request, "title", _SORT_COLUMNS))
    page = pagination(ctx.request)
    games = page.apply(query)
    return success(ctx, [GameResponse.model_validate(game) for game in games], pagination=page)


@router.head("/{game_id}")
def head_game(game_id: str, ctx: Context = Depends(anon())):
    """Check whether a game ID exists"""
    get_or_404(ctx.db, Game, game_id, "game")
    return success(ctx)


@router.get("/{game_id}")
def view_game(game_id: str, ctx: Context = Depends(anon())):
    """Game details, including its approved releases"""
    game = get_or_404(ctx.db, Game, game_id, "game")
    _count_view(ctx.db, game.id)
    ctx.db.refresh(game)
    return success(ctx, _details(game))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_game(body: GameCreate, ctx: Context = Depends(auth("games", "add", [Scope.ALL]))):
    """Create a new game (game contributors)"""
    if ctx.db.query(Game).filter(Game.id == body.id).first():
        raise ApiValidationError([field_error("id", f'The game ID "{body.id}" is already taken.', body.id)])

    game = Game(**body.model_dump(), created_by_pk=ctx.user.pk)
    ctx.db.add(game)
    ctx.db.commit()
    ctx.db.refresh(game)

    logger.info(f"Created game: {game.id}", extra={"user_id": ctx.user.id, "action": "create_game"})
    log_event(ctx, "create_game", _log_payload(game), game=game)
    ctx.api_cache.invalidate_resources("game")

    return success(ctx, _details(game), status.HTTP_201_CREATED)


@router.patch("/{game_id}")
def update_game(
    game_id: str,
    body: Dict[str, Any] = Body(...),
    ctx: Context = Depends(auth("games", "update", [Scope.ALL])),
):
    """
    Update a game

    Read-only fields may be sent back as long as they are unchanged.
    """
    game = get_or_404(ctx.db, Game, game_id, "game")

    errors = check_read_only_fields(body, GameResponse.model_validate(game).model_dump(), UPDATABLE_FIELDS)
    if errors:
        raise ApiValidationError(errors)

    changes = validate(GameUpdate, {k: v for k, v in body.items() if k in UPDATABLE_FIELDS}).model_dump(exclude_unset=True)
    before = {name: getattr(game, name) for name in changes}
    for name, value in changes.items():
        setattr(game, name, value)
    ctx.db.commit()
    ctx.db.refresh(game)

    logger.info(f"Updated game: {game.id}", extra={"user_id": ctx.user.id, "action": "update_game"})
    log_event(ctx, "update_game", {"old": before, "new": changes}, game=game)
    ctx.api_cache.invalidate_entity("game", game.id)

    return success(ctx, _details(game))


@router.delete("/{game_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_game(game_id: str, ctx: Context = Depends(auth("games", "delete", [Scope.ALL]))):
    """Delete a game without releases, along with its backglasses, ROMs and media"""
    game = get_or_404(ctx.db, Game, game_id, "game")

    num_releases = ctx.db.query(Release).filter(Release.game_pk == game.pk).count()
    if num_releases:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            f"Cannot delete game with {num_releases} release{'' if num_releases == 1 else 's'} attached.",
        )

    payload = _log_payload(game)
    for relation in (Rating, Star):
        ctx.db.query(relation).filter(relation.entity_type == "game", relation.entity_pk == game.pk).delete(
            synchronize_session=False
        )
    ctx.db.delete(game)
    ctx.db.commit()

    logger.info(f"Deleted game: {game_id}", extra={"user_id": ctx.user.id, "action": "delete_game"})
    log_event(ctx, "delete_game", payload)
    ctx.api_cache.invalidate_entity("game", game_id)
    ctx.api_cache.invalidate_resources("game")

    return success(ctx, None, status.HTTP_204_NO_CONTENT)
