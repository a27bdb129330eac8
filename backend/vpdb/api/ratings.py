"""Rating endpoints for games and releases.

A user has at most one rating per entity. ``POST`` creates it, ``PUT``
changes it. The entity's ``rating.average`` is the plain mean of all votes.
"""
from datetime import datetime
from typing import Any, Dict

from fastapi import Depends, Request, status

from vpdb.api.deps import Context, auth
from vpdb.api.repository import RelationRepository
from vpdb.api.response import api_router, success
from vpdb.middleware.rate_limit import get_rate_limit, limiter
from vpdb.models.game import Game
from vpdb.models.release import Release
from vpdb.models.social import Rating
from vpdb.schemas.social import RatingRequest, RatingResponse
from vpdb.utils import moderation
from vpdb.utils.errors import ApiError
from vpdb.utils.events import log_event
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(tags=["ratings"])

_SCOPES = [Scope.ALL, Scope.COMMUNITY]

game_ratings: RelationRepository[Game, Rating] = RelationRepository(Game, Rating, "game", "title")
release_ratings: RelationRepository[Release, Rating] = RelationRepository(Release, Rating, "release", "name")


def _find_game(ctx: Context, game_id: str):
    return game_ratings.find(ctx.db, game_id, ctx.user)


def _find_release(ctx: Context, release_id: str):
    release, rating = release_ratings.find(ctx.db, release_id, ctx.user)
    moderation.assert_visible(release, ctx.user)
    return release, rating


def _update_rating(ctx: Context, repository: RelationRepository, entity: Any) -> Dict[str, Any]:
    """Recompute the entity's average and vote count"""
    average, votes = repository.average(ctx.db, entity, Rating.value)
    entity.rating_average = average
    entity.rating_votes = votes
    return {"average": average, "votes": votes}


def _refs(name: str, entity: Any) -> Dict[str, Any]:
    return {"game": entity} if name == "game" else {"game": entity.game, "release": entity}


def _invalidate(ctx: Context, name: str, entity: Any) -> None:
    if name == "game":
        ctx.api_cache.invalidate_entity("game", entity.id)
    else:
        ctx.api_cache.invalidate_entity("release", entity.id, game=entity.game.id)


def _create(ctx: Context, name: str, repository: RelationRepository, entity: Any, duplicate: Any, value: int):
    if duplicate:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Cannot vote twice. Use PUT in order to update your vote.",
            log=True,
        )
    rating = repository.add(ctx.db, entity, ctx.user, value=value)
    ctx.db.flush()
    summary = _update_rating(ctx, repository, entity)
    ctx.db.commit()

    logger.info(
        f"User <{ctx.user.email}> rated {name} {entity.id} with {value}",
        extra={"user_id": ctx.user.id, "action": f"rate_{name}"},
    )
    log_event(ctx, f"rate_{name}", {"rating": {"value": value}, name: {"id": entity.id}}, **_refs(name, entity))
    _invalidate(ctx, name, entity)
    body = RatingResponse(value=rating.value, created_at=rating.created_at, **{name: summary})
    return success(ctx, body, status.HTTP_201_CREATED)


def _update(ctx: Context, name: str, repository: RelationRepository, entity: Any, rating: Any, value: int):
    if not rating:
        raise ApiError(
            status.HTTP_404_NOT_FOUND,
            f'Cannot update non-existent rating of <{ctx.user.email}> for "{repository.title(entity)}".',
        )
    rating.value = value
    rating.modified_at = datetime.utcnow()
    ctx.db.flush()
    summary = _update_rating(ctx, repository, entity)
    ctx.db.commit()

    log_event(ctx, f"rate_{name}", {"rating": {"value": value}, name: {"id": entity.id}}, **_refs(name, entity))
    _invalidate(ctx, name, entity)
    body = RatingResponse(value=rating.value, created_at=rating.created_at, modified_at=rating.modified_at, **{name: summary})
    return success(ctx, body)


def _view(ctx: Context, repository: RelationRepository, entity: Any, rating: Any):
    if not rating:
        raise ApiError(
            status.HTTP_404_NOT_FOUND,
            f'No rating of <{ctx.user.email}> for "{repository.title(entity)}" found.',
        )
    return success(ctx, RatingResponse(value=rating.value, created_at=rating.created_at, modified_at=rating.modified_at))


def _delete(ctx: Context, name: str, repository: RelationRepository, entity: Any, rating: Any):
    if not rating:
        raise ApiError(
            status.HTTP_404_NOT_FOUND,
            f'No rating of <{ctx.user.email}> for "{repository.title(entity)}" found.',
        )
    ctx.db.delete(rating)
    ctx.db.flush()
    _update_rating(ctx, repository, entity)
    ctx.db.commit()

    log_event(ctx, f"unrate_{name}", {name: {"id": entity.id}}, **_refs(name, entity))
    _invalidate(ctx, name, entity)
    return success(ctx, None, status.HTTP_204_NO_CONTENT)


# ===== Games =====

@router.post("/games/{game_id}/rating", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("rate"))
def create_game_rating(
    request: Request, game_id: str, body: RatingRequest, ctx: Context = Depends(auth("games", "rate", _SCOPES))
):
    game, rating = _find_game(ctx, game_id)
    return _create(ctx, "game", game_ratings, game, rating, body.value)


@router.put("/games/{game_id}/rating")
def update_game_rating(game_id: str, body: RatingRequest, ctx: Context = Depends(auth("games", "rate", _SCOPES))):
    game, rating = _find_game(ctx, game_id)
    return _update(ctx, "game", game_ratings, game, rating, body.value)


@router.get("/games/{game_id}/rating")
def view_game_rating(game_id: str, ctx: Context = Depends(auth("games", "rate", _SCOPES))):
    game, rating = _find_game(ctx, game_id)
    return _view(ctx, game_ratings, game, rating)


@router.delete("/games/{game_id}/rating", status_code=status.HTTP_204_NO_CONTENT)
def delete_game_rating(game_id: str, ctx: Context = Depends(auth("games", "rate", _SCOPES))):
    game, rating = _find_game(ctx, game_id)
    return _delete(ctx, "game", game_ratings, game, rating)


# ===== Releases =====

@router.post("/releases/{release_id}/rating", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("rate"))
def create_release_rating(
    request: Request, release_id: str, body: RatingRequest, ctx: Context = Depends(auth("releases", "rate", _SCOPES))
):
    release, rating = _find_release(ctx, release_id)
    return _create(ctx, "release", release_ratings, release, rating, body.value)


@router.put("/releases/{release_id}/rating")
def update_release_rating(release_id: str, body: RatingRequest, ctx: Context = Depends(auth("releases", "rate", _SCOPES))):
    release, rating = _find_release(ctx, release_id)
    return _update(ctx, "release", release_ratings, release, rating, body.value)


@router.get("/releases/{release_id}/rating")
def view_release_rating(release_id: str, ctx: Context = Depends(auth("releases", "rate", _SCOPES))):
    release, rating = _find_release(ctx, release_id)
    return _view(ctx, release_ratings, release, rating)


@router.delete("/releases/{release_id}/rating", status_code=status.HTTP_204_NO_CONTENT)
def delete_release_rating(release_id: str, ctx: Context = Depends(auth("releases", "rate", _SCOPES))):
    release, rating = _find_release(ctx, release_id)
    return _delete(ctx, "release", release_ratings, release, rating)
