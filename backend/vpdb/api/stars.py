"""Star endpoints for games, releases, backglasses, media and users.

Every starrable model gets the same three routes::

    POST   /<plural>/{id}/star    star it (201)
    GET    /<plural>/{id}/star    is it starred (200 or 404)
    DELETE /<plural>/{id}/star    unstar it (204)
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Depends, status

from vpdb.api.deps import Context, auth
from vpdb.api.repository import RelationRepository
from vpdb.api.response import api_router, success
from vpdb.models.game import Game
from vpdb.models.medium import Medium
from vpdb.models.moderation import ModeratedMixin
from vpdb.models.release import Backglass, Release
from vpdb.models.social import Star
from vpdb.models.user import User
from vpdb.schemas.social import StarResponse
from vpdb.utils import moderation
from vpdb.utils.errors import ApiError
from vpdb.utils.events import log_event
from vpdb.utils.scope import Scope

router = api_router(tags=["stars"])


@dataclass(frozen=True)
class Starrable:
    name: str          # entity type, e.g. "release"
    plural: str        # path segment and ACL resource, e.g. "releases"
    repository: RelationRepository


STARRABLES: Dict[str, Starrable] = {
    "game": Starrable("game", "games", RelationRepository(Game, Star, "game", "title")),
    "release": Starrable("release", "releases", RelationRepository(Release, Star, "release", "name")),
    "backglass": Starrable("backglass", "backglasses", RelationRepository(Backglass, Star, "backglass")),
    "medium": Starrable("medium", "media", RelationRepository(Medium, Star, "medium")),
    "user": Starrable("user", "users", RelationRepository(User, Star, "user", "name")),
}


def is_starred(ctx: Context, model_name: str, entity: Any) -> Optional[bool]:
    """Whether the logged user starred the entity, ``None`` for anonymous requests"""
    if ctx.user is None:
        return None
    return STARRABLES[model_name].repository.relation(ctx.db, entity, ctx.user) is not None


def _find(ctx: Context, starrable: Starrable, entity_id: str):
    entity, star = starrable.repository.find(ctx.db, entity_id, ctx.user)
    if isinstance(entity, ModeratedMixin):
        moderation.assert_visible(entity, ctx.user)
    return entity, star


def _refs(starrable: Starrable, entity: Any) -> Dict[str, Any]:
    if starrable.name == "game":
        return {"game": entity}
    if starrable.name == "release":
        return {"game": entity.game, "release": entity}
    if starrable.name == "backglass":
        return {"game": entity.game, "backglass": entity}
    if starrable.name == "user":
        return {"user": entity}
    return {"game": entity.game} if entity.game is not None else {}


def _increment_stars(ctx: Context, entity: Any, delta: int) -> None:
    model = type(entity)
    ctx.db.query(model).filter(model.pk == entity.pk).update(
        {model.counter_stars: model.counter_stars + delta}, synchronize_session=False
    )


def _invalidate(ctx: Context, starrable: Starrable, entity: Any) -> None:
    related = {}
    game = getattr(entity, "game", None)
    if game is not None:
        related["game"] = game.id
    ctx.api_cache.invalidate_entity(starrable.name, entity.id, **related)


def _register(starrable: Starrable) -> None:
    resource = starrable.plural
    scopes = [Scope.ALL, Scope.COMMUNITY]
    path = f"/{starrable.plural}/{{entity_id}}/star"

    def star(entity_id: str, ctx: Context = Depends(auth(resource, "star", scopes))):
        entity, duplicate = _find(ctx, starrable, entity_id)
        if duplicate:
            raise ApiError(
                status.HTTP_400_BAD_REQUEST,
                "Already starred. Cannot star twice, you need to unstar first.",
                log=True,
            )
        star = starrable.repository.add(ctx.db, entity, ctx.user)
        _increment_stars(ctx, entity, 1)
        ctx.db.commit()
        ctx.db.refresh(entity)

        log_event(ctx, f"star_{starrable.name}", {"id": entity.id}, **_refs(starrable, entity))
        _invalidate(ctx, starrable, entity)
        return success(ctx, StarResponse(created_at=star.created_at, total_stars=entity.counter_stars), status.HTTP_201_CREATED)

    def view_star(entity_id: str, ctx: Context = Depends(auth(resource, "star", scopes))):
        entity, star = _find(ctx, starrable, entity_id)
        if not star:
            raise ApiError(
                status.HTTP_404_NOT_FOUND,
                f'No star for <{ctx.user.email}> for "{starrable.repository.title(entity)}" found.',
            )
        return success(ctx, StarResponse(created_at=star.created_at))

    def unstar(entity_id: str, ctx: Context = Depends(auth(resource, "star", scopes))):
        entity, star = _find(ctx, starrable, entity_id)
        if not star:
            raise ApiError(
                status.HTTP_400_BAD_REQUEST,
                "Not starred. You need to star something before you can unstar it.",
                log=True,
            )
        ctx.db.delete(star)
        _increment_stars(ctx, entity, -1)
        ctx.db.commit()

        log_event(ctx, f"unstar_{starrable.name}", {"id": entity.id}, **_refs(starrable, entity))
        _invalidate(ctx, starrable, entity)
        return success(ctx, None, status.HTTP_204_NO_CONTENT)

    router.add_api_route(path, star, methods=["POST"], status_code=status.HTTP_201_CREATED, name=f"star_{starrable.name}")
    router.add_api_route(path, view_star, methods=["GET"], name=f"view_star_{starrable.name}")
    router.add_api_route(path, unstar, methods=["DELETE"], status_code=status.HTTP_204_NO_CONTENT, name=f"unstar_{starrable.name}")


for _starrable in STARRABLES.values():
    _register(_starrable)
