"""Activity log endpoints"""
from fastapi import Depends

from vpdb.api.deps import Context, anon, auth
from vpdb.api.helpers import get_or_404, query_list
from vpdb.api.response import api_router, pagination, success
from vpdb.models.game import Game
from vpdb.models.log_event import LogEvent
from vpdb.models.release import Release
from vpdb.models.user import User
from vpdb.schemas.log_event import LogEventResponse
from vpdb.utils import moderation
from vpdb.utils.scope import Scope

router = api_router(tags=["events"])


def _list(ctx: Context, query, public_only: bool = True, full_details: bool = False):
    if public_only:
        query = query.filter(LogEvent.is_public.is_(True))

    events = query_list(ctx.request, "events")
    if events:
        query = query.filter(LogEvent.event.in_(events))

    page = pagination(ctx.request)
    rows = page.apply(query.order_by(LogEvent.logged_at.desc(), LogEvent.pk.desc()))

    result = []
    for row in rows:
        event = LogEventResponse.model_validate(row)
        if not full_details:
            event.ip = None
        result.append(event)
    return success(ctx, result, pagination=page)


@router.get("/events")
def list_events(ctx: Context = Depends(anon())):
    """Public activity, most recent first. ``events`` filters by comma separated event names."""
    return _list(ctx, ctx.db.query(LogEvent))


@router.get("/games/{game_id}/events")
def list_game_events(game_id: str, ctx: Context = Depends(anon())):
    game = get_or_404(ctx.db, Game, game_id, "game")
    return _list(ctx, ctx.db.query(LogEvent).filter(LogEvent.game_pk == game.pk))


@router.get("/releases/{release_id}/events")
def list_release_events(release_id: str, ctx: Context = Depends(anon())):
    release = get_or_404(ctx.db, Release, release_id, "release")
    moderation.assert_visible(release, ctx.user)
    return _list(ctx, ctx.db.query(LogEvent).filter(LogEvent.release_pk == release.pk))


@router.get("/users/{user_id}/events")
def list_user_events(user_id: str, ctx: Context = Depends(auth("users", "full-details", [Scope.ALL]))):
    """Everything a user did, including private events"""
    user = get_or_404(ctx.db, User, user_id, "user")
    return _list(ctx, ctx.db.query(LogEvent).filter(LogEvent.actor_pk == user.pk), public_only=False, full_details=True)


@router.get("/profile/events")
def list_profile_events(ctx: Context = Depends(auth("user", "view", [Scope.ALL]))):
    return _list(ctx, ctx.db.query(LogEvent).filter(LogEvent.actor_pk == ctx.user.pk), public_only=False)
