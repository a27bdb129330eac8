"""Release comment endpoints"""
from typing import Any, Dict

from fastapi import Body, Depends, Request, status

from vpdb.api.deps import Context, anon, auth
from vpdb.api.helpers import assert_fields, get_or_404, validate
from vpdb.api.response import api_router, pagination, success
from vpdb.middleware.rate_limit import get_rate_limit, limiter
from vpdb.models.release import Release
from vpdb.models.social import Comment
from vpdb.schemas.social import CommentCreate, CommentResponse
from vpdb.utils import moderation
from vpdb.utils.auth import generate_id
from vpdb.utils.cache import CacheRoute
from vpdb.utils.errors import ApiError
from vpdb.utils.events import log_event
from vpdb.utils.scope import Scope

router = api_router(tags=["comments"])

CACHE_ROUTES = (
    CacheRoute("/v1/releases/{release_id}/comments", resources=("comment",), entities=(("release", "release_id"),)),
)


def _find_release(ctx: Context, release_id: str) -> Release:
    release = get_or_404(ctx.db, Release, release_id, "release")
    moderation.assert_visible(release, ctx.user)
    return release


@router.get("/releases/{release_id}/comments")
def list_release_comments(release_id: str, ctx: Context = Depends(anon())):
    """Comments of a release, most recent first"""
    release = _find_release(ctx, release_id)
    query = ctx.db.query(Comment).filter(Comment.release_pk == release.pk).order_by(Comment.created_at.desc())
    page = pagination(ctx.request)
    comments = page.apply(query)
    return success(ctx, [CommentResponse.model_validate(comment) for comment in comments], pagination=page)


@router.post("/releases/{release_id}/comments", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("comment"))
def create_release_comment(
    request: Request,
    release_id: str,
    body: CommentCreate,
    ctx: Context = Depends(auth("comments", "add", [Scope.ALL, Scope.COMMUNITY])),
):
    release = _find_release(ctx, release_id)
    comment = Comment(id=generate_id(), message=body.message, release_pk=release.pk, created_by_pk=ctx.user.pk)
    ctx.db.add(comment)
    release.counter_comments = Release.counter_comments + 1
    ctx.db.commit()
    ctx.db.refresh(comment)

    log_event(
        ctx,
        "create_comment",
        {"comment": {"id": comment.id, "message": comment.message}, "release": {"id": release.id}},
        game=release.game,
        release=release,
        is_public=release.is_approved,
    )
    ctx.api_cache.invalidate_entity("release", release.id)
    return success(ctx, CommentResponse.model_validate(comment), status.HTTP_201_CREATED)


@router.patch("/comments/{comment_id}")
def update_comment(
    comment_id: str,
    body: Dict[str, Any] = Body(...),
    ctx: Context = Depends(auth("comments", "update-own", [Scope.ALL, Scope.COMMUNITY])),
):
    """Edit a comment (author or moderator)"""
    comment = get_or_404(ctx.db, Comment, comment_id, "comment")
    if comment.created_by_pk != ctx.user.pk and not ctx.is_allowed("comments", "update"):
        raise ApiError(status.HTTP_403_FORBIDDEN, "You can only edit your own comments.")
    assert_fields(body, ["message"])

    comment.message = validate(CommentCreate, body).message
    ctx.db.commit()
    ctx.db.refresh(comment)

    log_event(ctx, "update_comment", {"comment": {"id": comment.id}}, release=comment.release, is_public=False)
    ctx.api_cache.invalidate_entity("release", comment.release.id)
    return success(ctx, CommentResponse.model_validate(comment))
