"""Visual Pinball build endpoints"""
import re
from typing import Any, Dict

from fastapi import Body, Depends, status

from vpdb.api.deps import Context, anon, auth
from vpdb.api.helpers import assert_fields, get_or_404, validate
from vpdb.api.response import api_router, success
from vpdb.models.build import Build
from vpdb.schemas.build import BuildCreate, BuildResponse, BuildUpdate
from vpdb.utils.cache import CacheRoute
from vpdb.utils.errors import ApiError, ApiValidationError, field_error
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(prefix="/builds", tags=["builds"])

CACHE_ROUTES = (
    CacheRoute("/v1/builds", resources=("build",)),
    CacheRoute("/v1/builds/{build_id}", resources=("build",)),
)

UPDATABLE_FIELDS = ["label", "major_version", "type", "is_range", "built_at", "description", "is_active"]


def slugify(label: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", label.lower()).strip("-")


def _assert_owner_or_moderator(ctx: Context, build: Build) -> None:
    if build.created_by_pk != ctx.user.pk and not ctx.is_allowed("builds", "delete"):
        raise ApiError(status.HTTP_403_FORBIDDEN, "Only moderators or owners of the build can delete it.")


@router.get("")
def list_builds(ctx: Context = Depends(anon())):
    """All builds, most recent first. Pass ``include_inactive=true`` to include disabled ones."""
    query = ctx.db.query(Build)
    if ctx.query.get("include_inactive") != "true":
        query = query.filter(Build.is_active.is_(True))
    builds = query.order_by(Build.built_at.desc(), Build.created_at.desc()).all()
    return success(ctx, [BuildResponse.model_validate(build) for build in builds])


@router.get("/{build_id}")
def view_build(build_id: str, ctx: Context = Depends(anon())):
    return success(ctx, BuildResponse.model_validate(get_or_404(ctx.db, Build, build_id, "build")))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_build(body: BuildCreate, ctx: Context = Depends(auth("builds", "add", [Scope.ALL]))):
    build_id = slugify(body.label)
    if ctx.db.query(Build).filter(Build.id == build_id).first():
        raise ApiValidationError([field_error("label", f'The build "{body.label}" already exists.', body.label)])

    build = Build(id=build_id, **body.model_dump(), created_by_pk=ctx.user.pk)
    ctx.db.add(build)
    ctx.db.commit()
    ctx.db.refresh(build)

    logger.info(f"Created build: {build.id}", extra={"user_id": ctx.user.id, "action": "create_build"})
    ctx.api_cache.invalidate_resources("build")
    return success(ctx, BuildResponse.model_validate(build), status.HTTP_201_CREATED)


@router.patch("/{build_id}")
def update_build(
    build_id: str,
    body: Dict[str, Any] = Body(...),
    ctx: Context = Depends(auth("builds", "update", [Scope.ALL])),
):
    """Update a build (moderators)"""
    build = get_or_404(ctx.db, Build, build_id, "build")
    assert_fields(body, UPDATABLE_FIELDS)

    for name, value in validate(BuildUpdate, body).model_dump(exclude_unset=True).items():
        setattr(build, name, value)
    ctx.db.commit()
    ctx.db.refresh(build)

    logger.info(f"Updated build: {build.id}", extra={"user_id": ctx.user.id, "action": "update_build"})
    ctx.api_cache.invalidate_resources("build")
    return success(ctx, BuildResponse.model_validate(build))


@router.delete("/{build_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_build(build_id: str, ctx: Context = Depends(auth("builds", "delete-own", [Scope.ALL]))):
    """Delete a build (owner or moderator)"""
    build = get_or_404(ctx.db, Build, build_id, "build")
    _assert_owner_or_moderator(ctx, build)
    ctx.db.delete(build)
    ctx.db.commit()

    logger.info(f"Deleted build: {build_id}", extra={"user_id": ctx.user.id, "action": "delete_build"})
    ctx.api_cache.invalidate_resources("build")
    return success(ctx, None, status.HTTP_204_NO_CONTENT)
