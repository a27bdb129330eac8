"""API info, roles, plans, cache and kill switch"""
import os
import signal

from fastapi import Depends, status

from vpdb.api.deps import Context, auth, plain
from vpdb.api.response import api_router, success
from vpdb.config import settings
from vpdb.middleware.monitoring import record_cache_invalidation
from vpdb.utils.acl import ROLES
from vpdb.utils.errors import ApiError
from vpdb.utils.jobs import job_tracker
from vpdb.utils.logger import logger
from vpdb.utils.scope import Scope

router = api_router(tags=["misc"])


@router.get("")
def index(ctx: Context = Depends(plain())):
    return success(ctx, {"app_name": settings.API_NAME, "app_version": settings.API_VERSION})


@router.get("/ping")
def ping(ctx: Context = Depends(plain())):
    return success(ctx, {"result": "pong"})


@router.get("/roles")
def list_roles(ctx: Context = Depends(plain())):
    """All ACL roles with their parents"""
    return success(ctx, ROLES)


@router.get("/plans")
def list_plans(ctx: Context = Depends(plain())):
    plans = [
        {**plan, "name": plan.get("name") or plan["id"], "is_default": plan["id"] == settings.DEFAULT_PLAN}
        for plan in settings.PLANS
    ]
    return success(ctx, plans)


@router.delete("/cache")
def invalidate_cache(ctx: Context = Depends(auth("cache", "delete", [Scope.ALL]))):
    """Drop every cached response"""
    cleared = ctx.api_cache.invalidate_all()
    record_cache_invalidation("all", cleared)
    logger.info(f"Cleared {cleared} cached response(s).", extra={"user_id": ctx.user.id, "action": "invalidate_cache"})
    return success(ctx, {"cleared": cleared})


def _shutdown() -> None:
    if not job_tracker.wait_idle(timeout=settings.KILL_JOB_TIMEOUT):
        logger.warning(
            f"{job_tracker.pending} background job(s) still running after {settings.KILL_JOB_TIMEOUT}s.",
            extra={"action": "kill"},
        )
    logger.warning("Shutting down.", extra={"action": "kill"})
    os.kill(os.getpid(), signal.SIGTERM)


@router.post("/kill")
def kill(ctx: Context = Depends(plain())):
    """Terminate the process once all background jobs are done"""
    if not settings.ENABLE_KILL_SWITCH:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Not found.")
    ctx.background.add_task(_shutdown)
    return success(ctx, {"result": "shutting down."})
