"""Activity log events.

Events are written after the response is sent, in their own session. A
failing write is logged and never affects the response.
"""
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError

from vpdb.database import SessionLocal
from vpdb.models.log_event import LogEvent
from vpdb.utils.auth import generate_id
from vpdb.utils.jobs import job_tracker
from vpdb.utils.logger import logger


def log_event(
    ctx: Any,
    event: str,
    payload: Optional[Dict[str, Any]] = None,
    game: Any = None,
    release: Any = None,
    backglass: Any = None,
    user: Any = None,
    is_public: bool = True,
) -> None:
    """Schedule a log event for the current request's actor"""
    refs = {
        "game_pk": game.pk if game is not None else None,
        "release_pk": release.pk if release is not None else None,
        "backglass_pk": backglass.pk if backglass is not None else None,
        "user_pk": user.pk if user is not None else None,
    }
    actor_pk = ctx.user.pk if ctx.user is not None else None
    job_tracker.schedule(
        ctx.background, _write_event, event, jsonable_encoder(payload or {}), refs, actor_pk, ctx.ip, is_public,
    )


def _write_event(
    event: str,
    payload: Dict[str, Any],
    refs: Dict[str, Optional[int]],
    actor_pk: Optional[int],
    ip: str,
    is_public: bool,
) -> None:
    db = SessionLocal()
    try:
        db.add(LogEvent(
            id=generate_id(),
            event=event,
            payload=payload,
            is_public=is_public,
            actor_pk=actor_pk,
            ip=ip,
            **refs,
        ))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Failed to write log event {event}", extra={"action": event}, exc_info=True)
    finally:
        db.close()
