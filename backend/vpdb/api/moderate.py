"""``POST .../moderate`` handling shared by releases, backglasses and ROMs"""
from typing import Any, Dict, Optional

from vpdb.api.deps import Context
from vpdb.middleware.monitoring import record_moderation_action
from vpdb.models.moderation import ModeratedMixin
from vpdb.schemas.release import ModerationRequest, ModerationResponse
from vpdb.utils import moderation
from vpdb.utils.events import log_event
from vpdb.utils.webhook import send_webhook

_WEBHOOK_EVENTS = {
    "approve": "moderation.approved",
    "refuse": "moderation.refused",
    "moderate": "moderation.pending",
}


def webhook_payload(entity: ModeratedMixin, label: str, actor: Any, message: Optional[str] = None) -> Dict[str, Any]:
    return {
        "entity_type": entity.__moderation_type__,
        "entity_id": entity.id,
        "label": label,
        "actor": actor.name if actor is not None else None,
        "message": message,
    }


def notify_pending(ctx: Context, entity: ModeratedMixin, label: str) -> None:
    """Tell moderators about a new submission that needs their decision"""
    if not entity.is_approved:
        send_webhook("moderation.pending", webhook_payload(entity, label, ctx.user))


def moderate(ctx: Context, entity: ModeratedMixin, body: ModerationRequest, label: str, **refs: Any) -> ModerationResponse:
    """Validate and apply a moderation action, then log it, clear caches and notify.

    ``refs`` are passed on to the log event, e.g. ``game=game, release=release``.
    """
    moderation.validate_request(body.action, body.message)
    entity = moderation.transition(ctx.db, entity, ctx.user, body.action, body.message)
    record_moderation_action(entity.__moderation_type__, body.action)

    log_event(
        ctx,
        "moderate",
        {"action": body.action, "message": body.message, "entity": entity.__moderation_type__, "id": entity.id},
        is_public=False,
        **refs,
    )
    ctx.api_cache.invalidate_entity(entity.__moderation_type__, entity.id, game=entity.game.id)
    ctx.api_cache.invalidate_entity("game", entity.game.id)
    send_webhook(_WEBHOOK_EVENTS[body.action], webhook_payload(entity, label, ctx.user, body.message))
    return ModerationResponse(**moderation.serialize(ctx.db, entity))
