"""Moderation workflow for user submitted entities (releases, backglasses, ROMs).

States and transitions::

    pending  --approve-->  approved
    pending  --refuse--->  refused
    approved/refused  --moderate-->  pending

Creators holding ``<resource>/auto-approve`` skip the queue. Every transition
is a single UPDATE statement followed by a re-read, and appends one entry to
the entity's history.
"""
from typing import Any, Dict, List, Optional

from fastapi import status
from sqlalchemy.orm import Query, Session

from vpdb.models.moderation import ModeratedMixin, ModerationEvent
from vpdb.models.user import User
from vpdb.utils.acl import acl
from vpdb.utils.errors import ApiError, ApiValidationError, field_error
from vpdb.utils.logger import logger

FILTERS = ["refused", "pending", "auto_approved", "manually_approved", "all"]
ACTIONS = ["approve", "refuse", "moderate"]

# action -> (history event, column values)
_TRANSITIONS = {
    "approve": ("approved", {"is_approved": True, "is_refused": False, "auto_approved": False}),
    "refuse": ("refused", {"is_approved": False, "is_refused": True, "auto_approved": False}),
    "moderate": ("pending", {"is_approved": False, "is_refused": False, "auto_approved": False}),
}


def resource_of(entity_or_model: Any) -> str:
    return entity_or_model.__moderation_resource__


def is_moderator(user: Optional[User], entity_or_model: Any) -> bool:
    return acl.is_allowed(user, resource_of(entity_or_model), "moderate")


def handle_create(db: Session, entity: ModeratedMixin, user: User) -> None:
    """Set the initial moderation state of a new entity. The entity must already be added to the session."""
    auto_approve = acl.is_allowed(user, resource_of(entity), "auto-approve")
    entity.is_approved = auto_approve
    entity.is_refused = False
    entity.auto_approved = auto_approve
    if auto_approve:
        db.flush()
        db.add(ModerationEvent(
            entity_type=entity.__moderation_type__,
            entity_pk=entity.pk,
            event="approved",
            message="Auto-approved on creation.",
            created_by_pk=user.pk,
        ))
        logger.info(f"Auto-approved {entity.__moderation_type__} {entity.id}", extra={"user_id": user.id})


def transition(db: Session, entity: ModeratedMixin, user: User, action: str, message: Optional[str] = None) -> ModeratedMixin:
    """Apply ``approve``, ``refuse`` or ``moderate`` and return the re-read entity"""
    event, values = _TRANSITIONS[action]
    model = type(entity)
    db.query(model).filter(model.pk == entity.pk).update(
        {getattr(model, name): value for name, value in values.items()},
        synchronize_session=False,
    )
    db.add(ModerationEvent(
        entity_type=model.__moderation_type__,
        entity_pk=entity.pk,
        event=event,
        message=message,
        created_by_pk=user.pk,
    ))
    db.commit()
    db.refresh(entity)
    logger.info(
        f"{model.__moderation_type__.capitalize()} {entity.id} is now {event}",
        extra={"user_id": user.id, "action": f"moderate_{action}"},
    )
    return entity


def validate_request(action: Optional[str], message: Optional[str]) -> None:
    """Validate the body of a ``POST .../moderate`` request"""
    if action not in ACTIONS:
        raise ApiValidationError([field_error(
            "action",
            f'Invalid action "{action}". Valid actions are: [ "{", ".join(ACTIONS)}" ].',
            action,
        )])
    if action == "refuse" and not message:
        raise ApiValidationError([field_error("message", "A message must be provided when refusing.", message)])


def history(db: Session, entity: ModeratedMixin) -> List[ModerationEvent]:
    """Moderation history, most recent first"""
    return db.query(ModerationEvent).filter(
        ModerationEvent.entity_type == entity.__moderation_type__,
        ModerationEvent.entity_pk == entity.pk,
    ).order_by(ModerationEvent.created_at.desc(), ModerationEvent.pk.desc()).all()


def serialize(db: Session, entity: ModeratedMixin) -> Dict[str, Any]:
    return {
        "is_approved": entity.is_approved,
        "is_refused": entity.is_refused,
        "auto_approved": entity.auto_approved,
        "history": [
            {
                "event": item.event,
                "message": item.message,
                "created_at": item.created_at,
                "created_by": {"id": item.created_by.id, "name": item.created_by.name} if item.created_by else None,
            }
            for item in history(db, entity)
        ],
    }


def apply_list_filter(query: Query, model: Any, user: Optional[User], value: Optional[str]) -> Query:
    """Restrict a list query according to the ``moderation`` query parameter.

    Without a filter only approved entities are listed. Any filter requires
    a logged-in moderator.
    """
    if not value:
        return query.filter(model.is_approved.is_(True))
    if user is None:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Must be logged in order to retrieve moderated items.")
    if not is_moderator(user, model):
        raise ApiError(status.HTTP_403_FORBIDDEN, "Must be moderator in order to retrieve moderated items.")
    if value not in FILTERS:
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            f'Invalid moderation filter. Valid filters are: [ "{", ".join(FILTERS)}" ].',
        )
    if value == "refused":
        return query.filter(model.is_refused.is_(True))
    if value == "pending":
        return query.filter(model.is_approved.is_(False), model.is_refused.is_(False))
    if value == "auto_approved":
        return query.filter(model.is_approved.is_(True), model.auto_approved.is_(True))
    if value == "manually_approved":
        return query.filter(model.is_approved.is_(True), model.auto_approved.is_(False))
    return query


def is_visible(entity: ModeratedMixin, user: Optional[User]) -> bool:
    """Approved entities are public, everything else only for the creator and moderators"""
    if entity.is_approved:
        return True
    return can_see_moderation(entity, user)


def can_see_moderation(entity: ModeratedMixin, user: Optional[User]) -> bool:
    if user is None:
        return False
    return entity.created_by_pk == user.pk or is_moderator(user, entity)


def assert_visible(entity: ModeratedMixin, user: Optional[User]) -> None:
    if not is_visible(entity, user):
        raise ApiError(
            status.HTTP_404_NOT_FOUND,
            f'No {entity.__moderation_type__} with ID "{entity.id}" found.',
        )
