"""Moderation state shared by user-submitted entities"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from vpdb.database import Base


class ModeratedMixin:
    """Columns of an entity that goes through moderation.

    Subclasses set ``__moderation_type__`` (history key, e.g. ``release``)
    and ``__moderation_resource__`` (ACL resource, e.g. ``releases``).
    """

    __moderation_type__: str
    __moderation_resource__: str

    is_approved = Column(Boolean, default=False, nullable=False, index=True)
    is_refused = Column(Boolean, default=False, nullable=False, index=True)
    auto_approved = Column(Boolean, default=False, nullable=False)


class ModerationEvent(Base):
    """One entry in an entity's moderation history"""

    __tablename__ = "moderation_events"

    pk = Column(Integer, primary_key=True)
    entity_type = Column(String(20), nullable=False, index=True)    # release, backglass, rom
    entity_pk = Column(Integer, nullable=False, index=True)
    event = Column(String(20), nullable=False)                      # approved, refused, pending
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True)

    created_by = relationship("User")
