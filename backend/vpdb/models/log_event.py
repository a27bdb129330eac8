"""LogEvent model"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from vpdb.database import Base


class LogEvent(Base):
    """Activity log entry, e.g. ``create_release`` or ``star_game``"""

    __tablename__ = "log_events"

    pk = Column(Integer, primary_key=True)
    id = Column(String(32), unique=True, nullable=False, index=True)
    event = Column(String(50), nullable=False, index=True)
    payload = Column(JSON, nullable=False, default=dict)
    is_public = Column(Boolean, default=True, nullable=False, index=True)
    actor_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True, index=True)
    game_pk = Column(Integer, ForeignKey("games.pk", ondelete="SET NULL"), nullable=True, index=True)
    release_pk = Column(Integer, ForeignKey("releases.pk", ondelete="SET NULL"), nullable=True, index=True)
    backglass_pk = Column(Integer, ForeignKey("backglasses.pk", ondelete="SET NULL"), nullable=True)
    user_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True)
    ip = Column(String(64), nullable=True)
    logged_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    actor = relationship("User", foreign_keys=[actor_pk])
    user = relationship("User", foreign_keys=[user_pk])
    game = relationship("Game")
    release = relationship("Release")
    backglass = relationship("Backglass")
