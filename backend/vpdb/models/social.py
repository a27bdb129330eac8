"""Comment, Rating and Star models"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from vpdb.database import Base


class Comment(Base):
    """A comment on a release"""

    __tablename__ = "comments"

    pk = Column(Integer, primary_key=True)
    id = Column(String(32), unique=True, nullable=False, index=True)
    message = Column(Text, nullable=False)
    release_pk = Column(Integer, ForeignKey("releases.pk", ondelete="CASCADE"), nullable=False, index=True)
    created_by_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    release = relationship("Release", back_populates="comments")
    created_by = relationship("User")


class Rating(Base):
    """A user's vote on a game or release"""

    __tablename__ = "ratings"
    __table_args__ = (UniqueConstraint("user_pk", "entity_type", "entity_pk", name="uq_ratings_user_entity"),)

    pk = Column(Integer, primary_key=True)
    user_pk = Column(Integer, ForeignKey("users.pk", ondelete="CASCADE"), nullable=False, index=True)
    entity_type = Column(String(20), nullable=False)    # game, release
    entity_pk = Column(Integer, nullable=False, index=True)
    value = Column(Integer, nullable=False)             # 1-10
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    modified_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User")


class Star(Base):
    """A user's star on a game, release, backglass, medium or user"""

    __tablename__ = "stars"
    __table_args__ = (UniqueConstraint("user_pk", "entity_type", "entity_pk", name="uq_stars_user_entity"),)

    pk = Column(Integer, primary_key=True)
    user_pk = Column(Integer, ForeignKey("users.pk", ondelete="CASCADE"), nullable=False, index=True)
    entity_type = Column(String(20), nullable=False)
    entity_pk = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User")
