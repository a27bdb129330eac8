"""Release, Backglass and Rom models - the moderated submissions"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from vpdb.database import Base
from vpdb.models.moderation import ModeratedMixin


class Release(ModeratedMixin, Base):
    """A table release for a game"""

    __tablename__ = "releases"
    __moderation_type__ = "release"
    __moderation_resource__ = "releases"

    pk = Column(Integer, primary_key=True)
    id = Column(String(32), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    game_pk = Column(Integer, ForeignKey("games.pk", ondelete="CASCADE"), nullable=False, index=True)
    counter_stars = Column(Integer, default=0, nullable=False)
    counter_comments = Column(Integer, default=0, nullable=False)
    rating_average = Column(Float, default=0.0, nullable=False)
    rating_votes = Column(Integer, default=0, nullable=False)
    created_by_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    modified_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    game = relationship("Game", back_populates="releases")
    created_by = relationship("User")
    comments = relationship("Comment", back_populates="release", cascade="all, delete-orphan")

    @property
    def counter(self) -> dict:
        return {"stars": self.counter_stars, "comments": self.counter_comments}

    @property
    def rating(self) -> dict:
        return {"average": self.rating_average, "votes": self.rating_votes}


class Backglass(ModeratedMixin, Base):
    """A directb2s backglass for a game"""

    __tablename__ = "backglasses"
    __moderation_type__ = "backglass"
    __moderation_resource__ = "backglasses"

    pk = Column(Integer, primary_key=True)
    id = Column(String(32), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    game_pk = Column(Integer, ForeignKey("games.pk", ondelete="CASCADE"), nullable=False, index=True)
    counter_stars = Column(Integer, default=0, nullable=False)
    created_by_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    game = relationship("Game", back_populates="backglasses")
    created_by = relationship("User")

    @property
    def counter(self) -> dict:
        return {"stars": self.counter_stars}


class Rom(ModeratedMixin, Base):
    """A ROM file reference for a game"""

    __tablename__ = "roms"
    __moderation_type__ = "rom"
    __moderation_resource__ = "roms"

    pk = Column(Integer, primary_key=True)
    id = Column(String(64), unique=True, nullable=False, index=True)   # ROM name, e.g. "tz_94h"
    version = Column(String(50), nullable=True)
    language = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    game_pk = Column(Integer, ForeignKey("games.pk", ondelete="CASCADE"), nullable=False, index=True)
    created_by_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    game = relationship("Game", back_populates="roms")
    created_by = relationship("User")
