"""Medium model"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from vpdb.database import Base


class Medium(Base):
    """A playfield shot, wheel image or video attached to a game or release"""

    __tablename__ = "media"

    pk = Column(Integer, primary_key=True)
    id = Column(String(32), unique=True, nullable=False, index=True)
    category = Column(String(50), nullable=False, index=True)
    description = Column(Text, nullable=True)
    game_pk = Column(Integer, ForeignKey("games.pk", ondelete="CASCADE"), nullable=True, index=True)
    release_pk = Column(Integer, ForeignKey("releases.pk", ondelete="CASCADE"), nullable=True, index=True)
    counter_stars = Column(Integer, default=0, nullable=False)
    created_by_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    game = relationship("Game", back_populates="media")
    release = relationship("Release")
    created_by = relationship("User")

    @property
    def counter(self) -> dict:
        return {"stars": self.counter_stars}
