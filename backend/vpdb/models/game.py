"""Game model"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from vpdb.database import Base


class Game(Base):
    """A pinball machine, original or recreation"""

    __tablename__ = "games"

    pk = Column(Integer, primary_key=True)
    id = Column(String(64), unique=True, nullable=False, index=True)   # slug chosen on creation
    title = Column(String(255), nullable=False, index=True)
    year = Column(Integer, nullable=True)
    manufacturer = Column(String(255), nullable=True)
    game_type = Column(String(10), nullable=False, default="na")       # ss, em, pm, og, na
    ipdb_number = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    counter_releases = Column(Integer, default=0, nullable=False)
    counter_stars = Column(Integer, default=0, nullable=False)
    counter_views = Column(Integer, default=0, nullable=False)
    rating_average = Column(Float, default=0.0, nullable=False)
    rating_votes = Column(Integer, default=0, nullable=False)
    created_by_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    created_by = relationship("User")
    releases = relationship("Release", back_populates="game")
    backglasses = relationship("Backglass", back_populates="game", cascade="all, delete-orphan")
    roms = relationship("Rom", back_populates="game", cascade="all, delete-orphan")
    media = relationship("Medium", back_populates="game", cascade="all, delete-orphan")

    @property
    def counter(self) -> dict:
        return {"releases": self.counter_releases, "stars": self.counter_stars, "views": self.counter_views}

    @property
    def rating(self) -> dict:
        return {"average": self.rating_average, "votes": self.rating_votes}
