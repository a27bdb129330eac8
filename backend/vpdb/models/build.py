"""Build model"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from vpdb.database import Base


class Build(Base):
    """A Visual Pinball build a release is compatible with"""

    __tablename__ = "builds"

    pk = Column(Integer, primary_key=True)
    id = Column(String(64), unique=True, nullable=False, index=True)   # slug of the label
    label = Column(String(255), nullable=False)
    platform = Column(String(10), nullable=False, default="vp")
    major_version = Column(String(10), nullable=False)
    type = Column(String(20), nullable=False)                          # release, nightly, experimental
    is_range = Column(Boolean, default=False, nullable=False)
    built_at = Column(DateTime, nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by_pk = Column(Integer, ForeignKey("users.pk", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    created_by = relationship("User")
