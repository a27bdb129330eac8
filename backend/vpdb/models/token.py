"""Token model"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from vpdb.database import Base


class Token(Base):
    """Long-lived application token, either personal or bound to a provider"""

    __tablename__ = "tokens"

    pk = Column(Integer, primary_key=True)
    id = Column(String(32), unique=True, nullable=False, index=True)
    token = Column(String(64), unique=True, nullable=False, index=True)   # 32 hex chars
    label = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, index=True)                # personal, application
    scopes = Column(JSON, nullable=False, default=list)
    provider = Column(String(50), nullable=True)                          # application tokens only
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by_pk = Column(Integer, ForeignKey("users.pk", ondelete="CASCADE"), nullable=False, index=True)

    created_by = relationship("User", back_populates="tokens")
