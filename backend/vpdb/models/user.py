"""User and UserProvider models"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import relationship

from vpdb.config import settings
from vpdb.database import Base


class User(Base):
    """A registered member"""

    __tablename__ = "users"

    pk = Column(Integer, primary_key=True)
    id = Column(String(32), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    username = Column(String(255), unique=True, nullable=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)                  # null for OAuth-only accounts
    roles = Column(JSON, nullable=False, default=lambda: ["member"])    # ACL role ids
    plan = Column(String(50), nullable=False, default=lambda: settings.DEFAULT_PLAN)
    is_active = Column(Boolean, default=True, nullable=False)
    counter_stars = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    provider_links = relationship("UserProvider", back_populates="user", cascade="all, delete-orphan")
    tokens = relationship("Token", back_populates="created_by", cascade="all, delete-orphan")

    @property
    def plan_config(self) -> dict:
        return settings.plan_config(self.plan)

    @property
    def providers(self) -> dict:
        """Linked providers, keyed by provider name"""
        return {link.provider: {"id": link.provider_id, "name": link.name} for link in self.provider_links}

    @property
    def password_set(self) -> bool:
        return bool(self.password_hash)


class UserProvider(Base):
    """Link between a user and an authentication provider account"""

    __tablename__ = "user_providers"
    __table_args__ = (UniqueConstraint("provider", "provider_id", name="uq_user_providers_provider_id"),)

    pk = Column(Integer, primary_key=True)
    user_pk = Column(Integer, ForeignKey("users.pk", ondelete="CASCADE"), nullable=False, index=True)
    provider = Column(String(50), nullable=False)
    provider_id = Column(String(255), nullable=False)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="provider_links")
