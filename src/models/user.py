"""User profile, auth identity and credential models."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, UUIDPrimaryKey, utcnow


class UserProfile(UUIDPrimaryKey, Base):
    __tablename__ = "users_profile"

    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class AuthIdentity(UUIDPrimaryKey, Base):
    """Link between a profile and an external (or password) identity."""

    __tablename__ = "auth_identities"
    __table_args__ = (UniqueConstraint("provider", "provider_user_id"),)

    user_profile_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users_profile.id", ondelete="CASCADE"))
    provider: Mapped[str] = mapped_column(String(40))
    provider_user_id: Mapped[str] = mapped_column(String(320))
    provider_email: Mapped[str | None] = mapped_column(String(320), nullable=True)


class UserCredential(UUIDPrimaryKey, Base):
    __tablename__ = "user_credentials"

    user_profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users_profile.id", ondelete="CASCADE"),
        unique=True,
    )
    password_hash: Mapped[str] = mapped_column(String(200))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
