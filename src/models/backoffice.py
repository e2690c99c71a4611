"""Backoffice role, invite and audit models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, UUIDPrimaryKey, utcnow


class BackofficeRole(str, Enum):
    """Backoffice roles, highest first."""

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    STAFF = "staff"


class BackofficeUserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class InviteStatus(str, Enum):
    """Invite status values matching backoffice_invites.status."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"
    EXPIRED = "expired"


class BackofficeUser(UUIDPrimaryKey, Base):
    __tablename__ = "backoffice_users"

    user_profile_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users_profile.id", ondelete="CASCADE"),
        unique=True,
    )
    role: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default=BackofficeUserStatus.ACTIVE.value)
    created_by_user_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users_profile.id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class BackofficeInvite(UUIDPrimaryKey, Base):
    """Invite to join the backoffice. Only the sha256 of the token is stored."""

    __tablename__ = "backoffice_invites"

    email: Mapped[str] = mapped_column(String(320), index=True)
    role: Mapped[str] = mapped_column(String(20))
    token_hash: Mapped[str] = mapped_column(String(64), unique=True)
    status: Mapped[str] = mapped_column(String(20), default=InviteStatus.PENDING.value)
    expires_at: Mapped[datetime] = mapped_column(DateTime)
    invited_by_user_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users_profile.id"),
        nullable=True,
    )
    accepted_user_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users_profile.id"),
        nullable=True,
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


# At most one pending invite per address
PENDING_INVITE_EMAIL_INDEX = "backoffice_invites_pending_email_key"

Index(
    PENDING_INVITE_EMAIL_INDEX,
    func.lower(BackofficeInvite.email),
    unique=True,
    postgresql_where=BackofficeInvite.status == InviteStatus.PENDING.value,
    sqlite_where=BackofficeInvite.status == InviteStatus.PENDING.value,
)


class AdminAuditLog(UUIDPrimaryKey, Base):
    __tablename__ = "admin_audit_log"

    actor_user_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users_profile.id"),
        nullable=True,
    )
    action: Mapped[str] = mapped_column(String(80))
    entity: Mapped[str] = mapped_column(String(80))
    entity_id: Mapped[str] = mapped_column(String(80))
    meta_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class RateLimitBucket(UUIDPrimaryKey, Base):
    """Fixed-window request counter keyed by route and subject."""

    __tablename__ = "rate_limit_buckets"
    __table_args__ = (UniqueConstraint("route_key", "subject_key", "window_start"),)

    route_key: Mapped[str] = mapped_column(String(80))
    subject_key: Mapped[str] = mapped_column(String(200))
    window_start: Mapped[datetime] = mapped_column(DateTime)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
