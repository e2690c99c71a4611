"""Backoffice invite and user schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from src.schemas.checkout import EMAIL_PATTERN
from src.schemas.common import CamelModel

INVITE_TOKEN_MIN_LENGTH = 16


class InviteRole(str, Enum):
    """Roles that can be granted by invite. Superadmin is configured, never invited."""

    ADMIN = "admin"
    STAFF = "staff"


class InviteTokenRequest(CamelModel):
    token: str = Field(min_length=INVITE_TOKEN_MIN_LENGTH, max_length=256)


class InviteAcceptRequest(CamelModel):
    token: str = Field(min_length=INVITE_TOKEN_MIN_LENGTH, max_length=256)
    name: str = Field(min_length=2, max_length=200)
    password: str = Field(min_length=8, max_length=128)


class InviteValidationResponse(CamelModel):
    """Result of checking an invite token.

    ``status`` is the invite status, or ``invalid`` for unknown tokens.
    """

    valid: bool
    status: str
    message: str | None = None
    email: str | None = None
    role: str | None = None
    expires_at: datetime | None = None


class InviteAcceptResponse(CamelModel):
    ok: bool = True
    email: str
    role: str


class InviteCreateRequest(CamelModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    role: InviteRole


class InviteRevokeRequest(CamelModel):
    id: UUID


class InviteResponse(CamelModel):
    id: UUID
    email: str
    role: str
    status: str
    expires_at: datetime
    created_at: datetime
    accepted_at: datetime | None = None
    revoked_at: datetime | None = None
    invited_by_email: str | None = None
    accepted_user_email: str | None = None


class InviteEnvelope(CamelModel):
    invite: InviteResponse


class InviteListResponse(CamelModel):
    invites: list[InviteResponse]


class BackofficeUserResponse(CamelModel):
    id: UUID
    user_profile_id: UUID
    role: str
    status: str
    created_at: datetime
    updated_at: datetime
    email: str | None = None
    name: str | None = None
    phone: str | None = None


class BackofficeUserListResponse(CamelModel):
    users: list[BackofficeUserResponse]
