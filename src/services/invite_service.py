"""Backoffice invite business logic service."""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from src.api.middleware.error_handler import (
    DuplicatePendingInvite,
    InviteNotPendingOrMissing,
    InviteTokenError,
)
from src.core.config import get_settings
from src.core.database import conflict_from_integrity_error, dialect_insert
from src.models import (
    PENDING_INVITE_EMAIL_INDEX,
    BackofficeInvite,
    BackofficeUser,
    BackofficeUserStatus,
    InviteStatus,
    UserProfile,
    utcnow,
)
from src.schemas.backoffice import InviteRole, InviteValidationResponse
from src.services.audit_service import AuditService
from src.services.credentials import upsert_credential
from src.services.email_service import EmailService
from src.services.identity_service import PASSWORD_PROVIDER, IdentityService
from src.services.order_utils import normalize_email

logger = logging.getLogger(__name__)

INVALID_MESSAGE = "Invite link is invalid."
EXPIRED_MESSAGE = "This invite has expired."
NOT_PENDING_MESSAGE = "Invite is no longer pending."

STATUS_MESSAGES = {
    InviteStatus.ACCEPTED.value: "This invite has already been accepted.",
    InviteStatus.REVOKED.value: "This invite has been revoked.",
    InviteStatus.EXPIRED.value: EXPIRED_MESSAGE,
}


def hash_invite_token(token: str) -> str:
    """sha256 hex digest stored in place of the raw token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_invite_token() -> str:
    return secrets.token_hex(32)


@dataclass
class CreatedInvite:
    invite: BackofficeInvite
    token: str


@dataclass
class AcceptedInvite:
    invite_id: UUID
    user_profile_id: UUID
    email: str
    role: str


class InviteService:
    """Service for managing backoffice invites.

    Expiry is lazy: pending invites past ``expires_at`` are flipped to
    expired whenever they are read through this service.
    """

    def __init__(self, db: Session, email_service: EmailService | None = None) -> None:
        self.db = db
        self.settings = get_settings()
        self.email_service = email_service or EmailService()

    async def expire_pending_invites(self, email: str | None = None) -> int:
        """Flip overdue pending invites to expired.

        Args:
            email: Only sweep invites for this address. All invites when omitted.

        Returns:
            int: Number of invites expired.
        """
        stmt = update(BackofficeInvite).where(
            BackofficeInvite.status == InviteStatus.PENDING.value,
            BackofficeInvite.expires_at <= utcnow(),
        )
        if email:
            stmt = stmt.where(func.lower(BackofficeInvite.email) == normalize_email(email))
        stmt = stmt.values(status=InviteStatus.EXPIRED.value)

        result = self.db.execute(stmt)
        self.db.commit()
        if result.rowcount:
            logger.info("Expired %d pending invite(s)", result.rowcount)
        return result.rowcount or 0

    async def has_pending_invite(self, email: str) -> bool:
        """Whether an unexpired pending invite exists for the address."""
        normalized = normalize_email(email)
        await self.expire_pending_invites(normalized)
        existing = self.db.execute(
            select(BackofficeInvite.id).where(
                func.lower(BackofficeInvite.email) == normalized,
                BackofficeInvite.status == InviteStatus.PENDING.value,
                BackofficeInvite.expires_at > utcnow(),
            )
        ).first()
        return existing is not None

    async def create_invite(
        self,
        email: str,
        role: InviteRole,
        actor_user_profile_id: UUID,
        actor_email: str | None = None,
    ) -> CreatedInvite:
        """Create an invite and email its link.

        The row is removed again if the email cannot be sent.

        Raises:
            DuplicatePendingInvite: A usable invite already exists for the email.
            EmailDeliveryNotConfigured: Resend is not configured.
        """
        normalized = normalize_email(email)
        if await self.has_pending_invite(normalized):
            raise DuplicatePendingInvite()

        token = create_invite_token()
        expires_at = utcnow() + timedelta(hours=self.settings.backoffice_invite_ttl_hours)
        invite = BackofficeInvite(
            email=normalized,
            role=role.value,
            token_hash=hash_invite_token(token),
            status=InviteStatus.PENDING.value,
            expires_at=expires_at,
            invited_by_user_profile_id=actor_user_profile_id,
        )
        self.db.add(invite)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            conflict = conflict_from_integrity_error(e)
            if conflict is None:
                raise
            if conflict.constraint != PENDING_INVITE_EMAIL_INDEX:
                raise conflict from e
            logger.info("Concurrent pending invite for %s rejected", normalized)
            raise DuplicatePendingInvite() from e

        try:
            await self.email_service.send_backoffice_invite_email(
                to_email=normalized,
                role=role.value,
                token=token,
                expires_at=expires_at,
                invited_by_email=actor_email,
            )
        except Exception:
            logger.error("Invite email to %s failed, removing invite %s", normalized, invite.id)
            self.db.execute(delete(BackofficeInvite).where(BackofficeInvite.id == invite.id))
            self.db.commit()
            raise

        AuditService(self.db).record(
            actor_user_profile_id=actor_user_profile_id,
            action="invite_backoffice_user",
            entity="backoffice_invite",
            entity_id=invite.id,
            meta={"email": normalized, "role": role.value, "expiresAt": expires_at.isoformat()},
        )
        self.db.commit()

        return CreatedInvite(invite=invite, token=token)

    async def list_invites(self) -> list[dict[str, Any]]:
        """List invites newest first with inviter and accepter emails."""
        await self.expire_pending_invites()

        inviter = aliased(UserProfile)
        accepted_user = aliased(UserProfile)
        rows = self.db.execute(
            select(
                BackofficeInvite,
                inviter.email.label("invited_by_email"),
                accepted_user.email.label("accepted_user_email"),
            )
            .outerjoin(inviter, inviter.id == BackofficeInvite.invited_by_user_profile_id)
            .outerjoin(accepted_user, accepted_user.id == BackofficeInvite.accepted_user_profile_id)
            .order_by(BackofficeInvite.created_at.desc())
            .execution_options(populate_existing=True)
        ).all()

        return [
            {
                "id": invite.id,
                "email": invite.email,
                "role": invite.role,
                "status": invite.status,
                "expires_at": invite.expires_at,
                "created_at": invite.created_at,
                "accepted_at": invite.accepted_at,
                "revoked_at": invite.revoked_at,
                "invited_by_email": invited_by_email,
                "accepted_user_email": accepted_user_email,
            }
            for invite, invited_by_email, accepted_user_email in rows
        ]

    async def revoke_invite(self, invite_id: UUID, actor_user_profile_id: UUID) -> BackofficeInvite:
        """Revoke a pending invite.

        Raises:
            InviteNotPendingOrMissing: No pending invite has this id.
        """
        revoked_id = self.db.execute(
            update(BackofficeInvite)
            .where(BackofficeInvite.id == invite_id, BackofficeInvite.status == InviteStatus.PENDING.value)
            .values(status=InviteStatus.REVOKED.value, revoked_at=utcnow())
            .returning(BackofficeInvite.id)
        ).scalar_one_or_none()
        if revoked_id is None:
            self.db.rollback()
            raise InviteNotPendingOrMissing()

        invite = self.db.get(BackofficeInvite, revoked_id, populate_existing=True)
        AuditService(self.db).record(
            actor_user_profile_id=actor_user_profile_id,
            action="revoke_backoffice_invite",
            entity="backoffice_invite",
            entity_id=invite.id,
            meta={"email": invite.email},
        )
        self.db.commit()
        return invite

    def _find_by_token(self, token: str) -> BackofficeInvite | None:
        return self.db.execute(
            select(BackofficeInvite)
            .where(BackofficeInvite.token_hash == hash_invite_token(token))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _mark_expired(self, invite_id: UUID) -> None:
        self.db.execute(
            update(BackofficeInvite)
            .where(BackofficeInvite.id == invite_id, BackofficeInvite.status == InviteStatus.PENDING.value)
            .values(status=InviteStatus.EXPIRED.value)
        )
        self.db.commit()

    async def validate_invite_token(self, token: str) -> InviteValidationResponse:
        """Report whether a token can still be accepted."""
        invite = self._find_by_token(token)
        if invite is None:
            return InviteValidationResponse(valid=False, status="invalid", message=INVALID_MESSAGE)

        if invite.status == InviteStatus.PENDING.value and invite.expires_at <= utcnow():
            self._mark_expired(invite.id)
            return InviteValidationResponse(
                valid=False,
                status=InviteStatus.EXPIRED.value,
                message=EXPIRED_MESSAGE,
            )

        if invite.status != InviteStatus.PENDING.value:
            return InviteValidationResponse(
                valid=False,
                status=invite.status,
                message=STATUS_MESSAGES.get(invite.status, "Invite is not available."),
            )

        return InviteValidationResponse(
            valid=True,
            status=invite.status,
            email=invite.email,
            role=invite.role,
            expires_at=invite.expires_at,
        )

    async def accept_invite(self, token: str, name: str, password: str) -> AcceptedInvite:
        """Redeem an invite: create or link the profile, set a password and grant the role.

        Everything except the expiry flip happens in one transaction, so an
        invite is accepted at most once.

        Raises:
            InviteTokenError: Token is unknown, expired, or not pending.
        """
        now = utcnow()
        invite = self._find_by_token(token)
        if invite is None:
            raise InviteTokenError(INVALID_MESSAGE, reason="invalid")

        if invite.status != InviteStatus.PENDING.value:
            raise InviteTokenError(
                STATUS_MESSAGES.get(invite.status, "Invite is not available."),
                reason=invite.status,
            )

        if invite.expires_at <= now:
            self._mark_expired(invite.id)
            raise InviteTokenError(EXPIRED_MESSAGE, reason=InviteStatus.EXPIRED.value)

        email = normalize_email(invite.email)
        name = name.strip()
        try:
            profile = IdentityService(self.db).resolve_profile(
                provider=PASSWORD_PROVIDER,
                provider_user_id=email,
                email=email,
                name=name,
            )
            profile.email = email
            profile.name = name

            upsert_credential(self.db, profile.id, password)

            grant = dialect_insert(self.db, BackofficeUser).values(
                user_profile_id=profile.id,
                role=invite.role,
                status=BackofficeUserStatus.ACTIVE.value,
                created_by_user_profile_id=invite.invited_by_user_profile_id,
                created_at=now,
                updated_at=now,
            )
            grant = grant.on_conflict_do_update(
                index_elements=["user_profile_id"],
                set_={"role": invite.role, "status": BackofficeUserStatus.ACTIVE.value, "updated_at": now},
            )
            self.db.execute(grant)

            accepted_id = self.db.execute(
                update(BackofficeInvite)
                .where(BackofficeInvite.id == invite.id, BackofficeInvite.status == InviteStatus.PENDING.value)
                .values(
                    status=InviteStatus.ACCEPTED.value,
                    accepted_user_profile_id=profile.id,
                    accepted_at=now,
                )
                .returning(BackofficeInvite.id)
            ).scalar_one_or_none()
            if accepted_id is None:
                raise InviteTokenError(NOT_PENDING_MESSAGE, reason="not_pending")

            AuditService(self.db).record(
                actor_user_profile_id=profile.id,
                action="accept_backoffice_invite",
                entity="backoffice_invite",
                entity_id=invite.id,
                meta={"role": invite.role, "email": email},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Invite %s accepted by profile %s", invite.id, profile.id)
        return AcceptedInvite(invite_id=invite.id, user_profile_id=profile.id, email=email, role=invite.role)
