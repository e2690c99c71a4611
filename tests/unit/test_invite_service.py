"""Unit tests for InviteService."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.api.middleware.error_handler import (
    DuplicatePendingInvite,
    EmailDeliveryNotConfigured,
    InviteNotPendingOrMissing,
    InviteTokenError,
)
from src.models import (
    AdminAuditLog,
    AuthIdentity,
    BackofficeInvite,
    BackofficeUser,
    InviteStatus,
    UserCredential,
    UserProfile,
    utcnow,
)
from src.schemas.backoffice import InviteRole
from src.services.credentials import verify_password
from src.services.invite_service import InviteService, hash_invite_token


@pytest.fixture
def invite_service(db_session: Session, mock_email_service: MagicMock) -> InviteService:
    return InviteService(db_session, email_service=mock_email_service)


async def invite(service: InviteService, actor: UserProfile, email: str = "Chidi@Example.com"):
    return await service.create_invite(email, InviteRole.STAFF, actor.id, actor_email=actor.email)


class TestCreateInvite:
    """Tests for create_invite."""

    @pytest.mark.asyncio
    async def test_stores_hash_and_sends_email(
        self,
        db_session: Session,
        invite_service: InviteService,
        mock_email_service: MagicMock,
        profile: UserProfile,
    ) -> None:
        created = await invite(invite_service, profile)

        row = db_session.execute(select(BackofficeInvite)).scalar_one()
        assert row.email == "chidi@example.com"
        assert row.role == "staff"
        assert row.status == InviteStatus.PENDING.value
        assert row.token_hash == hash_invite_token(created.token)
        assert row.token_hash != created.token
        assert row.expires_at > utcnow() + timedelta(hours=71)

        kwargs = mock_email_service.send_backoffice_invite_email.await_args.kwargs
        assert kwargs["to_email"] == "chidi@example.com"
        assert kwargs["token"] == created.token
        assert kwargs["invited_by_email"] == "ada@example.com"

        actions = db_session.execute(select(AdminAuditLog.action)).scalars().all()
        assert actions == ["invite_backoffice_user"]

    @pytest.mark.asyncio
    async def test_duplicate_pending_invite_is_rejected(
        self, invite_service: InviteService, profile: UserProfile
    ) -> None:
        await invite(invite_service, profile)

        with pytest.raises(DuplicatePendingInvite):
            await invite(invite_service, profile, email="chidi@example.com ")

    @pytest.mark.asyncio
    async def test_concurrent_creates_leave_one_pending_invite(
        self,
        db_session: Session,
        invite_service: InviteService,
        mock_email_service: MagicMock,
        profile: UserProfile,
    ) -> None:
        # Both requests pass the pending check before either inserts
        invite_service.has_pending_invite = AsyncMock(return_value=False)
        await invite(invite_service, profile)

        with pytest.raises(DuplicatePendingInvite):
            await invite(invite_service, profile)

        pending = db_session.execute(
            select(BackofficeInvite.id).where(BackofficeInvite.status == InviteStatus.PENDING.value)
        ).all()
        assert len(pending) == 1
        mock_email_service.send_backoffice_invite_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_revoked_invite_does_not_block_a_new_one(
        self, db_session: Session, invite_service: InviteService, profile: UserProfile
    ) -> None:
        first = await invite(invite_service, profile)
        await invite_service.revoke_invite(first.invite.id, profile.id)

        await invite(invite_service, profile)

        statuses = sorted(db_session.execute(select(BackofficeInvite.status)).scalars().all())
        assert statuses == ["pending", "revoked"]

    @pytest.mark.asyncio
    async def test_expired_invite_does_not_block_a_new_one(
        self, db_session: Session, invite_service: InviteService, profile: UserProfile
    ) -> None:
        first = await invite(invite_service, profile)
        first.invite.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        await invite(invite_service, profile)

        statuses = sorted(db_session.execute(select(BackofficeInvite.status)).scalars().all())
        assert statuses == ["expired", "pending"]

    @pytest.mark.asyncio
    async def test_email_failure_removes_invite(self, db_session: Session, profile: UserProfile) -> None:
        email_service = MagicMock()
        email_service.send_backoffice_invite_email = AsyncMock(side_effect=RuntimeError("resend down"))
        service = InviteService(db_session, email_service=email_service)

        with pytest.raises(RuntimeError):
            await invite(service, profile)

        assert db_session.execute(select(BackofficeInvite.id)).first() is None

    @pytest.mark.asyncio
    async def test_unconfigured_email_removes_invite(self, db_session: Session, profile: UserProfile) -> None:
        email_service = MagicMock()
        email_service.send_backoffice_invite_email = AsyncMock(side_effect=EmailDeliveryNotConfigured())
        service = InviteService(db_session, email_service=email_service)

        with pytest.raises(EmailDeliveryNotConfigured):
            await invite(service, profile)

        assert db_session.execute(select(BackofficeInvite.id)).first() is None


class TestValidateInviteToken:
    """Tests for validate_invite_token."""

    @pytest.mark.asyncio
    async def test_pending_token_is_valid(self, invite_service: InviteService, profile: UserProfile) -> None:
        created = await invite(invite_service, profile)

        result = await invite_service.validate_invite_token(created.token)

        assert result.valid is True
        assert result.email == "chidi@example.com"
        assert result.role == "staff"

    @pytest.mark.asyncio
    async def test_unknown_token_is_invalid(self, invite_service: InviteService) -> None:
        result = await invite_service.validate_invite_token("f" * 64)

        assert result.valid is False
        assert result.status == "invalid"

    @pytest.mark.asyncio
    async def test_overdue_token_is_expired_and_persisted(
        self, db_session: Session, invite_service: InviteService, profile: UserProfile
    ) -> None:
        created = await invite(invite_service, profile)
        created.invite.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        result = await invite_service.validate_invite_token(created.token)

        assert result.valid is False
        assert result.status == "expired"
        assert db_session.execute(select(BackofficeInvite.status)).scalar_one() == "expired"


class TestAcceptInvite:
    """Tests for accept_invite."""

    @pytest.mark.asyncio
    async def test_accept_creates_profile_credential_and_role(
        self, db_session: Session, invite_service: InviteService, profile: UserProfile
    ) -> None:
        created = await invite(invite_service, profile)

        accepted = await invite_service.accept_invite(created.token, " Chidi Eze ", "correct-horse")

        assert accepted.email == "chidi@example.com"
        assert accepted.role == "staff"

        new_profile = db_session.get(UserProfile, accepted.user_profile_id)
        assert new_profile.email == "chidi@example.com"
        assert new_profile.name == "Chidi Eze"

        credential = db_session.execute(
            select(UserCredential).where(UserCredential.user_profile_id == accepted.user_profile_id)
        ).scalar_one()
        assert verify_password("correct-horse", credential.password_hash)

        identity = db_session.execute(select(AuthIdentity)).scalar_one()
        assert identity.provider == "password"
        assert identity.provider_user_id == "chidi@example.com"

        grant = db_session.execute(select(BackofficeUser)).scalar_one()
        assert grant.role == "staff"
        assert grant.status == "active"

        invite_row = db_session.execute(select(BackofficeInvite)).scalar_one()
        assert invite_row.status == InviteStatus.ACCEPTED.value
        assert invite_row.accepted_user_profile_id == accepted.user_profile_id

    @pytest.mark.asyncio
    async def test_token_is_single_use(
        self, db_session: Session, invite_service: InviteService, profile: UserProfile
    ) -> None:
        created = await invite(invite_service, profile)
        await invite_service.accept_invite(created.token, "Chidi Eze", "correct-horse")
        password_hash = db_session.execute(select(UserCredential.password_hash)).scalar_one()

        with pytest.raises(InviteTokenError) as exc_info:
            await invite_service.accept_invite(created.token, "Chidi Eze", "another-pass")
        assert exc_info.value.reason == "accepted"

        assert len(db_session.execute(select(BackofficeUser.id)).all()) == 1
        credentials = db_session.execute(select(UserCredential.password_hash)).scalars().all()
        assert credentials == [password_hash]
        assert verify_password("correct-horse", password_hash)

    @pytest.mark.asyncio
    async def test_expired_invite_cannot_be_accepted(
        self, db_session: Session, invite_service: InviteService, profile: UserProfile
    ) -> None:
        created = await invite(invite_service, profile)
        created.invite.expires_at = utcnow() - timedelta(hours=1)
        db_session.commit()

        with pytest.raises(InviteTokenError) as exc_info:
            await invite_service.accept_invite(created.token, "Chidi Eze", "correct-horse")

        assert exc_info.value.reason == "expired"
        assert db_session.execute(select(BackofficeInvite.status)).scalar_one() == "expired"
        assert db_session.execute(select(BackofficeUser.id)).first() is None

    @pytest.mark.asyncio
    async def test_existing_profile_is_linked(
        self, db_session: Session, invite_service: InviteService, profile: UserProfile
    ) -> None:
        created = await invite(invite_service, profile, email="ada@example.com")

        accepted = await invite_service.accept_invite(created.token, "Ada Obi", "correct-horse")

        assert accepted.user_profile_id == profile.id


class TestRevokeAndList:
    """Tests for revoke_invite and list_invites."""

    @pytest.mark.asyncio
    async def test_revoke_pending_invite(
        self, db_session: Session, invite_service: InviteService, profile: UserProfile
    ) -> None:
        created = await invite(invite_service, profile)

        revoked = await invite_service.revoke_invite(created.invite.id, profile.id)

        assert revoked.status == InviteStatus.REVOKED.value
        assert revoked.revoked_at is not None
        result = await invite_service.validate_invite_token(created.token)
        assert result.status == "revoked"

    @pytest.mark.asyncio
    async def test_revoke_twice_fails(self, invite_service: InviteService, profile: UserProfile) -> None:
        created = await invite(invite_service, profile)
        await invite_service.revoke_invite(created.invite.id, profile.id)

        with pytest.raises(InviteNotPendingOrMissing):
            await invite_service.revoke_invite(created.invite.id, profile.id)

    @pytest.mark.asyncio
    async def test_list_includes_inviter_email(self, invite_service: InviteService, profile: UserProfile) -> None:
        await invite(invite_service, profile)

        invites = await invite_service.list_invites()

        assert len(invites) == 1
        assert invites[0]["email"] == "chidi@example.com"
        assert invites[0]["invited_by_email"] == "ada@example.com"
        assert invites[0]["accepted_user_email"] is None
