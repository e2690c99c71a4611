"""Backoffice role resolution and superadmin bootstrap."""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.api.middleware.error_handler import AuthorizationError
from src.core.config import get_settings
from src.core.database import dialect_insert
from src.models import BackofficeRole, BackofficeUser, BackofficeUserStatus, UserProfile, utcnow
from src.schemas.auth import UserContext
from src.services.credentials import has_credential, upsert_credential
from src.services.identity_service import PASSWORD_PROVIDER, IdentityService
from src.services.order_utils import normalize_email

logger = logging.getLogger(__name__)

ROLE_RANKS: dict[BackofficeRole, int] = {
    BackofficeRole.SUPERADMIN: 3,
    BackofficeRole.ADMIN: 2,
    BackofficeRole.STAFF: 1,
}


def has_required_role(role: BackofficeRole | str | None, min_role: BackofficeRole) -> bool:
    """Check ``role`` against the hierarchy superadmin > admin > staff."""
    if role is None:
        return False
    try:
        rank = ROLE_RANKS[BackofficeRole(role)]
    except ValueError:
        return False
    return rank >= ROLE_RANKS[min_role]


@dataclass
class BackofficeAccess:
    """Resolved backoffice identity of a caller.

    ``source`` is ``role`` for a backoffice_users row and ``fallback`` for
    access granted through the admin email list.
    """

    user_profile_id: UUID
    email: str | None
    role: BackofficeRole
    source: str = "role"


class BackofficeService:
    """Decides who may use the backoffice and at which role."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.settings = get_settings()

    def _is_superadmin_email(self, email: str | None) -> bool:
        configured = self.settings.superadmin_email
        return bool(email and configured) and normalize_email(email) == normalize_email(configured)

    def _grant_role(self, user_profile_id: UUID, role: BackofficeRole) -> None:
        now = utcnow()
        stmt = dialect_insert(self.db, BackofficeUser).values(
            user_profile_id=user_profile_id,
            role=role.value,
            status=BackofficeUserStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_profile_id"],
            set_={"role": role.value, "status": BackofficeUserStatus.ACTIVE.value, "updated_at": now},
        )
        self.db.execute(stmt)

    async def ensure_superadmin_role_for_profile(self, user_profile_id: UUID, email: str | None) -> bool:
        """Grant superadmin when the profile's email is the configured superadmin email."""
        if not self._is_superadmin_email(email):
            return False
        self._grant_role(user_profile_id, BackofficeRole.SUPERADMIN)
        self.db.commit()
        return True

    async def get_access(self, user: UserContext) -> BackofficeAccess | None:
        """Resolve the backoffice role of an authenticated caller.

        Returns:
            BackofficeAccess | None: None when the caller has no backoffice access.
        """
        profile = await IdentityService(self.db).ensure_profile_for_user(user)
        # Email-based grants only trust a verified address
        email = profile.email or (user.email if user.email_verified else None)

        await self.ensure_superadmin_role_for_profile(profile.id, email)

        row = self.db.execute(
            select(BackofficeUser)
            .where(BackofficeUser.user_profile_id == profile.id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is not None and row.status == BackofficeUserStatus.ACTIVE.value:
            return BackofficeAccess(user_profile_id=profile.id, email=email, role=BackofficeRole(row.role))

        if (
            self.settings.enable_admin_emails_fallback
            and email
            and normalize_email(email) in self.settings.admin_emails_list
        ):
            return BackofficeAccess(
                user_profile_id=profile.id,
                email=email,
                role=BackofficeRole.SUPERADMIN,
                source="fallback",
            )

        return None

    async def require_access(self, user: UserContext, min_role: BackofficeRole) -> BackofficeAccess:
        """Resolve access and enforce a minimum role.

        Raises:
            AuthorizationError: Caller has no backoffice access or too low a role.
        """
        access = await self.get_access(user)
        if access is None:
            logger.info("Backoffice access denied for %s", user.user_id)
            raise AuthorizationError("Admin access required")
        if not has_required_role(access.role, min_role):
            raise AuthorizationError("Insufficient backoffice role")
        return access

    async def ensure_seeded_superadmin(self) -> UUID | None:
        """Create the configured superadmin. The initial password is only set once.

        Returns:
            UUID | None: Profile ID, or None when no superadmin email is configured.
        """
        if not self.settings.superadmin_email:
            return None

        email = normalize_email(self.settings.superadmin_email)
        try:
            profile = IdentityService(self.db).resolve_profile(
                provider=PASSWORD_PROVIDER,
                provider_user_id=email,
                email=email,
                name=self.settings.superadmin_name,
            )
            if self.settings.superadmin_initial_password and not has_credential(self.db, profile.id):
                upsert_credential(self.db, profile.id, self.settings.superadmin_initial_password)
            self._grant_role(profile.id, BackofficeRole.SUPERADMIN)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Superadmin %s ensured", email)
        return profile.id

    async def list_backoffice_users(self) -> list[dict[str, Any]]:
        rows = self.db.execute(
            select(BackofficeUser, UserProfile.email, UserProfile.name, UserProfile.phone)
            .join(UserProfile, UserProfile.id == BackofficeUser.user_profile_id)
            .order_by(BackofficeUser.created_at.desc())
            .execution_options(populate_existing=True)
        ).all()

        return [
            {
                "id": row.id,
                "user_profile_id": row.user_profile_id,
                "role": row.role,
                "status": row.status,
                "created_at": row.created_at,
                "updated_at": row.updated_at,
                "email": email,
                "name": name,
                "phone": phone,
            }
            for row, email, name, phone in rows
        ]
