"""User profile resolution for external and password identities."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.database import dialect_insert
from src.models import AuthIdentity, UserProfile
from src.schemas.auth import UserContext
from src.services.order_utils import normalize_email

logger = logging.getLogger(__name__)

SUPABASE_PROVIDER = "supabase"
PASSWORD_PROVIDER = "password"


class IdentityService:
    """Maps identities to a single users_profile row."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_profile_by_email(self, email: str) -> UserProfile | None:
        return self.db.execute(
            select(UserProfile).where(UserProfile.email == normalize_email(email))
        ).scalar_one_or_none()

    def resolve_profile(
        self,
        provider: str,
        provider_user_id: str,
        email: str | None = None,
        name: str | None = None,
        phone: str | None = None,
        email_verified: bool = True,
    ) -> UserProfile:
        """Find or create the profile behind an identity and link them.

        Lookup order is the identity link, then the profile email. A new
        profile is created only if neither matches. Blank profile fields are
        filled from the identity. An unverified email never links to or is
        written onto a profile. Does not commit.

        Returns:
            UserProfile: The linked profile.
        """
        normalized_email = normalize_email(email) if email else None
        trusted_email = normalized_email if email_verified else None

        profile = self.db.execute(
            select(UserProfile)
            .join(AuthIdentity, AuthIdentity.user_profile_id == UserProfile.id)
            .where(AuthIdentity.provider == provider, AuthIdentity.provider_user_id == provider_user_id)
        ).scalar_one_or_none()

        if profile is None and trusted_email:
            profile = self.find_profile_by_email(trusted_email)

        if profile is None:
            profile = UserProfile(email=trusted_email, name=name, phone=phone)
            self.db.add(profile)
            self.db.flush()
            logger.info("Created user profile %s for %s identity", profile.id, provider)
        else:
            if trusted_email and not profile.email:
                profile.email = trusted_email
            if name and not profile.name:
                profile.name = name
            if phone and not profile.phone:
                profile.phone = phone

        stmt = (
            dialect_insert(self.db, AuthIdentity)
            .values(
                user_profile_id=profile.id,
                provider=provider,
                provider_user_id=provider_user_id,
                provider_email=normalized_email,
            )
            .on_conflict_do_nothing(index_elements=["provider", "provider_user_id"])
        )
        self.db.execute(stmt)
        self.db.flush()
        return profile

    async def ensure_profile_for_user(self, user: UserContext) -> UserProfile:
        """Resolve and commit the profile of an authenticated caller."""
        profile = self.resolve_profile(
            provider=SUPABASE_PROVIDER,
            provider_user_id=str(user.user_id),
            email=user.email,
            name=user.name,
            email_verified=user.email_verified,
        )
        self.db.commit()
        return profile
