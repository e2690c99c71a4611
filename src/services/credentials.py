"""Password hashing and stored credentials."""

from uuid import UUID

import bcrypt
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.database import dialect_insert
from src.models import UserCredential, utcnow

BCRYPT_ROUNDS = 12


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def upsert_credential(db: Session, user_profile_id: UUID, password: str) -> None:
    """Store (or replace) the password hash for a profile. Does not commit."""
    now = utcnow()
    password_hash = hash_password(password)
    stmt = dialect_insert(db, UserCredential).values(
        user_profile_id=user_profile_id,
        password_hash=password_hash,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_profile_id"],
        set_={"password_hash": password_hash, "updated_at": now},
    )
    db.execute(stmt)


def has_credential(db: Session, user_profile_id: UUID) -> bool:
    return db.execute(
        select(UserCredential.id).where(UserCredential.user_profile_id == user_profile_id)
    ).first() is not None
