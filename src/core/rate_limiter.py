"""Fixed-window rate limiter backed by the rate_limit_buckets table."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from src.api.middleware.error_handler import RateLimitError
from src.core.config import get_settings
from src.core.database import dialect_insert
from src.models import RateLimitBucket, utcnow

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    max_attempts: int = 8  # Requests allowed per window and subject
    window_seconds: int = 60

    @classmethod
    def from_settings(cls) -> "RateLimitConfig":
        """Create config from application settings."""
        settings = get_settings()
        return cls(
            max_attempts=settings.rate_limit_max_attempts,
            window_seconds=settings.rate_limit_window_seconds,
        )


def window_start_for(now: datetime, window_seconds: int) -> datetime:
    """Floor a naive UTC timestamp to the start of its window."""
    epoch = now.replace(tzinfo=timezone.utc).timestamp()
    start = (int(epoch) // window_seconds) * window_seconds
    return datetime.fromtimestamp(start, timezone.utc).replace(tzinfo=None)


class FixedWindowRateLimiter:
    """Counts attempts per (route, subject) in fixed windows.

    The counter is bumped with a single upsert so concurrent requests from the
    same subject cannot both read a stale count.
    """

    def __init__(self, config: RateLimitConfig | None = None) -> None:
        self.config = config or RateLimitConfig.from_settings()

    async def check_and_increment(
        self,
        db: Session,
        route_key: str,
        subject_key: str,
        now: datetime | None = None,
    ) -> tuple[bool, int, int]:
        """Record an attempt and report whether it is allowed.

        Args:
            db: Database session.
            route_key: Logical route being limited (e.g. "order_lookup").
            subject_key: Caller identity, usually the client IP.
            now: Override the current time (naive UTC).

        Returns:
            Tuple of (allowed, remaining_attempts, retry_after_seconds).
        """
        now = now or utcnow()
        window_start = window_start_for(now, self.config.window_seconds)

        stmt = dialect_insert(db, RateLimitBucket).values(
            route_key=route_key,
            subject_key=subject_key,
            window_start=window_start,
            attempts=1,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["route_key", "subject_key", "window_start"],
            set_={"attempts": RateLimitBucket.attempts + 1, "updated_at": now},
        ).returning(RateLimitBucket.attempts)

        attempts = db.execute(stmt).scalar_one()
        db.commit()

        if attempts > self.config.max_attempts:
            window_end = window_start + timedelta(seconds=self.config.window_seconds)
            retry_after = max(1, int((window_end - now).total_seconds()))
            return (False, 0, retry_after)

        return (True, self.config.max_attempts - attempts, 0)

    async def enforce(
        self,
        db: Session,
        route_key: str,
        subject_key: str,
        now: datetime | None = None,
    ) -> None:
        """Record an attempt, raising RateLimitError once the window is exhausted."""
        allowed, _, retry_after = await self.check_and_increment(db, route_key, subject_key, now=now)
        if not allowed:
            logger.info("Rate limit hit for %s on %s", subject_key, route_key)
            raise RateLimitError(retry_after=retry_after, limit=self.config.max_attempts)


def get_rate_limiter() -> FixedWindowRateLimiter:
    """Create a rate limiter using the current settings."""
    return FixedWindowRateLimiter()
