"""SQLAlchemy engine, session factory and storage-level helpers."""

import logging
import re
from collections.abc import Generator
from typing import Any

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.core.config import get_settings
from src.models.base import Base

logger = logging.getLogger(__name__)

_SQLITE_UNIQUE_INDEX_PATTERN = re.compile(r"UNIQUE constraint failed: index '(?P<name>\w+)'")
_SQLITE_UNIQUE_PATTERN = re.compile(r"UNIQUE constraint failed: (?P<columns>[\w., ]+)")


class ConflictError(Exception):
    """A unique constraint rejected a write.

    Raised by the storage layer in place of a driver IntegrityError so callers
    can branch on which constraint was violated.
    """

    def __init__(self, constraint: str | None, table: str | None = None) -> None:
        self.constraint = constraint
        self.table = table
        super().__init__(f"Unique constraint violated: {constraint or 'unknown'}")


# Process-wide engine and session factory, created on first use
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _build_engine(database_url: str, echo: bool) -> Engine:
    """Create an engine suited to the configured backend."""
    if database_url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, future=True, **options)

    settings = get_settings()
    return create_engine(
        database_url,
        echo=echo,
        future=True,
        pool_size=settings.database_pool_size,
        pool_pre_ping=True,
    )


def init_database(create_tables: bool | None = None) -> Engine:
    """Initialize the engine and session factory if needed.

    Args:
        create_tables: Create missing tables from model metadata. Defaults to
            the database_create_tables setting.

    Returns:
        Engine: The process-wide engine.
    """
    global _engine, _session_factory
    settings = get_settings()

    if _engine is None:
        _engine = _build_engine(settings.database_url, settings.database_echo)
        _session_factory = sessionmaker(
            bind=_engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )
        logger.info("Database engine created (%s)", _engine.dialect.name)

    if create_tables if create_tables is not None else settings.database_create_tables:
        Base.metadata.create_all(_engine)

    return _engine


def get_engine() -> Engine:
    """Get the process-wide engine, creating it on first use."""
    return _engine if _engine is not None else init_database()


def get_session_factory() -> sessionmaker[Session]:
    """Get the process-wide session factory, creating it on first use."""
    if _session_factory is None:
        init_database()
    assert _session_factory is not None
    return _session_factory


def dispose_database() -> None:
    """Dispose the engine and forget the session factory. Call at app shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session and close it afterwards."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def dialect_insert(db: Session, model: Any) -> Any:
    """Build an INSERT that supports ON CONFLICT clauses for the session's dialect.

    Args:
        db: Session whose bind decides the dialect.
        model: Mapped class or table to insert into.

    Returns:
        Insert: PostgreSQL or SQLite insert construct.
    """
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


def conflict_from_integrity_error(error: IntegrityError) -> ConflictError | None:
    """Translate a driver IntegrityError into a ConflictError.

    PostgreSQL drivers report the constraint name directly. SQLite only reports
    the offending columns, except for expression indexes which it reports by
    name; otherwise the name is rebuilt with the same
    ``<table>_<columns>_key`` convention the models declare.

    Returns:
        ConflictError | None: The conflict, or None if the error is not a
        unique violation (e.g. a foreign key or not-null failure).
    """
    orig = error.orig
    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name:
        if getattr(orig, "pgcode", None) != "23505":
            return None
        return ConflictError(constraint_name, getattr(diag, "table_name", None))

    # Expression indexes are reported by name
    index_match = _SQLITE_UNIQUE_INDEX_PATTERN.search(str(orig))
    if index_match:
        return ConflictError(index_match.group("name"))

    match = _SQLITE_UNIQUE_PATTERN.search(str(orig))
    if not match:
        return None

    qualified = [column.strip() for column in match.group("columns").split(",")]
    table_name = qualified[0].split(".")[0]
    columns = [column.split(".", 1)[-1] for column in qualified]
    return ConflictError(f"{table_name}_{'_'.join(columns)}_key", table_name)


async def check_database_connection() -> dict[str, Any]:
    """Check if database connection is healthy.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        with get_engine().connect() as connection:
            connection.execute(text("SELECT 1"))
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
