"""Admin audit trail."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from src.models import AdminAuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Records privileged actions in admin_audit_log.

    Entries join the caller's transaction; the caller commits.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def record(
        self,
        actor_user_profile_id: UUID | None,
        action: str,
        entity: str,
        entity_id: str | UUID,
        meta: dict[str, Any] | None = None,
    ) -> AdminAuditLog:
        entry = AdminAuditLog(
            actor_user_profile_id=actor_user_profile_id,
            action=action,
            entity=entity,
            entity_id=str(entity_id),
            meta_json=meta or {},
        )
        self.db.add(entry)
        logger.info(
            "Audit: %s on %s %s",
            action,
            entity,
            entity_id,
            extra={"actor_user_profile_id": str(actor_user_profile_id) if actor_user_profile_id else None},
        )
        return entry
