from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from obcflow.core.config import settings
from obcflow.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditLogWriter:
    """
    Writes one audit record per externally-facing operation.

    The record joins the caller's transaction through a savepoint, so a failed
    audit insert is logged and dropped without aborting the business write.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: Any,
        user_email: str,
        entity_title: str | None = None,
        description: str | None = None,
        metadata: dict | None = None,
    ) -> AuditLog | None:
        if not settings.AUDIT_LOG_ENABLED:
            return None

        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            entity_title=entity_title,
            description=description,
            user_email=user_email,
            metadata_json=metadata or None,
        )
        try:
            with self.db.begin_nested():
                self.db.add(entry)
        except SQLAlchemyError:
            logger.warning(
                "audit_write_failed action=%s entity=%s:%s",
                action,
                entity_type,
                entity_id,
                exc_info=True,
            )
            return None
        return entry
