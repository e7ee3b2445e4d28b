"""
Status history ledger.

Append-only: entries are never edited. The only removal path is
`purge_for_shipment`, used when the owning shipment itself is deleted.
"""

from __future__ import annotations

from datetime import datetime
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from obcflow.core.lifecycle.enums import ShipmentStatus
from obcflow.models.shipment import ShipmentStatusHistory

logger = logging.getLogger(__name__)


class StatusHistoryLedger:
    def __init__(self, db: Session):
        self.db = db

    def _latest_timestamp(self, shipment_id: int) -> datetime | None:
        stmt = select(func.max(ShipmentStatusHistory.timestamp)).where(
            ShipmentStatusHistory.shipment_id == shipment_id
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def append(
        self,
        *,
        shipment_id: int,
        status: ShipmentStatus | str,
        timestamp: datetime,
        actor: str,
        location: str | None = None,
        notes: str | None = None,
        metadata: dict | None = None,
    ) -> ShipmentStatusHistory:
        latest = self._latest_timestamp(shipment_id)
        if latest is not None and timestamp < latest:
            # Clock skew between writers must not reorder the ledger.
            logger.warning(
                "history_timestamp_clamped shipment_id=%s requested=%s latest=%s",
                shipment_id,
                timestamp.isoformat(),
                latest.isoformat(),
            )
            timestamp = latest

        entry = ShipmentStatusHistory(
            shipment_id=shipment_id,
            status=ShipmentStatus(status).value,
            timestamp=timestamp,
            location=location,
            notes=notes,
            metadata_json=metadata or None,
            created_by=actor,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def read_all(
        self, shipment_id: int, *, descending: bool = False
    ) -> list[ShipmentStatusHistory]:
        """Every entry of the shipment, ordered by timestamp then insertion order."""
        if descending:
            order = (ShipmentStatusHistory.timestamp.desc(), ShipmentStatusHistory.id.desc())
        else:
            order = (ShipmentStatusHistory.timestamp.asc(), ShipmentStatusHistory.id.asc())
        stmt = (
            select(ShipmentStatusHistory)
            .where(ShipmentStatusHistory.shipment_id == shipment_id)
            .order_by(*order)
        )
        return list(self.db.execute(stmt).scalars().all())

    def purge_for_shipment(self, shipment_id: int) -> int:
        result = self.db.execute(
            delete(ShipmentStatusHistory).where(
                ShipmentStatusHistory.shipment_id == shipment_id
            )
        )
        return int(result.rowcount or 0)
