from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from obcflow.core.lifecycle.enums import TaskPriority, TaskStatus
from obcflow.models.task import ShipmentTask

AUTOMATIC_TASK_TYPE = "automatic"


def create_task(
    db: Session,
    *,
    shipment_id: int,
    title: str,
    description: str | None,
    priority: TaskPriority | str,
    due_date: datetime | None,
    metadata: dict | None,
    created_by: str,
) -> ShipmentTask:
    obj = ShipmentTask(
        shipment_id=shipment_id,
        title=title,
        description=description,
        task_type=AUTOMATIC_TASK_TYPE,
        status=TaskStatus.PENDING.value,
        priority=TaskPriority(priority).value,
        due_date=due_date,
        metadata_json=metadata,
        created_by=created_by,
        last_changed_by=created_by,
    )
    db.add(obj)
    db.flush()
    return obj


def list_tasks_for_shipment(db: Session, shipment_id: int) -> list[ShipmentTask]:
    stmt = (
        select(ShipmentTask)
        .where(ShipmentTask.shipment_id == shipment_id)
        .order_by(ShipmentTask.id.asc())
    )
    return list(db.execute(stmt).scalars().all())
