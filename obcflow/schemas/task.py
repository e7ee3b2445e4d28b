from datetime import datetime
from typing import Optional

from pydantic import Field

from obcflow.core.lifecycle.enums import TaskPriority, TaskStatus
from .base import BaseSchema


class ShipmentTaskOut(BaseSchema):
    id: int
    shipment_id: int
    title: str
    description: Optional[str] = None
    task_type: str
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    metadata: Optional[dict] = Field(default=None, validation_alias="metadata_json")
