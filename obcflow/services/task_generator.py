"""
Automatic task generator.

Runs after the transition that triggers it has been committed. Each task is
written in its own savepoint and retried; a task that still fails is reported
back to the caller instead of being dropped, and never undoes the transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
import re
from typing import Callable

from sqlalchemy.orm import Session

from obcflow.core.config import settings
from obcflow.core.flow_logging import flow_info
from obcflow.core.lifecycle.enums import ServiceType, ShipmentStatus, TaskPriority
from obcflow.core.lifecycle.task_templates import TaskTemplate, templates_for
from obcflow.crud.shipment_task import create_task
from obcflow.models.task import ShipmentTask

logger = logging.getLogger(__name__)

TaskStore = Callable[..., ShipmentTask]


@dataclass(frozen=True)
class PlannedTask:
    title: str
    description: str
    priority: TaskPriority
    due_date: datetime | None
    metadata: dict


@dataclass
class TaskGenerationReport:
    tasks: list[ShipmentTask] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


def template_key(template: TaskTemplate) -> str:
    return re.sub(r"[^a-z0-9]+", "_", template.title.lower()).strip("_")


def plan_tasks(
    new_status: ShipmentStatus | str,
    service_type: ServiceType | str,
    transition_at: datetime,
) -> list[PlannedTask]:
    """Instantiate the templates of (status, service type) against the transition time."""
    status = ShipmentStatus(new_status)
    planned = []
    for template in templates_for(status, service_type):
        metadata = {
            "template": template_key(template),
            "trigger_status": status.value,
            **template.metadata,
        }
        planned.append(
            PlannedTask(
                title=template.title,
                description=template.description,
                priority=template.priority,
                due_date=template.due_date(transition_at),
                metadata=metadata,
            )
        )
    return planned


class AutomaticTaskGenerator:
    def __init__(
        self,
        db: Session,
        *,
        task_store: TaskStore = create_task,
        max_attempts: int | None = None,
    ):
        self.db = db
        self.task_store = task_store
        self.max_attempts = max(1, max_attempts or settings.TASK_GENERATION_MAX_ATTEMPTS)

    def _create_with_retry(
        self, planned: PlannedTask, *, shipment_id: int, actor: str
    ) -> ShipmentTask:
        attempt = 1
        while True:
            try:
                with self.db.begin_nested():
                    return self.task_store(
                        self.db,
                        shipment_id=shipment_id,
                        title=planned.title,
                        description=planned.description,
                        priority=planned.priority,
                        due_date=planned.due_date,
                        metadata=planned.metadata,
                        created_by=actor,
                    )
            except Exception as exc:
                logger.warning(
                    "task_create_attempt_failed shipment_id=%s template=%s attempt=%s/%s error=%s",
                    shipment_id,
                    planned.metadata.get("template"),
                    attempt,
                    self.max_attempts,
                    exc,
                )
                if attempt >= self.max_attempts:
                    raise
                attempt += 1

    def generate(
        self,
        *,
        shipment_id: int,
        new_status: ShipmentStatus | str,
        service_type: ServiceType | str,
        transition_at: datetime,
        actor: str,
    ) -> TaskGenerationReport:
        report = TaskGenerationReport()
        for planned in plan_tasks(new_status, service_type, transition_at):
            try:
                task = self._create_with_retry(planned, shipment_id=shipment_id, actor=actor)
            except Exception as exc:
                report.failures.append(f"Task '{planned.title}' could not be created: {exc}")
                continue
            report.tasks.append(task)

        self.db.commit()

        if report.failures:
            logger.warning(
                "task_generation_partial shipment_id=%s status=%s created=%s failed=%s",
                shipment_id,
                ShipmentStatus(new_status).value,
                len(report.tasks),
                len(report.failures),
            )
        else:
            flow_info(
                logger,
                "task_generation_done shipment_id=%s status=%s created=%s",
                shipment_id,
                ShipmentStatus(new_status).value,
                len(report.tasks),
                category="shipment",
            )
        return report
