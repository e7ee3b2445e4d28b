"""
Typed update sets, one per operation.

Each patch names exactly the columns its operation may touch; services build
a patch and apply it instead of merging loose dicts onto the row.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any

from obcflow.core.lifecycle.enums import ShipmentPriority, ShipmentStatus
from obcflow.core.lifecycle.next_action import NextTask
from obcflow.core.lifecycle.sla import SlaSnapshot
from obcflow.models.quote import Quote
from obcflow.models.shipment import Shipment
from obcflow.schemas.base import CurrencyAmount


def _write_snapshots(shipment: Shipment, sla: SlaSnapshot, next_task: NextTask | None) -> None:
    shipment.deadline = sla.deadline
    shipment.sla_status = sla.status.value
    shipment.sla_remaining_hours = sla.remaining_hours
    if next_task is None:
        shipment.next_task_description = None
        shipment.next_task_due_date = None
        shipment.next_task_priority = None
    else:
        shipment.next_task_description = next_task.description
        shipment.next_task_due_date = next_task.due_date
        shipment.next_task_priority = next_task.priority.value


@dataclass(frozen=True)
class ShipmentStatusPatch:
    status: ShipmentStatus
    sla: SlaSnapshot
    next_task: NextTask | None
    actor: str
    completed_at: datetime | None = None
    closed_at: datetime | None = None
    actual_costs: CurrencyAmount | None = None
    courier_id: int | None = None

    def apply_to(self, shipment: Shipment) -> None:
        shipment.current_status = self.status.value
        _write_snapshots(shipment, self.sla, self.next_task)
        if self.completed_at is not None:
            shipment.completed_at = self.completed_at
        if self.closed_at is not None and shipment.closed_at is None:
            shipment.closed_at = self.closed_at
        if self.actual_costs is not None:
            shipment.actual_costs_amount = self.actual_costs.amount
            shipment.actual_costs_currency = self.actual_costs.currency
        if self.courier_id is not None:
            shipment.courier_id = self.courier_id
        shipment.last_changed_by = self.actor


@dataclass(frozen=True)
class CourierAssignmentPatch:
    courier_id: int
    courier_instructions: str | None
    actor: str

    def apply_to(self, shipment: Shipment) -> None:
        shipment.courier_id = self.courier_id
        if self.courier_instructions is not None:
            shipment.courier_instructions = self.courier_instructions
        shipment.last_changed_by = self.actor


@dataclass(frozen=True)
class PriorityPatch:
    priority: ShipmentPriority
    sla: SlaSnapshot
    next_task: NextTask | None
    actor: str

    def apply_to(self, shipment: Shipment) -> None:
        shipment.priority = self.priority.value
        _write_snapshots(shipment, self.sla, self.next_task)
        shipment.last_changed_by = self.actor


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class ShipmentDetailsPatch:
    """Only fields left at UNSET are skipped; None clears an optional column."""

    actor: str
    awb_number: Any = UNSET
    customer_reference: Any = UNSET
    description: Any = UNSET
    special_instructions: Any = UNSET
    courier_instructions: Any = UNSET
    partner_id: Any = UNSET
    partner_reference: Any = UNSET
    origin: Any = UNSET
    destination: Any = UNSET
    dimensions: Any = UNSET
    routing: Any = UNSET
    sla: SlaSnapshot | None = None
    next_task: NextTask | None = None

    def changed_fields(self) -> list[str]:
        return [
            f.name
            for f in fields(self)
            if f.name not in {"actor", "sla", "next_task"} and getattr(self, f.name) is not UNSET
        ]

    def apply_to(self, shipment: Shipment) -> None:
        for name in self.changed_fields():
            setattr(shipment, name, getattr(self, name))
        if self.sla is not None:
            _write_snapshots(shipment, self.sla, self.next_task)
        shipment.last_changed_by = self.actor


@dataclass(frozen=True)
class SoftDeletePatch:
    deleted_at: datetime
    deleted_by: str

    def apply_to(self, shipment: Shipment) -> None:
        shipment.deleted_at = self.deleted_at
        shipment.deleted_by = self.deleted_by
        shipment.last_changed_by = self.deleted_by


@dataclass(frozen=True)
class QuoteConversionPatch:
    converted_to_shipment_id: int
    converted_at: datetime
    actor: str

    def apply_to(self, quote: Quote) -> None:
        if quote.converted_to_shipment_id is not None:
            raise ValueError(f"Quote {quote.id} is already linked to a shipment.")
        quote.converted_to_shipment_id = self.converted_to_shipment_id
        quote.converted_at = self.converted_at
        quote.last_changed_by = self.actor
