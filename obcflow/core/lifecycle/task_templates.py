"""
Automatic task templates keyed by (status, service type).

Every status of the state machine must have an explicit decision for every
service type, even if that decision is "no tasks". The table is checked for
completeness at import time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from obcflow.core.lifecycle.enums import ServiceType, ShipmentStatus, TaskPriority


@dataclass(frozen=True)
class TaskTemplate:
    title: str
    description: str
    priority: TaskPriority
    due_after_minutes: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def due_date(self, transition_at: datetime) -> datetime | None:
        if self.due_after_minutes is None:
            return None
        return transition_at + timedelta(minutes=self.due_after_minutes)


S = ShipmentStatus
P = TaskPriority

_NOTIFY_BOOKING = TaskTemplate(
    "Send booking confirmation",
    "Send the booking confirmation with deadline and routing to the customer.",
    P.HIGH,
    30,
)
_CUSTOMS_DOCS = TaskTemplate(
    "Submit customs documents",
    "Hand the commercial invoice and export declaration to the customs broker.",
    P.HIGH,
    60,
)
_CUSTOMS_BROKER = TaskTemplate(
    "Coordinate customs clearance",
    "Stay in contact with the broker until the shipment is released.",
    P.MEDIUM,
)
_COLLECT_POD = TaskTemplate(
    "Collect proof of delivery",
    "Obtain the signed POD and attach it to the shipment.",
    P.HIGH,
    240,
    {"requires_pod": True},
)
_NOTIFY_DELIVERY = TaskTemplate(
    "Notify customer of delivery",
    "Confirm delivery time and recipient to the customer.",
    P.MEDIUM,
    30,
)
_RECORD_COSTS = TaskTemplate(
    "Record extra costs",
    "Enter all courier, partner and handling costs before invoicing.",
    P.MEDIUM,
    24 * 60,
)
_CHECK_PAYMENT = TaskTemplate(
    "Check payment receipt",
    "Verify the invoice has been paid.",
    P.LOW,
    14 * 24 * 60,
)
_NOTIFY_CANCELLATION = TaskTemplate(
    "Notify customer of cancellation",
    "Confirm the cancellation and its reason to the customer.",
    P.MEDIUM,
    30,
)

TASK_TEMPLATES: dict[ShipmentStatus, dict[ServiceType, tuple[TaskTemplate, ...]]] = {
    S.QUOTED: {
        ServiceType.OBC: (
            TaskTemplate(
                "Check courier availability",
                "Confirm an on-board courier can travel before the deadline.",
                P.HIGH,
                60,
            ),
        ),
        ServiceType.NFO: (
            TaskTemplate(
                "Check flight capacity",
                "Confirm cargo space on the next flight out with the partner.",
                P.HIGH,
                60,
            ),
        ),
    },
    S.BOOKED: {
        ServiceType.OBC: (
            TaskTemplate(
                "Book courier flight",
                "Book the courier's outbound ticket and hotel if needed.",
                P.CRITICAL,
                120,
            ),
            _NOTIFY_BOOKING,
        ),
        ServiceType.NFO: (
            TaskTemplate(
                "Book cargo space",
                "Confirm the booking with the airline or handling partner.",
                P.CRITICAL,
                120,
            ),
            _NOTIFY_BOOKING,
        ),
    },
    S.PICKUP: {
        ServiceType.OBC: (
            TaskTemplate(
                "Confirm courier collection",
                "Verify the courier has collected the goods from the shipper.",
                P.HIGH,
                60,
            ),
        ),
        ServiceType.NFO: (
            TaskTemplate(
                "Confirm terminal drop-off",
                "Verify the cargo has been delivered to the airline terminal.",
                P.HIGH,
                120,
            ),
            TaskTemplate(
                "Obtain air waybill",
                "Request the AWB number from the partner and record it.",
                P.MEDIUM,
                metadata={"field": "awb_number"},
            ),
        ),
    },
    S.IN_TRANSIT: {
        ServiceType.OBC: (
            TaskTemplate(
                "Share flight details",
                "Send flight number and ETA to the customer.",
                P.MEDIUM,
                30,
            ),
        ),
        ServiceType.NFO: (
            TaskTemplate(
                "Track flight departure",
                "Confirm the cargo departed on the booked flight.",
                P.HIGH,
                60,
            ),
        ),
    },
    S.CUSTOMS: {
        ServiceType.OBC: (_CUSTOMS_DOCS, _CUSTOMS_BROKER),
        ServiceType.NFO: (_CUSTOMS_DOCS, _CUSTOMS_BROKER),
    },
    S.DELIVERED: {
        ServiceType.OBC: (_COLLECT_POD, _NOTIFY_DELIVERY),
        ServiceType.NFO: (_COLLECT_POD, _NOTIFY_DELIVERY),
    },
    S.DOCUMENT: {
        ServiceType.OBC: (_RECORD_COSTS,),
        ServiceType.NFO: (
            _RECORD_COSTS,
            TaskTemplate(
                "Validate chargeable weight",
                "Compare the partner's chargeable weight with the booked dimensions.",
                P.MEDIUM,
                24 * 60,
            ),
        ),
    },
    S.INVOICED: {
        ServiceType.OBC: (_CHECK_PAYMENT,),
        ServiceType.NFO: (_CHECK_PAYMENT,),
    },
    S.CANCELLED: {
        ServiceType.OBC: (_NOTIFY_CANCELLATION,),
        ServiceType.NFO: (_NOTIFY_CANCELLATION,),
    },
}


def _check_coverage() -> None:
    gaps = [
        f"{status.value}/{service_type.value}"
        for status in ShipmentStatus
        for service_type in ServiceType
        if service_type not in TASK_TEMPLATES.get(status, {})
    ]
    if gaps:
        raise RuntimeError(f"Task templates missing for: {', '.join(gaps)}")


_check_coverage()


def templates_for(
    status: ShipmentStatus | str, service_type: ServiceType | str
) -> tuple[TaskTemplate, ...]:
    return TASK_TEMPLATES[ShipmentStatus(status)][ServiceType(service_type)]
