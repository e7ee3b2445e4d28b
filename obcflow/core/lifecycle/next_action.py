"""
Next-action planner: the single "what to do next" hint shown to operators.

Recomputed on every transition and on priority changes; never copied forward
from a previous snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from obcflow.core.lifecycle.enums import ShipmentPriority, ShipmentStatus, escalate_priority
from obcflow.core.lifecycle.sla import SlaSnapshot


@dataclass(frozen=True)
class NextTask:
    description: str
    priority: ShipmentPriority
    due_date: datetime | None = None


_Rule = Callable[[ShipmentPriority, SlaSnapshot, datetime], "NextTask | None"]


def _fixed(description: str, hours: int, priority: ShipmentPriority) -> _Rule:
    def rule(_priority: ShipmentPriority, _sla: SlaSnapshot, now: datetime) -> NextTask:
        return NextTask(description, priority, now + timedelta(hours=hours))

    return rule


def _monitor_until_deadline(
    priority: ShipmentPriority, sla: SlaSnapshot, _now: datetime
) -> NextTask:
    return NextTask("Monitor shipment progress", priority, sla.deadline)


def _customs_follow_up(
    priority: ShipmentPriority, sla: SlaSnapshot, now: datetime
) -> NextTask:
    # Escalated to at least urgent; the follow-up is never due after the deadline.
    due = min(now + timedelta(hours=12), sla.deadline)
    return NextTask(
        "Follow up on customs clearance",
        escalate_priority(priority, ShipmentPriority.URGENT),
        due,
    )


def _nothing(_priority: ShipmentPriority, _sla: SlaSnapshot, _now: datetime) -> None:
    return None


_RULES: dict[ShipmentStatus, _Rule] = {
    ShipmentStatus.QUOTED: _fixed(
        "Follow up on quote with customer", 24, ShipmentPriority.STANDARD
    ),
    ShipmentStatus.BOOKED: _fixed(
        "Arrange pickup with courier", 2, ShipmentPriority.URGENT
    ),
    ShipmentStatus.PICKUP: _fixed(
        "Confirm pickup completion", 4, ShipmentPriority.URGENT
    ),
    ShipmentStatus.IN_TRANSIT: _monitor_until_deadline,
    ShipmentStatus.CUSTOMS: _customs_follow_up,
    ShipmentStatus.DELIVERED: _fixed(
        "Obtain proof of delivery", 24, ShipmentPriority.STANDARD
    ),
    ShipmentStatus.DOCUMENT: _fixed(
        "Prepare and send invoice", 48, ShipmentPriority.STANDARD
    ),
    ShipmentStatus.INVOICED: _nothing,
    ShipmentStatus.CANCELLED: _nothing,
}

_missing = set(ShipmentStatus) - set(_RULES)
if _missing:
    raise RuntimeError(
        f"Next-action planner has no rule for: {sorted(s.value for s in _missing)}"
    )


def plan(
    current_status: ShipmentStatus | str,
    priority: ShipmentPriority | str,
    sla: SlaSnapshot,
    now: datetime,
) -> NextTask | None:
    rule = _RULES[ShipmentStatus(current_status)]
    return rule(ShipmentPriority(priority), sla, now)
