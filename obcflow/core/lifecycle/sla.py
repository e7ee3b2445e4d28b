"""
SLA classifier.

Pure function of (deadline, current status, now). It runs on every write to
snapshot the SLA at rest and on every read to refresh the snapshot, since the
verdict for an open shipment changes with wall-clock time alone.

All hour quantities are rounded up (ceil) so remaining and overdue hours use
one convention.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from obcflow.core.lifecycle.enums import CLOSED_STATUSES, ShipmentStatus, SlaStatus

DEFAULT_WARNING_THRESHOLD_HOURS = 24

_HOUR = timedelta(hours=1)


def utc_now() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class SlaSnapshot:
    deadline: datetime
    status: SlaStatus
    remaining_hours: int | None = None


def hours_ceil(delta: timedelta) -> int:
    return math.ceil(delta / _HOUR)


def classify(
    deadline: datetime,
    current_status: ShipmentStatus | str,
    now: datetime,
    warning_threshold_hours: int = DEFAULT_WARNING_THRESHOLD_HOURS,
) -> SlaSnapshot:
    status = ShipmentStatus(current_status)
    remaining = deadline - now

    if status in CLOSED_STATUSES:
        if now <= deadline:
            return SlaSnapshot(deadline, SlaStatus.ON_TIME, hours_ceil(remaining))
        return SlaSnapshot(deadline, SlaStatus.OVERDUE)

    if now > deadline:
        return SlaSnapshot(deadline, SlaStatus.OVERDUE)

    if remaining <= timedelta(hours=warning_threshold_hours):
        return SlaSnapshot(deadline, SlaStatus.WARNING, hours_ceil(remaining))

    return SlaSnapshot(deadline, SlaStatus.ON_TIME, hours_ceil(remaining))


def overdue_hours(deadline: datetime, now: datetime) -> int:
    if now <= deadline:
        return 0
    return hours_ceil(now - deadline)
