import enum


class ShipmentStatus(str, enum.Enum):
    QUOTED = "quoted"
    BOOKED = "booked"
    PICKUP = "pickup"
    IN_TRANSIT = "in_transit"
    CUSTOMS = "customs"
    DELIVERED = "delivered"
    DOCUMENT = "document"
    INVOICED = "invoiced"
    CANCELLED = "cancelled"


class ServiceType(str, enum.Enum):
    OBC = "OBC"  # on-board courier
    NFO = "NFO"  # next flight out


class ShipmentPriority(str, enum.Enum):
    STANDARD = "standard"
    URGENT = "urgent"
    CRITICAL = "critical"


class SlaStatus(str, enum.Enum):
    ON_TIME = "on_time"
    WARNING = "warning"
    OVERDUE = "overdue"


class QuoteStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


INITIAL_STATUS = ShipmentStatus.QUOTED

# SLA is judged against the deadline at the moment one of these is reached.
CLOSED_STATUSES = frozenset(
    {ShipmentStatus.DELIVERED, ShipmentStatus.INVOICED, ShipmentStatus.CANCELLED}
)

# completed_at is stamped on entry to these.
COMPLETION_STATUSES = frozenset({ShipmentStatus.DELIVERED, ShipmentStatus.INVOICED})

# Shipments in these no longer count as active work.
INACTIVE_STATUSES = frozenset(
    {ShipmentStatus.DELIVERED, ShipmentStatus.INVOICED, ShipmentStatus.CANCELLED}
)

DELETABLE_STATUSES = frozenset({ShipmentStatus.QUOTED, ShipmentStatus.CANCELLED})

# Descriptive fields are frozen once one of these is reached.
EDIT_LOCKED_STATUSES = frozenset({ShipmentStatus.INVOICED, ShipmentStatus.CANCELLED})

_PRIORITY_RANK = {
    ShipmentPriority.STANDARD: 0,
    ShipmentPriority.URGENT: 1,
    ShipmentPriority.CRITICAL: 2,
}


def escalate_priority(
    current: ShipmentPriority, floor: ShipmentPriority
) -> ShipmentPriority:
    """Return whichever of the two priorities is more urgent."""
    if _PRIORITY_RANK[current] >= _PRIORITY_RANK[floor]:
        return current
    return floor
