"""
Shipment status transition graph.

quoted -> booked -> pickup -> in_transit -> (customs) -> delivered -> document -> invoiced
Every pre-delivery status may also move to cancelled. invoiced and cancelled
are terminal. The graph is a static lookup and holds no state.
"""

from obcflow.core.errors import InvalidTransition
from obcflow.core.lifecycle.enums import ShipmentStatus

S = ShipmentStatus

ALLOWED_TRANSITIONS: dict[ShipmentStatus, frozenset[ShipmentStatus]] = {
    S.QUOTED: frozenset({S.BOOKED, S.CANCELLED}),
    S.BOOKED: frozenset({S.PICKUP, S.CANCELLED}),
    S.PICKUP: frozenset({S.IN_TRANSIT, S.CANCELLED}),
    S.IN_TRANSIT: frozenset({S.CUSTOMS, S.DELIVERED, S.CANCELLED}),
    S.CUSTOMS: frozenset({S.DELIVERED, S.CANCELLED}),
    S.DELIVERED: frozenset({S.DOCUMENT}),
    S.DOCUMENT: frozenset({S.INVOICED}),
    S.INVOICED: frozenset(),
    S.CANCELLED: frozenset(),
}

_missing = set(ShipmentStatus) - set(ALLOWED_TRANSITIONS)
if _missing:
    raise RuntimeError(
        f"Transition graph has no entry for: {sorted(s.value for s in _missing)}"
    )

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def _coerce(value: ShipmentStatus | str) -> ShipmentStatus | None:
    try:
        return ShipmentStatus(value)
    except ValueError:
        return None


def is_transition_allowed(
    current: ShipmentStatus | str, target: ShipmentStatus | str
) -> bool:
    current_status = _coerce(current)
    target_status = _coerce(target)
    if current_status is None or target_status is None:
        return False
    return target_status in ALLOWED_TRANSITIONS[current_status]


def ensure_transition_allowed(
    current: ShipmentStatus | str, target: ShipmentStatus | str
) -> ShipmentStatus:
    """Return the target as an enum or raise InvalidTransition naming both states."""
    if not is_transition_allowed(current, target):
        raise InvalidTransition(_label(current), _label(target))
    return ShipmentStatus(target)


def allowed_targets(current: ShipmentStatus | str) -> frozenset[ShipmentStatus]:
    current_status = _coerce(current)
    if current_status is None:
        return frozenset()
    return ALLOWED_TRANSITIONS[current_status]


def is_terminal(status: ShipmentStatus | str) -> bool:
    return _coerce(status) in TERMINAL_STATUSES


def _label(value: ShipmentStatus | str) -> str:
    return value.value if isinstance(value, ShipmentStatus) else str(value)
