"""
Error taxonomy of the shipment lifecycle engine.

Every failure is raised synchronously to the calling module with enough detail
to reconstruct the rule that failed. The HTTP layer turns `to_detail()` into
the response body unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False)
class LifecycleError(Exception):
    code: str
    message: str
    status_code: int = 409
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict:
        detail: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            detail.update(self.details)
        return detail


class NotFound(LifecycleError):
    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            code="NOT_FOUND",
            message=f"{entity} {entity_id} not found.",
            status_code=404,
            details={"entity": entity, "entity_id": entity_id},
        )


class InvalidTransition(LifecycleError):
    def __init__(self, current: str, target: str):
        super().__init__(
            code="INVALID_TRANSITION",
            message=f"Cannot change status from {current} to {target}.",
            status_code=409,
            details={"current_status": current, "target_status": target},
        )
        self.current = current
        self.target = target


class ValidationFailed(LifecycleError):
    def __init__(self, field_name: str, message: str):
        super().__init__(
            code="VALIDATION_FAILED",
            message=message,
            status_code=422,
            details={"field": field_name},
        )
        self.field = field_name


class AlreadyConverted(LifecycleError):
    def __init__(self, quote_id: Any, shipment_id: Any = None):
        details: dict[str, Any] = {"quote_id": quote_id}
        if shipment_id is not None:
            details["shipment_id"] = shipment_id
        super().__init__(
            code="ALREADY_CONVERTED",
            message=f"Quote {quote_id} has already been converted to a shipment.",
            status_code=409,
            details=details,
        )


class PreconditionFailed(LifecycleError):
    def __init__(self, message: str, **details: Any):
        super().__init__(
            code="PRECONDITION_FAILED",
            message=message,
            status_code=409,
            details=details,
        )


class ReferenceIntegrityFailed(LifecycleError):
    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            code="REFERENCE_INTEGRITY_FAILED",
            message=f"Referenced {entity} {entity_id} does not exist or is inactive.",
            status_code=400,
            details={"entity": entity, "entity_id": entity_id},
        )
