"""
Payload rules that raise ValidationFailed naming the offending field.

These run before anything is written, for direct callers and the HTTP layer
alike, so both report the same field names.
"""

from __future__ import annotations

from datetime import datetime
import re

from obcflow.core.errors import PreconditionFailed, ValidationFailed
from obcflow.core.lifecycle.enums import ServiceType
from obcflow.models.shipment import Shipment
from obcflow.schemas.base import CurrencyAmount
from obcflow.schemas.shipment import (
    CompletionConfirmations,
    Dimensions,
    FlightDetails,
    ShipmentCreate,
    ShipmentDetailsUpdate,
    StatusUpdateMetadata,
)

FIELD_LIMITS = {
    "shipment_number": 30,
    "awb_number": 50,
    "customer_reference": 100,
    "partner_reference": 100,
    "description": 500,
    "special_instructions": 1000,
    "courier_instructions": 1000,
    "flight_number": 20,
    "location": 200,
    "notes": 2000,
    "cancellation_reason": 500,
    "signed_by": 255,
}

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def check_length(field_name: str, value: str | None, *, required: bool = False) -> None:
    limit = FIELD_LIMITS[field_name.rsplit(".", 1)[-1]]
    if value is None or not value.strip():
        if required:
            raise ValidationFailed(field_name, f"{field_name} is required.")
        return
    if len(value) > limit:
        raise ValidationFailed(
            field_name, f"{field_name} must be at most {limit} characters."
        )


def check_amount(field_name: str, value: CurrencyAmount) -> None:
    if not _CURRENCY_RE.match(value.currency or ""):
        raise ValidationFailed(
            f"{field_name}.currency", "Currency must be a three-letter upper-case code."
        )
    if value.amount < 0:
        raise ValidationFailed(f"{field_name}.amount", "Amount must not be negative.")


def check_dimensions(value: Dimensions) -> None:
    for name in ("length_cm", "width_cm", "height_cm", "weight_kg"):
        if getattr(value, name) <= 0:
            raise ValidationFailed(f"dimensions.{name}", f"{name} must be greater than zero.")
    if value.pieces < 1:
        raise ValidationFailed("dimensions.pieces", "pieces must be at least 1.")


def check_routing(value: FlightDetails | None) -> None:
    if value is None:
        return
    check_length("routing.flight_number", value.flight_number)
    if value.departure_time and value.arrival_time and value.arrival_time < value.departure_time:
        raise ValidationFailed(
            "routing.arrival_time", "Arrival time must not be before departure time."
        )


def check_future(field_name: str, value: datetime, now: datetime) -> None:
    if value <= now:
        raise ValidationFailed(field_name, f"{field_name} must be in the future.")


def validate_shipment_create(payload: ShipmentCreate, now: datetime) -> None:
    check_length("shipment_number", payload.shipment_number)
    check_length("awb_number", payload.awb_number)
    check_length("customer_reference", payload.customer_reference)
    check_length("partner_reference", payload.partner_reference)
    check_length("description", payload.description, required=True)
    check_length("special_instructions", payload.special_instructions)
    check_length("courier_instructions", payload.courier_instructions)
    check_dimensions(payload.dimensions)
    check_routing(payload.routing)
    check_amount("agreed_price", payload.agreed_price)
    check_future("deadline", payload.deadline, now)


def validate_details_update(changes: ShipmentDetailsUpdate, now: datetime) -> None:
    check_length("awb_number", changes.awb_number)
    check_length("customer_reference", changes.customer_reference)
    check_length("partner_reference", changes.partner_reference)
    if changes.description is not None:
        check_length("description", changes.description, required=True)
    check_length("special_instructions", changes.special_instructions)
    check_length("courier_instructions", changes.courier_instructions)
    if changes.dimensions is not None:
        check_dimensions(changes.dimensions)
    check_routing(changes.routing)
    if changes.deadline is not None:
        check_future("deadline", changes.deadline, now)


def validate_status_update(
    shipment: Shipment,
    *,
    location: str | None,
    notes: str | None,
    metadata: StatusUpdateMetadata,
    now: datetime,
) -> None:
    check_length("location", location)
    check_length("notes", notes)
    check_length("metadata.flight_number", metadata.flight_number)
    check_length("metadata.cancellation_reason", metadata.cancellation_reason)
    check_length("metadata.signed_by", metadata.signed_by)

    if metadata.estimated_arrival is not None:
        check_future("metadata.estimated_arrival", metadata.estimated_arrival, now)

    if metadata.new_deadline is not None and metadata.new_deadline <= shipment.deadline:
        raise ValidationFailed(
            "metadata.new_deadline", "New deadline must be later than the current deadline."
        )

    if metadata.actual_costs is not None:
        check_amount("metadata.actual_costs", metadata.actual_costs)
        if metadata.actual_costs.currency != shipment.agreed_price_currency:
            raise ValidationFailed(
                "metadata.actual_costs.currency",
                f"Actual costs must be in {shipment.agreed_price_currency}, "
                f"the currency of the agreed price.",
            )


def missing_completion_fields(shipment: Shipment) -> list[str]:
    """Fields a shipment must carry before it can be closed out."""
    missing = []
    if ServiceType(shipment.service_type) == ServiceType.OBC:
        if shipment.courier_id is None:
            missing.append("courier_id")
    else:
        if shipment.partner_id is None:
            missing.append("partner_id")
        if not shipment.awb_number:
            missing.append("awb_number")
    if shipment.completed_at is None:
        missing.append("completed_at")
    return missing


def validate_completion(shipment: Shipment, confirmations: CompletionConfirmations) -> None:
    missing = missing_completion_fields(shipment)
    if missing:
        raise PreconditionFailed(
            "Shipment is missing mandatory fields for completion.",
            shipment_id=shipment.id,
            missing_fields=missing,
        )
    if ServiceType(shipment.service_type) == ServiceType.NFO and not confirmations.cwt_validated:
        raise ValidationFailed(
            "confirmations.cwt_validated",
            "Chargeable weight must be validated before an NFO shipment is completed.",
        )
    if not confirmations.extra_costs_recorded:
        raise ValidationFailed(
            "confirmations.extra_costs_recorded",
            "Extra costs must be recorded before completion.",
        )
    if not confirmations.documents_complete:
        raise ValidationFailed(
            "confirmations.documents_complete",
            "Documents must be complete before completion.",
        )
