from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from obcflow.core.lifecycle.enums import (
    ServiceType,
    ShipmentPriority,
    ShipmentStatus,
    SlaStatus,
)
from .base import BaseSchema, CurrencyAmount
from .task import ShipmentTaskOut


class Address(BaseModel):
    street: Optional[str] = None
    city: str
    postal_code: Optional[str] = None
    country: str
    airport_code: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None


class Dimensions(BaseModel):
    length_cm: float
    width_cm: float
    height_cm: float
    weight_kg: float
    pieces: int = 1


class FlightDetails(BaseModel):
    flight_number: Optional[str] = None
    airline: Optional[str] = None
    departure_airport: Optional[str] = None
    arrival_airport: Optional[str] = None
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None


class ShipmentCreate(BaseModel):
    # Left empty to draw the next number from the service type's range.
    shipment_number: Optional[str] = None
    awb_number: Optional[str] = None
    customer_id: int
    customer_reference: Optional[str] = None
    service_type: ServiceType
    priority: ShipmentPriority = ShipmentPriority.STANDARD
    origin: Address
    destination: Address
    dimensions: Dimensions
    description: str
    special_instructions: Optional[str] = None
    courier_instructions: Optional[str] = None
    deadline: datetime
    agreed_price: CurrencyAmount
    courier_id: Optional[int] = None
    partner_id: Optional[int] = None
    partner_reference: Optional[str] = None
    routing: Optional[FlightDetails] = None


class ShipmentDetailsUpdate(BaseModel):
    """Descriptive fields an operator may edit outside of a status change."""
    model_config = ConfigDict(extra="forbid")

    awb_number: Optional[str] = None
    customer_reference: Optional[str] = None
    description: Optional[str] = None
    special_instructions: Optional[str] = None
    courier_instructions: Optional[str] = None
    partner_id: Optional[int] = None
    partner_reference: Optional[str] = None
    origin: Optional[Address] = None
    destination: Optional[Address] = None
    dimensions: Optional[Dimensions] = None
    routing: Optional[FlightDetails] = None
    deadline: Optional[datetime] = None


class StatusUpdateMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    flight_number: Optional[str] = None
    estimated_arrival: Optional[datetime] = None
    proof_of_delivery: Optional[bool] = None
    signed_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    new_deadline: Optional[datetime] = None
    actual_costs: Optional[CurrencyAmount] = None
    courier_assigned: Optional[int] = None


class StatusUpdateRequest(BaseModel):
    status: ShipmentStatus
    location: Optional[str] = None
    notes: Optional[str] = None
    metadata: Optional[StatusUpdateMetadata] = None


class CompletionConfirmations(BaseModel):
    model_config = ConfigDict(extra="forbid")

    extra_costs_recorded: bool = False
    documents_complete: bool = False
    # Required for NFO only.
    cwt_validated: Optional[bool] = None


class ShipmentCompleteRequest(BaseModel):
    confirmations: CompletionConfirmations
    notes: Optional[str] = None


class CourierAssignRequest(BaseModel):
    courier_id: int
    instructions: Optional[str] = None


class PriorityChangeRequest(BaseModel):
    priority: ShipmentPriority


class SlaSnapshotOut(BaseSchema):
    deadline: datetime
    status: SlaStatus
    remaining_hours: Optional[int] = None


class NextTaskSnapshotOut(BaseSchema):
    description: str
    due_date: Optional[datetime] = None
    priority: ShipmentPriority


class ShipmentOut(BaseModel):
    id: int
    shipment_number: str
    awb_number: Optional[str] = None
    customer_id: int
    customer_reference: Optional[str] = None
    service_type: ServiceType
    priority: ShipmentPriority
    current_status: ShipmentStatus
    origin: Address
    destination: Address
    dimensions: Dimensions
    routing: Optional[FlightDetails] = None
    description: str
    special_instructions: Optional[str] = None
    courier_instructions: Optional[str] = None
    deadline: datetime
    sla: SlaSnapshotOut
    next_task: Optional[NextTaskSnapshotOut] = None
    agreed_price: CurrencyAmount
    actual_costs: Optional[CurrencyAmount] = None
    courier_id: Optional[int] = None
    partner_id: Optional[int] = None
    partner_reference: Optional[str] = None
    quote_id: Optional[int] = None
    completed_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    last_changed_by: Optional[str] = None
    version_id: int

    @classmethod
    def build(cls, shipment, sla) -> "ShipmentOut":
        """Assemble the response from the ORM row and a freshly classified SLA."""
        next_task = None
        if shipment.next_task_description:
            next_task = NextTaskSnapshotOut(
                description=shipment.next_task_description,
                due_date=shipment.next_task_due_date,
                priority=shipment.next_task_priority,
            )
        actual_costs = None
        if shipment.actual_costs_amount is not None:
            actual_costs = CurrencyAmount(
                amount=float(shipment.actual_costs_amount),
                currency=shipment.actual_costs_currency,
            )
        return cls(
            id=shipment.id,
            shipment_number=shipment.shipment_number,
            awb_number=shipment.awb_number,
            customer_id=shipment.customer_id,
            customer_reference=shipment.customer_reference,
            service_type=shipment.service_type,
            priority=shipment.priority,
            current_status=shipment.current_status,
            origin=shipment.origin,
            destination=shipment.destination,
            dimensions=shipment.dimensions,
            routing=shipment.routing,
            description=shipment.description,
            special_instructions=shipment.special_instructions,
            courier_instructions=shipment.courier_instructions,
            deadline=shipment.deadline,
            sla=SlaSnapshotOut.model_validate(sla),
            next_task=next_task,
            agreed_price=CurrencyAmount(
                amount=float(shipment.agreed_price_amount),
                currency=shipment.agreed_price_currency,
            ),
            actual_costs=actual_costs,
            courier_id=shipment.courier_id,
            partner_id=shipment.partner_id,
            partner_reference=shipment.partner_reference,
            quote_id=shipment.quote_id,
            completed_at=shipment.completed_at,
            closed_at=shipment.closed_at,
            created_at=shipment.created_at,
            updated_at=shipment.updated_at,
            created_by=shipment.created_by,
            last_changed_by=shipment.last_changed_by,
            version_id=shipment.version_id,
        )


class StatusHistoryOut(BaseSchema):
    id: int
    shipment_id: int
    status: ShipmentStatus
    timestamp: datetime
    location: Optional[str] = None
    notes: Optional[str] = None
    metadata: Optional[dict] = Field(default=None, validation_alias="metadata_json")
    created_by: str


class TransitionResponse(BaseModel):
    shipment: ShipmentOut
    history_entry: StatusHistoryOut
    tasks: List[ShipmentTaskOut] = []
    warnings: List[str] = []


class ShipmentPageOut(BaseModel):
    items: List[ShipmentOut] = []
    total: int
    skip: int
    limit: int


class OverdueShipmentOut(BaseModel):
    id: int
    shipment_number: str
    customer_id: int
    service_type: ServiceType
    priority: ShipmentPriority
    current_status: ShipmentStatus
    deadline: datetime
    overdue_hours: int
