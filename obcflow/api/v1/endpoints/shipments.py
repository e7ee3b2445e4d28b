from datetime import datetime
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from obcflow.api.deps.request_identity import get_request_email
from obcflow.core.errors import LifecycleError
from obcflow.core.lifecycle.enums import ServiceType, ShipmentPriority, ShipmentStatus, SlaStatus
from obcflow.db.session import get_db
from obcflow.schemas.shipment import (
    CourierAssignRequest,
    OverdueShipmentOut,
    PriorityChangeRequest,
    ShipmentCompleteRequest,
    ShipmentCreate,
    ShipmentDetailsUpdate,
    ShipmentOut,
    ShipmentPageOut,
    StatusHistoryOut,
    StatusUpdateRequest,
    TransitionResponse,
)
from obcflow.schemas.task import ShipmentTaskOut
from obcflow.services.shipment_lifecycle_service import (
    ShipmentFilter,
    ShipmentLifecycleService,
    ShipmentView,
    TransitionResult,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _raise_lifecycle_error(db: Session, exc: LifecycleError) -> None:
    db.rollback()
    logger.info("shipment_request_rejected code=%s message=%s", exc.code, exc.message)
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail()) from exc


def _shipment_out(view: ShipmentView) -> ShipmentOut:
    return ShipmentOut.build(view.shipment, view.sla)


def transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        shipment=ShipmentOut.build(result.shipment, result.sla),
        history_entry=StatusHistoryOut.model_validate(result.history_entry),
        tasks=[ShipmentTaskOut.model_validate(task) for task in result.tasks],
        warnings=list(result.warnings),
    )


@router.post("", response_model=TransitionResponse, status_code=status.HTTP_201_CREATED)
def create_shipment(
    payload: ShipmentCreate,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        result = ShipmentLifecycleService(db).create_shipment(payload, actor=user_email)
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return transition_response(result)


@router.get("", response_model=ShipmentPageOut)
def list_shipments(
    status_filter: Optional[List[ShipmentStatus]] = Query(None, alias="status"),
    service_type: Optional[List[ServiceType]] = Query(None),
    priority: Optional[List[ShipmentPriority]] = Query(None),
    sla_status: Optional[List[SlaStatus]] = Query(None),
    customer_id: int | None = Query(None, ge=1),
    courier_id: int | None = Query(None, ge=1),
    partner_id: int | None = Query(None, ge=1),
    origin_country: Optional[List[str]] = Query(None),
    destination_country: Optional[List[str]] = Query(None),
    created_from: Optional[datetime] = Query(None),
    created_to: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None, description="Number, AWB, references or description"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    filters = ShipmentFilter(
        statuses=tuple(status_filter or ()),
        service_types=tuple(service_type or ()),
        priorities=tuple(priority or ()),
        sla_statuses=tuple(sla_status or ()),
        customer_id=customer_id,
        courier_id=courier_id,
        partner_id=partner_id,
        origin_countries=tuple(origin_country or ()),
        destination_countries=tuple(destination_country or ()),
        created_from=created_from,
        created_to=created_to,
        search=search,
    )
    page = ShipmentLifecycleService(db).list_shipments(
        filters, skip=skip, limit=limit, descending=(order == "desc")
    )
    return ShipmentPageOut(
        items=[_shipment_out(view) for view in page.items],
        total=page.total,
        skip=skip,
        limit=limit,
    )


# Fixed paths are registered before /{shipment_id} so they are not parsed as an id.
@router.get("/search", response_model=List[ShipmentOut])
def search_shipments(
    q: str = Query(..., description="At least two characters"),
    include_completed: bool = Query(True),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    views = ShipmentLifecycleService(db).search_shipments(
        q, limit=limit, include_completed=include_completed
    )
    return [_shipment_out(view) for view in views]


@router.get("/by-customer/{customer_id}", response_model=List[ShipmentOut])
def list_customer_shipments(
    customer_id: int,
    include_completed: bool = Query(True),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    try:
        views = ShipmentLifecycleService(db).list_for_customer(
            customer_id, limit=limit, include_completed=include_completed
        )
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return [_shipment_out(view) for view in views]


@router.get("/by-courier/{courier_id}", response_model=List[ShipmentOut])
def list_courier_shipments(
    courier_id: int,
    include_completed: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    try:
        views = ShipmentLifecycleService(db).list_for_courier(
            courier_id, limit=limit, include_completed=include_completed
        )
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return [_shipment_out(view) for view in views]


@router.get("/overdue", response_model=List[OverdueShipmentOut])
def list_overdue_shipments(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    rows = ShipmentLifecycleService(db).list_overdue(limit=limit)
    return [
        OverdueShipmentOut(
            id=row.shipment.id,
            shipment_number=row.shipment.shipment_number,
            customer_id=row.shipment.customer_id,
            service_type=row.shipment.service_type,
            priority=row.shipment.priority,
            current_status=row.shipment.current_status,
            deadline=row.shipment.deadline,
            overdue_hours=row.overdue_hours,
        )
        for row in rows
    ]


@router.get("/{shipment_id}", response_model=ShipmentOut)
def get_shipment(shipment_id: int, db: Session = Depends(get_db)):
    try:
        view = ShipmentLifecycleService(db).get_shipment(shipment_id)
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return _shipment_out(view)


@router.get("/{shipment_id}/history", response_model=List[StatusHistoryOut])
def list_shipment_history(
    shipment_id: int,
    order: str = Query("asc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
):
    try:
        entries = ShipmentLifecycleService(db).list_history(
            shipment_id, descending=(order == "desc")
        )
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return [StatusHistoryOut.model_validate(entry) for entry in entries]


@router.post("/{shipment_id}/status", response_model=TransitionResponse)
def update_shipment_status(
    shipment_id: int,
    payload: StatusUpdateRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        result = ShipmentLifecycleService(db).transition(
            shipment_id,
            payload.status,
            actor=user_email,
            location=payload.location,
            notes=payload.notes,
            metadata=payload.metadata,
        )
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return transition_response(result)


@router.post("/{shipment_id}/complete", response_model=TransitionResponse)
def complete_shipment(
    shipment_id: int,
    payload: ShipmentCompleteRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        result = ShipmentLifecycleService(db).complete_shipment(
            shipment_id,
            payload.confirmations,
            actor=user_email,
            notes=payload.notes,
        )
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return transition_response(result)


@router.post("/{shipment_id}/assign-courier", response_model=ShipmentOut)
def assign_courier(
    shipment_id: int,
    payload: CourierAssignRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        view = ShipmentLifecycleService(db).assign_courier(
            shipment_id,
            payload.courier_id,
            actor=user_email,
            instructions=payload.instructions,
        )
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return _shipment_out(view)


@router.patch("/{shipment_id}/priority", response_model=ShipmentOut)
def change_shipment_priority(
    shipment_id: int,
    payload: PriorityChangeRequest,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        view = ShipmentLifecycleService(db).change_priority(
            shipment_id, payload.priority, actor=user_email
        )
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return _shipment_out(view)


@router.patch("/{shipment_id}", response_model=ShipmentOut)
def update_shipment_details(
    shipment_id: int,
    payload: ShipmentDetailsUpdate,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        view = ShipmentLifecycleService(db).update_details(
            shipment_id, payload, actor=user_email
        )
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return _shipment_out(view)


@router.delete("/{shipment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_shipment(
    shipment_id: int,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    try:
        ShipmentLifecycleService(db).delete_shipment(shipment_id, actor=user_email)
    except LifecycleError as exc:
        _raise_lifecycle_error(db, exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
