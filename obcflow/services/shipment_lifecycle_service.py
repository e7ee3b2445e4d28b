"""
Shipment lifecycle service: the state machine driver.

Every public write runs as one unit against the shipment row:
lock -> validate -> recompute SLA and next action -> apply a typed patch ->
append history -> audit -> commit. Automatic tasks are generated only after
that commit, so a task can never exist for a transition that was rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Callable

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from obcflow.core.config import settings
from obcflow.core.errors import (
    InvalidTransition,
    NotFound,
    PreconditionFailed,
    ValidationFailed,
)
from obcflow.core.flow_logging import flow_info
from obcflow.core.lifecycle import next_action, sla as sla_classifier
from obcflow.core.lifecycle.enums import (
    CLOSED_STATUSES,
    COMPLETION_STATUSES,
    DELETABLE_STATUSES,
    EDIT_LOCKED_STATUSES,
    INACTIVE_STATUSES,
    INITIAL_STATUS,
    ServiceType,
    ShipmentPriority,
    ShipmentStatus,
    SlaStatus,
)
from obcflow.core.lifecycle.sla import SlaSnapshot, utc_now
from obcflow.core.lifecycle.status_graph import ensure_transition_allowed, is_transition_allowed
from obcflow.crud.reference_data import (
    count_invoices_for_shipment,
    require_courier,
    require_customer,
    require_partner,
)
from obcflow.models.courier import Courier
from obcflow.models.customer_master import CustomerMaster
from obcflow.models.mixins import SYSTEM_ACTOR
from obcflow.models.shipment import Shipment, ShipmentStatusHistory
from obcflow.models.task import ShipmentTask
from obcflow.schemas.base import CurrencyAmount
from obcflow.schemas.shipment import (
    CompletionConfirmations,
    ShipmentCreate,
    ShipmentDetailsUpdate,
    StatusUpdateMetadata,
)
from obcflow.services.audit_writer import AuditLogWriter
from obcflow.services.number_range_get import SHIPMENT_CATEGORY, NumberRangeService
from obcflow.services.shipment_patches import (
    CourierAssignmentPatch,
    PriorityPatch,
    ShipmentDetailsPatch,
    ShipmentStatusPatch,
    SoftDeletePatch,
)
from obcflow.services.shipment_validation import (
    check_length,
    validate_completion,
    validate_details_update,
    validate_shipment_create,
    validate_status_update,
)
from obcflow.services.status_history_service import StatusHistoryLedger
from obcflow.services.task_generator import AutomaticTaskGenerator

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_MAX_NUMBER_SKIPS = 50

COMPLETION_NOTE = "Shipment completed. All mandatory fields confirmed."

MIN_SEARCH_LENGTH = 2


@dataclass(frozen=True)
class NewShipment:
    """Everything a shipment is seeded with, whether created directly or from a quote."""

    customer_id: int
    service_type: ServiceType
    priority: ShipmentPriority
    origin: dict
    destination: dict
    dimensions: dict
    description: str
    deadline: datetime
    agreed_price: CurrencyAmount
    shipment_number: str | None = None
    awb_number: str | None = None
    customer_reference: str | None = None
    special_instructions: str | None = None
    courier_instructions: str | None = None
    courier_id: int | None = None
    partner_id: int | None = None
    partner_reference: str | None = None
    routing: dict | None = None
    quote_id: int | None = None


@dataclass
class ShipmentView:
    shipment: Shipment
    sla: SlaSnapshot


@dataclass
class TransitionResult:
    shipment: Shipment
    sla: SlaSnapshot
    history_entry: ShipmentStatusHistory
    tasks: list[ShipmentTask] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class OverdueShipment:
    shipment: Shipment
    overdue_hours: int


@dataclass(frozen=True)
class ShipmentFilter:
    statuses: tuple[ShipmentStatus, ...] = ()
    service_types: tuple[ServiceType, ...] = ()
    priorities: tuple[ShipmentPriority, ...] = ()
    sla_statuses: tuple[SlaStatus, ...] = ()
    customer_id: int | None = None
    courier_id: int | None = None
    partner_id: int | None = None
    origin_countries: tuple[str, ...] = ()
    destination_countries: tuple[str, ...] = ()
    created_from: datetime | None = None
    created_to: datetime | None = None
    search: str | None = None
    include_completed: bool = True


@dataclass
class ShipmentPage:
    items: list[ShipmentView]
    total: int


class ShipmentLifecycleService:
    def __init__(
        self,
        db: Session,
        *,
        clock: Clock = utc_now,
        task_generator: AutomaticTaskGenerator | None = None,
    ):
        self.db = db
        self.clock = clock
        self.ledger = StatusHistoryLedger(db)
        self.audit = AuditLogWriter(db)
        self.task_generator = task_generator or AutomaticTaskGenerator(db)

    # ------------------------------------------------------------------
    # loading and snapshots
    # ------------------------------------------------------------------
    def _load(self, shipment_id: int, *, for_update: bool = False) -> Shipment:
        stmt = select(Shipment).where(Shipment.id == shipment_id)
        if for_update:
            stmt = stmt.with_for_update()
        shipment = self.db.execute(stmt).scalar_one_or_none()
        if shipment is None or shipment.deleted_at is not None:
            raise NotFound("Shipment", shipment_id)
        return shipment

    @staticmethod
    def classify(
        deadline: datetime,
        status: ShipmentStatus | str,
        closed_at: datetime | None,
        now: datetime,
    ) -> SlaSnapshot:
        # A closed shipment keeps the verdict it had when it closed. Open
        # statuses reached after delivery (document) run against the clock.
        at = now
        if closed_at is not None and ShipmentStatus(status) in CLOSED_STATUSES:
            at = closed_at
        return sla_classifier.classify(
            deadline,
            status,
            at,
            settings.SLA_WARNING_THRESHOLD_HOURS,
        )

    def view(self, shipment: Shipment, now: datetime | None = None) -> ShipmentView:
        now = now or self.clock()
        return ShipmentView(
            shipment=shipment,
            sla=self.classify(
                shipment.deadline, shipment.current_status, shipment.closed_at, now
            ),
        )

    def stored_sla(self, shipment: Shipment) -> SlaSnapshot:
        return SlaSnapshot(
            deadline=shipment.deadline,
            status=SlaStatus(shipment.sla_status),
            remaining_hours=shipment.sla_remaining_hours,
        )

    def emit_tasks(
        self,
        shipment: Shipment,
        status: ShipmentStatus,
        transition_at: datetime,
        actor: str,
    ):
        return self.task_generator.generate(
            shipment_id=shipment.id,
            new_status=status,
            service_type=shipment.service_type,
            transition_at=transition_at,
            actor=actor,
        )

    # ------------------------------------------------------------------
    # creation
    # ------------------------------------------------------------------
    def _number_taken(self, shipment_number: str) -> bool:
        return (
            self.db.execute(
                select(Shipment.id).where(Shipment.shipment_number == shipment_number)
            ).first()
            is not None
        )

    def _allocate_number(self, service_type: ServiceType, now: datetime) -> str:
        """
        Draw the next free number from the range. Numbers already taken by an
        explicitly numbered shipment are skipped so the range moves past them.
        """
        for _ in range(_MAX_NUMBER_SKIPS):
            candidate = NumberRangeService.get_next_number(
                self.db, SHIPMENT_CATEGORY, service_type.value, at=now
            )
            if not self._number_taken(candidate):
                return candidate
            logger.warning(
                "shipment_number_skipped number=%s service_type=%s reason=already_in_use",
                candidate,
                service_type.value,
            )
        raise PreconditionFailed(
            "No free shipment number could be allocated; check the number range.",
            service_type=service_type.value,
            attempts=_MAX_NUMBER_SKIPS,
        )

    def initialize(
        self,
        new: NewShipment,
        *,
        actor: str,
        now: datetime,
        note: str,
        history_metadata: dict | None = None,
    ) -> tuple[Shipment, ShipmentStatusHistory]:
        """
        Seed a shipment in the initial status with its first SLA and next
        action, plus the synthetic creation history entry. Does not commit;
        the caller owns the unit of work.
        """
        shipment_number = new.shipment_number
        if shipment_number:
            if self._number_taken(shipment_number):
                raise ValidationFailed(
                    "shipment_number", f"Shipment number {shipment_number} already exists."
                )
        else:
            shipment_number = self._allocate_number(ServiceType(new.service_type), now)

        sla = self.classify(new.deadline, INITIAL_STATUS, None, now)
        next_task = next_action.plan(INITIAL_STATUS, new.priority, sla, now)

        shipment = Shipment(
            shipment_number=shipment_number,
            awb_number=new.awb_number,
            customer_id=new.customer_id,
            customer_reference=new.customer_reference,
            service_type=ServiceType(new.service_type).value,
            priority=ShipmentPriority(new.priority).value,
            current_status=INITIAL_STATUS.value,
            origin=new.origin,
            destination=new.destination,
            dimensions=new.dimensions,
            routing=new.routing,
            description=new.description.strip(),
            special_instructions=new.special_instructions,
            courier_instructions=new.courier_instructions,
            deadline=new.deadline,
            sla_status=sla.status.value,
            sla_remaining_hours=sla.remaining_hours,
            next_task_description=next_task.description if next_task else None,
            next_task_due_date=next_task.due_date if next_task else None,
            next_task_priority=next_task.priority.value if next_task else None,
            agreed_price_amount=new.agreed_price.amount,
            agreed_price_currency=new.agreed_price.currency,
            courier_id=new.courier_id,
            partner_id=new.partner_id,
            partner_reference=new.partner_reference,
            quote_id=new.quote_id,
            created_by=actor,
            last_changed_by=actor,
        )
        self.db.add(shipment)
        self.db.flush()

        entry = self.ledger.append(
            shipment_id=shipment.id,
            status=INITIAL_STATUS,
            timestamp=now,
            actor=actor,
            notes=note,
            metadata=history_metadata,
        )
        return shipment, entry

    def create_shipment(self, payload: ShipmentCreate, *, actor: str = SYSTEM_ACTOR) -> TransitionResult:
        now = self.clock()
        try:
            validate_shipment_create(payload, now)
            require_customer(self.db, payload.customer_id)
            if payload.courier_id is not None:
                require_courier(self.db, payload.courier_id)
            if payload.partner_id is not None:
                require_partner(self.db, payload.partner_id)

            new = NewShipment(
                customer_id=payload.customer_id,
                service_type=payload.service_type,
                priority=payload.priority,
                origin=payload.origin.model_dump(mode="json"),
                destination=payload.destination.model_dump(mode="json"),
                dimensions=payload.dimensions.model_dump(mode="json"),
                description=payload.description,
                deadline=payload.deadline,
                agreed_price=payload.agreed_price,
                shipment_number=payload.shipment_number,
                awb_number=payload.awb_number,
                customer_reference=payload.customer_reference,
                special_instructions=payload.special_instructions,
                courier_instructions=payload.courier_instructions,
                courier_id=payload.courier_id,
                partner_id=payload.partner_id,
                partner_reference=payload.partner_reference,
                routing=payload.routing.model_dump(mode="json") if payload.routing else None,
            )
            shipment, entry = self.initialize(
                new, actor=actor, now=now, note="Shipment created"
            )
            self.audit.record(
                action="shipment_created",
                entity_type="shipment",
                entity_id=shipment.id,
                entity_title=shipment.shipment_number,
                user_email=actor,
                description=f"Shipment {shipment.shipment_number} created",
                metadata={"service_type": shipment.service_type},
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ValidationFailed(
                "shipment_number", "Shipment number is already in use."
            ) from exc
        except Exception:
            self.db.rollback()
            raise

        flow_info(
            logger,
            "shipment_created shipment_id=%s number=%s service_type=%s actor=%s",
            shipment.id,
            shipment.shipment_number,
            shipment.service_type,
            actor,
            category="shipment",
        )
        report = self.emit_tasks(shipment, INITIAL_STATUS, now, actor)
        return TransitionResult(
            shipment=shipment,
            sla=self.stored_sla(shipment),
            history_entry=entry,
            tasks=report.tasks,
            warnings=report.failures,
        )

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get_shipment(self, shipment_id: int) -> ShipmentView:
        """Fresh SLA for the caller; the stored snapshot is left untouched."""
        return self.view(self._load(shipment_id))

    def list_history(
        self, shipment_id: int, *, descending: bool = False
    ) -> list[ShipmentStatusHistory]:
        self._load(shipment_id)
        return self.ledger.read_all(shipment_id, descending=descending)

    def list_overdue(self, *, limit: int = 100) -> list[OverdueShipment]:
        now = self.clock()
        stmt = (
            select(Shipment)
            .where(Shipment.deleted_at.is_(None))
            .where(Shipment.current_status.notin_([s.value for s in CLOSED_STATUSES]))
            .where(Shipment.deadline < now)
            .order_by(Shipment.deadline.asc(), Shipment.id.asc())
            .limit(limit)
        )
        rows = []
        for shipment in self.db.execute(stmt).scalars():
            sla = self.classify(shipment.deadline, shipment.current_status, shipment.closed_at, now)
            if sla.status != SlaStatus.OVERDUE:
                continue
            rows.append(
                OverdueShipment(
                    shipment=shipment,
                    overdue_hours=sla_classifier.overdue_hours(shipment.deadline, now),
                )
            )
        return rows

    def _filtered(self, filters: ShipmentFilter):
        stmt = select(Shipment).where(Shipment.deleted_at.is_(None))
        if filters.statuses:
            stmt = stmt.where(Shipment.current_status.in_(sorted(s.value for s in filters.statuses)))
        if filters.service_types:
            stmt = stmt.where(Shipment.service_type.in_(sorted(s.value for s in filters.service_types)))
        if filters.priorities:
            stmt = stmt.where(Shipment.priority.in_(sorted(p.value for p in filters.priorities)))
        if filters.customer_id is not None:
            stmt = stmt.where(Shipment.customer_id == filters.customer_id)
        if filters.courier_id is not None:
            stmt = stmt.where(Shipment.courier_id == filters.courier_id)
        if filters.partner_id is not None:
            stmt = stmt.where(Shipment.partner_id == filters.partner_id)
        if filters.origin_countries:
            stmt = stmt.where(
                func.upper(Shipment.origin["country"].as_string()).in_(
                    sorted(c.upper() for c in filters.origin_countries)
                )
            )
        if filters.destination_countries:
            stmt = stmt.where(
                func.upper(Shipment.destination["country"].as_string()).in_(
                    sorted(c.upper() for c in filters.destination_countries)
                )
            )
        if filters.created_from is not None:
            stmt = stmt.where(Shipment.created_at >= filters.created_from)
        if filters.created_to is not None:
            stmt = stmt.where(Shipment.created_at <= filters.created_to)
        if not filters.include_completed:
            stmt = stmt.where(Shipment.current_status.notin_(sorted(s.value for s in INACTIVE_STATUSES)))
        term = (filters.search or "").strip()
        if term:
            pattern = f"%{term}%"
            stmt = stmt.where(
                or_(
                    Shipment.shipment_number.ilike(pattern),
                    Shipment.awb_number.ilike(pattern),
                    Shipment.customer_reference.ilike(pattern),
                    Shipment.description.ilike(pattern),
                    Shipment.partner_reference.ilike(pattern),
                )
            )
        return stmt

    def list_shipments(
        self,
        filters: ShipmentFilter | None = None,
        *,
        skip: int = 0,
        limit: int = 50,
        descending: bool = True,
    ) -> ShipmentPage:
        """
        Newest first by default. The SLA filter runs on the freshly classified
        verdict, so it is applied after loading and before paging.
        """
        filters = filters or ShipmentFilter()
        now = self.clock()
        order = (
            (Shipment.created_at.desc(), Shipment.id.desc())
            if descending
            else (Shipment.created_at.asc(), Shipment.id.asc())
        )
        stmt = self._filtered(filters).order_by(*order)

        if not filters.sla_statuses:
            total = self.db.execute(
                select(func.count()).select_from(stmt.order_by(None).subquery())
            ).scalar_one()
            rows = self.db.execute(stmt.offset(skip).limit(limit)).scalars().all()
            return ShipmentPage(items=[self.view(s, now) for s in rows], total=total)

        wanted = set(filters.sla_statuses)
        views = [self.view(s, now) for s in self.db.execute(stmt).scalars()]
        views = [v for v in views if v.sla.status in wanted]
        return ShipmentPage(items=views[skip : skip + limit], total=len(views))

    def search_shipments(
        self, term: str, *, limit: int = 20, include_completed: bool = True
    ) -> list[ShipmentView]:
        if len((term or "").strip()) < MIN_SEARCH_LENGTH:
            return []
        page = self.list_shipments(
            ShipmentFilter(search=term, include_completed=include_completed), limit=limit
        )
        return page.items

    def list_for_customer(
        self, customer_id: int, *, limit: int = 20, include_completed: bool = True
    ) -> list[ShipmentView]:
        if self.db.get(CustomerMaster, customer_id) is None:
            raise NotFound("Customer", customer_id)
        page = self.list_shipments(
            ShipmentFilter(customer_id=customer_id, include_completed=include_completed),
            limit=limit,
        )
        return page.items

    def list_for_courier(
        self, courier_id: int, *, limit: int = 20, include_completed: bool = False
    ) -> list[ShipmentView]:
        if self.db.get(Courier, courier_id) is None:
            raise NotFound("Courier", courier_id)
        page = self.list_shipments(
            ShipmentFilter(courier_id=courier_id, include_completed=include_completed),
            limit=limit,
        )
        return page.items

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------
    def transition(
        self,
        shipment_id: int,
        target_status: ShipmentStatus | str,
        *,
        actor: str = SYSTEM_ACTOR,
        location: str | None = None,
        notes: str | None = None,
        metadata: StatusUpdateMetadata | None = None,
    ) -> TransitionResult:
        return self._run_transition(
            shipment_id,
            target_status,
            actor=actor,
            location=location,
            notes=notes,
            metadata=metadata,
        )

    def complete_shipment(
        self,
        shipment_id: int,
        confirmations: CompletionConfirmations,
        *,
        actor: str = SYSTEM_ACTOR,
        notes: str | None = None,
    ) -> TransitionResult:
        """
        Close out a delivered shipment (Abschluss): the mandatory fields and
        the operator's confirmations are checked under the row lock, then the
        shipment moves to document like any other transition.
        """
        return self._run_transition(
            shipment_id,
            ShipmentStatus.DOCUMENT,
            actor=actor,
            notes=notes or COMPLETION_NOTE,
            precheck=lambda shipment: validate_completion(shipment, confirmations),
            history_extra={"confirmations": confirmations.model_dump(exclude_none=True)},
            audit_action="shipment_completed",
        )

    def _run_transition(
        self,
        shipment_id: int,
        target_status: ShipmentStatus | str,
        *,
        actor: str,
        location: str | None = None,
        notes: str | None = None,
        metadata: StatusUpdateMetadata | None = None,
        precheck: Callable[[Shipment], None] | None = None,
        history_extra: dict | None = None,
        audit_action: str = "status_changed",
    ) -> TransitionResult:
        now = self.clock()
        meta = metadata or StatusUpdateMetadata()
        target_label = (
            target_status.value
            if isinstance(target_status, ShipmentStatus)
            else str(target_status)
        )
        try:
            shipment = self._load(shipment_id, for_update=True)
            previous_status = ShipmentStatus(shipment.current_status)
            target = ensure_transition_allowed(previous_status, target_status)

            validate_status_update(
                shipment, location=location, notes=notes, metadata=meta, now=now
            )
            if meta.courier_assigned is not None:
                require_courier(self.db, meta.courier_assigned)
            if meta.new_deadline is not None and (
                shipment.closed_at is not None or target in CLOSED_STATUSES
            ):
                raise PreconditionFailed(
                    "The deadline of a closed shipment cannot be changed.",
                    shipment_id=shipment_id,
                    current_status=previous_status.value,
                    target_status=target.value,
                )
            if precheck is not None:
                precheck(shipment)

            old_deadline = shipment.deadline
            deadline = meta.new_deadline or old_deadline
            closed_at = shipment.closed_at
            if closed_at is None and target in CLOSED_STATUSES:
                closed_at = now

            sla = self.classify(deadline, target, closed_at, now)
            next_task = next_action.plan(target, shipment.priority, sla, now)

            ShipmentStatusPatch(
                status=target,
                sla=sla,
                next_task=next_task,
                actor=actor,
                completed_at=now if target in COMPLETION_STATUSES else None,
                closed_at=closed_at,
                actual_costs=meta.actual_costs,
                courier_id=meta.courier_assigned,
            ).apply_to(shipment)
            self.db.flush()

            history_metadata = meta.model_dump(mode="json", exclude_none=True)
            history_metadata["previous_status"] = previous_status.value
            if meta.new_deadline is not None:
                history_metadata["deadline_change"] = {
                    "old": old_deadline.isoformat(),
                    "new": deadline.isoformat(),
                }
            if history_extra:
                history_metadata.update(history_extra)
            entry = self.ledger.append(
                shipment_id=shipment.id,
                status=target,
                timestamp=now,
                actor=actor,
                location=location,
                notes=notes,
                metadata=history_metadata,
            )
            self.audit.record(
                action=audit_action,
                entity_type="shipment",
                entity_id=shipment.id,
                entity_title=shipment.shipment_number,
                user_email=actor,
                description=f"Status changed from {previous_status.value} to {target.value}",
                metadata={"from": previous_status.value, "to": target.value},
            )
            self.db.commit()
        except StaleDataError as exc:
            self.db.rollback()
            current = self.db.get(Shipment, shipment_id)
            if current is not None and not is_transition_allowed(current.current_status, target_status):
                raise InvalidTransition(current.current_status, target_label) from exc
            raise PreconditionFailed(
                "Shipment was modified concurrently; reload and retry.",
                shipment_id=shipment_id,
            ) from exc
        except Exception:
            self.db.rollback()
            raise

        flow_info(
            logger,
            "shipment_transition shipment_id=%s from=%s to=%s actor=%s",
            shipment_id,
            previous_status.value,
            target.value,
            actor,
            category="shipment",
        )
        report = self.emit_tasks(shipment, target, now, actor)
        return TransitionResult(
            shipment=shipment,
            sla=sla,
            history_entry=entry,
            tasks=report.tasks,
            warnings=report.failures,
        )

    # ------------------------------------------------------------------
    # edits without a status change
    # ------------------------------------------------------------------
    def assign_courier(
        self,
        shipment_id: int,
        courier_id: int,
        *,
        actor: str = SYSTEM_ACTOR,
        instructions: str | None = None,
    ) -> ShipmentView:
        now = self.clock()
        try:
            shipment = self._load(shipment_id, for_update=True)
            if shipment.current_status in {s.value for s in EDIT_LOCKED_STATUSES}:
                raise PreconditionFailed(
                    f"Cannot assign a courier to a shipment in status {shipment.current_status}.",
                    shipment_id=shipment_id,
                    current_status=shipment.current_status,
                )
            check_length("courier_instructions", instructions)
            courier = require_courier(self.db, courier_id)

            CourierAssignmentPatch(
                courier_id=courier.id,
                courier_instructions=instructions,
                actor=actor,
            ).apply_to(shipment)
            self.db.flush()

            self.ledger.append(
                shipment_id=shipment.id,
                status=shipment.current_status,
                timestamp=now,
                actor=actor,
                notes=f"Courier assigned: {courier.name}",
                metadata={"courier_assigned": courier.id, "courier_name": courier.name},
            )
            self.audit.record(
                action="courier_assigned",
                entity_type="shipment",
                entity_id=shipment.id,
                entity_title=shipment.shipment_number,
                user_email=actor,
                description=f"Courier {courier.name} assigned",
                metadata={"courier_id": courier.id},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        flow_info(
            logger,
            "shipment_courier_assigned shipment_id=%s courier_id=%s actor=%s",
            shipment_id,
            courier_id,
            actor,
            category="shipment",
        )
        return self.view(shipment, now)

    def change_priority(
        self,
        shipment_id: int,
        priority: ShipmentPriority | str,
        *,
        actor: str = SYSTEM_ACTOR,
    ) -> ShipmentView:
        now = self.clock()
        new_priority = ShipmentPriority(priority)
        try:
            shipment = self._load(shipment_id, for_update=True)
            if shipment.current_status in {s.value for s in EDIT_LOCKED_STATUSES}:
                raise PreconditionFailed(
                    f"Cannot change priority of a shipment in status {shipment.current_status}.",
                    shipment_id=shipment_id,
                    current_status=shipment.current_status,
                )
            previous = shipment.priority
            sla = self.classify(shipment.deadline, shipment.current_status, shipment.closed_at, now)
            next_task = next_action.plan(shipment.current_status, new_priority, sla, now)

            PriorityPatch(
                priority=new_priority, sla=sla, next_task=next_task, actor=actor
            ).apply_to(shipment)
            self.audit.record(
                action="priority_changed",
                entity_type="shipment",
                entity_id=shipment.id,
                entity_title=shipment.shipment_number,
                user_email=actor,
                description=f"Priority changed from {previous} to {new_priority.value}",
                metadata={"from": previous, "to": new_priority.value},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return ShipmentView(shipment=shipment, sla=sla)

    def update_details(
        self,
        shipment_id: int,
        changes: ShipmentDetailsUpdate,
        *,
        actor: str = SYSTEM_ACTOR,
    ) -> ShipmentView:
        now = self.clock()
        try:
            shipment = self._load(shipment_id, for_update=True)
            if shipment.current_status in {s.value for s in EDIT_LOCKED_STATUSES}:
                raise PreconditionFailed(
                    f"Shipment in status {shipment.current_status} can no longer be edited.",
                    shipment_id=shipment_id,
                    current_status=shipment.current_status,
                )
            validate_details_update(changes, now)
            if changes.partner_id is not None:
                require_partner(self.db, changes.partner_id)

            values = {}
            for name in changes.model_fields_set:
                if name == "deadline":
                    continue
                value = getattr(changes, name)
                if name in {"origin", "destination", "dimensions", "routing"} and value is not None:
                    value = value.model_dump(mode="json")
                if value is None and name in {"description", "origin", "destination", "dimensions"}:
                    raise ValidationFailed(name, f"{name} cannot be cleared.")
                if name == "description":
                    value = value.strip()
                values[name] = value

            sla = next_task = None
            if changes.deadline is not None and changes.deadline != shipment.deadline:
                if shipment.closed_at is not None:
                    raise PreconditionFailed(
                        "The deadline of a closed shipment cannot be changed.",
                        shipment_id=shipment_id,
                        current_status=shipment.current_status,
                    )
                sla = self.classify(changes.deadline, shipment.current_status, shipment.closed_at, now)
                next_task = next_action.plan(shipment.current_status, shipment.priority, sla, now)

            patch = ShipmentDetailsPatch(actor=actor, sla=sla, next_task=next_task, **values)
            patch.apply_to(shipment)
            changed = patch.changed_fields() + (["deadline"] if sla is not None else [])
            self.audit.record(
                action="shipment_updated",
                entity_type="shipment",
                entity_id=shipment.id,
                entity_title=shipment.shipment_number,
                user_email=actor,
                description="Shipment details updated",
                metadata={"fields": changed},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self.view(shipment, now)

    # ------------------------------------------------------------------
    # deletion
    # ------------------------------------------------------------------
    def delete_shipment(self, shipment_id: int, *, actor: str = SYSTEM_ACTOR) -> None:
        now = self.clock()
        try:
            shipment = self._load(shipment_id, for_update=True)
            if shipment.current_status not in {s.value for s in DELETABLE_STATUSES}:
                raise PreconditionFailed(
                    f"Shipment in status {shipment.current_status} cannot be deleted; "
                    f"only quoted or cancelled shipments can.",
                    shipment_id=shipment_id,
                    current_status=shipment.current_status,
                )
            invoice_count = count_invoices_for_shipment(self.db, shipment.id)
            if invoice_count:
                raise PreconditionFailed(
                    "Shipment is referenced by invoices and cannot be deleted.",
                    shipment_id=shipment_id,
                    invoice_count=invoice_count,
                )

            purged = self.ledger.purge_for_shipment(shipment.id)
            SoftDeletePatch(deleted_at=now, deleted_by=actor).apply_to(shipment)
            self.audit.record(
                action="shipment_deleted",
                entity_type="shipment",
                entity_id=shipment.id,
                entity_title=shipment.shipment_number,
                user_email=actor,
                description=f"Shipment {shipment.shipment_number} deleted",
                metadata={"history_entries_purged": purged},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        flow_info(
            logger,
            "shipment_deleted shipment_id=%s purged_history=%s actor=%s",
            shipment_id,
            purged,
            actor,
            category="shipment",
        )
