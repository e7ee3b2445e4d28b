"""
Quote -> shipment conversion.

The quote row is locked, checked for an existing link and patched in the same
commit that creates the shipment. Two racing conversions therefore end with
exactly one shipment: the loser either sees the link after the lock, or trips
the unique constraints on shipment.quote_id / quote.converted_to_shipment_id
and is reported as AlreadyConverted. A failed commit without such a link is
reported as PreconditionFailed.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from obcflow.core.errors import AlreadyConverted, NotFound, PreconditionFailed
from obcflow.core.flow_logging import flow_info
from obcflow.core.lifecycle.enums import (
    INITIAL_STATUS,
    QuoteStatus,
    ServiceType,
    ShipmentPriority,
)
from obcflow.core.lifecycle.sla import utc_now
from obcflow.crud.quote import get_quote
from obcflow.crud.reference_data import require_courier, require_customer, require_partner
from obcflow.models.mixins import SYSTEM_ACTOR
from obcflow.models.quote import Quote
from obcflow.models.shipment import Shipment
from obcflow.schemas.base import CurrencyAmount
from obcflow.services.audit_writer import AuditLogWriter
from obcflow.services.shipment_lifecycle_service import (
    Clock,
    NewShipment,
    ShipmentLifecycleService,
    TransitionResult,
)
from obcflow.services.shipment_patches import QuoteConversionPatch

logger = logging.getLogger(__name__)


def can_convert(quote: Quote) -> bool:
    return (
        quote.deleted_at is None
        and quote.status == QuoteStatus.ACCEPTED.value
        and quote.converted_to_shipment_id is None
        and quote.total_price_amount is not None
    )


class QuoteConversionService:
    def __init__(
        self,
        db: Session,
        *,
        clock: Clock = utc_now,
        lifecycle: ShipmentLifecycleService | None = None,
    ):
        self.db = db
        self.clock = clock
        self.lifecycle = lifecycle or ShipmentLifecycleService(db, clock=clock)
        self.audit = AuditLogWriter(db)

    def _check_preconditions(self, quote: Quote) -> None:
        if quote.converted_to_shipment_id is not None:
            raise AlreadyConverted(quote.id, quote.converted_to_shipment_id)
        if quote.status != QuoteStatus.ACCEPTED.value:
            raise PreconditionFailed(
                f"Quote {quote.quote_number} is {quote.status}; only accepted quotes can be converted.",
                quote_id=quote.id,
                quote_status=quote.status,
            )
        if quote.total_price_amount is None or not quote.total_price_currency:
            raise PreconditionFailed(
                f"Quote {quote.quote_number} has no total price.",
                quote_id=quote.id,
            )

    @staticmethod
    def _seed_from(quote: Quote) -> NewShipment:
        """Commercial terms carried from the quote onto the new shipment."""
        return NewShipment(
            customer_id=quote.customer_id,
            customer_reference=quote.customer_reference,
            service_type=ServiceType(quote.service_type),
            priority=ShipmentPriority(quote.priority),
            origin=dict(quote.origin),
            destination=dict(quote.destination),
            dimensions=dict(quote.dimensions),
            description=quote.description,
            special_instructions=quote.special_instructions,
            deadline=quote.deadline,
            agreed_price=CurrencyAmount(
                amount=float(quote.total_price_amount),
                currency=quote.total_price_currency,
            ),
            courier_id=quote.courier_id,
            partner_id=quote.partner_id,
            routing=dict(quote.routing) if quote.routing else None,
            quote_id=quote.id,
        )

    def _existing_shipment_id(self, quote_id: int) -> int | None:
        stmt = select(Shipment.id).where(Shipment.quote_id == quote_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def _raise_conflict(self, quote_id: int, exc: Exception) -> None:
        """
        Report a failed commit by what the database now holds: a link on
        either side means another conversion won, anything else is a
        concurrent edit the caller may retry.
        """
        quote = get_quote(self.db, quote_id)
        shipment_id = quote.converted_to_shipment_id if quote is not None else None
        if shipment_id is None:
            shipment_id = self._existing_shipment_id(quote_id)
        if shipment_id is not None:
            raise AlreadyConverted(quote_id, shipment_id) from exc
        raise PreconditionFailed(
            "Quote conversion conflicted with a concurrent write; reload and retry.",
            quote_id=quote_id,
        ) from exc

    def convert(self, quote_id: int, *, actor: str = SYSTEM_ACTOR) -> TransitionResult:
        now = self.clock()
        try:
            quote = get_quote(self.db, quote_id, for_update=True)
            if quote is None or quote.deleted_at is not None:
                raise NotFound("Quote", quote_id)
            self._check_preconditions(quote)

            require_customer(self.db, quote.customer_id)
            if quote.courier_id is not None:
                require_courier(self.db, quote.courier_id)
            if quote.partner_id is not None:
                require_partner(self.db, quote.partner_id)

            shipment, entry = self.lifecycle.initialize(
                self._seed_from(quote),
                actor=actor,
                now=now,
                note=f"Shipment created from quote {quote.quote_number}",
                history_metadata={"quote_id": quote.id, "quote_number": quote.quote_number},
            )
            QuoteConversionPatch(
                converted_to_shipment_id=shipment.id,
                converted_at=now,
                actor=actor,
            ).apply_to(quote)
            self.db.flush()

            self.audit.record(
                action="quote_converted",
                entity_type="quote",
                entity_id=quote.id,
                entity_title=quote.quote_number,
                user_email=actor,
                description=f"Quote {quote.quote_number} converted to shipment {shipment.shipment_number}",
                metadata={"shipment_id": shipment.id, "shipment_number": shipment.shipment_number},
            )
            self.db.commit()
        except (IntegrityError, StaleDataError) as exc:
            self.db.rollback()
            logger.warning(
                "quote_conversion_conflict quote_id=%s error=%s", quote_id, exc.__class__.__name__
            )
            self._raise_conflict(quote_id, exc)
        except Exception:
            self.db.rollback()
            raise

        flow_info(
            logger,
            "quote_converted quote_id=%s shipment_id=%s number=%s actor=%s",
            quote_id,
            shipment.id,
            shipment.shipment_number,
            actor,
            category="quote",
        )
        report = self.lifecycle.emit_tasks(shipment, INITIAL_STATUS, now, actor)
        return TransitionResult(
            shipment=shipment,
            sla=self.lifecycle.stored_sla(shipment),
            history_entry=entry,
            tasks=report.tasks,
            warnings=report.failures,
        )
