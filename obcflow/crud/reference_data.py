"""
Existence checks against collaborator-owned master data.

The lifecycle engine never writes these tables; it only refuses to link a
shipment to a customer, courier or partner that is missing or inactive.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from obcflow.core.errors import ReferenceIntegrityFailed
from obcflow.models.courier import Courier
from obcflow.models.customer_master import CustomerMaster
from obcflow.models.invoice import Invoice
from obcflow.models.partner_master import PartnerMaster


def _require_active(db: Session, model, entity: str, entity_id: int):
    obj = db.get(model, entity_id)
    if obj is None or not obj.is_active:
        raise ReferenceIntegrityFailed(entity, entity_id)
    return obj


def require_customer(db: Session, customer_id: int) -> CustomerMaster:
    return _require_active(db, CustomerMaster, "customer", customer_id)


def require_courier(db: Session, courier_id: int) -> Courier:
    return _require_active(db, Courier, "courier", courier_id)


def require_partner(db: Session, partner_id: int) -> PartnerMaster:
    return _require_active(db, PartnerMaster, "partner", partner_id)


def count_invoices_for_shipment(db: Session, shipment_id: int) -> int:
    stmt = select(func.count(Invoice.id)).where(Invoice.shipment_id == shipment_id)
    return int(db.execute(stmt).scalar_one())
