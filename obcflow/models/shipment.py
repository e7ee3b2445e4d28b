from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from obcflow.db.base import Base
from obcflow.models.courier import Courier
from obcflow.models.customer_master import CustomerMaster
from obcflow.models.mixins import AuditMixin, SoftDeleteMixin
from obcflow.models.partner_master import PartnerMaster

if TYPE_CHECKING:
    from obcflow.models.quote import Quote


class Shipment(AuditMixin, SoftDeleteMixin, Base):
    """
    A single OBC/NFO job moving through quoted -> ... -> invoiced.
    current_status, the sla_* columns and the next_task_* columns are the
    snapshot written together with every transition.
    """
    __tablename__ = "shipment"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    shipment_number: Mapped[str] = mapped_column(String(30), unique=True, index=True, nullable=False)
    awb_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    customer_id: Mapped[int] = mapped_column(ForeignKey("customer_master.id"), nullable=False, index=True)
    customer_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    service_type: Mapped[str] = mapped_column(String(3), nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="standard")
    current_status: Mapped[str] = mapped_column(String(20), nullable=False, index=True, default="quoted")

    # Address / Dimensions / FlightDetails value objects
    origin: Mapped[dict] = mapped_column(JSON, nullable=False)
    destination: Mapped[dict] = mapped_column(JSON, nullable=False)
    dimensions: Mapped[dict] = mapped_column(JSON, nullable=False)
    routing: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    courier_instructions: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    deadline: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    sla_status: Mapped[str] = mapped_column(String(16), nullable=False, default="on_time")
    sla_remaining_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)

    next_task_description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    next_task_due_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_task_priority: Mapped[str | None] = mapped_column(String(16), nullable=True)

    agreed_price_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    agreed_price_currency: Mapped[str] = mapped_column(String(3), nullable=False)
    actual_costs_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    actual_costs_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    courier_id: Mapped[int | None] = mapped_column(ForeignKey("courier.id"), nullable=True)
    partner_id: Mapped[int | None] = mapped_column(ForeignKey("partner_master.id"), nullable=True)
    partner_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Lineage: at most one shipment per quote
    quote_id: Mapped[int | None] = mapped_column(ForeignKey("quote.id"), unique=True, nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # First entry into delivered/invoiced/cancelled; SLA of a closed shipment is judged here.
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    customer: Mapped["CustomerMaster"] = relationship("CustomerMaster")
    courier: Mapped["Courier"] = relationship("Courier")
    partner: Mapped["PartnerMaster"] = relationship("PartnerMaster")
    quote: Mapped["Quote"] = relationship("Quote", foreign_keys=[quote_id])

    history: Mapped[list["ShipmentStatusHistory"]] = relationship(
        "ShipmentStatusHistory",
        back_populates="shipment",
        order_by=lambda: [ShipmentStatusHistory.timestamp, ShipmentStatusHistory.id],
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Shipment(number='{self.shipment_number}', status='{self.current_status}')>"


class ShipmentStatusHistory(Base):
    """Append-only record of every status the shipment has been put into."""
    __tablename__ = "shipment_status_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    shipment_id: Mapped[int] = mapped_column(ForeignKey("shipment.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    shipment: Mapped["Shipment"] = relationship("Shipment", back_populates="history")
