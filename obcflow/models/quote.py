from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from obcflow.db.base import Base
from obcflow.models.customer_master import CustomerMaster
from obcflow.models.mixins import AuditMixin, SoftDeleteMixin


class Quote(AuditMixin, SoftDeleteMixin, Base):
    """
    Commercial offer owned by the quote module.
    converted_to_shipment_id is written exactly once, by quote conversion.
    """
    __tablename__ = "quote"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    quote_number: Mapped[str] = mapped_column(String(30), unique=True, index=True, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")

    customer_id: Mapped[int] = mapped_column(ForeignKey("customer_master.id"), nullable=False, index=True)
    customer_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    service_type: Mapped[str] = mapped_column(String(3), nullable=False)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="standard")

    origin: Mapped[dict] = mapped_column(JSON, nullable=False)
    destination: Mapped[dict] = mapped_column(JSON, nullable=False)
    dimensions: Mapped[dict] = mapped_column(JSON, nullable=False)
    routing: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    deadline: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    courier_id: Mapped[int | None] = mapped_column(ForeignKey("courier.id"), nullable=True)
    partner_id: Mapped[int | None] = mapped_column(ForeignKey("partner_master.id"), nullable=True)

    total_price_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    total_price_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    # Plain column, not a FK: shipment.quote_id already points the other way.
    converted_to_shipment_id: Mapped[int | None] = mapped_column(Integer, unique=True, nullable=True)
    converted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    customer: Mapped["CustomerMaster"] = relationship("CustomerMaster")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Quote(number='{self.quote_number}', status='{self.status}')>"
