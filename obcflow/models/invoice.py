from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from obcflow.db.base import Base
from obcflow.models.mixins import AuditMixin


class Invoice(AuditMixin, Base):
    """
    Owned by the invoicing module. Only read here: a shipment referenced by
    any invoice can no longer be deleted.
    """
    __tablename__ = "invoice"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    shipment_id: Mapped[int | None] = mapped_column(ForeignKey("shipment.id"), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    amount: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
