from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from obcflow.db.base import Base
from obcflow.models.mixins import AuditMixin


class CustomerMaster(AuditMixin, Base):
    """
    Billing customer of a shipment or quote.
    Maintained by the customer module; the lifecycle engine only checks that
    a referenced customer exists and is active.
    """
    __tablename__ = "customer_master"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # e.g. 'CUST-100234'
    customer_identifier: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    legal_name: Mapped[str] = mapped_column(String(255), nullable=False)
    preferred_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Customer(id='{self.customer_identifier}')>"
