from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from obcflow.db.base import Base


class PartnerMaster(Base):
    """
    Airline, handling agent or NFO partner selected for a shipment.
    partner_type uses strings (e.g., 'AIRLINE', 'AGENT') for flexibility.
    """
    __tablename__ = "partner_master"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # e.g. 'PRT-100234'
    partner_identifier: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    partner_type: Mapped[str] = mapped_column(String(20), nullable=False, default="AGENT")
    legal_name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[object] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[object] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
