from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from obcflow.db.base import Base
from obcflow.models.mixins import AuditMixin


class Courier(AuditMixin, Base):
    """On-board courier who hand-carries OBC shipments."""
    __tablename__ = "courier"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    base_airport: Mapped[str | None] = mapped_column(String(3), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Courier(id={self.id}, name='{self.name}')>"
