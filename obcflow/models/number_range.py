from sqlalchemy import BigInteger, Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from obcflow.db.base import Base


class SysNumberRange(Base):
    __tablename__ = "sys_number_ranges"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # High-level category: 'SHIPMENT', 'QUOTE'
    doc_category: Mapped[str] = mapped_column(String(20), nullable=False)

    # Sub-sequence inside the category, e.g. the service type 'OBC' / 'NFO'
    doc_type: Mapped[str] = mapped_column(String(20), nullable=False)

    prefix: Mapped[str] = mapped_column(String(10), nullable=False)  # e.g., 'OBC-'
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    padding: Mapped[int] = mapped_column(Integer, nullable=False, default=5)  # e.g., 5 -> 00001

    include_year: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # One sequence per category/type pair
    __table_args__ = (
        UniqueConstraint("doc_category", "doc_type", name="uix_category_type"),
    )
