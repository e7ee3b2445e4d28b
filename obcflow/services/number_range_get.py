from __future__ import annotations

from datetime import datetime
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from obcflow.core.config import settings
from obcflow.core.errors import PreconditionFailed
from obcflow.core.lifecycle.sla import utc_now
from obcflow.models.number_range import SysNumberRange

logger = logging.getLogger(__name__)

SHIPMENT_CATEGORY = "SHIPMENT"


class NumberRangeService:
    @staticmethod
    def _locked_range(db: Session, category: str, doc_type: str) -> SysNumberRange | None:
        # Row-level lock (SELECT ... FOR UPDATE); concurrent allocators queue here
        # until the caller commits.
        stmt = (
            select(SysNumberRange)
            .where(SysNumberRange.doc_category == category)
            .where(SysNumberRange.doc_type == doc_type)
            .where(SysNumberRange.is_active.is_(True))
            .with_for_update()
        )
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _create_default_range(db: Session, category: str, doc_type: str) -> None:
        """
        Insert the range inside a savepoint. Losing the race against another
        allocator surfaces as a unique violation on (doc_category, doc_type);
        the winner's row is then simply re-read by the caller.
        """
        try:
            with db.begin_nested():
                db.add(
                    SysNumberRange(
                        doc_category=category,
                        doc_type=doc_type,
                        prefix=f"{doc_type}-",
                        current_value=0,
                        padding=settings.NUMBER_RANGE_PADDING,
                        include_year=settings.NUMBER_RANGE_INCLUDE_YEAR,
                        is_active=True,
                    )
                )
        except IntegrityError:
            logger.info(
                "number_range_create_lost_race category=%s doc_type=%s",
                category,
                doc_type,
            )
            return
        logger.info("number_range_created category=%s doc_type=%s", category, doc_type)

    @staticmethod
    def get_next_number(
        db: Session,
        category: str,
        doc_type: str,
        *,
        at: datetime | None = None,
    ) -> str:
        """
        Atomic Read-Lock-Update to generate the next document number.
        The counter update is committed by the caller together with the
        document that consumes the number.
        """
        range_config = NumberRangeService._locked_range(db, category, doc_type)
        if range_config is None:
            if not settings.NUMBER_RANGE_AUTO_CREATE:
                raise PreconditionFailed(
                    f"No active number range found for {category} with type {doc_type}.",
                    doc_category=category,
                    doc_type=doc_type,
                )
            NumberRangeService._create_default_range(db, category, doc_type)
            range_config = NumberRangeService._locked_range(db, category, doc_type)
            if range_config is None:
                raise PreconditionFailed(
                    f"Number range for {category} with type {doc_type} is inactive.",
                    doc_category=category,
                    doc_type=doc_type,
                )

        range_config.current_value += 1

        # e.g. 105 -> '00105'
        padded_number = str(range_config.current_value).zfill(range_config.padding)
        year_str = f"{(at or utc_now()).year}-" if range_config.include_year else ""
        return f"{range_config.prefix}{year_str}{padded_number}"

    @staticmethod
    def list_ranges(db: Session) -> list[SysNumberRange]:
        stmt = select(SysNumberRange).order_by(
            SysNumberRange.doc_category, SysNumberRange.doc_type
        )
        return list(db.execute(stmt).scalars().all())
