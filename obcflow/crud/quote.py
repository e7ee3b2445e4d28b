from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from obcflow.models.quote import Quote


def get_quote(db: Session, quote_id: int, *, for_update: bool = False) -> Quote | None:
    stmt = select(Quote).where(Quote.id == quote_id)
    if for_update:
        # A locked read must see the committed row, not a stale identity-map copy.
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one_or_none()
