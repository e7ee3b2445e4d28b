from obcflow.core.config import settings
from obcflow.core.lifecycle.enums import ServiceType
from obcflow.db.session import SessionLocal
from obcflow.models.number_range import SysNumberRange
from obcflow.services.number_range_get import SHIPMENT_CATEGORY


def _ensure_range(db, category: str, doc_type: str, prefix: str) -> bool:
    existing = (
        db.query(SysNumberRange)
        .filter(SysNumberRange.doc_category == category)
        .filter(SysNumberRange.doc_type == doc_type)
        .first()
    )
    if existing:
        return False
    db.add(
        SysNumberRange(
            doc_category=category,
            doc_type=doc_type,
            prefix=prefix,
            current_value=0,
            padding=settings.NUMBER_RANGE_PADDING,
            include_year=settings.NUMBER_RANGE_INCLUDE_YEAR,
            is_active=True,
        )
    )
    return True


def main():
    db = SessionLocal()
    try:
        created = 0
        for service_type in ServiceType:
            if _ensure_range(db, SHIPMENT_CATEGORY, service_type.value, f"{service_type.value}-"):
                created += 1
        db.commit()
        print(f"Seed complete. Added {created} ranges.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
