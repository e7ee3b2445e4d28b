from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from obcflow.db.session import get_db
from obcflow.schemas.number_range import NumberRangeResponse
from obcflow.services.number_range_get import NumberRangeService

# We use a prefix to group all sequence-related settings
router = APIRouter(
    prefix="/api/v1/sys-number-ranges",
    tags=["System Settings - Number Ranges"],
)


@router.get("", response_model=list[NumberRangeResponse])
def fetch_all_ranges(db: Session = Depends(get_db)):
    """List all configured sequences, e.g. the shipment ranges per service type."""
    return NumberRangeService.list_ranges(db)
