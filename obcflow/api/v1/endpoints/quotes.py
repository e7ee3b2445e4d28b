import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from obcflow.api.deps.request_identity import get_request_email
from obcflow.api.v1.endpoints.shipments import transition_response
from obcflow.core.errors import LifecycleError
from obcflow.db.session import get_db
from obcflow.schemas.quote import QuoteConversionResponse
from obcflow.services.quote_conversion_service import QuoteConversionService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/{quote_id}/convert",
    response_model=QuoteConversionResponse,
    status_code=status.HTTP_201_CREATED,
)
def convert_quote(
    quote_id: int,
    db: Session = Depends(get_db),
    user_email: str = Depends(get_request_email),
):
    """Materialize a shipment from an accepted quote. A second call answers 409."""
    try:
        result = QuoteConversionService(db).convert(quote_id, actor=user_email)
    except LifecycleError as exc:
        db.rollback()
        logger.info("quote_conversion_rejected quote_id=%s code=%s", quote_id, exc.code)
        raise HTTPException(status_code=exc.status_code, detail=exc.to_detail()) from exc
    body = transition_response(result)
    return QuoteConversionResponse(quote_id=quote_id, **body.model_dump())
