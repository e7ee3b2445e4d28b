from pydantic import BaseModel

from .base import BaseSchema


class NumberRangeBase(BaseModel):
    doc_category: str
    doc_type: str
    prefix: str
    current_value: int = 0
    padding: int = 5
    include_year: bool = False
    is_active: bool = True


class NumberRangeResponse(NumberRangeBase, BaseSchema):
    id: int
