from __future__ import annotations

from datetime import datetime

import pytest

from obcflow.core.config import settings
from obcflow.core.errors import PreconditionFailed
from obcflow.models.number_range import SysNumberRange
from obcflow.services.number_range_get import SHIPMENT_CATEGORY, NumberRangeService


def test_missing_range_is_created_on_first_allocation(db_session):
    number = NumberRangeService.get_next_number(
        db_session, SHIPMENT_CATEGORY, "OBC", at=datetime(2027, 1, 1)
    )
    db_session.commit()

    assert number == "OBC-2027-00001"
    ranges = NumberRangeService.list_ranges(db_session)
    assert [(r.doc_category, r.doc_type, r.current_value) for r in ranges] == [
        ("SHIPMENT", "OBC", 1)
    ]


def test_seeded_range_format_is_respected(db_session):
    db_session.add(
        SysNumberRange(
            doc_category=SHIPMENT_CATEGORY,
            doc_type="NFO",
            prefix="NF",
            current_value=104,
            padding=6,
            include_year=False,
            is_active=True,
        )
    )
    db_session.commit()

    assert NumberRangeService.get_next_number(db_session, SHIPMENT_CATEGORY, "NFO") == "NF000105"


def test_missing_range_without_auto_create_is_a_precondition_failure(db_session, monkeypatch):
    monkeypatch.setattr(settings, "NUMBER_RANGE_AUTO_CREATE", False)

    with pytest.raises(PreconditionFailed) as exc_info:
        NumberRangeService.get_next_number(db_session, SHIPMENT_CATEGORY, "OBC")
    assert exc_info.value.details == {"doc_category": "SHIPMENT", "doc_type": "OBC"}


def test_inactive_range_is_not_recreated(db_session):
    db_session.add(
        SysNumberRange(
            doc_category=SHIPMENT_CATEGORY,
            doc_type="OBC",
            prefix="OBC-",
            current_value=7,
            padding=5,
            include_year=True,
            is_active=False,
        )
    )
    db_session.commit()

    with pytest.raises(PreconditionFailed):
        NumberRangeService.get_next_number(db_session, SHIPMENT_CATEGORY, "OBC")
