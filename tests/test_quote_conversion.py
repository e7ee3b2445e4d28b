from __future__ import annotations

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from obcflow.core.errors import (
    AlreadyConverted,
    NotFound,
    PreconditionFailed,
    ReferenceIntegrityFailed,
)
from obcflow.models.audit_log import AuditLog
from obcflow.models.quote import Quote
from obcflow.models.shipment import Shipment
from obcflow.services.quote_conversion_service import QuoteConversionService, can_convert
from obcflow.services.shipment_lifecycle_service import ShipmentLifecycleService

from factories import NOW, FakeClock, make_quote, seed_masters, shipment_payload


def _service(db):
    return QuoteConversionService(db, clock=FakeClock())


def _shipment_count(db) -> int:
    return len(db.execute(select(Shipment.id)).all())


def test_accepted_quote_becomes_a_quoted_shipment(db_session):
    seed_masters(db_session)
    make_quote(db_session)

    result = _service(db_session).convert(1, actor="sales@example.com")
    shipment = result.shipment

    assert shipment.shipment_number == "NFO-2026-00001"
    assert shipment.current_status == "quoted"
    assert shipment.quote_id == 1
    assert shipment.customer_id == 1
    assert shipment.priority == "urgent"
    assert shipment.partner_id == 1
    assert shipment.routing["flight_number"] == "LH728"
    assert shipment.dimensions["pieces"] == 2
    assert float(shipment.agreed_price_amount) == 9800
    assert shipment.agreed_price_currency == "EUR"
    assert shipment.created_by == "sales@example.com"

    assert result.history_entry.notes == "Shipment created from quote Q-00001"
    assert result.history_entry.metadata_json == {"quote_id": 1, "quote_number": "Q-00001"}
    assert [t.title for t in result.tasks] == ["Check flight capacity"]

    db_session.expire_all()
    quote = db_session.get(Quote, 1)
    assert quote.converted_to_shipment_id == shipment.id
    assert quote.converted_at == NOW
    assert not can_convert(quote)

    audit = db_session.execute(
        select(AuditLog).where(AuditLog.action == "quote_converted")
    ).scalar_one()
    assert audit.entity_id == "1"
    assert audit.metadata_json["shipment_id"] == shipment.id


def test_second_conversion_is_rejected(db_session):
    seed_masters(db_session)
    make_quote(db_session)
    service = _service(db_session)
    first = service.convert(1)

    with pytest.raises(AlreadyConverted) as exc_info:
        service.convert(1)

    assert exc_info.value.details == {"quote_id": 1, "shipment_id": first.shipment.id}
    assert exc_info.value.status_code == 409
    assert _shipment_count(db_session) == 1


@pytest.mark.parametrize("status", ["draft", "sent", "rejected", "expired"])
def test_only_accepted_quotes_convert(db_session, status):
    seed_masters(db_session)
    make_quote(db_session, status=status)

    with pytest.raises(PreconditionFailed) as exc_info:
        _service(db_session).convert(1)

    assert exc_info.value.details["quote_status"] == status
    assert _shipment_count(db_session) == 0


def test_quote_without_price_does_not_convert(db_session):
    seed_masters(db_session)
    make_quote(db_session, total_price_amount=None, total_price_currency=None)

    with pytest.raises(PreconditionFailed):
        _service(db_session).convert(1)
    assert _shipment_count(db_session) == 0


def test_missing_or_deleted_quote_is_not_found(db_session):
    seed_masters(db_session)
    make_quote(db_session, quote_id=2, deleted_at=NOW, deleted_by="sales@example.com")

    with pytest.raises(NotFound):
        _service(db_session).convert(99)
    with pytest.raises(NotFound):
        _service(db_session).convert(2)


def test_inactive_customer_blocks_conversion(db_session):
    seed_masters(db_session)
    make_quote(db_session, customer_id=2)

    with pytest.raises(ReferenceIntegrityFailed):
        _service(db_session).convert(1)

    db_session.expire_all()
    assert db_session.get(Quote, 1).converted_to_shipment_id is None
    assert _shipment_count(db_session) == 0


def test_can_convert(db_session):
    seed_masters(db_session)
    accepted = make_quote(db_session)
    draft = make_quote(db_session, quote_id=2, status="draft")
    unpriced = make_quote(db_session, quote_id=3, total_price_amount=None)

    assert can_convert(accepted)
    assert not can_convert(draft)
    assert not can_convert(unpriced)


def _commit_elsewhere(engine, statement: str, **params) -> None:
    other = sessionmaker(bind=engine)()
    try:
        other.execute(text(statement), params)
        other.commit()
    finally:
        other.close()


def test_conversion_loses_to_a_link_committed_by_another_session(engine, db_session):
    seed_masters(db_session)
    quote = make_quote(db_session)
    assert quote.converted_to_shipment_id is None

    _commit_elsewhere(
        engine,
        "UPDATE quote SET converted_to_shipment_id = 999, version_id = version_id + 1 "
        "WHERE id = :id",
        id=1,
    )

    with pytest.raises(AlreadyConverted) as exc_info:
        _service(db_session).convert(1)

    assert exc_info.value.details == {"quote_id": 1, "shipment_id": 999}
    assert _shipment_count(db_session) == 0


def test_conversion_colliding_with_a_linked_shipment_reports_that_shipment(engine, db_session):
    seed_masters(db_session)
    make_quote(db_session)
    other_id = ShipmentLifecycleService(db_session, clock=FakeClock()).create_shipment(
        shipment_payload()
    ).shipment.id
    _commit_elsewhere(engine, "UPDATE shipment SET quote_id = 1 WHERE id = :id", id=other_id)

    with pytest.raises(AlreadyConverted) as exc_info:
        _service(db_session).convert(1)

    assert exc_info.value.details == {"quote_id": 1, "shipment_id": other_id}
    assert _shipment_count(db_session) == 1
    db_session.expire_all()
    assert db_session.get(Quote, 1).converted_to_shipment_id is None


def test_failed_commit_without_a_link_is_a_precondition_failure(db_session, monkeypatch):
    seed_masters(db_session)
    make_quote(db_session)
    service = _service(db_session)

    def _conflicting_insert(*args, **kwargs):
        raise IntegrityError("INSERT INTO shipment", {}, Exception("constraint failed"))

    monkeypatch.setattr(service.lifecycle, "initialize", _conflicting_insert)

    with pytest.raises(PreconditionFailed) as exc_info:
        service.convert(1)

    assert exc_info.value.details == {"quote_id": 1}
    db_session.expire_all()
    assert db_session.get(Quote, 1).converted_to_shipment_id is None
    assert _shipment_count(db_session) == 0


def test_conversion_skips_a_number_taken_by_a_manual_shipment(db_session):
    seed_masters(db_session)
    make_quote(db_session, service_type="OBC")
    ShipmentLifecycleService(db_session, clock=FakeClock()).create_shipment(
        shipment_payload(shipment_number="OBC-2026-00001")
    )

    result = _service(db_session).convert(1)

    assert result.shipment.shipment_number == "OBC-2026-00002"
    assert _shipment_count(db_session) == 2
