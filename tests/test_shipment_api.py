from __future__ import annotations

from datetime import timedelta

from obcflow.core.config import settings
from obcflow.core.lifecycle.sla import utc_now
from obcflow.models.invoice import Invoice
from obcflow.models.shipment import Shipment

from factories import make_quote, seed_masters, shipment_json


def _create(client, **overrides):
    payload = shipment_json(utc_now() + timedelta(hours=72), **overrides)
    r = client.post("/api/v1/shipments", json=payload, headers={"X-User-Email": "Ops@Example.com"})
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "up"}


def test_create_and_read_shipment(client, db_session):
    seed_masters(db_session)

    body = _create(client)
    shipment = body["shipment"]
    assert shipment["current_status"] == "quoted"
    assert shipment["shipment_number"].startswith("OBC-")
    assert shipment["sla"]["status"] == "on_time"
    assert shipment["next_task"]["description"] == "Follow up on quote with customer"
    assert shipment["created_by"] == "ops@example.com"
    assert body["history_entry"]["status"] == "quoted"
    assert body["tasks"][0]["title"] == "Check courier availability"
    assert body["tasks"][0]["task_type"] == "automatic"
    assert body["warnings"] == []

    r = client.get(f"/api/v1/shipments/{shipment['id']}")
    assert r.status_code == 200
    assert r.json()["agreed_price"] == {"amount": 4200.0, "currency": "EUR"}


def test_unknown_shipment_is_404(client, db_session):
    r = client.get("/api/v1/shipments/404")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "NOT_FOUND"


def test_create_with_inactive_customer_is_400(client, db_session):
    seed_masters(db_session)
    payload = shipment_json(utc_now() + timedelta(hours=72), customer_id=2)

    r = client.post("/api/v1/shipments", json=payload)

    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "REFERENCE_INTEGRITY_FAILED"


def test_create_with_past_deadline_is_422(client, db_session):
    seed_masters(db_session)
    payload = shipment_json(utc_now() - timedelta(hours=1))

    r = client.post("/api/v1/shipments", json=payload)

    assert r.status_code == 422
    assert r.json()["detail"] == {
        "code": "VALIDATION_FAILED",
        "message": "deadline must be in the future.",
        "field": "deadline",
    }


def test_status_update_and_history(client, db_session):
    seed_masters(db_session)
    shipment_id = _create(client)["shipment"]["id"]

    r = client.post(
        f"/api/v1/shipments/{shipment_id}/status",
        json={"status": "booked", "notes": "Courier confirmed", "metadata": {"courier_assigned": 1}},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["shipment"]["current_status"] == "booked"
    assert body["shipment"]["courier_id"] == 1
    assert body["history_entry"]["metadata"]["previous_status"] == "quoted"
    assert [t["title"] for t in body["tasks"]] == ["Book courier flight", "Send booking confirmation"]

    r = client.post(f"/api/v1/shipments/{shipment_id}/status", json={"status": "delivered"})
    assert r.status_code == 409
    detail = r.json()["detail"]
    assert detail["code"] == "INVALID_TRANSITION"
    assert detail["current_status"] == "booked"
    assert detail["target_status"] == "delivered"

    r = client.get(f"/api/v1/shipments/{shipment_id}/history")
    assert [e["status"] for e in r.json()] == ["quoted", "booked"]
    r = client.get(f"/api/v1/shipments/{shipment_id}/history", params={"order": "desc"})
    assert [e["status"] for e in r.json()] == ["booked", "quoted"]


def test_status_update_rejects_unknown_metadata_keys(client, db_session):
    seed_masters(db_session)
    shipment_id = _create(client)["shipment"]["id"]

    r = client.post(
        f"/api/v1/shipments/{shipment_id}/status",
        json={"status": "booked", "metadata": {"gate": "B12"}},
    )
    assert r.status_code == 422


def test_assign_courier_priority_and_details(client, db_session):
    seed_masters(db_session)
    shipment_id = _create(client)["shipment"]["id"]

    r = client.post(f"/api/v1/shipments/{shipment_id}/assign-courier", json={"courier_id": 1})
    assert r.status_code == 200
    assert r.json()["courier_id"] == 1

    r = client.patch(f"/api/v1/shipments/{shipment_id}/priority", json={"priority": "critical"})
    assert r.status_code == 200
    assert r.json()["priority"] == "critical"

    r = client.patch(f"/api/v1/shipments/{shipment_id}", json={"customer_reference": "PO-7781"})
    assert r.status_code == 200
    assert r.json()["customer_reference"] == "PO-7781"

    r = client.patch(f"/api/v1/shipments/{shipment_id}", json={"current_status": "invoiced"})
    assert r.status_code == 422


def test_delete_rules(client, db_session):
    seed_masters(db_session)
    deletable = _create(client)["shipment"]["id"]
    active = _create(client)["shipment"]["id"]
    client.post(f"/api/v1/shipments/{active}/status", json={"status": "booked"})

    r = client.delete(f"/api/v1/shipments/{deletable}")
    assert r.status_code == 204
    assert client.get(f"/api/v1/shipments/{deletable}").status_code == 404

    r = client.delete(f"/api/v1/shipments/{active}")
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "PRECONDITION_FAILED"


def test_delete_cancelled_shipment_with_invoice_is_409(client, db_session):
    seed_masters(db_session)
    shipment_id = _create(client)["shipment"]["id"]
    client.post(f"/api/v1/shipments/{shipment_id}/status", json={"status": "cancelled"})
    db_session.add(Invoice(invoice_number="INV-9", shipment_id=shipment_id, amount=10, currency="EUR"))
    db_session.commit()

    r = client.delete(f"/api/v1/shipments/{shipment_id}")

    assert r.status_code == 409
    assert r.json()["detail"]["invoice_count"] == 1


def test_convert_quote_twice(client, db_session):
    seed_masters(db_session)
    make_quote(db_session, deadline=utc_now() + timedelta(hours=48))

    r = client.post("/api/v1/quotes/1/convert", headers={"X-User-Email": "sales@example.com"})
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["quote_id"] == 1
    assert body["shipment"]["quote_id"] == 1
    assert body["shipment"]["service_type"] == "NFO"
    assert body["history_entry"]["created_by"] == "sales@example.com"

    r = client.post("/api/v1/quotes/1/convert")
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "ALREADY_CONVERTED"
    assert r.json()["detail"]["shipment_id"] == body["shipment"]["id"]


def test_overdue_listing(client, db_session):
    seed_masters(db_session)
    shipment_id = _create(client)["shipment"]["id"]
    assert client.get("/api/v1/shipments/overdue").json() == []

    shipment = db_session.get(Shipment, shipment_id)
    shipment.deadline = utc_now() - timedelta(hours=2, minutes=30)
    db_session.commit()

    rows = client.get("/api/v1/shipments/overdue").json()
    assert [row["id"] for row in rows] == [shipment_id]
    assert rows[0]["overdue_hours"] == 3


def test_number_ranges_are_listed(client, db_session):
    seed_masters(db_session)
    _create(client)
    _create(client, service_type="NFO")

    r = client.get("/api/v1/sys-number-ranges")
    assert r.status_code == 200
    ranges = {(row["doc_category"], row["doc_type"]): row for row in r.json()}
    assert ranges[("SHIPMENT", "OBC")]["current_value"] == 1
    assert ranges[("SHIPMENT", "NFO")]["prefix"] == "NFO-"


def test_actor_falls_back_to_system_without_header(client, db_session, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_MODE", "legacy_header")
    seed_masters(db_session)
    payload = shipment_json(utc_now() + timedelta(hours=72))

    r = client.post("/api/v1/shipments", json=payload)

    assert r.status_code == 201
    assert r.json()["shipment"]["created_by"] == "system@local"


def test_list_search_and_lookups(client, db_session):
    seed_masters(db_session)
    obc_id = _create(client)["shipment"]["id"]
    nfo_id = _create(
        client,
        service_type="NFO",
        partner_id=1,
        awb_number="020-12345675",
        destination={"city": "Shanghai", "country": "CN", "airport_code": "PVG"},
    )["shipment"]["id"]

    r = client.get("/api/v1/shipments")
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 2
    assert [s["id"] for s in body["items"]] == [nfo_id, obc_id]
    assert body["items"][0]["sla"]["status"] == "on_time"

    r = client.get("/api/v1/shipments", params={"service_type": "NFO"})
    assert [s["id"] for s in r.json()["items"]] == [nfo_id]
    r = client.get("/api/v1/shipments", params={"status": ["quoted", "cancelled"], "order": "asc"})
    assert [s["id"] for s in r.json()["items"]] == [obc_id, nfo_id]
    r = client.get("/api/v1/shipments", params={"destination_country": "US"})
    assert [s["id"] for s in r.json()["items"]] == [obc_id]
    r = client.get("/api/v1/shipments", params={"skip": 1, "limit": 1})
    assert r.json()["total"] == 2
    assert [s["id"] for s in r.json()["items"]] == [obc_id]
    assert client.get("/api/v1/shipments", params={"status": "lost"}).status_code == 422

    assert client.get("/api/v1/shipments/search", params={"q": "0"}).json() == []
    r = client.get("/api/v1/shipments/search", params={"q": "020-123"})
    assert [s["id"] for s in r.json()] == [nfo_id]

    r = client.get("/api/v1/shipments/by-customer/1")
    assert [s["id"] for s in r.json()] == [nfo_id, obc_id]
    r = client.get("/api/v1/shipments/by-customer/99")
    assert r.status_code == 404
    assert r.json()["detail"]["entity"] == "Customer"

    assert client.get("/api/v1/shipments/by-courier/1").json() == []
    assert client.get("/api/v1/shipments/by-courier/99").status_code == 404


def test_complete_endpoint(client, db_session):
    seed_masters(db_session)
    shipment_id = _create(client, courier_id=1)["shipment"]["id"]
    for step in ("booked", "pickup", "in_transit", "delivered"):
        r = client.post(f"/api/v1/shipments/{shipment_id}/status", json={"status": step})
        assert r.status_code == 200, r.text

    r = client.post(
        f"/api/v1/shipments/{shipment_id}/complete",
        json={"confirmations": {"extra_costs_recorded": True}},
    )
    assert r.status_code == 422
    assert r.json()["detail"]["field"] == "confirmations.documents_complete"

    r = client.post(
        f"/api/v1/shipments/{shipment_id}/complete",
        json={"confirmations": {"extra_costs_recorded": True, "documents_complete": True, "signed": True}},
    )
    assert r.status_code == 422

    r = client.post(
        f"/api/v1/shipments/{shipment_id}/complete",
        json={"confirmations": {"extra_costs_recorded": True, "documents_complete": True}},
        headers={"X-User-Email": "ops@example.com"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["shipment"]["current_status"] == "document"
    assert body["history_entry"]["metadata"]["confirmations"] == {
        "extra_costs_recorded": True,
        "documents_complete": True,
    }
    assert body["history_entry"]["created_by"] == "ops@example.com"

    r = client.post(
        f"/api/v1/shipments/{shipment_id}/complete",
        json={"confirmations": {"extra_costs_recorded": True, "documents_complete": True}},
    )
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "INVALID_TRANSITION"


def test_new_deadline_on_closing_transition_is_409(client, db_session):
    seed_masters(db_session)
    shipment_id = _create(client)["shipment"]["id"]
    later = (utc_now() + timedelta(hours=200)).isoformat()

    r = client.post(
        f"/api/v1/shipments/{shipment_id}/status",
        json={"status": "cancelled", "metadata": {"new_deadline": later}},
    )

    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "PRECONDITION_FAILED"
    assert client.get(f"/api/v1/shipments/{shipment_id}").json()["current_status"] == "quoted"
