from __future__ import annotations

from datetime import timedelta

from obcflow.core.lifecycle.enums import ShipmentStatus, TaskStatus
from obcflow.crud.shipment_task import create_task, list_tasks_for_shipment
from obcflow.services.shipment_lifecycle_service import ShipmentLifecycleService
from obcflow.services.task_generator import AutomaticTaskGenerator

from factories import NOW, FakeClock, seed_masters, shipment_payload


def _seed_shipment(db):
    seed_masters(db)
    service = ShipmentLifecycleService(db, clock=FakeClock())
    return service.create_shipment(shipment_payload()).shipment


def test_generated_tasks_are_automatic_and_pending(db_session):
    shipment = _seed_shipment(db_session)
    generator = AutomaticTaskGenerator(db_session)

    report = generator.generate(
        shipment_id=shipment.id,
        new_status=ShipmentStatus.BOOKED,
        service_type=shipment.service_type,
        transition_at=NOW,
        actor="ops@example.com",
    )

    assert report.complete
    assert [t.title for t in report.tasks] == ["Book courier flight", "Send booking confirmation"]
    for task in report.tasks:
        assert task.task_type == "automatic"
        assert task.status == TaskStatus.PENDING.value
        assert task.created_by == "ops@example.com"
    assert report.tasks[0].due_date == NOW + timedelta(hours=2)


def test_failing_task_is_reported_and_the_rest_are_kept(db_session):
    shipment = _seed_shipment(db_session)

    def flaky_store(db, **kwargs):
        if kwargs["title"] == "Send booking confirmation":
            raise RuntimeError("mail queue unavailable")
        return create_task(db, **kwargs)

    generator = AutomaticTaskGenerator(db_session, task_store=flaky_store, max_attempts=3)
    report = generator.generate(
        shipment_id=shipment.id,
        new_status="booked",
        service_type="OBC",
        transition_at=NOW,
        actor="ops@example.com",
    )

    assert not report.complete
    assert [t.title for t in report.tasks] == ["Book courier flight"]
    assert report.failures == [
        "Task 'Send booking confirmation' could not be created: mail queue unavailable"
    ]

    db_session.expire_all()
    titles = [t.title for t in list_tasks_for_shipment(db_session, shipment.id)]
    assert "Book courier flight" in titles
    assert "Send booking confirmation" not in titles


def test_transient_failure_is_retried(db_session):
    shipment = _seed_shipment(db_session)
    calls = {"count": 0}

    def store_failing_once(db, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("deadlock detected")
        return create_task(db, **kwargs)

    generator = AutomaticTaskGenerator(db_session, task_store=store_failing_once, max_attempts=2)
    report = generator.generate(
        shipment_id=shipment.id,
        new_status="in_transit",
        service_type="NFO",
        transition_at=NOW,
        actor="ops@example.com",
    )

    assert report.complete
    assert [t.title for t in report.tasks] == ["Track flight departure"]
    assert calls["count"] == 2
