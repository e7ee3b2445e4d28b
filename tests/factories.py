"""Seed helpers shared by the service and API tests."""

from __future__ import annotations

from datetime import datetime, timedelta

from obcflow.core.lifecycle.enums import ServiceType, ShipmentPriority
from obcflow.models.courier import Courier
from obcflow.models.customer_master import CustomerMaster
from obcflow.models.partner_master import PartnerMaster
from obcflow.models.quote import Quote
from obcflow.schemas.base import CurrencyAmount
from obcflow.schemas.shipment import Address, Dimensions, ShipmentCreate

NOW = datetime(2026, 3, 2, 9, 0, 0)


class FakeClock:
    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


def seed_masters(db):
    db.add_all(
        [
            CustomerMaster(
                id=1,
                customer_identifier="CUST-0001",
                legal_name="Precision Parts GmbH",
                preferred_currency="EUR",
                is_active=True,
                created_by="seed@local",
                last_changed_by="seed@local",
            ),
            CustomerMaster(
                id=2,
                customer_identifier="CUST-0002",
                legal_name="Dormant Customer Ltd",
                preferred_currency="EUR",
                is_active=False,
            ),
            Courier(id=1, name="Anna Becker", email="anna@couriers.example", is_active=True),
            Courier(id=2, name="Retired Courier", is_active=False),
            PartnerMaster(
                id=1,
                partner_identifier="PRT-0001",
                partner_type="AIRLINE",
                legal_name="Sky Cargo",
                is_active=True,
            ),
        ]
    )
    db.commit()


def address(city: str, country: str, airport: str) -> Address:
    return Address(street="Main Street 1", city=city, country=country, airport_code=airport)


def shipment_payload(now: datetime = NOW, **overrides) -> ShipmentCreate:
    data = dict(
        customer_id=1,
        service_type=ServiceType.OBC,
        priority=ShipmentPriority.STANDARD,
        origin=address("Frankfurt", "DE", "FRA"),
        destination=address("Detroit", "US", "DTW"),
        dimensions=Dimensions(length_cm=40, width_cm=30, height_cm=20, weight_kg=8.5),
        description="Spare gearbox for production line",
        deadline=now + timedelta(hours=72),
        agreed_price=CurrencyAmount(amount=4200.0, currency="EUR"),
    )
    data.update(overrides)
    return ShipmentCreate(**data)


def shipment_json(deadline: datetime, **overrides) -> dict:
    data = {
        "customer_id": 1,
        "service_type": "OBC",
        "priority": "standard",
        "origin": {"city": "Frankfurt", "country": "DE", "airport_code": "FRA"},
        "destination": {"city": "Detroit", "country": "US", "airport_code": "DTW"},
        "dimensions": {"length_cm": 40, "width_cm": 30, "height_cm": 20, "weight_kg": 8.5},
        "description": "Spare gearbox for production line",
        "deadline": deadline.isoformat(),
        "agreed_price": {"amount": 4200.0, "currency": "EUR"},
    }
    data.update(overrides)
    return data


def make_quote(db, *, quote_id: int = 1, **overrides) -> Quote:
    data = dict(
        id=quote_id,
        quote_number=f"Q-{quote_id:05d}",
        status="accepted",
        customer_id=1,
        service_type="NFO",
        priority="urgent",
        origin={"city": "Munich", "country": "DE", "airport_code": "MUC"},
        destination={"city": "Shanghai", "country": "CN", "airport_code": "PVG"},
        dimensions={"length_cm": 120, "width_cm": 80, "height_cm": 60, "weight_kg": 95.0, "pieces": 2},
        routing={"flight_number": "LH728", "airline": "Lufthansa"},
        description="Tooling for plant restart",
        special_instructions="Keep upright",
        deadline=NOW + timedelta(hours=48),
        partner_id=1,
        total_price_amount=9800,
        total_price_currency="EUR",
    )
    data.update(overrides)
    quote = Quote(**data)
    db.add(quote)
    db.commit()
    return quote
