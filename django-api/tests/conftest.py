"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from rest_framework.test import APIClient

from allocation import models
from allocation.domain.models import AccessItem, AccessType
from allocation.domain.value_objects import AccessItemId, EventId, Money

EVENT_START = datetime(2025, 6, 1, 8, 0, tzinfo=UTC)
EVENT_END = datetime(2025, 6, 3, 18, 0, tzinfo=UTC)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def build_access():
    """Factory for in-memory AccessItem domain objects."""
    event_id = EventId(uuid4())

    def _build(name: str = "Workshop", **overrides) -> AccessItem:
        fields = {
            "id": AccessItemId(uuid4()),
            "event_id": event_id,
            "type": AccessType.WORKSHOP,
            "name": name,
            "price": Money(Decimal("0")),
            "currency": "TND",
        }
        fields.update(overrides)
        return AccessItem(**fields)

    return _build


@pytest.fixture
def event(db) -> models.Event:
    return models.Event.objects.create(
        name="Medical Congress",
        start_date=EVENT_START,
        end_date=EVENT_END,
        base_price=Decimal("200.00"),
        currency="TND",
    )


@pytest.fixture
def other_event(db) -> models.Event:
    return models.Event.objects.create(
        name="Other Congress",
        start_date=EVENT_START,
        end_date=EVENT_END,
        base_price=Decimal("100.00"),
        currency="TND",
    )


@pytest.fixture
def make_access(event):
    """Factory for persisted access items of ``event``."""

    def _make(name: str = "Workshop", **fields) -> models.AccessItem:
        fields.setdefault("type", AccessType.WORKSHOP.value)
        fields.setdefault("event", event)
        return models.AccessItem.objects.create(name=name, **fields)

    return _make


@pytest.fixture
def make_registration(event):
    """Factory for persisted registrations.

    ``items`` is a list of ``(access_item, subtotal)`` pairs; each becomes a
    confirmed selection and a line of the price breakdown.
    """

    def _make(
        total: str = "300.00",
        base: str = "200.00",
        items=(),
        email: str = "registrant@example.com",
        **fields,
    ) -> models.Registration:
        fields.setdefault("event", event)
        registration = models.Registration.objects.create(
            email=email,
            total_amount=Decimal(total),
            base_amount=Decimal(base),
            price_breakdown={
                "calculated_base_price": base,
                "access_items": [
                    {"access_id": str(access.id), "subtotal": subtotal} for access, subtotal in items
                ],
            },
            **fields,
        )
        for access, _ in items:
            models.RegistrationAccess.objects.create(registration=registration, access=access)
        return registration

    return _make
