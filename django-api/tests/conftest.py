"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from rest_framework.test import APIClient

from ticketing.conf import TicketingSettings
from ticketing.domain import (
    Actor,
    Event,
    EventId,
    EventStatus,
    Money,
    Role,
    SeatCounters,
)
from ticketing.services.container import build_services
from ticketing.stores.memory_store import (
    MemoryEventStore,
    MemoryTicketStore,
    MemoryTransactionManager,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class MemoryStores:
    transactions: MemoryTransactionManager
    events: MemoryEventStore
    tickets: MemoryTicketStore


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def ticketing_settings(tmp_path) -> TicketingSettings:
    return TicketingSettings(QR_OUTPUT_DIR=str(tmp_path / "qrcodes"))


@pytest.fixture
def stores() -> MemoryStores:
    tx = MemoryTransactionManager()
    return MemoryStores(
        transactions=tx, events=MemoryEventStore(tx), tickets=MemoryTicketStore(tx)
    )


@pytest.fixture
def services(ticketing_settings, stores, clock):
    return build_services(
        ticketing_settings,
        stores.transactions,
        stores.events,
        stores.tickets,
        clock=clock,
    )


@pytest.fixture
def make_event(stores):
    """Factory adding an event to the in-memory store."""

    def _make(
        seats: int = 3,
        status: EventStatus = EventStatus.PUBLISHED,
        starts_in: timedelta = timedelta(days=10),
        price: str = "150.00",
        early_bird_price: str | None = None,
        early_bird_deadline: datetime | None = None,
    ) -> Event:
        starts_at = NOW + starts_in
        return stores.events.add_event(
            Event(
                id=EventId(uuid4()),
                title="Cairo Jazz Night",
                status=status,
                starts_at=starts_at,
                ends_at=starts_at + timedelta(hours=3),
                ticket_price=Money(Decimal(price)),
                currency="EGP",
                capacity=SeatCounters.fresh(seats),
                early_bird_price=Money(Decimal(early_bird_price)) if early_bird_price else None,
                early_bird_deadline=early_bird_deadline,
            )
        )

    return _make


@pytest.fixture
def event(make_event) -> Event:
    return make_event()


@pytest.fixture
def user() -> Actor:
    return Actor(id="user-1", role=Role.USER, name="Mona Hassan", email="Mona@Example.com")


@pytest.fixture
def other_user() -> Actor:
    return Actor(id="user-2", role=Role.USER, name="Karim Adel", email="karim@example.com")


@pytest.fixture
def manager() -> Actor:
    return Actor(id="staff-1", role=Role.MANAGER, name="Gate Staff", email="gate@example.com")


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", role=Role.ADMIN, name="Admin", email="admin@example.com")
