"""Seat ledger - single source of truth for seat occupancy and counters.

Every method that writes must run inside the caller's atomic block; the
per-event lock taken by try_reserve/release is held until that block exits.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from ticketing.domain import Event, EventId, EventStatus, SeatCounters, SeatStats
from ticketing.domain.errors import (
    CounterInvariantError,
    EventNotBookableError,
    EventNotFoundError,
    SeatTakenError,
    SoldOutError,
)
from ticketing.stores.interfaces import EventStore, TicketStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationToken:
    """Proof that a seat was free while the event lock was held."""

    event: Event
    seat_number: str


def ensure_bookable(event: Event, now: datetime) -> None:
    """Raise EventNotBookableError unless the event is published and not started."""
    if event.status is not EventStatus.PUBLISHED:
        raise EventNotBookableError(
            event_id=str(event.id), status=event.status.value, reason="not published"
        )
    if now > event.starts_at:
        raise EventNotBookableError(
            event_id=str(event.id), status=event.status.value, reason="already started"
        )


class SeatLedger:
    """Reserves, commits and releases seats for one event at a time."""

    def __init__(self, events: EventStore, tickets: TicketStore) -> None:
        self._events = events
        self._tickets = tickets

    def _locked(self, event_id: EventId) -> Event:
        event = self._events.lock_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    def try_reserve(self, event_id: EventId, seat_number: str, now: datetime) -> ReservationToken:
        """Lock the event and check that the seat can be sold.

        Raises:
            EventNotFoundError: If the event does not exist.
            EventNotBookableError: If the event is unpublished or started.
            SeatTakenError: If an active or used ticket holds the seat.
            SoldOutError: If no seats are left.
        """
        event = self._locked(event_id)
        ensure_bookable(event, now)
        if self._tickets.seat_is_held(event_id, seat_number):
            logger.warning("Seat %s of event %s is already held", seat_number, event_id)
            raise SeatTakenError(event_id=str(event_id), seat_number=seat_number)
        if event.capacity.available <= 0:
            logger.warning("Event %s is sold out", event_id)
            raise SoldOutError(event_id=str(event_id))
        return ReservationToken(event=event, seat_number=seat_number)

    def commit(self, token: ReservationToken) -> SeatCounters:
        """Move one seat from available to sold."""
        event = self._locked(token.event.id)
        return self._apply(event, "commit")

    def release(self, event_id: EventId) -> SeatCounters:
        """Move one seat from sold back to available."""
        event = self._locked(event_id)
        return self._apply(event, "release")

    def _apply(self, event: Event, operation: str) -> SeatCounters:
        current = event.capacity
        try:
            if operation == "commit":
                updated = current.sell_one()
            else:
                updated = current.release_one()
        except ValueError:
            logger.error(
                "Seat counter invariant violated on %s for event %s "
                "(total=%d available=%d sold=%d)",
                operation,
                event.id,
                current.total,
                current.available,
                current.sold,
            )
            raise CounterInvariantError(
                event_id=str(event.id),
                total=current.total,
                available=current.available,
                sold=current.sold,
            ) from None
        self._events.save_capacity(event.id, updated)
        return updated

    def stats(self, event_id: EventId) -> SeatStats:
        event = self._events.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        capacity = event.capacity
        return SeatStats(
            total=capacity.total, available=capacity.available, sold=capacity.sold
        )
