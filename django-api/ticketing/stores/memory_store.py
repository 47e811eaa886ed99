"""In-process implementation of the stores.

Used by unit tests and local tooling. Mirrors the database guarantees the
services rely on: per-event and per-ticket locks held until the outermost
atomic block exits, rollback of every write made inside a failed block, and
the (event, seat) uniqueness rule for live tickets.
"""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from ticketing.domain import (
    Event,
    EventId,
    SeatCounters,
    Ticket,
    TicketId,
    TicketStatus,
)
from ticketing.domain.errors import SeatTakenError, TicketNumberExhaustedError
from ticketing.domain.lifecycle import TICKET_NUMBER_ATTEMPTS
from ticketing.stores.interfaces import EventStore, TicketStore, TransactionManager


class _TxState(threading.local):
    def __init__(self) -> None:
        self.depth = 0
        self.undo: list[Callable[[], None]] = []
        self.held: dict[object, threading.Lock] = {}


class MemoryTransactionManager(TransactionManager):
    """Thread-local transactions with an undo log and named locks."""

    def __init__(self) -> None:
        self._state = _TxState()
        self._locks: dict[object, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        state = self._state
        mark = len(state.undo)
        state.depth += 1
        try:
            yield
        except BaseException:
            while len(state.undo) > mark:
                state.undo.pop()()
            raise
        finally:
            state.depth -= 1
            if state.depth == 0:
                state.undo.clear()
                for lock in state.held.values():
                    lock.release()
                state.held.clear()

    def acquire(self, key: object) -> None:
        state = self._state
        if state.depth == 0:
            raise RuntimeError("Row locks require an atomic block")
        if key in state.held:
            return
        with self._registry_lock:
            lock = self._locks.setdefault(key, threading.Lock())
        lock.acquire()
        state.held[key] = lock

    def record_undo(self, action: Callable[[], None]) -> None:
        if self._state.depth:
            self._state.undo.append(action)


class MemoryEventStore(EventStore):
    """Event store backed by a dict."""

    def __init__(self, transactions: MemoryTransactionManager) -> None:
        self._tx = transactions
        self._events: dict[EventId, Event] = {}
        self._data_lock = threading.Lock()

    def add_event(self, event: Event) -> Event:
        with self._data_lock:
            self._events[event.id] = event
        return event

    def get_event(self, event_id: EventId) -> Event | None:
        with self._data_lock:
            return self._events.get(event_id)

    def lock_event(self, event_id: EventId) -> Event | None:
        self._tx.acquire(("event", event_id))
        return self.get_event(event_id)

    def save_capacity(self, event_id: EventId, capacity: SeatCounters) -> None:
        with self._data_lock:
            previous = self._events[event_id]
            self._events[event_id] = replace(previous, capacity=capacity)
        self._tx.record_undo(lambda: self._restore(previous))

    def _restore(self, event: Event) -> None:
        with self._data_lock:
            self._events[event.id] = event


class MemoryTicketStore(TicketStore):
    """Ticket store backed by an insertion-ordered dict."""

    def __init__(self, transactions: MemoryTransactionManager) -> None:
        self._tx = transactions
        self._tickets: dict[TicketId, Ticket] = {}
        self._data_lock = threading.Lock()

    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        with self._data_lock:
            return self._tickets.get(ticket_id)

    def lock_ticket(self, ticket_id: TicketId) -> Ticket | None:
        self._tx.acquire(("ticket", ticket_id))
        return self.get_ticket(ticket_id)

    def ticket_number_exists(self, ticket_number: str) -> bool:
        with self._data_lock:
            return any(
                t.ticket_number.value == ticket_number for t in self._tickets.values()
            )

    def seat_is_held(self, event_id: EventId, seat_number: str) -> bool:
        with self._data_lock:
            return self._seat_is_held(event_id, seat_number)

    def _seat_is_held(self, event_id: EventId, seat_number: str) -> bool:
        return any(
            t.event_id == event_id and t.seat.seat_number == seat_number and t.holds_seat
            for t in self._tickets.values()
        )

    def add_ticket(self, ticket: Ticket) -> Ticket:
        with self._data_lock:
            if self._seat_is_held(ticket.event_id, ticket.seat.seat_number):
                raise SeatTakenError(
                    event_id=str(ticket.event_id), seat_number=ticket.seat.seat_number
                )
            if any(
                t.ticket_number == ticket.ticket_number for t in self._tickets.values()
            ):
                raise TicketNumberExhaustedError(attempts=TICKET_NUMBER_ATTEMPTS)
            self._tickets[ticket.id] = ticket
        self._tx.record_undo(lambda: self._discard(ticket.id))
        return ticket

    def save_ticket(self, ticket: Ticket) -> Ticket:
        with self._data_lock:
            previous = self._tickets[ticket.id]
            self._tickets[ticket.id] = ticket
        self._tx.record_undo(lambda: self._put(previous))
        return ticket

    def set_credential_image(self, ticket_id: TicketId, image_ref: str) -> None:
        with self._data_lock:
            current = self._tickets[ticket_id]
            self._tickets[ticket_id] = replace(
                current, credential=replace(current.credential, image_ref=image_ref)
            )

    def _discard(self, ticket_id: TicketId) -> None:
        with self._data_lock:
            self._tickets.pop(ticket_id, None)

    def _put(self, ticket: Ticket) -> None:
        with self._data_lock:
            self._tickets[ticket.id] = ticket

    def _snapshot(self) -> list[Ticket]:
        with self._data_lock:
            return list(reversed(self._tickets.values()))

    def list_for_user(
        self, user_id: str, status: TicketStatus | None = None
    ) -> list[Ticket]:
        return [
            t
            for t in self._snapshot()
            if t.user_id == user_id and (status is None or t.status is status)
        ]

    def list_for_event(
        self,
        event_id: EventId,
        status: TicketStatus | None = None,
        checked_in: bool | None = None,
    ) -> list[Ticket]:
        return [
            t
            for t in self._snapshot()
            if t.event_id == event_id
            and (status is None or t.status is status)
            and (checked_in is None or t.check_in.is_checked_in is checked_in)
        ]

    def list_overdue(self, now: datetime) -> list[TicketId]:
        return [
            t.id
            for t in self._snapshot()
            if t.status is TicketStatus.ACTIVE and t.valid_until < now
        ]
