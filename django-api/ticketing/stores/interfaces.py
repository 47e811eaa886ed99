"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
Locking methods are only valid inside ``TransactionManager.atomic()``; the
lock is held until the outermost atomic block exits.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime

from ticketing.domain import Event, EventId, SeatCounters, Ticket, TicketId, TicketStatus


class TransactionManager(ABC):
    """All-or-nothing scope shared by the stores."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Return a context manager; an exception inside rolls back every write."""
        ...


class EventStore(ABC):
    """Interface for the event repository (read + seat counters)."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def lock_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID and hold its per-event lock."""
        ...

    @abstractmethod
    def save_capacity(self, event_id: EventId, capacity: SeatCounters) -> None:
        """Persist the event's seat counters."""
        ...


class TicketStore(ABC):
    """Interface for ticket persistence operations."""

    @abstractmethod
    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        """Return a ticket by ID, or None if not found."""
        ...

    @abstractmethod
    def lock_ticket(self, ticket_id: TicketId) -> Ticket | None:
        """Return a ticket by ID and hold its row lock."""
        ...

    @abstractmethod
    def ticket_number_exists(self, ticket_number: str) -> bool:
        """Check if any ticket, in any state, uses the number."""
        ...

    @abstractmethod
    def seat_is_held(self, event_id: EventId, seat_number: str) -> bool:
        """Check if an active or used ticket holds the seat."""
        ...

    @abstractmethod
    def add_ticket(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket.

        Raises:
            SeatTakenError: If the seat is held by another live ticket.
            TicketNumberExhaustedError: If the ticket number is already used.
        """
        ...

    @abstractmethod
    def save_ticket(self, ticket: Ticket) -> Ticket:
        """Persist the mutable parts of an existing ticket."""
        ...

    @abstractmethod
    def set_credential_image(self, ticket_id: TicketId, image_ref: str) -> None:
        """Record the rendered credential image without touching other fields."""
        ...

    @abstractmethod
    def list_for_user(
        self, user_id: str, status: TicketStatus | None = None
    ) -> list[Ticket]:
        """Return a user's tickets, newest first."""
        ...

    @abstractmethod
    def list_for_event(
        self,
        event_id: EventId,
        status: TicketStatus | None = None,
        checked_in: bool | None = None,
    ) -> list[Ticket]:
        """Return an event's tickets, newest first."""
        ...

    @abstractmethod
    def list_overdue(self, now: datetime) -> list[TicketId]:
        """Return IDs of active tickets whose valid_until is before now."""
        ...
