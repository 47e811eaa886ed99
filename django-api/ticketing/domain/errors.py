"""Domain error codes for the ticketing module.

Every error carries a code, a user-safe message, and structured context
attributes (ids, current state, attempted transition) so the calling layer
can render a precise response without parsing strings.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_INPUT = "INVALID_INPUT"
    INVALID_ID = "INVALID_ID"
    MALFORMED_CREDENTIAL = "MALFORMED_CREDENTIAL"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    SEAT_TAKEN = "SEAT_TAKEN"
    SOLD_OUT = "SOLD_OUT"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    EVENT_NOT_BOOKABLE = "EVENT_NOT_BOOKABLE"
    EVENT_NOT_ACTIVE = "EVENT_NOT_ACTIVE"
    TICKET_NOT_ACTIVE = "TICKET_NOT_ACTIVE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CANCELLATION_WINDOW_CLOSED = "CANCELLATION_WINDOW_CLOSED"
    TICKET_NUMBER_EXHAUSTED = "TICKET_NUMBER_EXHAUSTED"
    COUNTER_INVARIANT = "COUNTER_INVARIANT"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """Raised when input is rejected before the ledger is touched."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_INPUT, message=message)
        self.field = field


class InvalidIdError(DomainError):
    """Raised when an entity ID is not a valid UUID."""

    def __init__(self, kind: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {kind} ID format",
        )
        self.kind = kind


class MalformedCredentialError(DomainError):
    """Raised when a presented credential cannot be decoded."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=ErrorCode.MALFORMED_CREDENTIAL,
            message="Invalid QR code data",
        )
        self.reason = reason


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found")
        self.event_id = event_id


class TicketNotFoundError(DomainError):
    """Raised when a ticket is not found."""

    def __init__(self, ticket_id: str) -> None:
        super().__init__(code=ErrorCode.TICKET_NOT_FOUND, message="Ticket not found")
        self.ticket_id = ticket_id


class ForbiddenError(DomainError):
    """Raised when the actor may not act on the entity."""

    def __init__(self, actor_id: str, entity_id: str, action: str) -> None:
        super().__init__(
            code=ErrorCode.FORBIDDEN,
            message=f"You are not allowed to {action} this resource",
        )
        self.actor_id = actor_id
        self.entity_id = entity_id
        self.action = action


class SeatTakenError(DomainError):
    """Raised when a seat is already held by an active or used ticket."""

    def __init__(self, event_id: str, seat_number: str) -> None:
        super().__init__(
            code=ErrorCode.SEAT_TAKEN,
            message="This seat is already booked",
        )
        self.event_id = event_id
        self.seat_number = seat_number


class SoldOutError(DomainError):
    """Raised when an event has no seats left."""

    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.SOLD_OUT, message="No seats available")
        self.event_id = event_id


class AlreadyCheckedInError(DomainError):
    """Raised when a ticket has already been scanned at the gate."""

    def __init__(self, ticket_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_CHECKED_IN,
            message="This ticket has already been used",
        )
        self.ticket_id = ticket_id


class EventNotBookableError(DomainError):
    """Raised when an event is unpublished or has already started."""

    def __init__(self, event_id: str, status: str, reason: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_BOOKABLE,
            message="Event is not available for booking",
        )
        self.event_id = event_id
        self.status = status
        self.reason = reason


class EventNotActiveError(DomainError):
    """Raised at check-in when the ticket's event is not published."""

    def __init__(self, event_id: str, status: str) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_ACTIVE, message="Event is not active")
        self.event_id = event_id
        self.status = status


class TicketNotActiveError(DomainError):
    """Raised at check-in when the ticket is not in the active state."""

    def __init__(self, ticket_id: str, status: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_ACTIVE,
            message="This ticket is not valid for entry",
        )
        self.ticket_id = ticket_id
        self.status = status


class InvalidTransitionError(DomainError):
    """Raised when a ticket state transition is not permitted."""

    def __init__(self, ticket_id: str, current: str, attempted: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot move ticket from {current} to {attempted}",
        )
        self.ticket_id = ticket_id
        self.current = current
        self.attempted = attempted


class CancellationWindowClosedError(DomainError):
    """Raised when cancellation is attempted inside the embargo window."""

    def __init__(self, ticket_id: str, hours_until_start: float) -> None:
        super().__init__(
            code=ErrorCode.CANCELLATION_WINDOW_CLOSED,
            message="Cannot cancel tickets within 24 hours of event",
        )
        self.ticket_id = ticket_id
        self.hours_until_start = hours_until_start


class TicketNumberExhaustedError(DomainError):
    """Raised when a unique ticket number could not be allocated."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NUMBER_EXHAUSTED,
            message="Could not allocate a ticket number",
        )
        self.attempts = attempts


class CounterInvariantError(DomainError):
    """Raised when seat counters would break available + sold == total."""

    def __init__(self, event_id: str, total: int, available: int, sold: int) -> None:
        super().__init__(
            code=ErrorCode.COUNTER_INVARIANT,
            message="Seat counters are inconsistent",
        )
        self.event_id = event_id
        self.total = total
        self.available = available
        self.sold = sold


INTEGRITY_ERRORS = (TicketNumberExhaustedError, CounterInvariantError)
