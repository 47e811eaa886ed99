"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ticketing.domain.value_objects import (
    EventId,
    Money,
    SeatCounters,
    TicketId,
    TicketNumber,
)


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class TicketStatus(str, Enum):
    ACTIVE = "active"
    USED = "used"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    ONLINE = "online"
    BANK_TRANSFER = "bank_transfer"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Role(str, Enum):
    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"


# Tickets in these states hold their seat.
SEAT_HOLDING_STATUSES = frozenset({TicketStatus.ACTIVE, TicketStatus.USED})


@dataclass(frozen=True)
class Actor:
    """Authenticated caller supplied by the identity provider."""

    id: str
    role: Role
    name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.MANAGER, Role.ADMIN)


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event (owned by the event catalog)."""

    id: EventId
    title: str
    status: EventStatus
    starts_at: datetime
    ends_at: datetime
    ticket_price: Money
    currency: str
    capacity: SeatCounters
    early_bird_price: Money | None = None
    early_bird_deadline: datetime | None = None


@dataclass(frozen=True)
class AttendeeInfo:
    name: str
    email: str
    phone: str
    age: int | None = None
    gender: Gender | None = None


@dataclass(frozen=True)
class SeatInfo:
    seat_number: str
    section: str = "General"
    row: str = "A"


@dataclass(frozen=True)
class Pricing:
    """Resolved price of one ticket; final = original - discount."""

    original_price: Money
    final_price: Money
    discount: Money
    currency: str

    def __post_init__(self) -> None:
        if self.original_price.amount - self.discount.amount != self.final_price.amount:
            raise ValueError("final_price must equal original_price - discount")


@dataclass(frozen=True)
class Payment:
    method: PaymentMethod
    status: PaymentStatus
    transaction_id: str | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None


@dataclass(frozen=True)
class CheckIn:
    is_checked_in: bool = False
    checked_in_at: datetime | None = None
    checked_in_by: str | None = None
    gate: str | None = None


@dataclass(frozen=True)
class Credential:
    """Serialized admission payload plus a reference to its rendered image.

    Only the payload is authoritative; the image can be regenerated.
    """

    payload: str = ""
    image_ref: str | None = None


@dataclass(frozen=True)
class Ticket:
    """Domain representation of a Ticket."""

    id: TicketId
    ticket_number: TicketNumber
    event_id: EventId
    user_id: str
    seat: SeatInfo
    attendee: AttendeeInfo
    pricing: Pricing
    payment: Payment
    status: TicketStatus
    purchase_date: datetime
    valid_until: datetime
    check_in: CheckIn = field(default_factory=CheckIn)
    credential: Credential = field(default_factory=Credential)

    @property
    def holds_seat(self) -> bool:
        return self.status in SEAT_HOLDING_STATUSES


@dataclass(frozen=True)
class CheckInConfirmation:
    """Minimal gate response; never exposes other attendees' data."""

    ticket_number: str
    attendee_name: str
    event_title: str
    seat_number: str
    checked_in_at: datetime


@dataclass(frozen=True)
class SeatStats:
    total: int
    available: int
    sold: int
