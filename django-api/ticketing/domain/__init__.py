from ticketing.domain.models import (
    Actor,
    AttendeeInfo,
    CheckIn,
    CheckInConfirmation,
    Credential,
    Event,
    EventStatus,
    Gender,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Pricing,
    Role,
    SeatInfo,
    SeatStats,
    Ticket,
    TicketStatus,
)
from ticketing.domain.value_objects import (
    EventId,
    Money,
    SeatCounters,
    TicketId,
    TicketNumber,
)

__all__ = [
    "Actor",
    "AttendeeInfo",
    "CheckIn",
    "CheckInConfirmation",
    "Credential",
    "Event",
    "EventStatus",
    "Gender",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "Pricing",
    "Role",
    "SeatInfo",
    "SeatStats",
    "Ticket",
    "TicketStatus",
    "EventId",
    "TicketId",
    "TicketNumber",
    "Money",
    "SeatCounters",
]
