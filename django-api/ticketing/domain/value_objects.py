"""Domain primitives that enforce validity at creation time."""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Self
from uuid import UUID, uuid4

TICKET_NUMBER_PATTERN = re.compile(r"^EVT-\d{8}-\d{5}$")


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TicketId:
    """Unique identifier for a Ticket."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TicketNumber:
    """Human-presentable ticket number in the form EVT-YYYYMMDD-NNNNN."""

    value: str

    def __post_init__(self) -> None:
        if not TICKET_NUMBER_PATTERN.match(self.value):
            raise ValueError(f"Malformed ticket number: {self.value!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __sub__(self, other: "Money") -> "Money":
        return Money(self.amount - other.amount)

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class SeatCounters:
    """Aggregate seat counters for one event.

    available + sold must always equal total, and neither may go negative.
    """

    total: int
    available: int
    sold: int

    def __post_init__(self) -> None:
        if self.total < 0 or self.available < 0 or self.sold < 0:
            raise ValueError("Seat counters cannot be negative")
        if self.available + self.sold != self.total:
            raise ValueError(
                f"available ({self.available}) + sold ({self.sold}) "
                f"!= total ({self.total})"
            )

    @classmethod
    def fresh(cls, total: int) -> Self:
        return cls(total=total, available=total, sold=0)

    def sell_one(self) -> "SeatCounters":
        return SeatCounters(self.total, self.available - 1, self.sold + 1)

    def release_one(self) -> "SeatCounters":
        return SeatCounters(self.total, self.available + 1, self.sold - 1)
