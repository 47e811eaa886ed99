"""Ticket lifecycle rules as pure functions.

Numbering, validity defaulting, pricing and every state transition live here
so they can be exercised without a database. Transitions return new Ticket
instances; callers persist them.
"""

import random
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from ticketing.domain.errors import InvalidTransitionError, TicketNumberExhaustedError
from ticketing.domain.models import (
    CheckIn,
    Event,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Pricing,
    Ticket,
    TicketStatus,
)
from ticketing.domain.value_objects import Money, TicketNumber

ALLOWED_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.ACTIVE: frozenset(
        {TicketStatus.USED, TicketStatus.CANCELLED, TicketStatus.EXPIRED}
    ),
    TicketStatus.USED: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
    TicketStatus.EXPIRED: frozenset(),
}

# A collision regenerates once; a second collision is fatal.
TICKET_NUMBER_ATTEMPTS = 2

_system_random = random.SystemRandom()


def ensure_transition(ticket: Ticket, target: TicketStatus) -> None:
    """Raise InvalidTransitionError unless ticket.status -> target is allowed."""
    if target not in ALLOWED_TRANSITIONS[ticket.status]:
        raise InvalidTransitionError(
            ticket_id=str(ticket.id),
            current=ticket.status.value,
            attempted=target.value,
        )


def mark_used(ticket: Ticket, *, staff_id: str, gate: str, now: datetime) -> Ticket:
    ensure_transition(ticket, TicketStatus.USED)
    return replace(
        ticket,
        status=TicketStatus.USED,
        check_in=CheckIn(
            is_checked_in=True,
            checked_in_at=now,
            checked_in_by=staff_id,
            gate=gate,
        ),
    )


def mark_cancelled(ticket: Ticket, *, now: datetime) -> Ticket:
    ensure_transition(ticket, TicketStatus.CANCELLED)
    return replace(
        ticket,
        status=TicketStatus.CANCELLED,
        payment=replace(
            ticket.payment, status=PaymentStatus.REFUNDED, refunded_at=now
        ),
    )


def mark_expired(ticket: Ticket, *, now: datetime) -> Ticket:
    ensure_transition(ticket, TicketStatus.EXPIRED)
    if now <= ticket.valid_until:
        raise InvalidTransitionError(
            ticket_id=str(ticket.id),
            current=ticket.status.value,
            attempted=TicketStatus.EXPIRED.value,
        )
    return replace(ticket, status=TicketStatus.EXPIRED)


def generate_ticket_number(
    now: datetime, rng: random.Random | None = None
) -> TicketNumber:
    """Return EVT-{UTC YYYYMMDD}-{5-digit zero-padded random}."""
    rng = rng or _system_random
    date = now.astimezone(timezone.utc).strftime("%Y%m%d")
    return TicketNumber(f"EVT-{date}-{rng.randrange(100000):05d}")


def allocate_ticket_number(
    now: datetime,
    exists: Callable[[str], bool],
    rng: random.Random | None = None,
) -> TicketNumber:
    """Generate a ticket number that ``exists`` reports as unused.

    Raises:
        TicketNumberExhaustedError: If every attempt collided.
    """
    for _ in range(TICKET_NUMBER_ATTEMPTS):
        number = generate_ticket_number(now, rng)
        if not exists(number.value):
            return number
    raise TicketNumberExhaustedError(attempts=TICKET_NUMBER_ATTEMPTS)


def default_valid_until(event: Event, grace: timedelta = timedelta(hours=24)) -> datetime:
    return event.ends_at + grace


def resolve_pricing(event: Event, now: datetime) -> Pricing:
    """Apply the early-bird price while its deadline has not passed."""
    original = event.ticket_price
    if (
        event.early_bird_price is not None
        and event.early_bird_deadline is not None
        and now < event.early_bird_deadline
        and event.early_bird_price.amount <= original.amount
    ):
        final = event.early_bird_price
        return Pricing(
            original_price=original,
            final_price=final,
            discount=original - final,
            currency=event.currency,
        )
    return Pricing(
        original_price=original,
        final_price=original,
        discount=Money(Decimal("0")),
        currency=event.currency,
    )


def derive_payment(
    method: PaymentMethod, now: datetime, rng: random.Random | None = None
) -> Payment:
    """Cash stays pending; every other method is recorded as paid now.

    No payment gateway is called.
    """
    if method is PaymentMethod.CASH:
        return Payment(method=method, status=PaymentStatus.PENDING)
    rng = rng or _system_random
    millis = int(now.timestamp() * 1000)
    return Payment(
        method=method,
        status=PaymentStatus.COMPLETED,
        transaction_id=f"TXN-{millis}-{rng.getrandbits(32):08x}",
        paid_at=now,
    )


def hours_until(start: datetime, now: datetime) -> float:
    return (start - now).total_seconds() / 3600


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
