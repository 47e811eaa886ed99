"""Cancellation service - refunds a ticket and returns its seat."""

import logging
from collections.abc import Callable
from datetime import datetime

from ticketing.domain import Actor, Ticket, TicketStatus
from ticketing.domain.errors import (
    CancellationWindowClosedError,
    EventNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    TicketNotFoundError,
)
from ticketing.domain.lifecycle import hours_until, mark_cancelled, utc_now
from ticketing.services.ids import parse_ticket_id
from ticketing.services.seat_ledger import SeatLedger
from ticketing.stores.interfaces import EventStore, TicketStore, TransactionManager

logger = logging.getLogger(__name__)


class CancellationService:
    """Enforces cancellation eligibility and reverses the ledger effect."""

    def __init__(
        self,
        transactions: TransactionManager,
        events: EventStore,
        tickets: TicketStore,
        ledger: SeatLedger,
        clock: Callable[[], datetime] = utc_now,
        embargo_hours: int = 24,
    ) -> None:
        self._tx = transactions
        self._events = events
        self._tickets = tickets
        self._ledger = ledger
        self._clock = clock
        self._embargo_hours = embargo_hours

    def cancel_ticket(self, ticket_id: str, actor: Actor) -> Ticket:
        """Cancel an active ticket owned by the actor (or any ticket, for admins).

        Raises:
            InvalidIdError: If ticket_id is not a valid UUID.
            TicketNotFoundError: If the ticket does not exist.
            ForbiddenError: If the actor is neither the owner nor an admin.
            InvalidTransitionError: If the ticket is not active.
            CancellationWindowClosedError: If the event starts within the embargo.
        """
        tid = parse_ticket_id(ticket_id)
        ticket = self._tickets.get_ticket(tid)
        if ticket is None:
            raise TicketNotFoundError(str(tid))
        if ticket.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError(actor_id=actor.id, entity_id=str(tid), action="cancel")

        with self._tx.atomic():
            # Event lock first, then the ticket, matching the booking order.
            event = self._events.lock_event(ticket.event_id)
            if event is None:
                raise EventNotFoundError(str(ticket.event_id))
            ticket = self._tickets.lock_ticket(tid)
            if ticket.status is not TicketStatus.ACTIVE:
                raise InvalidTransitionError(
                    ticket_id=str(tid),
                    current=ticket.status.value,
                    attempted=TicketStatus.CANCELLED.value,
                )
            now = self._clock()
            remaining = hours_until(event.starts_at, now)
            if remaining < self._embargo_hours:
                raise CancellationWindowClosedError(
                    ticket_id=str(tid), hours_until_start=remaining
                )
            ticket = self._tickets.save_ticket(mark_cancelled(ticket, now=now))
            counters = self._ledger.release(event.id)

        logger.info(
            "Cancelled ticket %s for event %s (available=%d sold=%d)",
            ticket.ticket_number,
            event.id,
            counters.available,
            counters.sold,
        )
        return ticket
