"""Expiry sweep - retires active tickets past their validity window.

An expired ticket no longer holds its seat, so each expiry hands the seat
back to the ledger in the same atomic block.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from ticketing.domain import Ticket, TicketStatus
from ticketing.domain.lifecycle import mark_expired, utc_now
from ticketing.services.seat_ledger import SeatLedger
from ticketing.stores.interfaces import EventStore, TicketStore, TransactionManager

logger = logging.getLogger(__name__)


class ExpiryService:
    def __init__(
        self,
        transactions: TransactionManager,
        events: EventStore,
        tickets: TicketStore,
        ledger: SeatLedger,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._tx = transactions
        self._events = events
        self._tickets = tickets
        self._ledger = ledger
        self._clock = clock

    def expire_overdue(self, now: datetime | None = None) -> list[Ticket]:
        now = now or self._clock()
        expired = []
        for ticket_id in self._tickets.list_overdue(now):
            listed = self._tickets.get_ticket(ticket_id)
            if listed is None:
                continue
            with self._tx.atomic():
                # Event lock first, then the ticket, matching cancellation.
                self._events.lock_event(listed.event_id)
                ticket = self._tickets.lock_ticket(ticket_id)
                # Checked in or cancelled since the listing.
                if ticket is None or ticket.status is not TicketStatus.ACTIVE:
                    continue
                expired.append(self._tickets.save_ticket(mark_expired(ticket, now=now)))
                self._ledger.release(ticket.event_id)
        logger.info("Expired %d overdue tickets", len(expired))
        return expired
