"""Read-side ticket operations.

Services:
- Depend only on interfaces (stores)
- Enforce who may see which tickets
- Return domain models or domain errors
"""

from ticketing.domain import Actor, SeatStats, Ticket, TicketStatus
from ticketing.domain.errors import (
    EventNotFoundError,
    ForbiddenError,
    TicketNotFoundError,
    ValidationError,
)
from ticketing.services.ids import parse_event_id, parse_ticket_id
from ticketing.services.seat_ledger import SeatLedger
from ticketing.stores.interfaces import EventStore, TicketStore


def _parse_status(status: str | None) -> TicketStatus | None:
    if status is None:
        return None
    try:
        return TicketStatus(status)
    except ValueError:
        raise ValidationError("status", "Invalid ticket status") from None


class TicketQueryService:
    """Service for ticket lookups and event seat stats."""

    def __init__(self, events: EventStore, tickets: TicketStore, ledger: SeatLedger) -> None:
        self._events = events
        self._tickets = tickets
        self._ledger = ledger

    def get_ticket(self, ticket_id: str, actor: Actor) -> Ticket:
        """Return a ticket visible to the actor.

        Raises:
            InvalidIdError: If the ticket_id is not a valid UUID.
            TicketNotFoundError: If the ticket does not exist.
            ForbiddenError: If the actor is neither the owner nor staff.
        """
        tid = parse_ticket_id(ticket_id)
        ticket = self._tickets.get_ticket(tid)
        if ticket is None:
            raise TicketNotFoundError(str(tid))
        if ticket.user_id != actor.id and not actor.is_staff:
            raise ForbiddenError(actor_id=actor.id, entity_id=str(tid), action="view")
        return ticket

    def list_my_tickets(self, actor: Actor, status: str | None = None) -> list[Ticket]:
        return self._tickets.list_for_user(actor.id, _parse_status(status))

    def list_event_tickets(
        self,
        event_id: str,
        actor: Actor,
        status: str | None = None,
        checked_in: bool | None = None,
    ) -> list[Ticket]:
        """Return an event's tickets for staff.

        Raises:
            ForbiddenError: If the actor is not a manager or admin.
            InvalidIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        if not actor.is_staff:
            raise ForbiddenError(actor_id=actor.id, entity_id=str(event_id), action="list")
        eid = parse_event_id(event_id)
        if self._events.get_event(eid) is None:
            raise EventNotFoundError(str(eid))
        return self._tickets.list_for_event(eid, _parse_status(status), checked_in)

    def get_event_seat_stats(self, event_id: str) -> SeatStats:
        return self._ledger.stats(parse_event_id(event_id))
