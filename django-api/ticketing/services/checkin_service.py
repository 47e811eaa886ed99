"""Check-in service - admits a ticket holder at the gate.

The ticket row is locked before the already-checked-in guard is evaluated,
so a replayed scan cannot admit the same ticket twice.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from ticketing.credentials import CredentialCodec
from ticketing.domain import Actor, CheckInConfirmation, EventStatus, TicketStatus
from ticketing.domain.errors import (
    AlreadyCheckedInError,
    EventNotActiveError,
    EventNotFoundError,
    ForbiddenError,
    InvalidIdError,
    MalformedCredentialError,
    TicketNotActiveError,
    TicketNotFoundError,
)
from ticketing.domain.lifecycle import mark_used, utc_now
from ticketing.domain.validation import clean_gate
from ticketing.services.ids import parse_ticket_id
from ticketing.stores.interfaces import EventStore, TicketStore, TransactionManager

logger = logging.getLogger(__name__)


class CheckInService:
    """Validates presented credentials and marks tickets used."""

    def __init__(
        self,
        transactions: TransactionManager,
        events: EventStore,
        tickets: TicketStore,
        codec: CredentialCodec,
        clock: Callable[[], datetime] = utc_now,
        default_gate: str = "Main Gate",
    ) -> None:
        self._tx = transactions
        self._events = events
        self._tickets = tickets
        self._codec = codec
        self._clock = clock
        self._default_gate = default_gate

    def check_in(
        self, credential: str, gate: str | None, actor: Actor
    ) -> CheckInConfirmation:
        """Admit the ticket named by the credential.

        Raises:
            ForbiddenError: If the actor is not a manager or admin.
            MalformedCredentialError: If the credential cannot be decoded.
            TicketNotFoundError: If the ticket does not exist.
            TicketNotActiveError: If the ticket is not active.
            AlreadyCheckedInError: If the ticket was already scanned.
            EventNotActiveError: If the event is not published.
        """
        if not actor.is_staff:
            raise ForbiddenError(actor_id=actor.id, entity_id="", action="check in")
        gate = clean_gate(gate, self._default_gate)
        payload = self._codec.decode(credential)
        try:
            ticket_id = parse_ticket_id(payload.ticket_id)
        except InvalidIdError:
            raise MalformedCredentialError("ticketId is not a valid ID") from None

        with self._tx.atomic():
            ticket = self._tickets.lock_ticket(ticket_id)
            if ticket is None:
                raise TicketNotFoundError(str(ticket_id))
            # A replayed scan of a used ticket reports the replay, not the state.
            if ticket.check_in.is_checked_in:
                logger.warning("Replayed scan of ticket %s at %s", ticket.ticket_number, gate)
                raise AlreadyCheckedInError(str(ticket.id))
            if ticket.status is not TicketStatus.ACTIVE:
                raise TicketNotActiveError(
                    ticket_id=str(ticket.id), status=ticket.status.value
                )
            event = self._events.get_event(ticket.event_id)
            if event is None:
                raise EventNotFoundError(str(ticket.event_id))
            if event.status is not EventStatus.PUBLISHED:
                raise EventNotActiveError(
                    event_id=str(event.id), status=event.status.value
                )
            ticket = self._tickets.save_ticket(
                mark_used(ticket, staff_id=actor.id, gate=gate, now=self._clock())
            )

        logger.info(
            "Checked in ticket %s at %s by %s", ticket.ticket_number, gate, actor.id
        )
        return CheckInConfirmation(
            ticket_number=ticket.ticket_number.value,
            attendee_name=ticket.attendee.name,
            event_title=event.title,
            seat_number=ticket.seat.seat_number,
            checked_in_at=ticket.check_in.checked_in_at,
        )
