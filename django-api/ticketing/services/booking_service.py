"""Booking service - turns a seat request into a live ticket.

Ticket persistence, credential issuance and the seat-counter commit happen in
one atomic block under the event lock. Ticket-number allocation happens
before the lock is taken; QR rendering happens after the block commits.
"""

import logging
import random
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta

from qrcode.exceptions import DataOverflowError

from ticketing.credentials import CredentialCodec, CredentialPayload, QrRenderer
from ticketing.domain import (
    Actor,
    AttendeeInfo,
    Credential,
    SeatInfo,
    Ticket,
    TicketId,
    TicketStatus,
)
from ticketing.domain.errors import EventNotFoundError, TicketNumberExhaustedError
from ticketing.domain.lifecycle import (
    allocate_ticket_number,
    default_valid_until,
    derive_payment,
    resolve_pricing,
    utc_now,
)
from ticketing.domain.validation import (
    clean_attendee,
    clean_payment_method,
    clean_seat_number,
)
from ticketing.services.ids import parse_event_id
from ticketing.services.seat_ledger import SeatLedger, ensure_bookable
from ticketing.stores.interfaces import EventStore, TicketStore, TransactionManager

logger = logging.getLogger(__name__)


class BookingService:
    """Books seats and issues admission credentials."""

    def __init__(
        self,
        transactions: TransactionManager,
        events: EventStore,
        tickets: TicketStore,
        ledger: SeatLedger,
        codec: CredentialCodec,
        renderer: QrRenderer | None = None,
        clock: Callable[[], datetime] = utc_now,
        rng: random.Random | None = None,
        validity_grace: timedelta = timedelta(hours=24),
    ) -> None:
        self._tx = transactions
        self._events = events
        self._tickets = tickets
        self._ledger = ledger
        self._codec = codec
        self._renderer = renderer
        self._clock = clock
        self._rng = rng
        self._validity_grace = validity_grace

    def book_ticket(
        self,
        event_id: str,
        seat_number: str,
        payment_method: str,
        actor: Actor,
        attendee: AttendeeInfo | None = None,
        section: str = "General",
        row: str = "A",
    ) -> Ticket:
        """Book one seat for the actor.

        Raises:
            ValidationError: If the seat, payment method or attendee is invalid.
            InvalidIdError: If event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            EventNotBookableError: If the event is unpublished or started.
            SeatTakenError: If the seat is already held.
            SoldOutError: If the event has no seats left.
            TicketNumberExhaustedError: If no unique ticket number was found.
        """
        eid = parse_event_id(event_id)
        seat = clean_seat_number(seat_number)
        method = clean_payment_method(payment_method)
        attendee = clean_attendee(attendee, actor)
        now = self._clock()

        event = self._events.get_event(eid)
        if event is None:
            raise EventNotFoundError(str(eid))
        ensure_bookable(event, now)

        try:
            number = allocate_ticket_number(
                now, self._tickets.ticket_number_exists, self._rng
            )
        except TicketNumberExhaustedError:
            logger.error("Ticket number allocation exhausted for event %s", eid)
            raise

        with self._tx.atomic():
            token = self._ledger.try_reserve(eid, seat, now)
            event = token.event
            ticket = self._tickets.add_ticket(
                Ticket(
                    id=TicketId.new(),
                    ticket_number=number,
                    event_id=eid,
                    user_id=actor.id,
                    seat=SeatInfo(seat_number=seat, section=section, row=row),
                    attendee=attendee,
                    pricing=resolve_pricing(event, now),
                    payment=derive_payment(method, now, self._rng),
                    status=TicketStatus.ACTIVE,
                    purchase_date=now,
                    valid_until=default_valid_until(event, self._validity_grace),
                )
            )
            payload = self._codec.encode(CredentialPayload.for_ticket(ticket))
            ticket = self._tickets.save_ticket(
                replace(ticket, credential=Credential(payload=payload))
            )
            counters = self._ledger.commit(token)

        logger.info(
            "Booked ticket %s seat %s for event %s (available=%d sold=%d)",
            ticket.ticket_number,
            seat,
            eid,
            counters.available,
            counters.sold,
        )
        return self.render_credential(ticket)

    def render_credential(self, ticket: Ticket) -> Ticket:
        """Render (or re-render) the QR image for a ticket's stored payload.

        A render failure is logged and the ticket is returned unchanged; the
        stored payload stays authoritative.
        """
        if self._renderer is None or not ticket.credential.payload:
            return ticket
        try:
            image_ref = self._renderer.render_file(
                ticket.credential.payload, ticket.ticket_number.value
            )
        except (OSError, DataOverflowError):
            logger.warning(
                "Could not render credential image for ticket %s",
                ticket.ticket_number,
                exc_info=True,
            )
            return ticket
        self._tickets.set_credential_image(ticket.id, image_ref)
        return replace(ticket, credential=replace(ticket.credential, image_ref=image_ref))
