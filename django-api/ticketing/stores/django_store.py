"""Django ORM implementation of the stores.

Per-event serialization uses SELECT ... FOR UPDATE on the event row. The
partial unique constraint on (event, seat_number) backs it up: an insert
that loses a race surfaces as SeatTakenError.
"""

import logging
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal

from django.db import IntegrityError, transaction

from ticketing import models
from ticketing.domain import (
    AttendeeInfo,
    CheckIn,
    Credential,
    Event,
    EventId,
    EventStatus,
    Gender,
    Money,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Pricing,
    SeatCounters,
    SeatInfo,
    Ticket,
    TicketId,
    TicketNumber,
    TicketStatus,
)
from ticketing.domain.errors import SeatTakenError, TicketNumberExhaustedError
from ticketing.domain.lifecycle import TICKET_NUMBER_ATTEMPTS
from ticketing.stores.interfaces import EventStore, TicketStore, TransactionManager

logger = logging.getLogger(__name__)

HELD_STATUSES = [TicketStatus.ACTIVE.value, TicketStatus.USED.value]


def _money(value: Decimal | None) -> Money | None:
    return None if value is None else Money(Decimal(value))


def event_to_domain(row: models.Event) -> Event:
    return Event(
        id=EventId(row.id),
        title=row.title,
        status=EventStatus(row.status),
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        ticket_price=Money(Decimal(row.ticket_price)),
        currency=row.currency,
        capacity=SeatCounters(
            total=row.total_seats,
            available=row.available_seats,
            sold=row.sold_seats,
        ),
        early_bird_price=_money(row.early_bird_price),
        early_bird_deadline=row.early_bird_deadline,
    )


def ticket_to_domain(row: models.Ticket) -> Ticket:
    return Ticket(
        id=TicketId(row.id),
        ticket_number=TicketNumber(row.ticket_number),
        event_id=EventId(row.event_id),
        user_id=str(row.user_id),
        seat=SeatInfo(
            seat_number=row.seat_number, section=row.seat_section, row=row.seat_row
        ),
        attendee=AttendeeInfo(
            name=row.attendee_name,
            email=row.attendee_email,
            phone=row.attendee_phone,
            age=row.attendee_age,
            gender=Gender(row.attendee_gender) if row.attendee_gender else None,
        ),
        pricing=Pricing(
            original_price=Money(Decimal(row.original_price)),
            final_price=Money(Decimal(row.final_price)),
            discount=Money(Decimal(row.discount)),
            currency=row.currency,
        ),
        payment=Payment(
            method=PaymentMethod(row.payment_method),
            status=PaymentStatus(row.payment_status),
            transaction_id=row.transaction_id or None,
            paid_at=row.paid_at,
            refunded_at=row.refunded_at,
        ),
        status=TicketStatus(row.status),
        purchase_date=row.purchase_date,
        valid_until=row.valid_until,
        check_in=CheckIn(
            is_checked_in=row.is_checked_in,
            checked_in_at=row.checked_in_at,
            checked_in_by=(
                str(row.checked_in_by_id) if row.checked_in_by_id is not None else None
            ),
            gate=row.gate or None,
        ),
        credential=Credential(
            payload=row.credential_payload,
            image_ref=row.credential_image or None,
        ),
    )


def _mutable_fields(ticket: Ticket) -> dict:
    return {
        "status": ticket.status.value,
        "payment_status": ticket.payment.status.value,
        "transaction_id": ticket.payment.transaction_id or "",
        "paid_at": ticket.payment.paid_at,
        "refunded_at": ticket.payment.refunded_at,
        "is_checked_in": ticket.check_in.is_checked_in,
        "checked_in_at": ticket.check_in.checked_in_at,
        "checked_in_by_id": ticket.check_in.checked_in_by,
        "gate": ticket.check_in.gate or "",
        "credential_payload": ticket.credential.payload,
        "credential_image": ticket.credential.image_ref or "",
    }


class DjangoTransactionManager(TransactionManager):
    """Wraps django.db.transaction.atomic."""

    def atomic(self) -> AbstractContextManager[None]:
        return transaction.atomic()


class DjangoEventStore(EventStore):
    """PostgreSQL-backed event store using Django ORM."""

    def get_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.filter(pk=event_id.value).first()
        return event_to_domain(row) if row else None

    def lock_event(self, event_id: EventId) -> Event | None:
        row = models.Event.objects.select_for_update().filter(pk=event_id.value).first()
        return event_to_domain(row) if row else None

    def save_capacity(self, event_id: EventId, capacity: SeatCounters) -> None:
        models.Event.objects.filter(pk=event_id.value).update(
            total_seats=capacity.total,
            available_seats=capacity.available,
            sold_seats=capacity.sold,
        )


class DjangoTicketStore(TicketStore):
    """PostgreSQL-backed ticket store using Django ORM."""

    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        row = models.Ticket.objects.filter(pk=ticket_id.value).first()
        return ticket_to_domain(row) if row else None

    def lock_ticket(self, ticket_id: TicketId) -> Ticket | None:
        row = models.Ticket.objects.select_for_update().filter(pk=ticket_id.value).first()
        return ticket_to_domain(row) if row else None

    def ticket_number_exists(self, ticket_number: str) -> bool:
        return models.Ticket.objects.filter(ticket_number=ticket_number).exists()

    def seat_is_held(self, event_id: EventId, seat_number: str) -> bool:
        return models.Ticket.objects.filter(
            event_id=event_id.value,
            seat_number=seat_number,
            status__in=HELD_STATUSES,
        ).exists()

    def add_ticket(self, ticket: Ticket) -> Ticket:
        try:
            # Savepoint so the outer transaction stays usable after a violation.
            with transaction.atomic():
                row = models.Ticket.objects.create(
                    id=ticket.id.value,
                    ticket_number=ticket.ticket_number.value,
                    event_id=ticket.event_id.value,
                    user_id=ticket.user_id,
                    seat_number=ticket.seat.seat_number,
                    seat_section=ticket.seat.section,
                    seat_row=ticket.seat.row,
                    attendee_name=ticket.attendee.name,
                    attendee_email=ticket.attendee.email,
                    attendee_phone=ticket.attendee.phone,
                    attendee_age=ticket.attendee.age,
                    attendee_gender=(
                        ticket.attendee.gender.value if ticket.attendee.gender else ""
                    ),
                    original_price=ticket.pricing.original_price.amount,
                    final_price=ticket.pricing.final_price.amount,
                    discount=ticket.pricing.discount.amount,
                    currency=ticket.pricing.currency,
                    payment_method=ticket.payment.method.value,
                    purchase_date=ticket.purchase_date,
                    valid_until=ticket.valid_until,
                    **_mutable_fields(ticket),
                )
        except IntegrityError as exc:
            if self.seat_is_held(ticket.event_id, ticket.seat.seat_number):
                logger.warning(
                    "Seat %s of event %s taken at insert",
                    ticket.seat.seat_number,
                    ticket.event_id,
                )
                raise SeatTakenError(
                    event_id=str(ticket.event_id), seat_number=ticket.seat.seat_number
                ) from exc
            if self.ticket_number_exists(ticket.ticket_number.value):
                logger.error("Ticket number %s collided at insert", ticket.ticket_number)
                raise TicketNumberExhaustedError(attempts=TICKET_NUMBER_ATTEMPTS) from exc
            raise
        return ticket_to_domain(row)

    def save_ticket(self, ticket: Ticket) -> Ticket:
        models.Ticket.objects.filter(pk=ticket.id.value).update(**_mutable_fields(ticket))
        return ticket

    def set_credential_image(self, ticket_id: TicketId, image_ref: str) -> None:
        models.Ticket.objects.filter(pk=ticket_id.value).update(credential_image=image_ref)

    def list_for_user(
        self, user_id: str, status: TicketStatus | None = None
    ) -> list[Ticket]:
        qs = models.Ticket.objects.filter(user_id=user_id)
        if status is not None:
            qs = qs.filter(status=status.value)
        return [ticket_to_domain(row) for row in qs.order_by("-created_at")]

    def list_for_event(
        self,
        event_id: EventId,
        status: TicketStatus | None = None,
        checked_in: bool | None = None,
    ) -> list[Ticket]:
        qs = models.Ticket.objects.filter(event_id=event_id.value)
        if status is not None:
            qs = qs.filter(status=status.value)
        if checked_in is not None:
            qs = qs.filter(is_checked_in=checked_in)
        return [ticket_to_domain(row) for row in qs.order_by("-created_at")]

    def list_overdue(self, now: datetime) -> list[TicketId]:
        ids = models.Ticket.objects.filter(
            status=TicketStatus.ACTIVE.value, valid_until__lt=now
        ).values_list("id", flat=True)
        return [TicketId(value) for value in ids]
