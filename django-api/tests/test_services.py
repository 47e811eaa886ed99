"""Unit tests for the ticketing services over the in-memory stores.

These test booking, check-in, cancellation, expiry and queries, including
the seat guarantees under concurrent bookings.
Run with: pytest tests/test_services.py -v
"""

import json
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest

from ticketing.conf import TicketingSettings
from ticketing.credentials import CredentialCodec, CredentialPayload
from ticketing.domain import (
    AttendeeInfo,
    EventStatus,
    Money,
    PaymentStatus,
    SeatCounters,
    TicketStatus,
)
from ticketing.domain.errors import (
    AlreadyCheckedInError,
    CancellationWindowClosedError,
    CounterInvariantError,
    EventNotActiveError,
    EventNotBookableError,
    EventNotFoundError,
    ForbiddenError,
    InvalidIdError,
    InvalidTransitionError,
    MalformedCredentialError,
    SeatTakenError,
    SoldOutError,
    TicketNotActiveError,
    TicketNotFoundError,
    TicketNumberExhaustedError,
    ValidationError,
)
from ticketing.services.booking_service import BookingService
from ticketing.services.container import build_services
from ticketing.services.seat_ledger import SeatLedger

MISSING_ID = "7a0c3f2e-4b1d-4e8a-9c6f-2d5b8e1a0f44"


class ConstantRandom(random.Random):
    def randrange(self, *args, **kwargs):
        return 7


def stats(services, event):
    return services.queries.get_event_seat_stats(str(event.id))


def book(services, event, actor, seat="A1", method="card", **kwargs):
    return services.booking.book_ticket(
        event_id=str(event.id),
        seat_number=seat,
        payment_method=method,
        actor=actor,
        **kwargs,
    )


class TestBooking:
    """Tests for BookingService.book_ticket."""

    def test_book_ticket_issues_active_ticket(self, services, event, user, clock):
        ticket = book(services, event, user)

        assert ticket.status is TicketStatus.ACTIVE
        assert ticket.ticket_number.value.startswith("EVT-20260301-")
        assert ticket.user_id == user.id
        assert ticket.seat.seat_number == "A1"
        assert ticket.seat.section == "General"
        assert ticket.seat.row == "A"
        assert ticket.purchase_date == clock.now
        assert ticket.valid_until == event.ends_at + timedelta(hours=24)
        assert ticket.pricing.final_price == Money(Decimal("150.00"))
        assert ticket.payment.status is PaymentStatus.COMPLETED
        assert ticket.payment.transaction_id.startswith("TXN-")

    def test_book_ticket_moves_one_seat_to_sold(self, services, event, user):
        book(services, event, user)
        counters = stats(services, event)
        assert (counters.total, counters.available, counters.sold) == (3, 2, 1)

    def test_cash_payment_stays_pending(self, services, event, user):
        ticket = book(services, event, user, method="cash")
        assert ticket.payment.status is PaymentStatus.PENDING
        assert ticket.payment.transaction_id is None

    def test_attendee_defaults_to_actor_profile(self, services, event, user):
        ticket = book(services, event, user)
        assert ticket.attendee.name == "Mona Hassan"
        assert ticket.attendee.email == "mona@example.com"

    def test_explicit_attendee_is_used(self, services, event, user):
        attendee = AttendeeInfo(name="Omar Nabil", email="omar@example.com", phone="0100")
        ticket = book(services, event, user, attendee=attendee, section="VIP", row="C")
        assert ticket.attendee.name == "Omar Nabil"
        assert ticket.seat.section == "VIP"
        assert ticket.seat.row == "C"

    def test_early_bird_price_applies(self, services, make_event, user, clock):
        event = make_event(
            early_bird_price="120.00", early_bird_deadline=clock.now + timedelta(days=1)
        )
        ticket = book(services, event, user)
        assert ticket.pricing.final_price == Money(Decimal("120.00"))
        assert ticket.pricing.discount == Money(Decimal("30.00"))

    def test_credential_names_the_ticket(self, services, event, user, stores):
        ticket = book(services, event, user)
        payload = CredentialCodec().decode(ticket.credential.payload)
        assert payload.ticket_id == str(ticket.id)
        assert payload.event_id == str(event.id)
        assert payload.ticket_number == ticket.ticket_number.value
        assert stores.tickets.get_ticket(ticket.id).credential.payload == (
            ticket.credential.payload
        )

    def test_credential_image_is_rendered(self, services, event, user, stores):
        ticket = book(services, event, user)
        assert ticket.credential.image_ref == f"{ticket.ticket_number}.png"
        stored = stores.tickets.get_ticket(ticket.id)
        assert stored.credential.image_ref == ticket.credential.image_ref
        output_dir = services.renderer.output_dir
        assert (output_dir / ticket.credential.image_ref).is_file()

    def test_render_failure_keeps_booking(self, tmp_path, stores, clock, make_event, user):
        blocked = tmp_path / "blocked"
        blocked.write_text("not a directory")
        services = build_services(
            TicketingSettings(QR_OUTPUT_DIR=str(blocked)),
            stores.transactions,
            stores.events,
            stores.tickets,
            clock=clock,
        )
        event = make_event()
        ticket = book(services, event, user)
        assert ticket.status is TicketStatus.ACTIVE
        assert ticket.credential.payload
        assert ticket.credential.image_ref is None
        assert stats(services, event).sold == 1

    def test_render_credential_regenerates_image(self, services, event, user, stores):
        ticket = book(services, event, user)
        stores.tickets.set_credential_image(ticket.id, "")
        stripped = stores.tickets.get_ticket(ticket.id)

        rendered = services.booking.render_credential(stripped)

        assert rendered.credential.image_ref == f"{ticket.ticket_number}.png"
        assert stores.tickets.get_ticket(ticket.id).credential.image_ref == (
            rendered.credential.image_ref
        )

    def test_seat_taken(self, services, event, user, other_user):
        book(services, event, user)
        with pytest.raises(SeatTakenError) as exc_info:
            book(services, event, other_user)
        assert exc_info.value.seat_number == "A1"
        assert stats(services, event).sold == 1

    def test_sold_out(self, services, make_event, user, stores):
        event = make_event(seats=1)
        book(services, event, user, seat="A1")
        with pytest.raises(SoldOutError):
            book(services, event, user, seat="A2")
        assert [t.seat.seat_number for t in stores.tickets.list_for_event(event.id)] == ["A1"]
        assert stats(services, event).sold == 1

    def test_held_seat_on_full_event_is_seat_taken(self, services, make_event, user, other_user):
        event = make_event(seats=1)
        book(services, event, user, seat="A1")
        with pytest.raises(SeatTakenError):
            book(services, event, other_user, seat="A1")

    def test_unpublished_event_is_not_bookable(self, services, make_event, user):
        event = make_event(status=EventStatus.DRAFT)
        with pytest.raises(EventNotBookableError):
            book(services, event, user)

    def test_started_event_is_not_bookable(self, services, event, user, clock):
        clock.now = event.starts_at + timedelta(minutes=1)
        with pytest.raises(EventNotBookableError) as exc_info:
            book(services, event, user)
        assert exc_info.value.reason == "already started"

    def test_unknown_event(self, services, user):
        with pytest.raises(EventNotFoundError):
            services.booking.book_ticket(MISSING_ID, "A1", "card", user)

    def test_invalid_event_id(self, services, user):
        with pytest.raises(InvalidIdError):
            services.booking.book_ticket("not-a-uuid", "A1", "card", user)

    @pytest.mark.parametrize(
        "seat,method",
        [("", "card"), ("A" * 11, "card"), ("A1", "crypto")],
    )
    def test_invalid_input_touches_nothing(self, services, event, user, seat, method):
        with pytest.raises(ValidationError):
            book(services, event, user, seat=seat, method=method)
        assert stats(services, event).sold == 0

    def test_ticket_number_exhaustion(self, stores, ticketing_settings, clock, event, user):
        services = build_services(
            ticketing_settings,
            stores.transactions,
            stores.events,
            stores.tickets,
            clock=clock,
            rng=ConstantRandom(),
        )
        first = book(services, event, user, seat="A1")
        assert first.ticket_number.value == "EVT-20260301-00007"
        with pytest.raises(TicketNumberExhaustedError):
            book(services, event, user, seat="A2")
        assert stats(services, event).sold == 1
        assert not stores.tickets.seat_is_held(event.id, "A2")

    def test_failure_inside_block_rolls_back(self, stores, clock, event, user):
        class BrokenCodec(CredentialCodec):
            def encode(self, payload: CredentialPayload) -> str:
                raise RuntimeError("encoder unavailable")

        ledger = SeatLedger(stores.events, stores.tickets)
        booking = BookingService(
            stores.transactions,
            stores.events,
            stores.tickets,
            ledger,
            BrokenCodec(),
            clock=clock,
        )
        with pytest.raises(RuntimeError):
            booking.book_ticket(str(event.id), "A1", "card", user)
        assert not stores.tickets.seat_is_held(event.id, "A1")
        assert stores.tickets.list_for_user(user.id) == []
        assert stores.events.get_event(event.id).capacity == SeatCounters.fresh(3)


class TestConcurrentBooking:
    """Seat guarantees when bookings race."""

    def test_same_seat_has_exactly_one_winner(self, services, make_event, user):
        event = make_event(seats=10)
        barrier = threading.Barrier(16)

        def attempt(_):
            barrier.wait()
            try:
                return book(services, event, user, seat="A1")
            except SeatTakenError as e:
                return e

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(attempt, range(16)))

        winners = [r for r in results if not isinstance(r, SeatTakenError)]
        assert len(winners) == 1
        counters = stats(services, event)
        assert (counters.available, counters.sold) == (9, 1)

    def test_last_seats_are_never_oversold(self, services, make_event, user):
        event = make_event(seats=5)
        barrier = threading.Barrier(20)

        def attempt(n):
            barrier.wait()
            try:
                return book(services, event, user, seat=f"S{n}")
            except SoldOutError as e:
                return e

        with ThreadPoolExecutor(max_workers=20) as pool:
            results = list(pool.map(attempt, range(20)))

        sold_out = [r for r in results if isinstance(r, SoldOutError)]
        assert len(sold_out) == 15
        counters = stats(services, event)
        assert (counters.total, counters.available, counters.sold) == (5, 0, 5)


class TestCheckIn:
    """Tests for CheckInService.check_in."""

    def test_check_in_marks_ticket_used(self, services, event, user, manager, stores, clock):
        ticket = book(services, event, user)
        confirmation = services.check_in.check_in(
            ticket.credential.payload, "Gate B", manager
        )

        assert confirmation.ticket_number == ticket.ticket_number.value
        assert confirmation.attendee_name == "Mona Hassan"
        assert confirmation.event_title == "Cairo Jazz Night"
        assert confirmation.seat_number == "A1"
        assert confirmation.checked_in_at == clock.now
        stored = stores.tickets.get_ticket(ticket.id)
        assert stored.status is TicketStatus.USED
        assert stored.check_in.checked_in_by == manager.id
        assert stored.check_in.gate == "Gate B"

    def test_gate_defaults_to_main_gate(self, services, event, user, manager, stores):
        ticket = book(services, event, user)
        services.check_in.check_in(ticket.credential.payload, None, manager)
        assert stores.tickets.get_ticket(ticket.id).check_in.gate == "Main Gate"

    def test_replayed_scan_is_rejected(self, services, event, user, manager):
        ticket = book(services, event, user)
        services.check_in.check_in(ticket.credential.payload, "Gate B", manager)
        with pytest.raises(AlreadyCheckedInError):
            services.check_in.check_in(ticket.credential.payload, "Gate C", manager)

    def test_used_ticket_keeps_its_seat(self, services, event, user, other_user, manager):
        ticket = book(services, event, user)
        services.check_in.check_in(ticket.credential.payload, None, manager)
        with pytest.raises(SeatTakenError):
            book(services, event, other_user)
        assert stats(services, event).sold == 1

    def test_concurrent_scans_admit_once(self, services, event, user, manager):
        ticket = book(services, event, user)
        barrier = threading.Barrier(8)

        def scan(_):
            barrier.wait()
            try:
                return services.check_in.check_in(ticket.credential.payload, None, manager)
            except AlreadyCheckedInError as e:
                return e

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(scan, range(8)))

        assert sum(not isinstance(r, AlreadyCheckedInError) for r in results) == 1

    def test_regular_user_cannot_check_in(self, services, event, user):
        ticket = book(services, event, user)
        with pytest.raises(ForbiddenError):
            services.check_in.check_in(ticket.credential.payload, None, user)

    def test_admin_can_check_in(self, services, event, user, admin):
        ticket = book(services, event, user)
        services.check_in.check_in(ticket.credential.payload, None, admin)

    @pytest.mark.parametrize(
        "raw",
        [
            "garbage",
            '{"ticketId": "not-a-uuid", "eventId": "e", "ticketNumber": "n"}',
        ],
    )
    def test_malformed_credential(self, services, manager, raw):
        with pytest.raises(MalformedCredentialError):
            services.check_in.check_in(raw, None, manager)

    def test_unknown_ticket(self, services, manager):
        raw = json.dumps(
            {"ticketId": MISSING_ID, "eventId": MISSING_ID, "ticketNumber": "EVT-20260301-00001"}
        )
        with pytest.raises(TicketNotFoundError):
            services.check_in.check_in(raw, None, manager)

    def test_cancelled_ticket_is_not_admitted(self, services, event, user, manager):
        ticket = book(services, event, user)
        services.cancellation.cancel_ticket(str(ticket.id), user)
        with pytest.raises(TicketNotActiveError) as exc_info:
            services.check_in.check_in(ticket.credential.payload, None, manager)
        assert exc_info.value.status == "cancelled"

    def test_event_must_be_published(self, services, event, user, manager, stores):
        ticket = book(services, event, user)
        stores.events.add_event(
            replace(stores.events.get_event(event.id), status=EventStatus.CANCELLED)
        )
        with pytest.raises(EventNotActiveError):
            services.check_in.check_in(ticket.credential.payload, None, manager)
        assert stores.tickets.get_ticket(ticket.id).status is TicketStatus.ACTIVE

    def test_gate_name_too_long(self, services, event, user, manager):
        ticket = book(services, event, user)
        with pytest.raises(ValidationError):
            services.check_in.check_in(ticket.credential.payload, "G" * 51, manager)


class TestCancellation:
    """Tests for CancellationService.cancel_ticket."""

    def test_cancel_refunds_and_releases_seat(self, services, event, user, clock):
        ticket = book(services, event, user)
        cancelled = services.cancellation.cancel_ticket(str(ticket.id), user)

        assert cancelled.status is TicketStatus.CANCELLED
        assert cancelled.payment.status is PaymentStatus.REFUNDED
        assert cancelled.payment.refunded_at == clock.now
        counters = stats(services, event)
        assert (counters.available, counters.sold) == (3, 0)

    def test_cancelled_seat_can_be_rebooked(self, services, event, user, other_user):
        first = book(services, event, user, seat="A1")
        services.cancellation.cancel_ticket(str(first.id), user)
        second = book(services, event, other_user, seat="A1")

        assert second.id != first.id
        assert second.ticket_number != first.ticket_number
        assert stats(services, event).sold == 1

    def test_single_seat_book_cancel_rebook(
        self, services, make_event, user, other_user, clock, stores
    ):
        event = make_event(seats=1)
        first = book(services, event, user, seat="A1")
        with pytest.raises(SeatTakenError):
            book(services, event, other_user, seat="A1")

        clock.now = event.starts_at - timedelta(hours=48)
        services.cancellation.cancel_ticket(str(first.id), user)
        counters = stats(services, event)
        assert (counters.total, counters.available, counters.sold) == (1, 1, 0)

        second = book(services, event, other_user, seat="A1")
        assert second.status is TicketStatus.ACTIVE
        assert stores.tickets.get_ticket(first.id).status is TicketStatus.CANCELLED
        counters = stats(services, event)
        assert (counters.available, counters.sold) == (0, 1)

    def test_cancel_inside_embargo_window(self, services, event, user, clock, stores):
        ticket = book(services, event, user)
        clock.now = event.starts_at - timedelta(hours=23)
        with pytest.raises(CancellationWindowClosedError) as exc_info:
            services.cancellation.cancel_ticket(str(ticket.id), user)
        assert exc_info.value.hours_until_start == pytest.approx(23)
        assert stores.tickets.get_ticket(ticket.id).status is TicketStatus.ACTIVE
        assert stats(services, event).sold == 1

    def test_cancel_just_outside_embargo_window(self, services, event, user, clock):
        ticket = book(services, event, user)
        clock.now = event.starts_at - timedelta(hours=24)
        services.cancellation.cancel_ticket(str(ticket.id), user)

    def test_other_user_cannot_cancel(self, services, event, user, other_user):
        ticket = book(services, event, user)
        with pytest.raises(ForbiddenError):
            services.cancellation.cancel_ticket(str(ticket.id), other_user)

    def test_manager_cannot_cancel_others_tickets(self, services, event, user, manager):
        ticket = book(services, event, user)
        with pytest.raises(ForbiddenError):
            services.cancellation.cancel_ticket(str(ticket.id), manager)

    def test_admin_can_cancel_any_ticket(self, services, event, user, admin):
        ticket = book(services, event, user)
        cancelled = services.cancellation.cancel_ticket(str(ticket.id), admin)
        assert cancelled.status is TicketStatus.CANCELLED

    def test_cancel_twice(self, services, event, user):
        ticket = book(services, event, user)
        services.cancellation.cancel_ticket(str(ticket.id), user)
        with pytest.raises(InvalidTransitionError):
            services.cancellation.cancel_ticket(str(ticket.id), user)
        assert stats(services, event).sold == 0

    def test_used_ticket_cannot_be_cancelled(self, services, event, user, manager):
        ticket = book(services, event, user)
        services.check_in.check_in(ticket.credential.payload, None, manager)
        with pytest.raises(InvalidTransitionError):
            services.cancellation.cancel_ticket(str(ticket.id), user)

    def test_unknown_and_invalid_ids(self, services, user):
        with pytest.raises(TicketNotFoundError):
            services.cancellation.cancel_ticket(MISSING_ID, user)
        with pytest.raises(InvalidIdError):
            services.cancellation.cancel_ticket("nope", user)

    def test_counter_invariant_violation_rolls_back(self, services, event, user, stores):
        ticket = book(services, event, user)
        # Counters drifted out from under the ticket.
        stores.events.add_event(
            replace(stores.events.get_event(event.id), capacity=SeatCounters.fresh(3))
        )
        with pytest.raises(CounterInvariantError):
            services.cancellation.cancel_ticket(str(ticket.id), user)
        assert stores.tickets.get_ticket(ticket.id).status is TicketStatus.ACTIVE


class TestExpiry:
    """Tests for ExpiryService.expire_overdue."""

    def test_overdue_active_tickets_expire(self, services, event, user, clock, stores):
        ticket = book(services, event, user)
        clock.now = ticket.valid_until + timedelta(minutes=1)

        expired = services.expiry.expire_overdue()

        assert [t.id for t in expired] == [ticket.id]
        assert stores.tickets.get_ticket(ticket.id).status is TicketStatus.EXPIRED
        counters = stats(services, event)
        assert (counters.available, counters.sold) == (3, 0)

    def test_sold_matches_live_tickets_after_sweep(
        self, services, make_event, user, other_user, manager, stores
    ):
        event = make_event(seats=2)
        stale = book(services, event, user, seat="A1")
        admitted = book(services, event, other_user, seat="A2")
        services.check_in.check_in(admitted.credential.payload, None, manager)

        services.expiry.expire_overdue(now=stale.valid_until + timedelta(seconds=1))

        live = [
            t
            for t in stores.tickets.list_for_event(event.id)
            if t.status in (TicketStatus.ACTIVE, TicketStatus.USED)
        ]
        counters = stats(services, event)
        assert counters.sold == len(live) == 1
        assert counters.available + counters.sold == counters.total

    def test_expired_seat_can_be_rebooked(self, services, make_event, user, other_user):
        event = make_event(seats=1)
        stale = book(services, event, user, seat="A1")
        services.expiry.expire_overdue(now=stale.valid_until + timedelta(seconds=1))

        again = book(services, event, other_user, seat="A1")

        assert again.status is TicketStatus.ACTIVE
        assert stats(services, event).sold == 1

    def test_tickets_still_valid_are_untouched(self, services, event, user, clock):
        ticket = book(services, event, user)
        clock.now = ticket.valid_until
        assert services.expiry.expire_overdue() == []

    def test_used_tickets_do_not_expire(self, services, event, user, manager, clock):
        ticket = book(services, event, user)
        services.check_in.check_in(ticket.credential.payload, None, manager)
        clock.now = ticket.valid_until + timedelta(days=1)
        assert services.expiry.expire_overdue() == []

    def test_expired_ticket_cannot_be_used_or_cancelled(
        self, services, event, user, manager, clock
    ):
        ticket = book(services, event, user)
        services.expiry.expire_overdue(now=ticket.valid_until + timedelta(seconds=1))
        with pytest.raises(TicketNotActiveError):
            services.check_in.check_in(ticket.credential.payload, None, manager)
        with pytest.raises(InvalidTransitionError):
            services.cancellation.cancel_ticket(str(ticket.id), user)


class TestQueries:
    """Tests for TicketQueryService."""

    def test_owner_and_staff_can_view_ticket(self, services, event, user, manager):
        ticket = book(services, event, user)
        assert services.queries.get_ticket(str(ticket.id), user).id == ticket.id
        assert services.queries.get_ticket(str(ticket.id), manager).id == ticket.id

    def test_other_user_cannot_view_ticket(self, services, event, user, other_user):
        ticket = book(services, event, user)
        with pytest.raises(ForbiddenError):
            services.queries.get_ticket(str(ticket.id), other_user)

    def test_my_tickets_newest_first(self, services, event, user, other_user, clock):
        first = book(services, event, user, seat="A1")
        clock.advance(minutes=5)
        second = book(services, event, user, seat="A2")
        book(services, event, other_user, seat="A3")

        mine = services.queries.list_my_tickets(user)
        assert [t.id for t in mine] == [second.id, first.id]

    def test_my_tickets_status_filter(self, services, event, user):
        first = book(services, event, user, seat="A1")
        book(services, event, user, seat="A2")
        services.cancellation.cancel_ticket(str(first.id), user)

        cancelled = services.queries.list_my_tickets(user, status="cancelled")
        assert [t.id for t in cancelled] == [first.id]
        with pytest.raises(ValidationError):
            services.queries.list_my_tickets(user, status="lost")

    def test_event_tickets_for_staff(self, services, event, user, other_user, manager):
        first = book(services, event, user, seat="A1")
        book(services, event, other_user, seat="A2")
        services.check_in.check_in(first.credential.payload, None, manager)

        listed = services.queries.list_event_tickets(str(event.id), manager)
        assert len(listed) == 2
        checked_in = services.queries.list_event_tickets(
            str(event.id), manager, checked_in=True
        )
        assert [t.id for t in checked_in] == [first.id]

    def test_event_tickets_forbidden_for_users(self, services, event, user):
        with pytest.raises(ForbiddenError):
            services.queries.list_event_tickets(str(event.id), user)

    def test_event_tickets_unknown_event(self, services, manager):
        with pytest.raises(EventNotFoundError):
            services.queries.list_event_tickets(MISSING_ID, manager)

    def test_seat_stats_unknown_event(self, services):
        with pytest.raises(EventNotFoundError):
            services.queries.get_event_seat_stats(MISSING_ID)
