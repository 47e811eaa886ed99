"""Wires stores and services together once per process."""

import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache

from ticketing.conf import TicketingSettings
from ticketing.credentials import CredentialCodec, QrRenderer
from ticketing.domain.lifecycle import utc_now
from ticketing.services.booking_service import BookingService
from ticketing.services.cancellation_service import CancellationService
from ticketing.services.checkin_service import CheckInService
from ticketing.services.expiry_service import ExpiryService
from ticketing.services.query_service import TicketQueryService
from ticketing.services.seat_ledger import SeatLedger
from ticketing.stores.interfaces import EventStore, TicketStore, TransactionManager


@dataclass(frozen=True)
class TicketingServices:
    booking: BookingService
    check_in: CheckInService
    cancellation: CancellationService
    expiry: ExpiryService
    queries: TicketQueryService
    renderer: QrRenderer


def build_services(
    settings: TicketingSettings,
    transactions: TransactionManager,
    events: EventStore,
    tickets: TicketStore,
    clock: Callable[[], datetime] = utc_now,
    rng: random.Random | None = None,
) -> TicketingServices:
    """Construct every service over the given stores."""
    codec = CredentialCodec(signing_key=settings.CREDENTIAL_SIGNING_KEY or None)
    renderer = QrRenderer(
        output_dir=settings.QR_OUTPUT_DIR,
        box_size=settings.QR_BOX_SIZE,
        border=settings.QR_BORDER,
        size=settings.QR_SIZE,
        error_correction=settings.QR_ERROR_CORRECTION,
    )
    ledger = SeatLedger(events, tickets)
    return TicketingServices(
        booking=BookingService(
            transactions,
            events,
            tickets,
            ledger,
            codec,
            renderer=renderer,
            rng=rng,
            validity_grace=timedelta(hours=settings.VALIDITY_GRACE_HOURS),
            clock=clock,
        ),
        check_in=CheckInService(
            transactions,
            events,
            tickets,
            codec,
            default_gate=settings.DEFAULT_GATE,
            clock=clock,
        ),
        cancellation=CancellationService(
            transactions,
            events,
            tickets,
            ledger,
            embargo_hours=settings.CANCELLATION_EMBARGO_HOURS,
            clock=clock,
        ),
        expiry=ExpiryService(transactions, events, tickets, ledger, clock=clock),
        queries=TicketQueryService(events, tickets, ledger),
        renderer=renderer,
    )


@lru_cache(maxsize=1)
def get_services() -> TicketingServices:
    """Return the process-wide services backed by the Django ORM."""
    from ticketing.stores.django_store import (
        DjangoEventStore,
        DjangoTicketStore,
        DjangoTransactionManager,
    )

    return build_services(
        TicketingSettings(),
        DjangoTransactionManager(),
        DjangoEventStore(),
        DjangoTicketStore(),
    )
