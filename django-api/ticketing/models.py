"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/.
Seat uniqueness and counter consistency are enforced here as database
constraints so a racing writer fails instead of double-booking.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q


class Event(models.Model):
    """Persistence model for events and their seat counters."""

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PUBLISHED = "published", "Published"
        CANCELLED = "cancelled", "Cancelled"
        COMPLETED = "completed", "Completed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=100)
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.DRAFT, db_index=True
    )
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    ticket_price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="EGP")
    early_bird_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    early_bird_deadline = models.DateTimeField(null=True, blank=True)
    total_seats = models.PositiveIntegerField()
    available_seats = models.PositiveIntegerField()
    sold_seats = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_at"]
        indexes = [
            models.Index(fields=["starts_at"], name="event_starts_at_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(available_seats__gte=0) & Q(sold_seats__gte=0),
                name="event_seat_counters_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(available_seats=F("total_seats") - F("sold_seats")),
                name="event_seat_counters_balanced",
            ),
        ]

    def __str__(self) -> str:
        return self.title


class Ticket(models.Model):
    """Persistence model for tickets.

    Rows are an audit trail and are never hard-deleted.
    """

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        USED = "used", "Used"
        CANCELLED = "cancelled", "Cancelled"
        EXPIRED = "expired", "Expired"

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash"
        CARD = "card", "Card"
        ONLINE = "online", "Online"
        BANK_TRANSFER = "bank_transfer", "Bank transfer"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        REFUNDED = "refunded", "Refunded"

    class Gender(models.TextChoices):
        MALE = "male", "Male"
        FEMALE = "female", "Female"
        OTHER = "other", "Other"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ticket_number = models.CharField(max_length=18, unique=True, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="tickets")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="tickets"
    )

    seat_number = models.CharField(max_length=10)
    seat_section = models.CharField(max_length=50, default="General")
    seat_row = models.CharField(max_length=10, default="A")

    attendee_name = models.CharField(max_length=50)
    attendee_email = models.EmailField()
    attendee_phone = models.CharField(max_length=32, blank=True)
    attendee_age = models.PositiveSmallIntegerField(null=True, blank=True)
    attendee_gender = models.CharField(max_length=8, choices=Gender.choices, blank=True)

    original_price = models.DecimalField(max_digits=10, decimal_places=2)
    final_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default="EGP")

    payment_method = models.CharField(max_length=16, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    transaction_id = models.CharField(max_length=64, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.ACTIVE, db_index=True
    )
    is_checked_in = models.BooleanField(default=False)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_in_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checked_in_tickets",
    )
    gate = models.CharField(max_length=50, blank=True)

    purchase_date = models.DateTimeField()
    valid_until = models.DateTimeField()
    credential_payload = models.TextField(blank=True)
    credential_image = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event", "user"], name="ticket_event_user_idx"),
            models.Index(fields=["status", "valid_until"], name="ticket_status_valid_until_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "seat_number"],
                condition=Q(status__in=["active", "used"]),
                name="unique_held_seat_per_event",
            ),
            models.CheckConstraint(
                condition=Q(final_price__gte=0) & Q(discount__gte=0),
                name="ticket_prices_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.ticket_number} - {self.seat_number}"

    def delete(self, *args, **kwargs):
        raise models.ProtectedError("Tickets are kept as an audit trail", {self})
