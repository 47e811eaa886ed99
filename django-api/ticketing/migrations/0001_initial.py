import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("published", "Published"),
                            ("cancelled", "Cancelled"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=16,
                    ),
                ),
                ("starts_at", models.DateTimeField()),
                ("ends_at", models.DateTimeField()),
                ("ticket_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("currency", models.CharField(default="EGP", max_length=3)),
                ("early_bird_price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("early_bird_deadline", models.DateTimeField(blank=True, null=True)),
                ("total_seats", models.PositiveIntegerField()),
                ("available_seats", models.PositiveIntegerField()),
                ("sold_seats", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["starts_at"],
                "indexes": [models.Index(fields=["starts_at"], name="event_starts_at_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("available_seats__gte", 0), ("sold_seats__gte", 0)),
                        name="event_seat_counters_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("available_seats", models.F("total_seats") - models.F("sold_seats"))
                        ),
                        name="event_seat_counters_balanced",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("ticket_number", models.CharField(editable=False, max_length=18, unique=True)),
                ("seat_number", models.CharField(max_length=10)),
                ("seat_section", models.CharField(default="General", max_length=50)),
                ("seat_row", models.CharField(default="A", max_length=10)),
                ("attendee_name", models.CharField(max_length=50)),
                ("attendee_email", models.EmailField(max_length=254)),
                ("attendee_phone", models.CharField(blank=True, max_length=32)),
                ("attendee_age", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "attendee_gender",
                    models.CharField(
                        blank=True,
                        choices=[("male", "Male"), ("female", "Female"), ("other", "Other")],
                        max_length=8,
                    ),
                ),
                ("original_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("final_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("discount", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("currency", models.CharField(default="EGP", max_length=3)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("card", "Card"),
                            ("online", "Online"),
                            ("bank_transfer", "Bank transfer"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("transaction_id", models.CharField(blank=True, max_length=64)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("used", "Used"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=16,
                    ),
                ),
                ("is_checked_in", models.BooleanField(default=False)),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("gate", models.CharField(blank=True, max_length=50)),
                ("purchase_date", models.DateTimeField()),
                ("valid_until", models.DateTimeField()),
                ("credential_payload", models.TextField(blank=True)),
                ("credential_image", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to="ticketing.event",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tickets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "checked_in_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="checked_in_tickets",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["event", "user"], name="ticket_event_user_idx"),
                    models.Index(fields=["status", "valid_until"], name="ticket_status_valid_until_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["active", "used"])),
                        fields=("event", "seat_number"),
                        name="unique_held_seat_per_event",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("final_price__gte", 0), ("discount__gte", 0)),
                        name="ticket_prices_non_negative",
                    ),
                ],
            },
        ),
    ]
