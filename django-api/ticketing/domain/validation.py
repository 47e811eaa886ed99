"""Input checks applied before any store or ledger call."""

import re

from ticketing.domain.errors import ValidationError
from ticketing.domain.models import Actor, AttendeeInfo, Gender, PaymentMethod

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_SEAT_NUMBER_LENGTH = 10
MAX_GATE_LENGTH = 50


def clean_seat_number(seat_number: str) -> str:
    seat = (seat_number or "").strip()
    if not 1 <= len(seat) <= MAX_SEAT_NUMBER_LENGTH:
        raise ValidationError(
            "seat_number", "Seat number must be between 1 and 10 characters"
        )
    return seat


def clean_payment_method(method: str | PaymentMethod) -> PaymentMethod:
    try:
        return PaymentMethod(method)
    except ValueError:
        raise ValidationError("payment_method", "Invalid payment method") from None


def clean_gate(gate: str | None, default: str) -> str:
    gate = (gate or "").strip() or default
    if len(gate) > MAX_GATE_LENGTH:
        raise ValidationError("gate", "Gate name cannot exceed 50 characters")
    return gate


def clean_attendee(attendee: AttendeeInfo | None, actor: Actor) -> AttendeeInfo:
    """Validate attendee details, falling back to the actor's profile."""
    if attendee is None:
        attendee = AttendeeInfo(name=actor.name, email=actor.email, phone=actor.phone)

    name = attendee.name.strip()
    if not 2 <= len(name) <= 50:
        raise ValidationError(
            "attendee.name", "Attendee name must be between 2 and 50 characters"
        )
    email = attendee.email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("attendee.email", "Invalid email format")
    if attendee.age is not None and not 1 <= attendee.age <= 120:
        raise ValidationError("attendee.age", "Age must be between 1 and 120")
    gender = attendee.gender
    if gender is not None:
        try:
            gender = Gender(gender)
        except ValueError:
            raise ValidationError("attendee.gender", "Invalid gender") from None
    return AttendeeInfo(
        name=name,
        email=email,
        phone=attendee.phone.strip(),
        age=attendee.age,
        gender=gender,
    )
