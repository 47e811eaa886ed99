"""Serializers for request parsing and domain-model responses.

Input serializers only check shape; business rules live in the services.
"""

from rest_framework import serializers

from ticketing.domain import AttendeeInfo, Gender


class AttendeeInfoSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=50)
    email = serializers.CharField(max_length=254)
    phone = serializers.CharField(max_length=32, required=False, default="")
    age = serializers.IntegerField(required=False, allow_null=True, default=None)
    gender = serializers.ChoiceField(
        choices=[g.value for g in Gender], required=False, allow_null=True, default=None
    )

    @staticmethod
    def to_domain(data) -> AttendeeInfo:
        return AttendeeInfo(
            name=data["name"],
            email=data["email"],
            phone=data["phone"],
            age=data["age"],
            gender=Gender(data["gender"]) if data["gender"] else None,
        )


class BookTicketSerializer(serializers.Serializer):
    """Input for POST /api/tickets/book"""

    event_id = serializers.CharField()
    seat_number = serializers.CharField(max_length=10)
    payment_method = serializers.CharField()
    section = serializers.CharField(max_length=50, required=False, default="General")
    row = serializers.CharField(max_length=10, required=False, default="A")
    attendee_info = AttendeeInfoSerializer(required=False)


class CheckInSerializer(serializers.Serializer):
    """Input for POST /api/tickets/checkin"""

    qr_data = serializers.CharField()
    gate = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")


class TicketSerializer(serializers.Serializer):
    """Serializer for the Ticket domain model."""

    def to_representation(self, ticket):
        return {
            "id": str(ticket.id),
            "ticket_number": ticket.ticket_number.value,
            "event_id": str(ticket.event_id),
            "user_id": ticket.user_id,
            "status": ticket.status.value,
            "seat_info": {
                "seat_number": ticket.seat.seat_number,
                "section": ticket.seat.section,
                "row": ticket.seat.row,
            },
            "attendee_info": {
                "name": ticket.attendee.name,
                "email": ticket.attendee.email,
                "phone": ticket.attendee.phone,
                "age": ticket.attendee.age,
                "gender": ticket.attendee.gender.value if ticket.attendee.gender else None,
            },
            "pricing": {
                "original_price": str(ticket.pricing.original_price),
                "final_price": str(ticket.pricing.final_price),
                "discount": str(ticket.pricing.discount),
                "currency": ticket.pricing.currency,
            },
            "payment": {
                "method": ticket.payment.method.value,
                "status": ticket.payment.status.value,
                "transaction_id": ticket.payment.transaction_id,
                "paid_at": _iso(ticket.payment.paid_at),
                "refunded_at": _iso(ticket.payment.refunded_at),
            },
            "check_in": {
                "is_checked_in": ticket.check_in.is_checked_in,
                "checked_in_at": _iso(ticket.check_in.checked_in_at),
                "gate": ticket.check_in.gate,
            },
            "purchase_date": _iso(ticket.purchase_date),
            "valid_until": _iso(ticket.valid_until),
            "qr_code": {
                "data": ticket.credential.payload,
                "image": ticket.credential.image_ref,
            },
        }


class CheckInConfirmationSerializer(serializers.Serializer):
    """Serializer for the CheckInConfirmation domain model."""

    def to_representation(self, confirmation):
        return {
            "ticket": confirmation.ticket_number,
            "attendee": confirmation.attendee_name,
            "event": confirmation.event_title,
            "seat": confirmation.seat_number,
            "checked_in_at": _iso(confirmation.checked_in_at),
        }


class SeatStatsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    available = serializers.IntegerField()
    sold = serializers.IntegerField()


def _iso(value):
    return value.isoformat() if value else None
