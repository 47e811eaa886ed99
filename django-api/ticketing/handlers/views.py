"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ticketing.domain import Actor, Role
from ticketing.domain.errors import INTEGRITY_ERRORS, DomainError, ErrorCode
from ticketing.handlers.serializers import (
    AttendeeInfoSerializer,
    BookTicketSerializer,
    CheckInConfirmationSerializer,
    CheckInSerializer,
    SeatStatsSerializer,
    TicketSerializer,
)
from ticketing.services.container import get_services

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.MALFORMED_CREDENTIAL: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TICKET_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.SEAT_TAKEN: status.HTTP_409_CONFLICT,
    ErrorCode.SOLD_OUT: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_CHECKED_IN: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_NOT_BOOKABLE: status.HTTP_409_CONFLICT,
    ErrorCode.EVENT_NOT_ACTIVE: status.HTTP_409_CONFLICT,
    ErrorCode.TICKET_NOT_ACTIVE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.CANCELLATION_WINDOW_CLOSED: status.HTTP_409_CONFLICT,
}


def error_response(error: DomainError) -> Response:
    """Render a domain error as {"code", "message"} with its HTTP status."""
    if isinstance(error, INTEGRITY_ERRORS) or error.code not in ERROR_STATUS:
        logger.error("Request failed: %s", error)
        # Integrity failures keep their details in the log only.
        return Response(
            {"code": error.code.value, "message": "Internal error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    code = ERROR_STATUS[error.code]
    return Response({"code": error.code.value, "message": error.message}, status=code)


def invalid_input(errors) -> Response:
    return Response(
        {"code": ErrorCode.INVALID_INPUT.value, "message": "Invalid input", "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


def actor_from_request(request: Request) -> Actor:
    user = request.user
    if user.is_superuser:
        role = Role.ADMIN
    elif user.is_staff:
        role = Role.MANAGER
    else:
        role = Role.USER
    return Actor(
        id=str(user.pk),
        role=role,
        name=user.get_full_name() or user.get_username(),
        email=user.email,
    )


class BookTicketView(APIView):
    """Handler for POST /api/tickets/book"""

    def post(self, request: Request) -> Response:
        serializer = BookTicketSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer.errors)
        data = serializer.validated_data

        attendee = None
        if "attendee_info" in data:
            attendee = AttendeeInfoSerializer.to_domain(data["attendee_info"])

        try:
            ticket = get_services().booking.book_ticket(
                event_id=data["event_id"],
                seat_number=data["seat_number"],
                payment_method=data["payment_method"],
                actor=actor_from_request(request),
                attendee=attendee,
                section=data["section"],
                row=data["row"],
            )
        except DomainError as e:
            return error_response(e)
        return Response(TicketSerializer(ticket).data, status=status.HTTP_201_CREATED)


class CancelTicketView(APIView):
    """Handler for PATCH /api/tickets/{ticket_id}/cancel"""

    def patch(self, request: Request, ticket_id: str) -> Response:
        try:
            ticket = get_services().cancellation.cancel_ticket(
                ticket_id, actor_from_request(request)
            )
        except DomainError as e:
            return error_response(e)
        return Response(TicketSerializer(ticket).data)


class CheckInView(APIView):
    """Handler for POST /api/tickets/checkin"""

    def post(self, request: Request) -> Response:
        serializer = CheckInSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input(serializer.errors)
        data = serializer.validated_data
        try:
            confirmation = get_services().check_in.check_in(
                data["qr_data"], data["gate"] or None, actor_from_request(request)
            )
        except DomainError as e:
            return error_response(e)
        return Response(CheckInConfirmationSerializer(confirmation).data)


class MyTicketsView(APIView):
    """Handler for GET /api/tickets/my-tickets"""

    def get(self, request: Request) -> Response:
        try:
            tickets = get_services().queries.list_my_tickets(
                actor_from_request(request), status=request.query_params.get("status")
            )
        except DomainError as e:
            return error_response(e)
        return Response(TicketSerializer(tickets, many=True).data)


class TicketDetailView(APIView):
    """Handler for GET /api/tickets/{ticket_id}"""

    def get(self, request: Request, ticket_id: str) -> Response:
        services = get_services()
        try:
            ticket = services.queries.get_ticket(ticket_id, actor_from_request(request))
        except DomainError as e:
            return error_response(e)
        data = TicketSerializer(ticket).data
        if ticket.credential.payload and request.query_params.get("inline_qr") == "true":
            data["qr_code"]["data_uri"] = services.renderer.render_data_uri(
                ticket.credential.payload
            )
        return Response(data)


class EventTicketsView(APIView):
    """Handler for GET /api/events/{event_id}/tickets"""

    def get(self, request: Request, event_id: str) -> Response:
        checked_in = request.query_params.get("checked_in")
        if checked_in is not None:
            checked_in = checked_in.lower() == "true"
        try:
            tickets = get_services().queries.list_event_tickets(
                event_id,
                actor_from_request(request),
                status=request.query_params.get("status"),
                checked_in=checked_in,
            )
        except DomainError as e:
            return error_response(e)
        return Response(TicketSerializer(tickets, many=True).data)


class EventSeatStatsView(APIView):
    """Handler for GET /api/events/{event_id}/seats"""

    def get(self, request: Request, event_id: str) -> Response:
        try:
            stats = get_services().queries.get_event_seat_stats(event_id)
        except DomainError as e:
            return error_response(e)
        return Response(SeatStatsSerializer(stats).data)
