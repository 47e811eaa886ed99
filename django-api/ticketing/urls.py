from django.urls import path

from ticketing.handlers.views import (
    BookTicketView,
    CancelTicketView,
    CheckInView,
    EventSeatStatsView,
    EventTicketsView,
    MyTicketsView,
    TicketDetailView,
)

urlpatterns = [
    path("tickets/book", BookTicketView.as_view(), name="ticket-book"),
    path("tickets/checkin", CheckInView.as_view(), name="ticket-checkin"),
    path("tickets/my-tickets", MyTicketsView.as_view(), name="ticket-mine"),
    path("tickets/<str:ticket_id>", TicketDetailView.as_view(), name="ticket-detail"),
    path(
        "tickets/<str:ticket_id>/cancel",
        CancelTicketView.as_view(),
        name="ticket-cancel",
    ),
    path(
        "events/<str:event_id>/tickets",
        EventTicketsView.as_view(),
        name="event-tickets",
    ),
    path(
        "events/<str:event_id>/seats",
        EventSeatStatsView.as_view(),
        name="event-seats",
    ),
]
