from ticketing.domain import EventId, TicketId
from ticketing.domain.errors import InvalidIdError


def parse_event_id(value: str | EventId) -> EventId:
    if isinstance(value, EventId):
        return value
    try:
        return EventId.from_string(str(value))
    except ValueError:
        raise InvalidIdError("event") from None


def parse_ticket_id(value: str | TicketId) -> TicketId:
    if isinstance(value, TicketId):
        return value
    try:
        return TicketId.from_string(str(value))
    except ValueError:
        raise InvalidIdError("ticket") from None
