"""Admission credential codec.

A credential is a compact JSON object naming the ticket. Validity comes from
the ticket store lookup at the gate; when a signing key is configured the
payload also carries an HMAC-SHA256 ``sig`` so forged ticket IDs are rejected
before any lookup.
"""

import hashlib
import hmac
import json
from dataclasses import dataclass

from ticketing.domain import Ticket
from ticketing.domain.errors import MalformedCredentialError

REQUIRED_FIELDS = ("ticketId", "eventId", "ticketNumber")
SIGNATURE_FIELD = "sig"


@dataclass(frozen=True)
class CredentialPayload:
    ticket_id: str
    ticket_number: str
    event_id: str
    seat_number: str = ""
    attendee_name: str = ""

    @classmethod
    def for_ticket(cls, ticket: Ticket) -> "CredentialPayload":
        return cls(
            ticket_id=str(ticket.id),
            ticket_number=ticket.ticket_number.value,
            event_id=str(ticket.event_id),
            seat_number=ticket.seat.seat_number,
            attendee_name=ticket.attendee.name,
        )

    def as_dict(self) -> dict[str, str]:
        return {
            "ticketId": self.ticket_id,
            "ticketNumber": self.ticket_number,
            "eventId": self.event_id,
            "seatNumber": self.seat_number,
            "attendeeName": self.attendee_name,
        }


def _canonical(data: dict) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class CredentialCodec:
    """Encodes and decodes credential strings."""

    def __init__(self, signing_key: str | None = None) -> None:
        self._key = signing_key.encode() if signing_key else None

    @property
    def signs(self) -> bool:
        return self._key is not None

    def _signature(self, data: dict) -> str:
        return hmac.new(self._key, _canonical(data).encode(), hashlib.sha256).hexdigest()

    def encode(self, payload: CredentialPayload) -> str:
        data = payload.as_dict()
        if self._key is not None:
            data[SIGNATURE_FIELD] = self._signature(data)
        return _canonical(data)

    def decode(self, raw: str) -> CredentialPayload:
        """Parse a presented credential.

        Raises:
            MalformedCredentialError: If the string is not a JSON object, a
                required field is missing, or the signature does not match.
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            raise MalformedCredentialError("not valid JSON") from None
        if not isinstance(data, dict):
            raise MalformedCredentialError("not a JSON object")

        missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
        if missing:
            raise MalformedCredentialError(
                f"missing required fields: {', '.join(missing)}"
            )

        if self._key is not None:
            signature = data.pop(SIGNATURE_FIELD, None)
            if not isinstance(signature, str) or not hmac.compare_digest(
                signature, self._signature(data)
            ):
                raise MalformedCredentialError("signature mismatch")

        return CredentialPayload(
            ticket_id=str(data["ticketId"]),
            ticket_number=str(data["ticketNumber"]),
            event_id=str(data["eventId"]),
            seat_number=str(data.get("seatNumber", "")),
            attendee_name=str(data.get("attendeeName", "")),
        )
