"""Inbound event and envelope decoding."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional

from src.core.exceptions import MalformedEventException


class EnvelopeType(str, Enum):
    """Envelope types sent by the event source."""

    TRACIM_EVENT = "daemon_tracim_event"
    ERROR = "daemon_error"
    CLIENT_ADD = "daemon_client_add"


@dataclass(frozen=True)
class Event:
    """An application event: a type tag plus nested field data."""

    event_type: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "Event":
        """Build an event from a decoded ``{"event_type", "fields"}`` object.

        Raises:
            MalformedEventException: If the payload has the wrong shape
        """
        if not isinstance(payload, dict):
            raise MalformedEventException("Event payload is not an object")

        event_type = payload.get("event_type")
        fields = payload.get("fields")
        if not isinstance(event_type, str) or not event_type:
            raise MalformedEventException(
                "Event has no type", details={"event_type": event_type}
            )
        if not isinstance(fields, dict):
            raise MalformedEventException(
                "Event fields are not an object", details={"event_type": event_type}
            )
        return cls(event_type=event_type, fields=MappingProxyType(fields))


@dataclass(frozen=True)
class Envelope:
    """Transport record wrapping an event or a status message."""

    type: str
    data: Any = None

    @property
    def error_message(self) -> Optional[str]:
        """Error text carried by an error envelope."""
        if isinstance(self.data, dict):
            error = self.data.get("error")
            return str(error) if error is not None else None
        if isinstance(self.data, str):
            return self.data
        return None

    def to_json(self) -> str:
        """Serialize as one line of the event channel."""
        return json.dumps({"type": self.type, "data": self.data})


def parse_envelope(raw: str | bytes) -> Envelope:
    """Decode one line from the event channel.

    Raises:
        MalformedEventException: If the line is not a JSON envelope
    """
    try:
        decoded = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedEventException(f"Undecodable envelope: {e}") from e

    if not isinstance(decoded, dict) or not isinstance(decoded.get("type"), str):
        raise MalformedEventException("Envelope has no type")

    return Envelope(type=decoded["type"], data=decoded.get("data"))


def event_from_envelope(envelope: Envelope) -> Event:
    """Decode the event carried by a ``daemon_tracim_event`` envelope.

    The event is itself JSON-encoded as a string inside ``data``.

    Raises:
        MalformedEventException: If data is missing, not a string or not JSON
    """
    if envelope.data is None:
        raise MalformedEventException("Event envelope has no data")
    if not isinstance(envelope.data, str):
        raise MalformedEventException("Invalid data format")

    try:
        payload = json.loads(envelope.data)
    except json.JSONDecodeError as e:
        raise MalformedEventException(f"Undecodable event: {e}") from e

    return Event.from_payload(payload)
