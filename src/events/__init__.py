"""Inbound events and the local event channel."""

from src.events.listener import EventListener
from src.events.models import Envelope, EnvelopeType, Event, event_from_envelope, parse_envelope

__all__ = [
    "Envelope",
    "EnvelopeType",
    "Event",
    "EventListener",
    "event_from_envelope",
    "parse_envelope",
]
