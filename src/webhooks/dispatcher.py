"""Route inbound events to matching rules and deliver the results."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from src.core.exceptions import DeliveryException, MalformedEventException
from src.core.logging import get_logger
from src.events.models import EnvelopeType, Event, event_from_envelope, parse_envelope
from src.rules.store import RuleStore
from src.webhooks.builder import OutboundMessage, build

logger = get_logger(__name__)


class Sender(Protocol):
    """Anything able to deliver an outbound message."""

    async def send(self, message: OutboundMessage) -> None: ...


@dataclass
class DispatchResult:
    """Outcome counters for one dispatched event."""

    matched: int = 0
    filtered: int = 0
    sent: int = 0
    failed: int = 0


class NotificationDispatcher:
    """Handles event dispatching to notification rules and delivery."""

    def __init__(self, store: RuleStore, sender: Sender, strict: bool = False) -> None:
        """Initialize dispatcher.

        Args:
            store: Loaded notification rules
            sender: Outbound webhook sender
            strict: Skip notifications with unresolvable elements
        """
        self.store = store
        self.sender = sender
        self.strict = strict

    async def handle_envelope(self, raw: str | bytes) -> DispatchResult:
        """Decode one envelope from the event channel and dispatch it.

        Malformed envelopes are logged and dropped.

        Args:
            raw: One JSON envelope line

        Returns:
            Dispatch counters (all zero when nothing was dispatched)
        """
        try:
            envelope = parse_envelope(raw)
        except MalformedEventException as e:
            logger.error("envelope_malformed", error=e.message)
            return DispatchResult()

        if envelope.type == EnvelopeType.ERROR.value:
            logger.error("event_source_error", error=envelope.error_message)
            return DispatchResult()

        if envelope.type != EnvelopeType.TRACIM_EVENT.value:
            logger.debug("envelope_ignored", type=envelope.type)
            return DispatchResult()

        try:
            event = event_from_envelope(envelope)
        except MalformedEventException as e:
            logger.error("event_malformed", error=e.message, **e.details)
            return DispatchResult()

        return await self.on_event(event)

    async def on_event(self, event: Event) -> DispatchResult:
        """Dispatch an event to every rule registered for its type.

        Each rule is evaluated and delivered independently: a filtered or
        failed rule does not prevent the others from running.

        Args:
            event: Inbound event

        Returns:
            Dispatch counters
        """
        result = DispatchResult()

        if not isinstance(event.event_type, str) or not event.event_type:
            logger.error("event_malformed", error="Event has no type")
            return result
        if not isinstance(event.fields, Mapping):
            logger.error(
                "event_malformed",
                error="Event fields are not a mapping",
                event_type=event.event_type,
            )
            return result

        logger.info("event_received", event_type=event.event_type)

        rules = self.store.lookup(event.event_type)
        if not rules:
            logger.info("event_no_rules", event_type=event.event_type)
            return result

        for rule in rules:
            result.matched += 1

            try:
                message = build(rule, event, strict=self.strict)
            except Exception as e:
                # A broken rule must not stop the remaining rules for this event.
                result.failed += 1
                logger.error(
                    "notification_build_error",
                    rule=rule.name,
                    event_type=event.event_type,
                    error=str(e),
                    exc_info=True,
                )
                continue

            if message is None:
                result.filtered += 1
                continue

            try:
                await self.sender.send(message)
            except DeliveryException as e:
                result.failed += 1
                logger.error(
                    "notification_delivery_failed",
                    rule=rule.name,
                    event_type=event.event_type,
                    status_code=e.status_code,
                    error=e.message,
                )
                continue

            result.sent += 1
            logger.info("notification_sent", rule=rule.name, event_type=event.event_type)

        return result

