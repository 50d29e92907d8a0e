"""Turn a rule and an event into an outbound notification."""

from dataclasses import dataclass
from typing import Any, Optional

from src.core.logging import get_logger
from src.events.models import Event
from src.rules.filters import apply_match
from src.rules.models import NotificationRule
from src.rules.resolver import INVALID, resolve
from src.rules.templates import render

logger = get_logger(__name__)


@dataclass(frozen=True)
class OutboundMessage:
    """A fully rendered notification."""

    title: str
    body: str
    priority: int

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the webhook's JSON body."""
        return {"title": self.title, "message": self.body, "priority": self.priority}


def passes_filters(rule: NotificationRule, event: Event) -> bool:
    """Evaluate a rule's filters in order, stopping at the first failure."""
    for event_filter in rule.filters:
        value = resolve(event_filter.key_path, event.fields)
        if not apply_match(event_filter.match, value, event_filter.value):
            logger.info(
                "notification_filtered_out",
                rule=rule.name,
                filter=event_filter.name,
                value=value,
            )
            return False
    return True


def unresolved_elements(rule: NotificationRule, event: Event) -> list[str]:
    """Names of elements whose key path does not resolve in the event."""
    return [
        element.name
        for element in rule.elements
        if resolve(element.key_path, event.fields) == INVALID
    ]


def build(rule: NotificationRule, event: Event, strict: bool = False) -> Optional[OutboundMessage]:
    """Build the notification a rule produces for an event.

    Args:
        rule: Notification rule
        event: Inbound event
        strict: Skip the notification when any element is unresolvable,
            instead of substituting ``<invalid>``

    Returns:
        Rendered message, or None if the event is filtered out
    """
    if not passes_filters(rule, event):
        return None

    if strict:
        missing = unresolved_elements(rule, event)
        if missing:
            logger.info("notification_unresolved_fields", rule=rule.name, elements=missing)
            return None

    title, body = render(rule.notification, rule.elements, event.fields)
    return OutboundMessage(title=title, body=body, priority=rule.notification.priority)
