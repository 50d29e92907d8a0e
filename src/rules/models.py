"""Pydantic schemas for notification rules."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldElement(BaseModel):
    """A value pulled from the event fields and exposed to templates as ``{{name}}``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    key_path: str = Field(alias="key")


class FilterElement(FieldElement):
    """A predicate deciding whether a rule produces a notification."""

    match: str
    value: str = ""


class NotificationTemplate(BaseModel):
    """Title/body template and priority of the outbound message."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = ""
    body: str = Field(default="", alias="message")
    priority: int = 0


class NotificationRule(BaseModel):
    """Declarative mapping from an event type to filters and a message template."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    event_type: str
    elements: tuple[FieldElement, ...] = ()
    filters: tuple[FilterElement, ...] = ()
    notification: NotificationTemplate = NotificationTemplate()

    @field_validator("event_type")
    @classmethod
    def event_type_not_empty(cls, value: str) -> str:
        """Reject rules that cannot match any event."""
        if not value.strip():
            raise ValueError("event_type must not be empty")
        return value
