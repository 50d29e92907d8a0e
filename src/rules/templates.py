"""Placeholder substitution for notification titles and bodies."""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from src.rules.models import FieldElement, NotificationTemplate
from src.rules.resolver import resolve

_PLACEHOLDER_PATTERN = re.compile(r"\{\{(.*?)\}\}")


def placeholder(name: str) -> str:
    """Return the literal token replaced for an element name."""
    return "{{" + name + "}}"


def find_placeholders(text: str) -> list[str]:
    """List placeholder names used in a template string, in order of appearance."""
    return _PLACEHOLDER_PATTERN.findall(text)


def render(
    template: NotificationTemplate,
    elements: Iterable[FieldElement],
    fields: Mapping[str, Any],
) -> tuple[str, str]:
    """Fill a template's title and body from event fields.

    Elements are applied in order, each replacing its ``{{name}}`` token in the
    already-substituted text. Unresolvable values are written as
    ``<invalid>``; placeholders without an element are left untouched.

    Returns:
        Rendered ``(title, body)``
    """
    title = template.title
    body = template.body

    for element in elements:
        value = resolve(element.key_path, fields)
        token = placeholder(element.name)
        title = title.replace(token, value)
        body = body.replace(token, value)

    return title, body
