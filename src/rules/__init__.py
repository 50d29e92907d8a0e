"""Notification rules: models, key path resolution, filters and templates."""

from src.rules.filters import apply_match, is_known_operator
from src.rules.models import FieldElement, FilterElement, NotificationRule, NotificationTemplate
from src.rules.resolver import INVALID, resolve
from src.rules.store import RuleStore
from src.rules.templates import render

__all__ = [
    "INVALID",
    "FieldElement",
    "FilterElement",
    "NotificationRule",
    "NotificationTemplate",
    "RuleStore",
    "apply_match",
    "is_known_operator",
    "render",
    "resolve",
]
