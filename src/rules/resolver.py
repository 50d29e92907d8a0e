"""Key path resolution into nested event fields."""

from collections.abc import Mapping
from typing import Any

INVALID = "<invalid>"
MAX_PATH_DEPTH = 64


def to_display(value: Any) -> str:
    """Render a scalar field value as text, or the sentinel for anything else."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        # JSON numbers decode as float when written with a fraction or exponent.
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return INVALID


def resolve(key_path: str, fields: Mapping[str, Any]) -> str:
    """Resolve a dotted key path inside event fields.

    Never raises: any miss (absent key, non-mapping intermediate, non-scalar
    leaf, overly deep path) yields :data:`INVALID`.

    Args:
        key_path: Dot-separated keys, e.g. ``content.author.username``
        fields: Event field mapping

    Returns:
        Display string of the value found, or ``"<invalid>"``
    """
    if not key_path:
        return INVALID

    segments = key_path.split(".")
    if len(segments) > MAX_PATH_DEPTH:
        return INVALID

    current: Any = fields
    for segment in segments:
        if not isinstance(current, Mapping) or segment not in current:
            return INVALID
        current = current[segment]

    if current is None:
        return INVALID
    return to_display(current)
