"""Filter predicates applied to resolved field values."""

from collections.abc import Callable

from src.core.logging import get_logger

logger = get_logger(__name__)

NEGATION_PREFIX = "not_"

OPERATORS: dict[str, Callable[[str, str], bool]] = {
    "equal": lambda actual, expected: actual == expected,
    "contains": lambda actual, expected: expected in actual,
    "starts_with": lambda actual, expected: actual.startswith(expected),
    "ends_with": lambda actual, expected: actual.endswith(expected),
}


def split_operator(operator: str) -> tuple[str, bool]:
    """Split an operator into its lower-cased base name and negation flag."""
    name = operator.strip().lower()
    if name.startswith(NEGATION_PREFIX):
        return name[len(NEGATION_PREFIX):], True
    return name, False


def is_known_operator(operator: str) -> bool:
    """Check whether an operator (optionally negated) is supported."""
    base, _ = split_operator(operator)
    return base in OPERATORS


def apply_match(operator: str, actual: str, expected: str) -> bool:
    """Evaluate a filter operator against a resolved value.

    Unknown operators evaluate to False whether negated or not.

    Args:
        operator: ``equal``, ``contains``, ``starts_with``, ``ends_with``,
            optionally prefixed with ``not_``; case-insensitive
        actual: Resolved field value
        expected: Value configured on the filter

    Returns:
        True if the event passes the filter
    """
    base, negated = split_operator(operator)
    predicate = OPERATORS.get(base)
    if predicate is None:
        logger.warning("filter_unknown_operator", operator=operator)
        return False

    result = predicate(actual, expected)
    return not result if negated else result
