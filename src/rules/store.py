"""Notification rule store, loaded once from JSON rule documents."""

from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Union

from pydantic import TypeAdapter, ValidationError

from src.core.exceptions import RuleLoadException
from src.core.logging import get_logger
from src.rules.filters import is_known_operator
from src.rules.models import NotificationRule

logger = get_logger(__name__)

_RULE_LIST = TypeAdapter(list[NotificationRule])


def read_rule_document(path: Path) -> list[NotificationRule]:
    """Parse one rule document (a JSON array of rules).

    Args:
        path: Rule file

    Returns:
        Rules in document order

    Raises:
        RuleLoadException: If the file is unreadable or any rule is invalid
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise RuleLoadException(f"Cannot read {path}: {e}", details={"path": str(path)}) from e

    try:
        return _RULE_LIST.validate_json(data)
    except ValidationError as e:
        errors = [{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()]
        raise RuleLoadException(
            f"Invalid rule document {path}",
            details={"path": str(path), "errors": errors},
        ) from e


def iter_rule_files(source: Path) -> list[Path]:
    """Expand a source path into the rule files it designates."""
    if source.is_dir():
        return sorted(
            p for p in source.iterdir() if p.is_file() and not p.name.startswith(".")
        )
    return [source]


class RuleStore:
    """Read-only index of notification rules by event type.

    Several rules may share an event type; :meth:`lookup` returns all of
    them in load order.
    """

    def __init__(
        self,
        rules: Iterable[NotificationRule] = (),
        sources_loaded: Iterable[str] = (),
        sources_failed: Iterable[str] = (),
    ) -> None:
        """Build the index.

        Args:
            rules: Rules in load order
            sources_loaded: Rule files read successfully
            sources_failed: Rule files skipped because of errors
        """
        index: dict[str, list[NotificationRule]] = {}
        for rule in rules:
            index.setdefault(rule.event_type, []).append(rule)

        self._index: Mapping[str, tuple[NotificationRule, ...]] = MappingProxyType(
            {event_type: tuple(group) for event_type, group in index.items()}
        )
        self.sources_loaded: tuple[str, ...] = tuple(sources_loaded)
        self.sources_failed: tuple[str, ...] = tuple(sources_failed)

    @classmethod
    def from_rules(cls, rules: Iterable[NotificationRule]) -> "RuleStore":
        """Build a store from rules already in memory."""
        return cls(rules)

    @classmethod
    def load(cls, sources: Iterable[Union[str, Path]]) -> "RuleStore":
        """Load rules from files and/or directories of rule files.

        A document that fails to load is logged and skipped; the others are
        still loaded.

        Args:
            sources: Rule files or directories

        Returns:
            Populated store
        """
        rules: list[NotificationRule] = []
        loaded: list[str] = []
        failed: list[str] = []

        for source in map(Path, sources):
            if not source.exists():
                logger.error("rule_source_not_found", path=str(source))
                failed.append(str(source))
                continue

            for path in iter_rule_files(source):
                try:
                    document = read_rule_document(path)
                except RuleLoadException as e:
                    logger.error("rule_document_load_failed", error=e.message, **e.details)
                    failed.append(str(path))
                    continue

                for rule in document:
                    for event_filter in rule.filters:
                        if not is_known_operator(event_filter.match):
                            logger.warning(
                                "rule_unknown_operator",
                                rule=rule.name,
                                filter=event_filter.name,
                                operator=event_filter.match,
                            )

                rules.extend(document)
                loaded.append(str(path))
                logger.info("rule_document_loaded", path=str(path), rules=len(document))

        store = cls(rules, sources_loaded=loaded, sources_failed=failed)
        logger.info(
            "rules_loaded",
            rules=len(store),
            event_types=len(store.event_types),
            documents=len(loaded),
            failed=len(failed),
        )
        return store

    def lookup(self, event_type: str) -> tuple[NotificationRule, ...]:
        """Get all rules registered for an event type (empty if none)."""
        return self._index.get(event_type, ())

    @property
    def event_types(self) -> tuple[str, ...]:
        """Event types with at least one rule."""
        return tuple(self._index)

    def __iter__(self) -> Iterator[NotificationRule]:
        for group in self._index.values():
            yield from group

    def __len__(self) -> int:
        return sum(len(group) for group in self._index.values())
