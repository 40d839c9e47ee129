"""Query editor: topic and extraction rule mutations."""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Optional, Tuple, Union

from ..models import (
    DEFAULT_RULE,
    ExtractionRule,
    QueryDefinition,
    RawQuery,
    ValueType,
    with_defaults,
)
from .base import BaseEditor, replace_fields

logger = logging.getLogger(__name__)


class RuleIndexError(IndexError):
    """Raised when a rule index is not present in the current rule list."""


def _check_index(rules: Tuple[ExtractionRule, ...], index: int) -> None:
    # Indices come from the rendered rule list; anything else is a caller bug.
    if isinstance(index, bool) or not isinstance(index, int):
        logger.error(f"Rule index {index!r} is not an integer")
        raise RuleIndexError(f"rule index must be an integer, got {index!r}")
    if not 0 <= index < len(rules):
        logger.error(f"Rule index {index} out of range for {len(rules)} rules")
        raise RuleIndexError(
            f"rule index {index} out of range (0..{len(rules) - 1})")


def _replace_rule(query: RawQuery, index: int, **changes: Any) -> QueryDefinition:
    query = with_defaults(query)
    _check_index(query.rules, index)

    rules = list(query.rules)
    rules[index] = replace_fields(rules[index], **changes)
    return replace_fields(query, rules=tuple(rules))


def set_topic(query: RawQuery, value: str) -> QueryDefinition:
    return replace_fields(with_defaults(query), topic=value)


def update_rule_path(query: RawQuery, index: int, value: str) -> QueryDefinition:
    return _replace_rule(query, index, path_expression=value)


def update_rule_alias(query: RawQuery, index: int, value: str) -> QueryDefinition:
    return _replace_rule(query, index, output_alias=value)


def update_rule_type(
    query: RawQuery, index: int, value: Union[ValueType, str]
) -> QueryDefinition:
    """Change a rule's value type; only string and number are accepted."""
    if isinstance(value, str):
        value = value.lower()
    return _replace_rule(query, index, value_type=ValueType(value))


def append_rule(query: RawQuery) -> QueryDefinition:
    """Add a default rule after the existing ones."""
    query = with_defaults(query)
    return replace_fields(query, rules=query.rules + (DEFAULT_RULE,))


def remove_rule(query: RawQuery, index: int) -> QueryDefinition:
    """Drop one rule; later rules shift down by one.

    Removing the last remaining rule leaves an empty list, which the next
    defaulting pass turns back into the single default rule.
    """
    query = with_defaults(query)
    _check_index(query.rules, index)
    rules = query.rules[:index] + query.rules[index + 1:]
    return replace_fields(query, rules=rules)


class QueryEditor(BaseEditor[QueryDefinition]):
    """Editing surface for one saved query."""

    def __init__(
        self,
        query: RawQuery = None,
        on_change: Optional[Callable[[QueryDefinition], Any]] = None,
    ):
        super().__init__(with_defaults(query), on_change)

    @property
    def query(self) -> QueryDefinition:
        return self.value

    def set_topic(self, value: str) -> QueryDefinition:
        logger.debug(f"Topic changed to '{value}'")
        return self._commit(set_topic(self.value, value))

    def update_rule_path(self, index: int, value: str) -> QueryDefinition:
        return self._commit(update_rule_path(self.value, index, value))

    def update_rule_alias(self, index: int, value: str) -> QueryDefinition:
        return self._commit(update_rule_alias(self.value, index, value))

    def update_rule_type(self, index: int, value: Union[ValueType, str]) -> QueryDefinition:
        return self._commit(update_rule_type(self.value, index, value))

    def append_rule(self) -> QueryDefinition:
        logger.debug("Rule appended")
        return self._commit(append_rule(self.value))

    def remove_rule(self, index: int) -> QueryDefinition:
        logger.debug(f"Rule {index} removed")
        return self._commit(remove_rule(self.value, index))

    def render(self) -> Dict[str, Any]:
        query = with_defaults(self.value)
        return {
            "topic": query.topic,
            "rules": [
                {
                    "index": index,
                    "path_expression": rule.path_expression,
                    "output_alias": rule.output_alias,
                    "value_type": rule.value_type.value,
                }
                for index, rule in enumerate(query.rules)
            ],
            "value_type_options": [
                {"label": value_type.value.capitalize(), "value": value_type.value}
                for value_type in ValueType
            ],
        }
