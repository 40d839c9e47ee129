"""Query data models for the MQTT datasource."""

from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "topic"
DEFAULT_PATH_EXPRESSION = "$"
DEFAULT_OUTPUT_ALIAS = "mqtt_message"
TIME_ALIAS = "time"


class ValueType(str, Enum):
    """Coercion applied to an extracted value."""

    STRING = "string"
    NUMBER = "number"


class ExtractionRule(BaseModel):
    """Maps one path expression in a message payload to an output column."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    path_expression: str = Field(
        default=DEFAULT_PATH_EXPRESSION, alias="pathExpression")
    output_alias: str = Field(
        default=DEFAULT_OUTPUT_ALIAS, alias="outputAlias")
    value_type: ValueType = Field(default=ValueType.STRING, alias="valueType")

    @field_validator("value_type", mode="before")
    @classmethod
    def normalize_value_type(cls, v):
        """Accept 'String'/'NUMBER' style spellings from older payloads."""
        if isinstance(v, str):
            return v.lower()
        return v

    def to_payload(self) -> Dict[str, str]:
        """Serialize to the saved query rule shape."""
        return {
            "pathExpression": self.path_expression,
            "outputAlias": self.output_alias,
            "valueType": self.value_type.value,
        }


DEFAULT_RULE = ExtractionRule()


class FrameField(BaseModel):
    """A column a consumer builds for each received message."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: str  # string, number, time


class QueryDefinition(BaseModel):
    """A topic subscription plus its ordered extraction rules."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    topic: str = DEFAULT_TOPIC
    rules: Tuple[ExtractionRule, ...] = (DEFAULT_RULE,)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the saved query shape sent to the execution backend."""
        return {
            "topic": self.topic,
            "rules": [rule.to_payload() for rule in self.rules],
        }

    def output_columns(self) -> List[FrameField]:
        """Columns produced for one message, in rule order.

        A rule aliased ``time`` becomes the timestamp column; otherwise a
        receive-time column is appended last.
        """
        fields = []
        have_time = False
        for rule in self.rules:
            if rule.output_alias == TIME_ALIAS:
                have_time = True
                fields.append(FrameField(name=TIME_ALIAS, kind="time"))
            else:
                fields.append(FrameField(
                    name=rule.output_alias, kind=rule.value_type.value))

        if not have_time:
            fields.append(FrameField(name=TIME_ALIAS, kind="time"))
        return fields

    def duplicate_aliases(self) -> List[str]:
        """Aliases used by more than one rule, in first-seen order."""
        seen = set()
        duplicates = []
        for rule in self.rules:
            alias = rule.output_alias
            if alias in seen and alias not in duplicates:
                duplicates.append(alias)
            seen.add(alias)
        return duplicates

    def problems(self) -> List[str]:
        """Describe anything a consumer is likely to reject. Never raises."""
        issues = []
        if not self.topic:
            issues.append("topic is empty")
        for index, rule in enumerate(self.rules):
            if not rule.path_expression:
                issues.append(f"rule {index}: path expression is empty")
            if not rule.output_alias:
                issues.append(f"rule {index}: output alias is empty")
        for alias in self.duplicate_aliases():
            issues.append(f"output alias '{alias}' is used by more than one rule")
        return issues


RawQuery = Union[None, Mapping[str, Any], QueryDefinition]

# Older saved queries used these key names.
_LEGACY_RULE_KEYS = {
    "jsonpath": "pathExpression",
    "alias": "outputAlias",
    "dataType": "valueType",
}


def _rule_from_raw(raw: Any) -> ExtractionRule:
    if isinstance(raw, ExtractionRule):
        return raw

    values = {}
    for key, value in dict(raw or {}).items():
        key = _LEGACY_RULE_KEYS.get(key, key)
        if value is not None:
            values[key] = value
    return ExtractionRule.model_validate(values)


def with_defaults(raw: RawQuery = None) -> QueryDefinition:
    """Fill a possibly partial query with the canonical defaults.

    Missing topic becomes ``"topic"``; missing or empty rules become the
    single default rule. Keys belonging to the host's query envelope are
    ignored.
    """
    if isinstance(raw, QueryDefinition):
        if raw.rules:
            return raw
        return raw.model_copy(update={"rules": (DEFAULT_RULE,)})

    data: Dict[str, Any] = dict(raw or {})

    topic: Optional[str] = data.get("topic")
    if topic is None:
        topic = DEFAULT_TOPIC

    raw_rules = data.get("rules")
    if raw_rules is None:
        raw_rules = data.get("jsonpathOptions")

    rules = tuple(_rule_from_raw(item) for item in raw_rules or ())
    if not rules:
        rules = (DEFAULT_RULE,)

    return QueryDefinition(topic=topic, rules=rules)
