"""Tests for the query editor."""

import pytest
from unittest.mock import Mock
from pydantic import ValidationError

from mqtt_datasource.editors import query_editor
from mqtt_datasource.editors.query_editor import QueryEditor, RuleIndexError
from mqtt_datasource.models import DEFAULT_RULE, ExtractionRule, QueryDefinition, ValueType


def make_query(*aliases, topic="t1"):
    return QueryDefinition(
        topic=topic,
        rules=tuple(ExtractionRule(path_expression=f"$.{a}", output_alias=a) for a in aliases),
    )


class TestQueryOperations:
    """Test the pure query edit functions."""

    def test_set_topic(self):
        """Test changing the topic keeps the rules."""
        query = make_query("a", "b")
        result = query_editor.set_topic(query, "sensors/+/temp")
        assert result.topic == "sensors/+/temp"
        assert result.rules == query.rules
        assert query.topic == "t1"

    def test_append_rule(self):
        """Test appending keeps existing rules and adds the default last."""
        query = make_query("a", "b", "c")
        result = query_editor.append_rule(query)
        assert len(result.rules) == 4
        assert result.rules[:3] == query.rules
        assert result.rules[3] == DEFAULT_RULE
        assert result.rules is not query.rules
        assert len(query.rules) == 3

    def test_remove_rule(self):
        """Test removal shifts later rules down and keeps order."""
        query = make_query("a", "b", "c", "d")
        result = query_editor.remove_rule(query, 1)
        assert [r.output_alias for r in result.rules] == ["a", "c", "d"]
        for j in range(1):
            assert result.rules[j] == query.rules[j]
        for j in range(1, 3):
            assert result.rules[j] == query.rules[j + 1]
        assert len(query.rules) == 4

    def test_remove_then_access_remaining_indices(self):
        """Test every surviving index stays addressable after a removal."""
        query = make_query("a", "b", "c")
        result = query_editor.remove_rule(query, 0)
        for index in range(len(result.rules)):
            query_editor.update_rule_alias(result, index, f"x{index}")

    def test_remove_last_rule_recovers_default(self):
        """Test removing the only rule leaves nothing until defaults run again."""
        query = make_query("a")
        result = query_editor.remove_rule(query, 0)
        assert result.rules == ()
        assert query_editor.append_rule(result).rules == (DEFAULT_RULE, DEFAULT_RULE)

    def test_update_rule_alias_only_changes_alias(self):
        """Test alias updates leave all other fields untouched."""
        query = make_query("a", "b", "c")
        result = query_editor.update_rule_alias(query, 1, "renamed")
        assert result.topic == query.topic
        assert result.rules[0] == query.rules[0]
        assert result.rules[2] == query.rules[2]
        assert result.rules[1].output_alias == "renamed"
        assert result.rules[1].path_expression == query.rules[1].path_expression
        assert result.rules[1].value_type == query.rules[1].value_type
        assert query.rules[1].output_alias == "b"

    def test_update_rule_path(self):
        """Test path updates replace only the path."""
        result = query_editor.update_rule_path(make_query("a"), 0, "$.payload.value")
        assert result.rules[0].path_expression == "$.payload.value"
        assert result.rules[0].output_alias == "a"

    def test_update_rule_type(self):
        """Test type updates accept enum members and strings."""
        query = make_query("a", "b")
        result = query_editor.update_rule_type(query, 0, ValueType.NUMBER)
        result = query_editor.update_rule_type(result, 1, "Number")
        assert [r.value_type for r in result.rules] == [ValueType.NUMBER, ValueType.NUMBER]

    def test_update_rule_type_invalid(self):
        """Test types outside string/number are rejected."""
        with pytest.raises(ValueError):
            query_editor.update_rule_type(make_query("a"), 0, "boolean")

    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_index_out_of_range(self, index):
        """Test indices outside the rule list are programming errors."""
        query = make_query("a", "b")
        with pytest.raises(RuleIndexError):
            query_editor.update_rule_alias(query, index, "x")
        with pytest.raises(IndexError):
            query_editor.remove_rule(query, index)

    @pytest.mark.parametrize("index", [True, False, 1.0, "0", None])
    def test_non_integer_index(self, index):
        """Test booleans and other non-int indices are rejected."""
        query = make_query("a", "b")
        with pytest.raises(RuleIndexError, match="must be an integer"):
            query_editor.update_rule_alias(query, index, "x")
        with pytest.raises(RuleIndexError):
            query_editor.remove_rule(query, index)

    def test_wrongly_typed_values_rejected(self):
        """Test edits validate the new value instead of storing it as is."""
        query = make_query("a")
        with pytest.raises(ValidationError):
            query_editor.set_topic(query, None)
        with pytest.raises(ValidationError):
            query_editor.update_rule_path(query, 0, 42)
        with pytest.raises(ValidationError):
            query_editor.update_rule_alias(query, 0, ["a"])
        assert query.to_payload()["rules"][0]["pathExpression"] == "$.a"

    def test_edited_payload_keeps_string_fields(self):
        """Test the saved shape stays string-typed after edits."""
        query = query_editor.set_topic(make_query("a"), "t2")
        query = query_editor.update_rule_path(query, 0, "$.b")
        payload = query.to_payload()
        assert isinstance(payload["topic"], str)
        assert all(isinstance(value, str) for value in payload["rules"][0].values())

    def test_operations_default_raw_input(self):
        """Test edits on an empty stored query start from the defaults."""
        result = query_editor.update_rule_alias({}, 0, "value")
        assert result.topic == "topic"
        assert result.rules == (ExtractionRule(output_alias="value"),)

    def test_end_to_end_rule_editing(self):
        """Test append followed by field updates on the new rule."""
        query = QueryDefinition(topic="t1", rules=(
            ExtractionRule(path_expression="$", output_alias="a"),))

        query = query_editor.append_rule(query)
        query = query_editor.update_rule_path(query, 1, "$.value")
        query = query_editor.update_rule_type(query, 1, "number")
        query = query_editor.update_rule_alias(query, 1, "v")

        assert query.to_payload() == {
            "topic": "t1",
            "rules": [
                {"pathExpression": "$", "outputAlias": "a", "valueType": "string"},
                {"pathExpression": "$.value", "outputAlias": "v", "valueType": "number"},
            ],
        }


class TestQueryEditor:
    """Test the editor class and its change callback."""

    def test_defaults_on_mount(self):
        """Test the editor starts from a defaulted query."""
        editor = QueryEditor({})
        assert editor.query.topic == "topic"
        assert editor.query.rules == (DEFAULT_RULE,)

    def test_each_edit_calls_on_change_once(self):
        """Test every edit reports a fresh object to the host."""
        on_change = Mock()
        editor = QueryEditor(make_query("a"), on_change)
        before = editor.query

        editor.append_rule()
        assert on_change.call_count == 1
        after = on_change.call_args[0][0]
        assert after is not before
        assert after.rules is not before.rules
        assert editor.query is after

        editor.update_rule_alias(1, "b")
        editor.set_topic("other")
        editor.remove_rule(0)
        assert on_change.call_count == 4
        assert editor.query.topic == "other"
        assert [r.output_alias for r in editor.query.rules] == ["b"]

    def test_failed_edit_does_not_call_on_change(self):
        """Test a bad index leaves the draft and the host untouched."""
        on_change = Mock()
        editor = QueryEditor(make_query("a"), on_change)
        before = editor.query
        with pytest.raises(RuleIndexError):
            editor.remove_rule(3)
        on_change.assert_not_called()
        assert editor.query is before

    def test_recovers_after_last_rule_removed(self):
        """Test rendering after removing every rule shows the default again."""
        editor = QueryEditor(make_query("a"))
        editor.remove_rule(0)
        rendered = editor.render()
        assert len(rendered["rules"]) == 1
        assert rendered["rules"][0]["output_alias"] == "mqtt_message"
        editor.update_rule_alias(0, "restored")
        assert editor.query.rules[0].output_alias == "restored"

    def test_render(self):
        """Test the rendered form rows carry their indices."""
        editor = QueryEditor(make_query("a", "b"))
        rendered = editor.render()
        assert rendered["topic"] == "t1"
        assert [row["index"] for row in rendered["rules"]] == [0, 1]
        assert rendered["value_type_options"] == [
            {"label": "String", "value": "string"},
            {"label": "Number", "value": "number"},
        ]
