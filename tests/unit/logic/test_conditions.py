"""Unit tests for condition evaluation."""

import pytest

from formlogic.logic.conditions import evaluate_condition_group, evaluate_field_condition
from formlogic.schemas.field import Condition, ConditionOperator, LogicalOperator


def condition(operator, value=None, field_id="source"):
    return {"fieldId": field_id, "operator": operator, "value": value}


class TestEvaluateFieldCondition:
    """Tests for evaluate_field_condition()."""

    def test_equals_case_insensitive(self):
        """Test equals ignores case."""
        assert evaluate_field_condition(condition("equals", "Social Media"), "social media") is True

    def test_equals_numeric(self):
        """Test equals compares numbers numerically."""
        assert evaluate_field_condition(condition("equals", "5"), 5.0) is True

    def test_not_equals(self):
        """Test not_equals."""
        assert evaluate_field_condition(condition("not_equals", "yes"), "no") is True
        assert evaluate_field_condition(condition("not_equals", "yes"), "YES") is False

    def test_equals_list_against_scalar(self):
        """Test a checkbox answer is never equal to a single value."""
        assert evaluate_field_condition(condition("equals", "red"), ["red"]) is False
        assert evaluate_field_condition(condition("not_equals", "red"), ["red"]) is True

    def test_contains_substring(self):
        """Test contains on text answers."""
        assert evaluate_field_condition(condition("contains", "media"), "Social Media") is True
        assert evaluate_field_condition(condition("not_contains", "media"), "Search") is True

    def test_contains_list(self):
        """Test contains on list answers."""
        assert evaluate_field_condition(condition("contains", "Blue"), ["red", "blue"]) is True
        assert evaluate_field_condition(condition("not_contains", "green"), ["red"]) is True

    def test_greater_and_less_than(self):
        """Test numeric comparisons."""
        assert evaluate_field_condition(condition("greater_than", 18), "21") is True
        assert evaluate_field_condition(condition("greater_than", 18), 18) is False
        assert evaluate_field_condition(condition("less_than", "10"), 9.5) is True

    def test_numeric_comparison_with_text(self):
        """Test non-numeric values never compare."""
        assert evaluate_field_condition(condition("greater_than", 18), "old") is False
        assert evaluate_field_condition(condition("less_than", "abc"), 1) is False

    @pytest.mark.parametrize(
        "operator",
        ["equals", "not_equals", "contains", "not_contains", "greater_than", "less_than"],
    )
    def test_empty_value_is_false(self, operator):
        """Test every value operator is False for an unanswered field."""
        assert evaluate_field_condition(condition(operator, "x"), None) is False
        assert evaluate_field_condition(condition(operator, "x"), "") is False
        assert evaluate_field_condition(condition(operator, "x"), []) is False

    def test_is_empty(self):
        """Test is_empty ignores the condition value."""
        assert evaluate_field_condition(condition("is_empty", "ignored"), None) is True
        assert evaluate_field_condition(condition("is_empty"), "  ") is True
        assert evaluate_field_condition(condition("is_empty"), 0) is False

    def test_is_not_empty(self):
        """Test is_not_empty."""
        assert evaluate_field_condition(condition("is_not_empty"), ["a"]) is True
        assert evaluate_field_condition(condition("is_not_empty"), []) is False

    def test_accepts_model(self):
        """Test a Condition model works as well as a dict."""
        model = Condition(field_id="source", operator=ConditionOperator.EQUALS, value="a")
        assert evaluate_field_condition(model, "A") is True

    def test_unknown_operator_rejected(self):
        """Test operators outside the fixed set fail validation."""
        with pytest.raises(ValueError):
            evaluate_field_condition(condition("starts_with", "a"), "abc")


class TestEvaluateConditionGroup:
    """Tests for evaluate_condition_group()."""

    def test_disabled_group_is_met(self):
        """Test a disabled group passes without evaluating anything."""
        result = evaluate_condition_group(
            {"enabled": False, "conditions": [condition("equals", "x")]}, {}
        )
        assert result.enabled is False
        assert result.met is True
        assert result.conditions == []

    def test_and_group(self):
        """Test AND needs every condition."""
        group = {
            "enabled": True,
            "operator": "AND",
            "conditions": [
                condition("equals", "yes", "a"),
                condition("greater_than", 10, "b"),
            ],
        }
        assert evaluate_condition_group(group, {"a": "Yes", "b": 11}).met is True
        assert evaluate_condition_group(group, {"a": "Yes", "b": 5}).met is False

    def test_or_group(self):
        """Test OR needs any condition."""
        group = {
            "enabled": True,
            "operator": "OR",
            "conditions": [
                condition("equals", "yes", "a"),
                condition("greater_than", 10, "b"),
            ],
        }
        result = evaluate_condition_group(group, {"a": "no", "b": 11})
        assert result.met is True
        assert result.operator is LogicalOperator.OR
        assert [c.result for c in result.conditions] == [False, True]

    def test_details_per_condition(self):
        """Test each leaf is reported with its field and operator."""
        group = {"enabled": True, "conditions": [condition("equals", "Social Media")]}
        result = evaluate_condition_group(group, {})
        assert result.met is False
        assert result.conditions[0].field_id == "source"
        assert result.conditions[0].operator is ConditionOperator.EQUALS
        assert result.conditions[0].result is False

    def test_responses_not_modified(self):
        """Test evaluation leaves the response map untouched."""
        responses = {"source": "Search"}
        evaluate_condition_group({"enabled": True, "conditions": [condition("equals", "x")]}, responses)
        assert responses == {"source": "Search"}
