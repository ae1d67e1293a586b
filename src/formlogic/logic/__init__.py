"""Conditional show/skip logic."""

from formlogic.logic.conditions import evaluate_condition_group, evaluate_field_condition

__all__ = ["evaluate_condition_group", "evaluate_field_condition"]
