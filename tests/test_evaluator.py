"""Tests for condition and decision-check evaluation."""

import logging

import pytest

from market_explainer.models.condition import ComparisonOperator, ConditionKind
from market_explainer.models.rules import (
    ComplexCheck,
    DefaultCheck,
    PatternCheck,
    PatternRequirement,
    PurchasedCheck,
    RuleBranch,
    SignalCheck,
    StopOutCheck,
)
from market_explainer.models.snapshot import IndicatorSnapshot, PatternType
from market_explainer.rules.catalog import DEFAULT_BRANCHES
from market_explainer.rules.evaluator import (
    DATA_UNAVAILABLE,
    compare,
    evaluate,
    evaluate_branch,
)
from market_explainer.rules.parser import parse_condition


class TestCompare:
    def test_numeric_ordering(self):
        assert compare(5.0, ComparisonOperator.GT, 3.0)
        assert compare(3.0, ComparisonOperator.LE, 3.0)
        assert not compare(3.0, ComparisonOperator.LT, 3.0)

    def test_loose_equality_numeric_text(self):
        assert compare("5", ComparisonOperator.EQ, 5.0)

    def test_loose_equality_text(self):
        assert compare("OVERBOUGHT", ComparisonOperator.EQ, "OVERBOUGHT")
        assert not compare("TRIM", ComparisonOperator.EQ, "OVERBOUGHT")

    def test_ordering_text_raises(self):
        with pytest.raises(TypeError):
            compare("HIGH", ComparisonOperator.GT, 3.0)


class TestEvaluate:
    def test_comparison_resolves_values(self, make_snapshot):
        result = evaluate(parse_condition("$G>$Q"), make_snapshot(price=230.5, sma200=225.0))
        assert result.passed
        assert result.left_value == 230.5
        assert result.right_value == 225.0
        assert result.left_ref == "$G"
        assert result.right_ref == "$Q"
        assert result.operator == ">"

    def test_literal_threshold(self, make_snapshot):
        result = evaluate(parse_condition("$R<=30"), make_snapshot(rsi=28.0))
        assert result.passed
        assert result.right_value == 30.0

    def test_and_requires_all(self, make_snapshot):
        node = parse_condition("AND($G>$Q, $R>40, $R<70)")
        assert evaluate(node, make_snapshot(rsi=55.0)).passed
        assert not evaluate(node, make_snapshot(rsi=75.0)).passed

    def test_or_requires_any(self, make_snapshot):
        node = parse_condition("OR($R>=70, $Z>=0.9)")
        assert evaluate(node, make_snapshot(rsi=72.0, bollinger_percent_b=0.5)).passed
        assert not evaluate(node, make_snapshot(rsi=50.0, bollinger_percent_b=0.5)).passed

    def test_all_children_evaluated(self, make_snapshot):
        node = parse_condition("AND($R>80, $G>$Q, $U>=50)")
        result = evaluate(node, make_snapshot(rsi=50.0))
        assert not result.passed
        assert len(result.children) == 3
        assert [c.passed for c in result.children] == [False, True, False]

    def test_default_passes(self, make_snapshot):
        result = evaluate(parse_condition("TRUE"), make_snapshot())
        assert result.passed
        assert result.kind == ConditionKind.DEFAULT

    def test_complex_passes_with_note(self, make_snapshot):
        result = evaluate(parse_condition("ABS($Z-0.5)<0.2"), make_snapshot())
        assert result.passed
        assert result.kind == ConditionKind.COMPLEX
        assert "not evaluated" in result.note
        assert result.left_ref == "$Z"

    def test_missing_field_fails_with_reason(self, make_snapshot):
        result = evaluate(parse_condition("$R>40"), make_snapshot(rsi=None))
        assert not result.passed
        assert result.error_reason == DATA_UNAVAILABLE
        assert result.left_value is None

    def test_missing_field_in_group_isolated(self, make_snapshot):
        result = evaluate(parse_condition("AND($G>$Q, $R>40)"), make_snapshot(rsi=None))
        assert not result.passed
        assert result.children[0].passed
        assert result.children[1].error_reason == DATA_UNAVAILABLE

    def test_text_in_ordering_becomes_error(self, make_snapshot, caplog):
        with caplog.at_level(logging.WARNING):
            result = evaluate(parse_condition("$D>5"), make_snapshot(signal="BUY"))
        assert not result.passed
        assert result.has_error
        assert "cannot order" in result.error_reason
        assert "failed" in caplog.text

    def test_signal_equality(self, make_snapshot):
        node = parse_condition("$D='OVERBOUGHT'")
        assert evaluate(node, make_snapshot(signal="OVERBOUGHT")).passed
        assert not evaluate(node, make_snapshot(signal="TRIM")).passed

    def test_unknown_reference_becomes_error(self, make_snapshot):
        result = evaluate(parse_condition("$ZZ>5"), make_snapshot())
        assert not result.passed
        assert "Unknown field reference" in result.error_reason


def _branch(check, condition="TRUE", **kwargs):
    return RuleBranch(order=1, condition=condition, label="X", check=check, **kwargs)


class TestEvaluateBranch:
    def test_stop_out(self, make_snapshot):
        branch = _branch(StopOutCheck(), "AND($G>0, $AC>0, $G<$AC)")
        tree = parse_condition(branch.condition)
        assert evaluate_branch(branch, make_snapshot(price=95.0, support=100.0), tree).passed
        assert not evaluate_branch(branch, make_snapshot(price=105.0, support=100.0), tree).passed

    def test_stop_out_ignores_zero_support(self, make_snapshot):
        branch = _branch(StopOutCheck(), "AND($G>0, $AC>0, $G<$AC)")
        tree = parse_condition(branch.condition)
        assert not evaluate_branch(branch, make_snapshot(price=-1.0, support=0.0), tree).passed

    def test_stop_out_missing_support(self, make_snapshot):
        branch = _branch(StopOutCheck(), "AND($G>0, $AC>0, $G<$AC)")
        result = evaluate_branch(branch, make_snapshot(support=None), parse_condition(branch.condition))
        assert not result.passed
        assert result.error_reason == DATA_UNAVAILABLE

    def test_signal_check(self, make_snapshot):
        branch = _branch(SignalCheck(signals=("BREAKOUT", "ATH BREAKOUT")), "$D='BREAKOUT'")
        tree = parse_condition(branch.condition)
        result = evaluate_branch(branch, make_snapshot(), tree, signal="ATH BREAKOUT")
        assert result.passed
        assert result.expression == "SIGNAL = ATH BREAKOUT"
        assert result.right_value == "BREAKOUT OR ATH BREAKOUT"

    def test_signal_check_mismatch(self, make_snapshot):
        branch = _branch(SignalCheck(signals=("BREAKOUT",)), "$D='BREAKOUT'")
        result = evaluate_branch(branch, make_snapshot(), parse_condition(branch.condition), signal="RANGE")
        assert not result.passed

    def test_pattern_check_has_two_details(self, make_snapshot):
        branch = _branch(
            PatternCheck(signals=("BREAKOUT",), pattern=PatternRequirement.BULLISH),
            "$D='BREAKOUT'",
            pattern_requirement=PatternRequirement.BULLISH,
        )
        tree = parse_condition(branch.condition)
        result = evaluate_branch(
            branch, make_snapshot(), tree, signal="BREAKOUT", pattern_type=PatternType.BULLISH,
        )
        assert result.passed
        assert result.kind == ConditionKind.AND
        assert len(result.children) == 2
        assert result.children[1].expression == "PATTERN = bullish"

    def test_pattern_check_wrong_direction(self, make_snapshot):
        branch = _branch(
            PatternCheck(signals=("BREAKOUT",), pattern=PatternRequirement.BULLISH),
            "$D='BREAKOUT'",
            pattern_requirement=PatternRequirement.BULLISH,
        )
        result = evaluate_branch(
            branch, make_snapshot(), parse_condition(branch.condition),
            signal="BREAKOUT", pattern_type=PatternType.BEARISH,
        )
        assert not result.passed
        assert result.children[0].passed
        assert not result.children[1].passed

    def test_complex_check_evaluates_condition(self, make_snapshot):
        branch = _branch(ComplexCheck(), "OR($D='OVERBOUGHT', $G>=$AD*0.98)")
        result = evaluate_branch(branch, make_snapshot(signal="TRIM"), parse_condition(branch.condition))
        assert result.kind == ConditionKind.OR
        assert not result.children[0].passed
        assert result.children[1].kind == ConditionKind.COMPLEX
        assert result.passed

    def test_purchased_check(self, make_snapshot):
        branch = _branch(PurchasedCheck())
        tree = parse_condition("TRUE")
        assert evaluate_branch(branch, make_snapshot(is_purchased=True), tree).passed
        assert not evaluate_branch(branch, make_snapshot(is_purchased=False), tree).passed

    def test_default_check(self, make_snapshot):
        result = evaluate_branch(_branch(DefaultCheck()), make_snapshot(), parse_condition("TRUE"))
        assert result.passed
        assert result.kind == ConditionKind.DEFAULT


class TestEmptySnapshot:
    @pytest.mark.parametrize("key", list(DEFAULT_BRANCHES))
    def test_every_branch_fails_column_comparisons(self, key):
        snapshot = IndicatorSnapshot(ticker="X")
        for branch in DEFAULT_BRANCHES[key]:
            result = evaluate_branch(branch, snapshot, parse_condition(branch.condition))
            for leaf in result.leaves():
                if leaf.kind == ConditionKind.COMPARISON and leaf.left_ref is not None:
                    assert not leaf.passed, f"{branch.label}: {leaf.expression}"
