"""Evaluate condition trees and decision checks against an indicator snapshot.

Evaluation never raises. Missing data and unexpected errors become a failed
result carrying an ``error_reason``. AND/OR evaluate every child so the full
picture can be narrated.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, assert_never

from market_explainer.exceptions import MissingDataError
from market_explainer.models.condition import (
    ComparisonOperator,
    ConditionKind,
    ConditionNode,
    EvaluationResult,
    Operand,
    Scalar,
)
from market_explainer.models.rules import (
    ComplexCheck,
    ConditionCheck,
    DefaultCheck,
    PatternCheck,
    PurchasedCheck,
    SignalCheck,
    StopOutCheck,
)
from market_explainer.models.snapshot import PatternType
from market_explainer.rules.fields import field_for

if TYPE_CHECKING:
    from market_explainer.models.rules import RuleBranch
    from market_explainer.models.snapshot import IndicatorSnapshot

logger = logging.getLogger(__name__)

DATA_UNAVAILABLE = "Data unavailable for comparison"
COMPLEX_NOTE = "complex expression not evaluated, assumed met"


def evaluate(node: ConditionNode, snapshot: IndicatorSnapshot) -> EvaluationResult:
    """Evaluate a parsed condition tree. Never raises."""
    try:
        return _evaluate(node, snapshot)
    except Exception as exc:
        logger.warning("Evaluation of %r failed for %s: %s", node.expression, snapshot.ticker, exc)
        return EvaluationResult(
            kind=node.kind,
            expression=node.expression,
            passed=False,
            operator=node.operator.value if node.operator else None,
            error_reason=str(exc),
        )


def _evaluate(node: ConditionNode, snapshot: IndicatorSnapshot) -> EvaluationResult:
    match node.kind:
        case ConditionKind.DEFAULT:
            return EvaluationResult(kind=node.kind, expression=node.expression, passed=True)
        case ConditionKind.AND | ConditionKind.OR:
            children = tuple(evaluate(child, snapshot) for child in node.children)
            outcomes = [c.passed for c in children]
            passed = all(outcomes) if node.kind is ConditionKind.AND else any(outcomes)
            return EvaluationResult(
                kind=node.kind, expression=node.expression, passed=passed, children=children,
            )
        case ConditionKind.COMPLEX:
            return EvaluationResult(
                kind=node.kind,
                expression=node.expression,
                passed=True,
                operator=node.operator.value if node.operator else None,
                left_ref=node.field_refs[0] if node.field_refs else None,
                note=COMPLEX_NOTE,
            )
        case ConditionKind.COMPARISON:
            return _evaluate_comparison(node, snapshot)
        case _:
            assert_never(node.kind)


def _evaluate_comparison(node: ConditionNode, snapshot: IndicatorSnapshot) -> EvaluationResult:
    assert node.left is not None and node.right is not None and node.operator is not None
    base = dict(
        kind=node.kind,
        expression=node.expression,
        operator=node.operator.value,
        left_ref=node.left.field_ref,
        right_ref=node.right.field_ref,
    )
    try:
        left = _resolve(node.left, snapshot)
        right = _resolve(node.right, snapshot)
    except MissingDataError as exc:
        return EvaluationResult(
            **base,
            passed=False,
            left_value=_peek(node.left, snapshot),
            right_value=_peek(node.right, snapshot),
            error_reason=DATA_UNAVAILABLE,
            note=f"{exc.ref} is missing",
        )

    passed = compare(left, node.operator, right)
    return EvaluationResult(**base, passed=passed, left_value=left, right_value=right)


def _resolve(operand: Operand, snapshot: IndicatorSnapshot) -> Scalar:
    if operand.field_ref is None:
        return operand.literal
    value = getattr(snapshot, field_for(operand.field_ref).attribute)
    if value is None:
        raise MissingDataError(operand.field_ref)
    return value


def _peek(operand: Operand, snapshot: IndicatorSnapshot) -> Scalar:
    if operand.field_ref is None:
        return operand.literal
    return getattr(snapshot, field_for(operand.field_ref).attribute)


def _as_number(value: Scalar) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(value.strip())
    except ValueError:
        return None


def compare(left: Scalar, operator: ComparisonOperator, right: Scalar) -> bool:
    """Compare two resolved operands.

    ``=`` is loose: numbers compare numerically, anything else as trimmed text.
    Ordering operators need two numbers.

    Raises:
        TypeError: If an ordering operator gets a non-numeric operand.
    """
    left_num = _as_number(left)
    right_num = _as_number(right)

    if operator is ComparisonOperator.EQ:
        if left_num is not None and right_num is not None:
            return left_num == right_num
        return str(left).strip() == str(right).strip()

    if left_num is None or right_num is None:
        raise TypeError(f"cannot order {left!r} {operator.value} {right!r}")

    match operator:
        case ComparisonOperator.GT:
            return left_num > right_num
        case ComparisonOperator.GE:
            return left_num >= right_num
        case ComparisonOperator.LT:
            return left_num < right_num
        case ComparisonOperator.LE:
            return left_num <= right_num
    raise ValueError(f"Unsupported operator: {operator}")


# ---------------------------------------------------------------------------
# Decision checks
# ---------------------------------------------------------------------------


def evaluate_branch(
    branch: RuleBranch,
    snapshot: IndicatorSnapshot,
    tree: ConditionNode,
    *,
    signal: str | None = None,
    pattern_type: PatternType = PatternType.NONE,
) -> EvaluationResult:
    """Evaluate a resolved branch using the test its check variant declares.

    Args:
        branch: The resolved rule branch.
        snapshot: Indicator values for the ticker.
        tree: Parsed ``branch.condition``.
        signal: Current SIGNAL label (decision checks only).
        pattern_type: Classified chart patterns (decision checks only).
    """
    match branch.check:
        case ConditionCheck() | ComplexCheck():
            if signal is not None and signal != snapshot.signal:
                snapshot = snapshot.model_copy(update={"signal": signal})
            return evaluate(tree, snapshot)
        case DefaultCheck():
            return EvaluationResult(kind=ConditionKind.DEFAULT, expression="TRUE", passed=True)
        case StopOutCheck():
            return _stop_out(snapshot)
        case SignalCheck(signals=signals):
            return _signal_match(signal, signals)
        case PatternCheck(signals=signals, pattern=pattern):
            signal_result = _signal_match(signal, signals)
            pattern_passed = pattern.admits(pattern_type)
            pattern_result = EvaluationResult(
                kind=ConditionKind.COMPARISON,
                expression=f"PATTERN = {pattern.value}",
                passed=pattern_passed,
                operator="=",
                left_ref="$E",
                left_value=pattern_type.value,
                right_value=pattern.value,
            )
            return EvaluationResult(
                kind=ConditionKind.AND,
                expression=branch.condition,
                passed=signal_result.passed and pattern_passed,
                children=(signal_result, pattern_result),
            )
        case PurchasedCheck():
            return EvaluationResult(
                kind=ConditionKind.COMPARISON,
                expression="PURCHASED",
                passed=snapshot.is_purchased,
                operator="=",
                left_value=snapshot.is_purchased,
                right_value=True,
                subject="position",
            )
        case _:
            assert_never(branch.check)


def _signal_match(signal: str | None, expected: tuple[str, ...]) -> EvaluationResult:
    current = (signal or "").strip()
    return EvaluationResult(
        kind=ConditionKind.COMPARISON,
        expression=f"SIGNAL = {current}",
        passed=current in expected,
        operator="=",
        left_ref="$D",
        left_value=current or None,
        right_value=" OR ".join(expected),
    )


def _stop_out(snapshot: IndicatorSnapshot) -> EvaluationResult:
    price, support = snapshot.price, snapshot.support
    base = dict(
        kind=ConditionKind.COMPARISON,
        expression="$G<$AC",
        operator="<",
        left_ref="$G",
        right_ref="$AC",
        left_value=price,
        right_value=support,
    )
    if price is None or support is None:
        return EvaluationResult(**base, passed=False, error_reason=DATA_UNAVAILABLE)
    return EvaluationResult(**base, passed=price > 0 and support > 0 and price < support)
