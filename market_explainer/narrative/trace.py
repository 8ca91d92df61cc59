"""Check-mark trace of an evaluation tree, one line per node."""

from __future__ import annotations

from market_explainer.models.condition import ConditionKind, EvaluationResult, Scalar
from market_explainer.narrative.formatting import format_literal, format_ref
from market_explainer.rules.fields import field_for

PASS_MARK = "✓"
FAIL_MARK = "✗"


def format_condition_line(result: EvaluationResult, indent: int = 0) -> list[str]:
    """Render ``result`` and its children as indented ✓/✗ lines."""
    pad = "  " * indent
    mark = PASS_MARK if result.passed else FAIL_MARK

    if result.children:
        lines = [f"{pad}{mark} {result.kind.value.upper()}:"]
        for child in result.children:
            lines.extend(format_condition_line(child, indent + 1))
        return lines

    if result.kind is ConditionKind.DEFAULT:
        return [f"{pad}{PASS_MARK} TRUE (default branch)"]
    if result.kind is ConditionKind.COMPLEX:
        return [f"{pad}{PASS_MARK} {result.expression} → {result.note}"]
    if result.subject is not None:
        return [f"{pad}{mark} {result.expression} ({result.subject}: {result.left_value})"]
    if result.left_ref is None:
        return [f"{pad}{mark} {result.expression}" + (f" → {result.error_reason}" if result.error_reason else "")]

    left = _side(result.left_ref, result.left_value, None)
    right = _side(result.right_ref, result.right_value, result.left_ref)
    if result.error_reason:
        detail = result.error_reason
    else:
        detail = "condition met" if result.passed else "condition not met"
    return [f"{pad}{mark} {left} {result.operator} {right} → {detail}"]


def _side(ref: str | None, value: Scalar, like_ref: str | None) -> str:
    if ref is not None:
        return f"{field_for(ref).name} ({format_ref(ref, value)})"
    return format_literal(value, like_ref)
