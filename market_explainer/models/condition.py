"""Pydantic models for parsed condition trees and their evaluation."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class ConditionKind(StrEnum):
    COMPARISON = "comparison"
    AND = "and"
    OR = "or"
    COMPLEX = "complex"     # Arithmetic or function call, not evaluated
    DEFAULT = "default"     # TRUE catch-all


class ComparisonOperator(StrEnum):
    GE = ">="
    LE = "<="
    GT = ">"
    LT = "<"
    EQ = "="


Scalar = bool | float | str | None


class Operand(BaseModel):
    """One side of a comparison: a column reference or a literal."""

    model_config = ConfigDict(frozen=True)

    text: str
    field_ref: str | None = None
    literal: float | str | None = None

    @property
    def is_field(self) -> bool:
        return self.field_ref is not None


class ConditionNode(BaseModel):
    """Node of a parsed condition expression."""

    model_config = ConfigDict(frozen=True)

    kind: ConditionKind
    expression: str
    operator: ComparisonOperator | None = None
    left: Operand | None = None
    right: Operand | None = None
    children: tuple[ConditionNode, ...] = ()
    field_refs: tuple[str, ...] = ()        # In order of appearance, duplicates kept

    @property
    def is_leaf(self) -> bool:
        return self.kind not in (ConditionKind.AND, ConditionKind.OR)

    def ref_set(self) -> set[str]:
        return set(self.field_refs)


class EvaluationResult(BaseModel):
    """Outcome of evaluating a condition or decision check against a snapshot."""

    model_config = ConfigDict(frozen=True)

    kind: ConditionKind
    expression: str
    passed: bool
    operator: str | None = None
    left_ref: str | None = None
    right_ref: str | None = None
    left_value: Scalar = None
    right_value: Scalar = None
    subject: str | None = None          # Display name when no column is involved
    children: tuple[EvaluationResult, ...] = ()
    error_reason: str | None = None
    note: str | None = None

    @property
    def has_error(self) -> bool:
        return self.error_reason is not None

    def leaves(self) -> list[EvaluationResult]:
        """Flatten to leaf results, depth-first in declaration order."""
        if not self.children:
            return [self]
        out: list[EvaluationResult] = []
        for child in self.children:
            out.extend(child.leaves())
        return out
