"""Pydantic models for rule branches and decision checks."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from market_explainer.models.snapshot import PatternType


class Classifier(StrEnum):
    """Which of the two classifiers produced a label."""

    SIGNAL = "signal"
    DECISION = "decision"


class PatternRequirement(StrEnum):
    NONE = "none"
    BULLISH = "bullish"
    BEARISH = "bearish"
    ANY = "any"

    def admits(self, pattern_type: PatternType) -> bool:
        """True when a detected pattern type satisfies this requirement."""
        if self is PatternRequirement.NONE:
            return True
        if self is PatternRequirement.ANY:
            return pattern_type is not PatternType.NONE
        return pattern_type.value == self.value


# --- Branch checks (closed union, one variant per test kind) ---


class ConditionCheck(BaseModel):
    """Evaluate the branch condition expression against the snapshot."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["condition"] = "condition"


class StopOutCheck(BaseModel):
    """Price has broken below a positive support level."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["stop_out"] = "stop_out"


class SignalCheck(BaseModel):
    """Current signal is one of the expected labels."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["signal"] = "signal"
    signals: tuple[str, ...]


class PatternCheck(BaseModel):
    """Signal matches and the detected pattern satisfies the requirement."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["pattern"] = "pattern"
    signals: tuple[str, ...]
    pattern: PatternRequirement


class ComplexCheck(BaseModel):
    """Free-form condition mixing signal and indicator tests."""

    model_config = ConfigDict(frozen=True)
    kind: Literal["complex"] = "complex"


class PurchasedCheck(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["purchased"] = "purchased"


class DefaultCheck(BaseModel):
    model_config = ConfigDict(frozen=True)
    kind: Literal["default"] = "default"


BranchCheck = Annotated[
    Union[
        ConditionCheck, StopOutCheck, SignalCheck, PatternCheck,
        ComplexCheck, PurchasedCheck, DefaultCheck,
    ],
    Field(discriminator="kind"),
]


class RuleBranch(BaseModel):
    """One prioritized branch of a classifier: condition -> label.

    ``condition`` is always a valid condition expression. Holder and
    pattern gating live in the flags, not in the expression.
    """

    model_config = ConfigDict(frozen=True)

    order: int
    condition: str
    label: str
    check: BranchCheck = Field(default_factory=ConditionCheck)
    requires_purchased: bool = False
    requires_not_purchased: bool = False
    pattern_requirement: PatternRequirement = PatternRequirement.NONE

    @model_validator(mode="after")
    def _check_gating(self) -> RuleBranch:
        if self.requires_purchased and self.requires_not_purchased:
            raise ValueError(
                f"Branch {self.order} ({self.label}) cannot require both "
                "purchased and not purchased"
            )
        if isinstance(self.check, PatternCheck) and self.check.pattern != self.pattern_requirement:
            raise ValueError(
                f"Branch {self.order} ({self.label}) pattern check disagrees with "
                "its pattern requirement"
            )
        return self

    @property
    def is_catch_all(self) -> bool:
        return isinstance(self.check, DefaultCheck)

    @property
    def gating(self) -> tuple[bool, bool, PatternRequirement]:
        return (self.requires_purchased, self.requires_not_purchased, self.pattern_requirement)

    def admits(self, is_purchased: bool, pattern_type: PatternType = PatternType.NONE) -> bool:
        """True when this branch is eligible for the given holder and pattern context."""
        if self.requires_purchased and not is_purchased:
            return False
        if self.requires_not_purchased and is_purchased:
            return False
        return self.pattern_requirement.admits(pattern_type)
