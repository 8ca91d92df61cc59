"""Pydantic models for narratives and explanation results."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from market_explainer.models.condition import EvaluationResult
from market_explainer.models.snapshot import TradingMode


class FactorCategory(StrEnum):
    """Narrative sections, in rendering order."""

    PRICE = "price"
    TREND = "trend"
    MOMENTUM = "momentum"
    VOLUME = "volume"
    VOLATILITY = "volatility"


class Factor(BaseModel):
    """One human-readable sentence derived from a leaf comparison."""

    model_config = ConfigDict(frozen=True)

    category: FactorCategory | None     # None = decision input (signal, pattern, holder)
    text: str
    passed: bool


class Narrative(BaseModel):
    """Structured explanation, rendered to text by ``render``."""

    model_config = ConfigDict(frozen=True)

    title: str
    header_label: str
    notes: tuple[str, ...] = ()
    categorized_factors: dict[FactorCategory, tuple[str, ...]] = Field(default_factory=dict)
    context: tuple[str, ...] = ()
    trace: tuple[str, ...] = ()
    no_criteria: str | None = None
    verdict_line: str

    @property
    def factor_count(self) -> int:
        return sum(len(v) for v in self.categorized_factors.values())

    def render(
        self,
        headings: dict[str, str],
        bullet: str = "•",
        context_heading: str = "DECISION INPUTS:",
        trace_heading: str | None = None,
    ) -> str:
        lines = [self.title, ""]
        if self.notes:
            lines.extend(self.notes)
            lines.append("")
        if self.context:
            lines.append(context_heading)
            lines.extend(f"  {bullet} {c}" for c in self.context)
            lines.append("")
        for category in FactorCategory:
            factors = self.categorized_factors.get(category)
            if not factors:
                continue
            lines.append(headings.get(category.value, f"{category.value.upper()}:"))
            lines.extend(f"  {bullet} {f}" for f in factors)
            lines.append("")
        if self.no_criteria:
            lines.append(self.no_criteria)
            lines.append("")
        if trace_heading and self.trace:
            lines.append(trace_heading)
            lines.extend(f"  {t}" for t in self.trace)
            lines.append("")
        lines.append(self.verdict_line)
        return "\n".join(lines)


class SignalExplanation(BaseModel):
    """Explanation of why a SIGNAL label fired."""

    ticker: str
    signal: str
    narrative: str
    resolved: bool
    mode_used: TradingMode | None = None
    fallback_used: bool = False
    branch_order: int | None = None
    evaluation: EvaluationResult | None = None
    structured: Narrative | None = None


class DecisionExplanation(BaseModel):
    """Explanation of how a DECISION label was derived."""

    ticker: str
    decision: str
    signal: str | None
    narrative: str
    resolved: bool
    mode_used: TradingMode | None = None
    fallback_used: bool = False
    branch_order: int | None = None
    evaluation: EvaluationResult | None = None
    structured: Narrative | None = None
