"""Narrator: build categorized narratives from evaluated rule branches."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from market_explainer.config import NarrativeSettings, get_settings
from market_explainer.models.narrative import FactorCategory, Narrative
from market_explainer.models.rules import Classifier
from market_explainer.narrative.factors import describe
from market_explainer.narrative.trace import format_condition_line

if TYPE_CHECKING:
    from market_explainer.models.condition import EvaluationResult
    from market_explainer.models.rules import RuleBranch
    from market_explainer.models.snapshot import IndicatorSnapshot

logger = logging.getLogger(__name__)


class Narrator:
    """Explain a resolved branch in plain language.

    Factors are grouped into fixed categories (price, trend, momentum,
    volume, volatility). Output depends only on the inputs, so the same
    snapshot always yields the same text.
    """

    def __init__(self, settings: NarrativeSettings | None = None) -> None:
        self.settings = settings or get_settings().narrative

    def explain(
        self,
        branch: RuleBranch,
        result: EvaluationResult,
        snapshot: IndicatorSnapshot,
        classifier: Classifier = Classifier.SIGNAL,
        notes: tuple[str, ...] = (),
    ) -> Narrative:
        """Build the structured narrative for ``branch`` given its evaluation."""
        cfg = self.settings
        factors: dict[FactorCategory, list[str]] = {}
        context: list[str] = []

        for leaf in result.leaves():
            factor = describe(leaf, snapshot)
            if factor is None:
                continue
            if factor.category is None:
                context.append(factor.text)
            else:
                factors.setdefault(factor.category, []).append(factor.text)

        template = cfg.signal_title if classifier is Classifier.SIGNAL else cfg.decision_title
        no_criteria = cfg.no_criteria if not factors and not context else None
        logger.debug(
            "%s: %s branch %d produced %d factors",
            snapshot.ticker, classifier.value, branch.order, sum(len(v) for v in factors.values()),
        )
        return Narrative(
            title=template.format(label=branch.label),
            header_label=branch.label,
            notes=notes,
            categorized_factors={
                c: tuple(factors[c]) for c in FactorCategory if c in factors
            },
            context=tuple(context),
            trace=tuple(format_condition_line(result)),
            no_criteria=no_criteria,
            verdict_line=cfg.verdict.format(label=branch.label),
        )

    def render(self, narrative: Narrative) -> str:
        cfg = self.settings
        return narrative.render(
            headings=cfg.category_headings,
            bullet=cfg.bullet,
            context_heading=cfg.context_heading,
            trace_heading=cfg.trace_heading if cfg.include_trace else None,
        )

    # --- Fallbacks ---

    def generic_signal(self, signal: str) -> str:
        """Text used when the signal cannot be traced to a rule branch."""
        return (
            f"{self.settings.signal_title.format(label=signal)}\n\n"
            "⚠️ Using generic explanation (detailed rule unavailable)\n\n"
            f"Signal criteria: {signal} - see rule logic for details"
        )

    def generic_decision(self, decision: str, signal: str | None, patterns: str | None) -> str:
        """Text used when the decision cannot be traced to a rule branch."""
        return (
            f"{self.settings.generic_decision_title}\n\n"
            "⚠️ Using generic explanation (detailed rule unavailable)\n\n"
            "Decision is based on:\n"
            f"1. SIGNAL: {signal or 'N/A'}\n"
            f"2. PATTERNS: {patterns or 'None'}\n"
            f"3. DECISION: {decision}"
        )

    def loading(self, label: str, classifier: Classifier = Classifier.SIGNAL) -> str:
        if classifier is Classifier.SIGNAL:
            title = self.settings.signal_title.format(label=label)
        else:
            title = self.settings.generic_decision_title
        return f"{title}\n\n{self.settings.loading}"
