"""ExplanationService: answer "why this signal?" and "how was this decision reached?"."""

from __future__ import annotations

import logging

from market_explainer.config import Settings, get_settings
from market_explainer.models.narrative import DecisionExplanation, SignalExplanation
from market_explainer.models.rules import Classifier
from market_explainer.models.snapshot import IndicatorSnapshot, TradingMode
from market_explainer.narrative.narrator import Narrator
from market_explainer.rules.cache import ConditionCache
from market_explainer.rules.catalog import CatalogSet, build_default_catalogs
from market_explainer.rules.evaluator import evaluate_branch
from market_explainer.rules.patterns import classify_patterns
from market_explainer.service.resolver import BranchResolver, Resolution, ResolutionContext

logger = logging.getLogger(__name__)


class ExplanationService:
    """Explain SIGNAL and DECISION labels for indicator snapshots.

    Resolves the displayed label back to its rule branch (falling back to the
    other trading mode when needed), re-evaluates the branch against the
    snapshot and narrates the result. Always returns an explanation. When the
    label cannot be traced, a generic narrative is returned instead.
    """

    def __init__(
        self,
        catalogs: CatalogSet | None = None,
        cache: ConditionCache | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else ConditionCache()
        self.catalogs = catalogs if catalogs is not None else build_default_catalogs(
            cache=self.cache, fail_fast=self.settings.catalog.fail_fast,
        )
        self.resolver = BranchResolver(self.catalogs)
        self.narrator = Narrator(self.settings.narrative)

    def _is_loading(self, label: str) -> bool:
        return not label or label.upper() in {m.upper() for m in self.settings.labels.loading_markers}

    def _mode(self, snapshot: IndicatorSnapshot, mode: TradingMode | None) -> TradingMode:
        return mode or snapshot.mode or self.settings.default_mode

    def _notes(self, resolution: Resolution) -> tuple[str, ...]:
        if not resolution.fallback_used:
            return ()
        return (
            f"ℹ️ Explained with the {resolution.mode.value.upper()} rule set "
            f"(label not produced in {resolution.requested_mode.value.upper()} mode)",
        )

    def explain_signal(
        self,
        snapshot: IndicatorSnapshot,
        mode: TradingMode | None = None,
    ) -> SignalExplanation:
        """Explain why ``snapshot.signal`` fired.

        Args:
            snapshot: Indicator values plus the displayed signal.
            mode: Trading mode to resolve under. Defaults to ``snapshot.mode``.
        """
        label = (snapshot.signal or "").strip()
        if self._is_loading(label):
            return SignalExplanation(
                ticker=snapshot.ticker, signal=label, narrative=self.narrator.loading(label), resolved=False,
            )

        try:
            resolution = self.resolver.resolve(
                Classifier.SIGNAL,
                label,
                self._mode(snapshot, mode),
                ResolutionContext(is_purchased=snapshot.is_purchased),
            )
            if resolution is None:
                return SignalExplanation(
                    ticker=snapshot.ticker,
                    signal=label,
                    narrative=self.narrator.generic_signal(label),
                    resolved=False,
                )

            catalog = self.resolver.catalog(Classifier.SIGNAL, resolution.mode)
            branch = resolution.branch
            result = evaluate_branch(branch, snapshot, catalog.tree(branch))
            narrative = self.narrator.explain(
                branch, result, snapshot, Classifier.SIGNAL, self._notes(resolution),
            )
        except Exception:
            logger.exception("Failed to explain signal %r for %s", label, snapshot.ticker)
            return SignalExplanation(
                ticker=snapshot.ticker,
                signal=label,
                narrative=self.narrator.generic_signal(label),
                resolved=False,
            )

        return SignalExplanation(
            ticker=snapshot.ticker,
            signal=label,
            narrative=self.narrator.render(narrative),
            resolved=True,
            mode_used=resolution.mode,
            fallback_used=resolution.fallback_used,
            branch_order=branch.order,
            evaluation=result,
            structured=narrative,
        )

    def explain_decision(
        self,
        snapshot: IndicatorSnapshot,
        signal: str | None = None,
        mode: TradingMode | None = None,
    ) -> DecisionExplanation:
        """Explain how ``snapshot.decision`` was derived.

        Args:
            snapshot: Indicator values plus the displayed decision.
            signal: SIGNAL label the decision was computed from. Defaults to ``snapshot.signal``.
            mode: Trading mode to resolve under. Defaults to ``snapshot.mode``.
        """
        label = (snapshot.decision or "").strip()
        current_signal = (signal if signal is not None else snapshot.signal) or None
        if self._is_loading(label):
            return DecisionExplanation(
                ticker=snapshot.ticker,
                decision=label,
                signal=current_signal,
                narrative=self.narrator.loading(label, Classifier.DECISION),
                resolved=False,
            )

        def generic() -> DecisionExplanation:
            return DecisionExplanation(
                ticker=snapshot.ticker,
                decision=label,
                signal=current_signal,
                narrative=self.narrator.generic_decision(label, current_signal, snapshot.patterns),
                resolved=False,
            )

        try:
            pattern_type = classify_patterns(snapshot.patterns, self.settings.patterns)
            resolution = self.resolver.resolve(
                Classifier.DECISION,
                label,
                self._mode(snapshot, mode),
                ResolutionContext(is_purchased=snapshot.is_purchased, pattern_type=pattern_type),
            )
            if resolution is None:
                return generic()

            catalog = self.resolver.catalog(Classifier.DECISION, resolution.mode)
            branch = resolution.branch
            result = evaluate_branch(
                branch,
                snapshot,
                catalog.tree(branch),
                signal=current_signal,
                pattern_type=pattern_type,
            )
            narrative = self.narrator.explain(
                branch, result, snapshot, Classifier.DECISION, self._notes(resolution),
            )
        except Exception:
            logger.exception("Failed to explain decision %r for %s", label, snapshot.ticker)
            return generic()

        return DecisionExplanation(
            ticker=snapshot.ticker,
            decision=label,
            signal=current_signal,
            narrative=self.narrator.render(narrative),
            resolved=True,
            mode_used=resolution.mode,
            fallback_used=resolution.fallback_used,
            branch_order=branch.order,
            evaluation=result,
            structured=narrative,
        )


_default_service: ExplanationService | None = None


def _service() -> ExplanationService:
    global _default_service
    if _default_service is None:
        _default_service = ExplanationService()
    return _default_service


def explain_signal(snapshot: IndicatorSnapshot, mode: TradingMode | None = None) -> SignalExplanation:
    """Explain ``snapshot.signal`` with the shared default service."""
    return _service().explain_signal(snapshot, mode)


def explain_decision(
    snapshot: IndicatorSnapshot,
    signal: str | None = None,
    mode: TradingMode | None = None,
) -> DecisionExplanation:
    """Explain ``snapshot.decision`` with the shared default service."""
    return _service().explain_decision(snapshot, signal, mode)
