"""Static SIGNAL and DECISION rule catalogs for both trading modes, plus validation.

Branches are listed in evaluation priority. The first branch whose condition
holds produced the label on the dashboard, so the explainer resolves a label
back to the first branch declaring it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from market_explainer.config import get_settings
from market_explainer.exceptions import CatalogError, ParseError
from market_explainer.models.condition import ConditionKind
from market_explainer.models.rules import (
    Classifier,
    ComplexCheck,
    DefaultCheck,
    PatternCheck,
    PatternRequirement,
    PurchasedCheck,
    RuleBranch,
    SignalCheck,
    StopOutCheck,
)
from market_explainer.models.snapshot import TradingMode
from market_explainer.rules.cache import ConditionCache
from market_explainer.rules.fields import is_known_ref

if TYPE_CHECKING:
    from market_explainer.models.condition import ConditionNode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Branch builders
# ---------------------------------------------------------------------------


def _rule(order: int, condition: str, label: str) -> RuleBranch:
    return RuleBranch(order=order, condition=condition, label=label)


def _default(order: int, label: str, *, purchased: bool | None = None) -> RuleBranch:
    return RuleBranch(
        order=order,
        condition="TRUE",
        label=label,
        check=DefaultCheck(),
        requires_purchased=purchased is True,
        requires_not_purchased=purchased is False,
    )


def _signal_condition(signals: tuple[str, ...]) -> str:
    tests = [f"$D='{s}'" for s in signals]
    return tests[0] if len(tests) == 1 else f"OR({', '.join(tests)})"


def _on_signal(
    order: int,
    signals: str | tuple[str, ...],
    label: str,
    *,
    purchased: bool | None = None,
    pattern: PatternRequirement = PatternRequirement.NONE,
) -> RuleBranch:
    expected = (signals,) if isinstance(signals, str) else signals
    check = (
        SignalCheck(signals=expected)
        if pattern is PatternRequirement.NONE
        else PatternCheck(signals=expected, pattern=pattern)
    )
    return RuleBranch(
        order=order,
        condition=_signal_condition(expected),
        label=label,
        check=check,
        requires_purchased=purchased is True,
        requires_not_purchased=purchased is False,
        pattern_requirement=pattern,
    )


_BULL = PatternRequirement.BULLISH
_BEAR = PatternRequirement.BEARISH


# ---------------------------------------------------------------------------
# SIGNAL catalogs
# ---------------------------------------------------------------------------

SIGNAL_INVEST: tuple[RuleBranch, ...] = (
    _rule(1, "$G<$AC", "STOP OUT"),
    _rule(2, "$G<$Q", "RISK OFF"),
    _rule(3, "AND($G>$Q, $P>$Q, $R>=30, $R<=40, $S>0, $U>=20, $I>=1.5)", "STRONG BUY"),
    _rule(4, "AND($G>$Q, $P>$Q, $R>40, $R<=50, $S>0, $U>=15)", "BUY"),
    _rule(5, "AND($G>$Q, $R>=35, $R<=55, $G>=$P*0.95, $G<=$P*1.05)", "ACCUMULATE"),
    _rule(6, "AND($R<=30, $G>$AC)", "OVERSOLD WATCH"),
    _rule(7, "OR($R>=70, $Z>=0.85, $G>=$AD*0.98)", "TRIM"),
    _rule(8, "AND($G>$Q, $R>40, $R<70)", "HOLD"),
    _default(9, "NEUTRAL"),
)

SIGNAL_TRADE: tuple[RuleBranch, ...] = (
    _rule(1, "$G<$AC", "STOP OUT"),
    _rule(2, "AND($I>=2.0, $G>=$AD*1.01)", "VOLATILITY BREAKOUT"),
    _rule(3, "AND($I>=1.5, $G>=$AD*1.02)", "BREAKOUT"),
    _rule(4, "AND($K>=-0.01, $I>=2.0, $U>=25)", "ATH BREAKOUT"),
    _rule(5, "AND($G>$P, $S>0, $U>=20)", "MOMENTUM"),
    _rule(6, "AND($V<=0.20, $S>0, $G>$AC)", "OVERSOLD REVERSAL"),
    _rule(7, "AND($U<15, ABS($Z-0.5)<0.2)", "VOLATILITY SQUEEZE"),
    _rule(8, "AND($U<15, $G>=$AC*0.98, $G<=$AC*1.02)", "RANGE SUPPORT BUY"),
    _rule(9, "OR($R>=70, $Z>=0.9)", "OVERBOUGHT"),
    _rule(10, "$G<$Q", "RISK OFF"),
    _rule(11, "AND($U<15, $G>$AC)", "RANGE"),
    _default(12, "NEUTRAL"),
)


# ---------------------------------------------------------------------------
# DECISION catalogs
# ---------------------------------------------------------------------------

_INVEST_BUYS = ("STRONG BUY", "BUY", "ACCUMULATE")

DECISION_INVEST: tuple[RuleBranch, ...] = (
    # Holders
    _on_signal(1, ("STOP OUT", "RISK OFF"), "🔴 EXIT", purchased=True),
    _on_signal(2, "TRIM", "🟠 TRIM (PATTERN CONFIRMED)", purchased=True, pattern=_BEAR),
    _on_signal(3, "TRIM", "🟠 TRIM", purchased=True),
    _on_signal(4, _INVEST_BUYS, "🟢 ADD (PATTERN CONFIRMED)", purchased=True, pattern=_BULL),
    _on_signal(5, _INVEST_BUYS, "⚠️ HOLD (PATTERN CONFLICT)", purchased=True, pattern=_BEAR),
    _on_signal(6, _INVEST_BUYS, "🟢 ADD", purchased=True),
    _on_signal(7, "HOLD", "⚖️ HOLD", purchased=True),
    _default(8, "⚖️ HOLD", purchased=True),
    # Non-holders
    _on_signal(9, ("STOP OUT", "RISK OFF"), "🔴 AVOID", purchased=False),
    _on_signal(10, "STRONG BUY", "🟢 STRONG BUY (PATTERN CONFIRMED)", purchased=False, pattern=_BULL),
    _on_signal(11, ("STRONG BUY", "BUY"), "⚠️ CAUTION (PATTERN CONFLICT)", purchased=False, pattern=_BEAR),
    _on_signal(12, "STRONG BUY", "🟢 STRONG BUY", purchased=False),
    _on_signal(13, "BUY", "🟢 BUY", purchased=False),
    _on_signal(14, "ACCUMULATE", "🟢 ACCUMULATE", purchased=False),
    _on_signal(15, "OVERSOLD WATCH", "🟡 WATCH (OVERSOLD)", purchased=False),
    _on_signal(16, "TRIM", "⏳ WAIT (EXTENDED)", purchased=False),
    _on_signal(17, "HOLD", "⚖️ WATCH", purchased=False),
    _default(18, "⚪ NEUTRAL", purchased=False),
)

_BREAKOUTS = ("BREAKOUT", "ATH BREAKOUT")

DECISION_TRADE: tuple[RuleBranch, ...] = (
    RuleBranch(order=1, condition="AND($G>0, $AC>0, $G<$AC)", label="🔴 STOP OUT", check=StopOutCheck()),
    _on_signal(2, "VOLATILITY BREAKOUT", "🟢 STRONG TRADE LONG (PATTERN CONFIRMED)", purchased=False, pattern=_BULL),
    _on_signal(3, _BREAKOUTS, "🟢 TRADE LONG (PATTERN CONFIRMED)", purchased=False, pattern=_BULL),
    _on_signal(
        4, ("VOLATILITY BREAKOUT", *_BREAKOUTS, "MOMENTUM"), "⚠️ CAUTION (PATTERN CONFLICT)",
        purchased=False, pattern=_BEAR,
    ),
    _on_signal(5, "VOLATILITY BREAKOUT", "🟢 STRONG TRADE LONG", purchased=False),
    _on_signal(6, _BREAKOUTS, "🟢 TRADE LONG", purchased=False),
    _on_signal(7, "MOMENTUM", "🟡 ACCUMULATE", purchased=False),
    _on_signal(8, "OVERSOLD REVERSAL", "🟢 BUY DIP", purchased=False),
    _on_signal(9, "RANGE SUPPORT BUY", "🟡 RANGE BUY", purchased=False),
    _on_signal(10, "VOLATILITY SQUEEZE", "⏳ WAIT FOR BREAKOUT", purchased=False),
    RuleBranch(
        order=11,
        condition="OR($D='OVERBOUGHT', $G>=$AD*0.98)",
        label="🟠 TAKE PROFIT",
        check=ComplexCheck(),
        requires_purchased=True,
    ),
    _on_signal(12, "RISK OFF", "🔴 RISK OFF", purchased=True),
    _on_signal(13, "RISK OFF", "🔴 AVOID", purchased=False),
    RuleBranch(
        order=14, condition="TRUE", label="⚖️ HOLD", check=PurchasedCheck(), requires_purchased=True,
    ),
    _default(15, "⚪ NEUTRAL"),
)

DEFAULT_BRANCHES: dict[tuple[Classifier, TradingMode], tuple[RuleBranch, ...]] = {
    (Classifier.SIGNAL, TradingMode.INVEST): SIGNAL_INVEST,
    (Classifier.SIGNAL, TradingMode.TRADE): SIGNAL_TRADE,
    (Classifier.DECISION, TradingMode.INVEST): DECISION_INVEST,
    (Classifier.DECISION, TradingMode.TRADE): DECISION_TRADE,
}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class RuleCatalog:
    """Validated, ordered branches for one classifier in one mode.

    Every condition is parsed once at construction and kept in the
    ConditionCache. With ``fail_fast`` a malformed branch raises
    CatalogError, otherwise it is logged and skipped.
    """

    def __init__(
        self,
        classifier: Classifier,
        mode: TradingMode,
        branches: Iterable[RuleBranch],
        cache: ConditionCache | None = None,
        fail_fast: bool = True,
    ) -> None:
        self.classifier = classifier
        self.mode = mode
        self.cache = cache if cache is not None else ConditionCache()
        self.fail_fast = fail_fast
        self.branches: tuple[RuleBranch, ...] = self._validate(list(branches))

    @property
    def name(self) -> str:
        return f"{self.classifier.value.upper()}/{self.mode.value.upper()}"

    def tree(self, branch: RuleBranch) -> ConditionNode:
        """Parsed condition tree for a branch of this catalog."""
        return self.cache.get_or_parse((self.classifier, self.mode, branch.order), branch.condition)

    def labels(self) -> list[str]:
        seen: list[str] = []
        for b in self.branches:
            if b.label not in seen:
                seen.append(b.label)
        return seen

    def __iter__(self) -> Iterator[RuleBranch]:
        return iter(self.branches)

    def __len__(self) -> int:
        return len(self.branches)

    def __repr__(self) -> str:
        return f"RuleCatalog({self.name}, {len(self.branches)} branches)"

    # --- Validation ---

    def _validate(self, branches: list[RuleBranch]) -> tuple[RuleBranch, ...]:
        if not branches:
            raise CatalogError(self.name, ["catalog has no branches"])

        unique = self._dedupe(branches)
        kept: list[RuleBranch] = []
        problems: list[str] = []
        seen_orders: set[int] = set()

        for branch in unique:
            branch_problems = self._branch_problems(branch, seen_orders)
            if branch_problems:
                if self.fail_fast:
                    problems.extend(branch_problems)
                else:
                    for p in branch_problems:
                        logger.error("%s: skipping branch: %s", self.name, p)
                continue
            seen_orders.add(branch.order)
            kept.append(branch)

        problems.extend(self._structure_problems(kept))
        if problems:
            raise CatalogError(self.name, problems)

        self._warn_shadowed(kept)
        return tuple(kept)

    def _dedupe(self, branches: list[RuleBranch]) -> list[RuleBranch]:
        unique: list[RuleBranch] = []
        for branch in branches:
            if branch in unique:
                logger.warning(
                    "%s: dropping duplicate branch %d (%s)", self.name, branch.order, branch.label,
                )
                continue
            unique.append(branch)
        return unique

    def _branch_problems(self, branch: RuleBranch, seen_orders: set[int]) -> list[str]:
        where = f"branch {branch.order} ({branch.label})"
        if branch.order in seen_orders:
            return [f"{where}: duplicate order {branch.order}"]
        try:
            tree = self.tree(branch)
        except ParseError as exc:
            return [f"{where}: {exc.reason} in {exc.expression!r}"]

        problems = [
            f"{where}: unknown field reference {ref}"
            for ref in dict.fromkeys(tree.field_refs)
            if not is_known_ref(ref)
        ]
        if isinstance(branch.check, DefaultCheck) and tree.kind is not ConditionKind.DEFAULT:
            problems.append(f"{where}: default branch must use TRUE")
        return problems

    def _structure_problems(self, branches: list[RuleBranch]) -> list[str]:
        if not branches:
            return ["catalog has no valid branches"]
        orders = [b.order for b in branches]
        problems: list[str] = []
        if orders != sorted(orders):
            problems.append("branches are not in ascending priority order")
        if not branches[-1].is_catch_all:
            problems.append("last branch must be the TRUE catch-all")
        for is_purchased in (True, False):
            if not any(b.is_catch_all and b.admits(is_purchased) for b in branches):
                holder = "holders" if is_purchased else "non-holders"
                problems.append(f"no catch-all branch for {holder}")
        return problems

    def _warn_shadowed(self, branches: list[RuleBranch]) -> None:
        first: dict[tuple, RuleBranch] = {}
        for branch in branches:
            key = (branch.label, branch.gating)
            if key in first:
                logger.warning(
                    "%s: branch %d (%s) is shadowed by branch %d with the same label and gating",
                    self.name, branch.order, branch.label, first[key].order,
                )
            else:
                first[key] = branch


class CatalogSet:
    """All four catalogs, looked up by (classifier, mode)."""

    def __init__(self, catalogs: Iterable[RuleCatalog]) -> None:
        self._catalogs = {(c.classifier, c.mode): c for c in catalogs}

    def get(self, classifier: Classifier, mode: TradingMode) -> RuleCatalog | None:
        return self._catalogs.get((classifier, mode))

    def __iter__(self) -> Iterator[RuleCatalog]:
        return iter(self._catalogs.values())

    def __len__(self) -> int:
        return len(self._catalogs)


def build_default_catalogs(
    cache: ConditionCache | None = None,
    fail_fast: bool | None = None,
) -> CatalogSet:
    """Validate and assemble the built-in catalogs, sharing one parse cache."""
    cache = cache if cache is not None else ConditionCache()
    if fail_fast is None:
        fail_fast = get_settings().catalog.fail_fast
    return CatalogSet(
        RuleCatalog(classifier, mode, branches, cache=cache, fail_fast=fail_fast)
        for (classifier, mode), branches in DEFAULT_BRANCHES.items()
    )
