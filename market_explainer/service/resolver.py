"""BranchResolver: map a displayed label back to the branch that produced it."""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from market_explainer.exceptions import BranchNotFoundError
from market_explainer.models.rules import Classifier, RuleBranch
from market_explainer.models.snapshot import PatternType, TradingMode
from market_explainer.rules.catalog import CatalogSet, RuleCatalog, build_default_catalogs

logger = logging.getLogger(__name__)


class ResolutionContext(BaseModel):
    """Gating inputs used to pick among branches sharing a label."""

    model_config = ConfigDict(frozen=True)

    is_purchased: bool = False
    pattern_type: PatternType = PatternType.NONE


class Resolution(BaseModel):
    """A resolved branch and the catalog mode it came from."""

    model_config = ConfigDict(frozen=True)

    branch: RuleBranch
    mode: TradingMode
    requested_mode: TradingMode

    @property
    def fallback_used(self) -> bool:
        return self.mode != self.requested_mode


def resolve_in(
    catalog: RuleCatalog,
    label: str,
    context: ResolutionContext | None = None,
) -> RuleBranch | None:
    """First branch in priority order that declares ``label`` and admits the context."""
    ctx = context or ResolutionContext()
    target = label.strip()
    for branch in catalog:
        if branch.label == target and branch.admits(ctx.is_purchased, ctx.pattern_type):
            return branch
    return None


class BranchResolver:
    """Resolve SIGNAL/DECISION labels against the catalogs, with mode fallback.

    A label may come from a sheet computed under the other mode, so when the
    requested mode has no matching branch the opposite mode is tried once.
    """

    def __init__(self, catalogs: CatalogSet | None = None) -> None:
        self.catalogs = catalogs if catalogs is not None else build_default_catalogs()

    def catalog(self, classifier: Classifier, mode: TradingMode) -> RuleCatalog:
        catalog = self.catalogs.get(classifier, mode)
        if catalog is None:
            raise ValueError(f"No {classifier.value} catalog loaded for {mode.value} mode")
        return catalog

    def resolve(
        self,
        classifier: Classifier,
        label: str,
        mode: TradingMode,
        context: ResolutionContext | None = None,
    ) -> Resolution | None:
        """Find the branch for ``label``, trying ``mode`` first then its opposite.

        Returns:
            Resolution, or None when neither mode declares the label.
        """
        branch = resolve_in(self.catalog(classifier, mode), label, context)
        if branch is not None:
            return Resolution(branch=branch, mode=mode, requested_mode=mode)

        other = mode.opposite
        logger.warning(
            "No match for %s %r in %s mode. Trying %s mode",
            classifier.value, label, mode.value, other.value,
        )
        branch = resolve_in(self.catalog(classifier, other), label, context)
        if branch is not None:
            logger.info(
                "Resolved %s %r using %s mode (branch %d)",
                classifier.value, label, other.value, branch.order,
            )
            return Resolution(branch=branch, mode=other, requested_mode=mode)

        logger.warning("%s %r not found in either mode", classifier.value, label)
        return None

    def require(
        self,
        classifier: Classifier,
        label: str,
        mode: TradingMode,
        context: ResolutionContext | None = None,
    ) -> Resolution:
        """Like ``resolve`` but raises BranchNotFoundError instead of returning None."""
        resolution = self.resolve(classifier, label, mode, context)
        if resolution is None:
            raise BranchNotFoundError(label, classifier.value)
        return resolution
