"""Explanation services."""

from market_explainer.service.explainer import ExplanationService
from market_explainer.service.resolver import BranchResolver

__all__ = [
    "BranchResolver",
    "ExplanationService",
]
