"""Condition parsing, evaluation and the static rule catalogs."""

from market_explainer.rules.cache import ConditionCache
from market_explainer.rules.catalog import CatalogSet, RuleCatalog, build_default_catalogs
from market_explainer.rules.evaluator import evaluate, evaluate_branch
from market_explainer.rules.parser import extract_field_refs, parse_condition
from market_explainer.rules.patterns import classify_patterns

__all__ = [
    "CatalogSet",
    "ConditionCache",
    "RuleCatalog",
    "build_default_catalogs",
    "classify_patterns",
    "evaluate",
    "evaluate_branch",
    "extract_field_refs",
    "parse_condition",
]
