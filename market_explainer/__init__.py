"""Explain rules-driven trading signals and decisions in plain language."""

# Config
from market_explainer.config import Settings, get_settings, load_settings, reset_settings

# Exceptions
from market_explainer.exceptions import (
    BranchNotFoundError,
    CatalogError,
    ExplainerError,
    MissingDataError,
    ParseError,
    UnknownFieldReferenceError,
)

# Models
from market_explainer.models.condition import (
    ComparisonOperator,
    ConditionKind,
    ConditionNode,
    EvaluationResult,
    Operand,
)
from market_explainer.models.narrative import (
    DecisionExplanation,
    FactorCategory,
    Narrative,
    SignalExplanation,
)
from market_explainer.models.rules import Classifier, PatternRequirement, RuleBranch
from market_explainer.models.snapshot import IndicatorSnapshot, PatternType, TradingMode

# Rules
from market_explainer.rules import (
    CatalogSet,
    ConditionCache,
    RuleCatalog,
    build_default_catalogs,
    classify_patterns,
    evaluate,
    evaluate_branch,
    parse_condition,
)

# Narrative
from market_explainer.narrative import Narrator, format_condition_line, format_value

# Services
from market_explainer.service import BranchResolver, ExplanationService
from market_explainer.service.explainer import explain_decision, explain_signal

# Data
from market_explainer.data.frame import explain_frame, snapshot_from_row, snapshots_from_frame

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
    # Exceptions
    "ExplainerError",
    "ParseError",
    "UnknownFieldReferenceError",
    "MissingDataError",
    "BranchNotFoundError",
    "CatalogError",
    # Models
    "ComparisonOperator",
    "ConditionKind",
    "ConditionNode",
    "EvaluationResult",
    "Operand",
    "Classifier",
    "PatternRequirement",
    "RuleBranch",
    "IndicatorSnapshot",
    "PatternType",
    "TradingMode",
    "FactorCategory",
    "Narrative",
    "SignalExplanation",
    "DecisionExplanation",
    # Rules
    "CatalogSet",
    "ConditionCache",
    "RuleCatalog",
    "build_default_catalogs",
    "classify_patterns",
    "evaluate",
    "evaluate_branch",
    "parse_condition",
    # Narrative
    "Narrator",
    "format_condition_line",
    "format_value",
    # Services
    "BranchResolver",
    "ExplanationService",
    "explain_signal",
    "explain_decision",
    # Data
    "snapshot_from_row",
    "snapshots_from_frame",
    "explain_frame",
]
