"""Central configuration: loaded from YAML, overridable per-field."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from market_explainer.models.snapshot import TradingMode


# --- Settings models ---


class PatternSettings(BaseModel):
    bullish: list[str] = Field(default_factory=lambda: [
        "ASC_TRI", "BRKOUT", "DBL_BTM", "INV_H&S", "CUP_HDL",
    ])
    bearish: list[str] = Field(default_factory=lambda: ["DESC_TRI", "H&S", "DBL_TOP"])
    empty_markers: list[str] = Field(default_factory=lambda: ["—", "-"])


class LabelSettings(BaseModel):
    # Spreadsheet placeholders shown while a cell is still computing
    loading_markers: list[str] = Field(default_factory=lambda: ["LOADING", "—", "-"])


class NarrativeSettings(BaseModel):
    signal_title: str = "🎯 WHY '{label}' TRIGGERED:"
    decision_title: str = "🎯 WHY '{label}' TRIGGERED:"
    generic_decision_title: str = "🎯 HOW DECISION WAS DERIVED:"
    verdict: str = "→ RESULT: {label}"
    bullet: str = "•"
    no_criteria: str = "Default condition met - no specific technical criteria required."
    loading: str = "⏳ Data is still loading - explanation will be available once calculations complete."
    category_headings: dict[str, str] = Field(default_factory=lambda: {
        "price": "PRICE ACTION:",
        "trend": "TREND STRUCTURE:",
        "momentum": "MOMENTUM INDICATORS:",
        "volume": "VOLUME ANALYSIS:",
        "volatility": "VOLATILITY METRICS:",
    })
    context_heading: str = "DECISION INPUTS:"
    trace_heading: str = "EVALUATION TRACE:"
    include_trace: bool = True


class CatalogSettings(BaseModel):
    fail_fast: bool = True          # False = skip malformed branches with an error log


class Settings(BaseModel):
    """Central config: loaded from YAML, overridable per-field."""

    default_mode: TradingMode = TradingMode.TRADE
    patterns: PatternSettings = Field(default_factory=PatternSettings)
    labels: LabelSettings = Field(default_factory=LabelSettings)
    narrative: NarrativeSettings = Field(default_factory=NarrativeSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)


# --- Loading ---

_DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
_USER_CONFIG_PATH = Path.home() / ".market_explainer" / "config.yaml"

_cached_settings: Settings | None = None


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base. Returns new dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(
    user_config_path: Path | None = None,
    _force_reload: bool = False,
) -> Settings:
    """Load defaults.yaml, merge ~/.market_explainer/config.yaml if present.

    Args:
        user_config_path: Override path for user config file.
        _force_reload: Bypass cache (for testing).

    Returns:
        Merged Settings instance.
    """
    global _cached_settings
    if _cached_settings is not None and not _force_reload:
        return _cached_settings

    with open(_DEFAULTS_PATH, encoding="utf-8") as f:
        defaults = yaml.safe_load(f) or {}

    user_path = user_config_path or _USER_CONFIG_PATH
    if user_path.exists():
        with open(user_path, encoding="utf-8") as f:
            user = yaml.safe_load(f) or {}
        merged = _deep_merge(defaults, user)
    else:
        merged = defaults

    _cached_settings = Settings(**merged)
    return _cached_settings


def get_settings() -> Settings:
    """Get cached settings (singleton). Loads on first call."""
    return load_settings()


def reset_settings() -> None:
    """Clear cached settings. Next get_settings() will reload from YAML."""
    global _cached_settings
    _cached_settings = None
