"""Classify the free-text chart pattern column into a directional bias."""

from __future__ import annotations

from market_explainer.config import PatternSettings, get_settings
from market_explainer.models.snapshot import PatternType


def has_pattern(patterns: str | None, settings: PatternSettings | None = None) -> bool:
    cfg = settings or get_settings().patterns
    text = (patterns or "").strip()
    return bool(text) and text not in cfg.empty_markers


def classify_patterns(patterns: str | None, settings: PatternSettings | None = None) -> PatternType:
    """Bullish vocabulary wins over bearish. Unrecognized patterns are ANY.

    >>> classify_patterns("BRKOUT (72%)")
    <PatternType.BULLISH: 'bullish'>
    """
    cfg = settings or get_settings().patterns
    if not has_pattern(patterns, cfg):
        return PatternType.NONE
    text = (patterns or "").upper()
    if any(token.upper() in text for token in cfg.bullish):
        return PatternType.BULLISH
    if any(token.upper() in text for token in cfg.bearish):
        return PatternType.BEARISH
    return PatternType.ANY
