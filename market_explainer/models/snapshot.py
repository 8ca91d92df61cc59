"""Pydantic models for a single ticker's indicator snapshot."""

from __future__ import annotations

import math
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator


class TradingMode(StrEnum):
    """Rule set the dashboard is running under."""

    TRADE = "trade"
    INVEST = "invest"

    @property
    def opposite(self) -> TradingMode:
        return TradingMode.INVEST if self is TradingMode.TRADE else TradingMode.TRADE


class PatternType(StrEnum):
    """Directional reading of the detected chart patterns."""

    NONE = "none"
    BULLISH = "bullish"
    BEARISH = "bearish"
    ANY = "any"         # Pattern present but not in either vocabulary


NUMERIC_FIELDS: tuple[str, ...] = (
    "consensus_price", "price", "change_pct", "volume_ratio",
    "ath_price", "ath_distance",
    "sma20", "sma50", "sma200",
    "rsi", "macd_histogram", "adx", "stochastic_k",
    "atr", "bollinger_percent_b", "target", "risk_reward_quality",
    "support", "resistance", "atr_stop", "atr_target",
)

TEXT_FIELDS: tuple[str, ...] = (
    "market_rating", "decision", "signal", "patterns",
    "ath_zone", "fundamental_bucket", "trend_state", "divergence",
    "volatility_regime", "bbp_signal", "position_size", "last_state",
)


class IndicatorSnapshot(BaseModel):
    """One row of precomputed indicators for a ticker.

    Numeric fields are ``None`` when the source cell is empty or not a
    finite number. Percent-like fields (``ath_distance``, ``stochastic_k``,
    ``bollinger_percent_b``, ``change_pct``) are fractions, so 0.20 is 20%.
    """

    model_config = ConfigDict(frozen=True)

    ticker: str
    mode: TradingMode | None = None     # None = configured default_mode
    is_purchased: bool = False

    # Labels produced upstream
    market_rating: str | None = None
    decision: str | None = None
    signal: str | None = None
    patterns: str | None = None

    # Price
    consensus_price: float | None = None
    price: float | None = None
    change_pct: float | None = None
    volume_ratio: float | None = None       # Current / average volume
    ath_price: float | None = None
    ath_distance: float | None = None       # Fraction below (-) / above (+) ATH
    ath_zone: str | None = None
    fundamental_bucket: str | None = None
    trend_state: str | None = None

    # Trend
    sma20: float | None = None
    sma50: float | None = None
    sma200: float | None = None

    # Momentum
    rsi: float | None = None
    macd_histogram: float | None = None
    divergence: str | None = None
    adx: float | None = None
    stochastic_k: float | None = None

    # Volatility
    volatility_regime: str | None = None
    bbp_signal: str | None = None
    atr: float | None = None
    bollinger_percent_b: float | None = None

    # Targets and levels
    target: float | None = None
    risk_reward_quality: float | None = None
    support: float | None = None
    resistance: float | None = None
    atr_stop: float | None = None
    atr_target: float | None = None
    position_size: str | None = None
    last_state: str | None = None

    @field_validator(*NUMERIC_FIELDS, mode="before")
    @classmethod
    def _coerce_number(cls, value: object) -> float | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            text = value.strip().replace(",", "").replace("$", "")
            if not text:
                return None
            try:
                value = float(text)
            except ValueError:
                return None
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        return number if math.isfinite(number) else None

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str | None:
        if value is None:
            return None
        if isinstance(value, float) and not math.isfinite(value):
            return None
        text = str(value).strip()
        return text or None
