"""Column references used in condition expressions and the snapshot fields they name."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from market_explainer.exceptions import UnknownFieldReferenceError
from market_explainer.models.narrative import FactorCategory


class ValueFormat(StrEnum):
    CURRENCY = "currency"
    PERCENT = "percent"         # Stored as a fraction, shown x100
    DECIMAL1 = "decimal1"
    DECIMAL2 = "decimal2"
    DECIMAL3 = "decimal3"
    TEXT = "text"


class FieldSpec(BaseModel):
    """Metadata for one referenceable snapshot column."""

    model_config = ConfigDict(frozen=True)

    ref: str
    attribute: str
    name: str
    fmt: ValueFormat
    category: FactorCategory | None     # None = decision input, not a technical factor


def _spec(
    ref: str,
    attribute: str,
    name: str,
    fmt: ValueFormat,
    category: FactorCategory | None,
) -> FieldSpec:
    return FieldSpec(ref=ref, attribute=attribute, name=name, fmt=fmt, category=category)


_P = FactorCategory.PRICE
_T = FactorCategory.TREND
_M = FactorCategory.MOMENTUM
_V = FactorCategory.VOLUME
_X = FactorCategory.VOLATILITY

FIELD_MAP: dict[str, FieldSpec] = {
    s.ref: s
    for s in (
        _spec("$B", "market_rating", "Market Rating", ValueFormat.TEXT, None),
        _spec("$C", "decision", "Decision", ValueFormat.TEXT, None),
        _spec("$D", "signal", "Signal", ValueFormat.TEXT, None),
        _spec("$E", "patterns", "Patterns", ValueFormat.TEXT, None),
        _spec("$F", "consensus_price", "Consensus Price", ValueFormat.CURRENCY, _P),
        _spec("$G", "price", "Price", ValueFormat.CURRENCY, _P),
        _spec("$H", "change_pct", "Change %", ValueFormat.PERCENT, _P),
        _spec("$I", "volume_ratio", "Vol Trend", ValueFormat.DECIMAL2, _V),
        _spec("$J", "ath_price", "ATH", ValueFormat.CURRENCY, _P),
        _spec("$K", "ath_distance", "ATH Diff", ValueFormat.PERCENT, _P),
        _spec("$L", "ath_zone", "ATH Zone", ValueFormat.TEXT, _P),
        _spec("$M", "fundamental_bucket", "Fundamental", ValueFormat.TEXT, None),
        _spec("$N", "trend_state", "Trend State", ValueFormat.TEXT, _T),
        _spec("$O", "sma20", "SMA 20", ValueFormat.CURRENCY, _T),
        _spec("$P", "sma50", "SMA 50", ValueFormat.CURRENCY, _T),
        _spec("$Q", "sma200", "SMA 200", ValueFormat.CURRENCY, _T),
        _spec("$R", "rsi", "RSI", ValueFormat.DECIMAL1, _M),
        _spec("$S", "macd_histogram", "MACD Hist", ValueFormat.DECIMAL3, _M),
        _spec("$T", "divergence", "Divergence", ValueFormat.TEXT, _M),
        _spec("$U", "adx", "ADX", ValueFormat.DECIMAL1, _T),
        _spec("$V", "stochastic_k", "Stoch %K", ValueFormat.PERCENT, _M),
        _spec("$W", "volatility_regime", "Vol Regime", ValueFormat.TEXT, _X),
        _spec("$X", "bbp_signal", "BBP Signal", ValueFormat.TEXT, _X),
        _spec("$Y", "atr", "ATR", ValueFormat.CURRENCY, _X),
        _spec("$Z", "bollinger_percent_b", "Bollinger %B", ValueFormat.PERCENT, _X),
        _spec("$AA", "target", "Target", ValueFormat.CURRENCY, _P),
        _spec("$AB", "risk_reward_quality", "R:R Quality", ValueFormat.DECIMAL1, _P),
        _spec("$AC", "support", "Support", ValueFormat.CURRENCY, _P),
        _spec("$AD", "resistance", "Resistance", ValueFormat.CURRENCY, _P),
        _spec("$AE", "atr_stop", "ATR Stop", ValueFormat.CURRENCY, _P),
        _spec("$AF", "atr_target", "ATR Target", ValueFormat.CURRENCY, _P),
        _spec("$AG", "position_size", "Position Size", ValueFormat.TEXT, None),
        _spec("$AH", "last_state", "Last State", ValueFormat.TEXT, None),
    )
}

ATTRIBUTE_TO_REF: dict[str, str] = {s.attribute: s.ref for s in FIELD_MAP.values()}


def field_for(ref: str) -> FieldSpec:
    """Look up a column reference like ``$G``."""
    try:
        return FIELD_MAP[ref]
    except KeyError:
        raise UnknownFieldReferenceError(ref) from None


def is_known_ref(ref: str) -> bool:
    return ref in FIELD_MAP
