"""Turn leaf evaluation results into categorized, plain-language factor sentences.

Each indicator has its own phrasing. The category comes from the column on the
left-hand side of the comparison, and a literal-first comparison is read
mirrored. Columns without a technical category (signal, patterns, holder
status) become decision inputs instead.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from market_explainer.models.condition import ConditionKind, EvaluationResult
from market_explainer.models.narrative import Factor
from market_explainer.models.snapshot import PatternType
from market_explainer.narrative.formatting import format_literal, format_ref, pct_diff
from market_explainer.rules.evaluator import DATA_UNAVAILABLE
from market_explainer.rules.fields import FieldSpec, field_for

if TYPE_CHECKING:
    from market_explainer.models.snapshot import IndicatorSnapshot

_OP_WORDS = {
    ">": "above",
    ">=": "at or above",
    "<": "below",
    "<=": "at or below",
    "=": "equal to",
}

_MIRROR = {">": "<", ">=": "<=", "<": ">", "<=": ">=", "=": "="}

_SMA_DAYS = {"sma20": 20, "sma50": 50, "sma200": 200}

_SMA_MEANING = {
    ("sma200", "above"): "confirming long-term bullish trend",
    ("sma200", "below"): "signaling a RISK-OFF regime with a long-term bearish trend",
    ("sma50", "above"): "confirming the intermediate uptrend",
    ("sma50", "below"): "showing intermediate-term weakness",
    ("sma20", "above"): "showing short-term strength",
    ("sma20", "below"): "showing short-term weakness",
}


def describe(result: EvaluationResult, snapshot: IndicatorSnapshot) -> Factor | None:
    """Sentence for one leaf result, or None when there is nothing to say (TRUE)."""
    if result.kind is ConditionKind.DEFAULT:
        return None
    if result.subject == "position":
        text = "Position held (PURCHASED tag present)" if result.passed else "No position held"
        return Factor(category=None, text=text, passed=result.passed)
    if result.left_ref is None and result.right_ref is not None:
        result = _mirrored(result)
    if result.left_ref is None:
        verdict = "holds" if result.passed else "does not hold"
        return Factor(category=None, text=f"{result.expression} {verdict}", passed=result.passed)

    spec = field_for(result.left_ref)
    if result.kind is ConditionKind.COMPLEX:
        text = f"{spec.name}: {result.expression} assumed met (complex expression not evaluated)"
        return Factor(category=spec.category, text=text, passed=True)
    if result.error_reason == DATA_UNAVAILABLE:
        return Factor(category=spec.category, text=f"{spec.name}: {DATA_UNAVAILABLE}", passed=False)
    if result.error_reason:
        text = f"{spec.name}: could not evaluate {result.expression} ({result.error_reason})"
        return Factor(category=spec.category, text=text, passed=False)

    if spec.attribute == "patterns":
        text = _pattern(result, snapshot)
    else:
        text = _HANDLERS.get(spec.attribute, _generic)(result, spec)
    return Factor(category=spec.category, text=text, passed=result.passed)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _mirrored(r: EvaluationResult) -> EvaluationResult:
    """``40<$R`` read as ``$R>40`` so the column drives category and phrasing."""
    return r.model_copy(update={
        "operator": _MIRROR.get(r.operator or "", r.operator),
        "left_ref": r.right_ref,
        "right_ref": None,
        "left_value": r.right_value,
        "right_value": r.left_value,
    })


def _generic(r: EvaluationResult, spec: FieldSpec) -> str:
    left = format_ref(spec.ref, r.left_value)
    if r.right_ref is not None:
        right = f"{field_for(r.right_ref).name} ({format_ref(r.right_ref, r.right_value)})"
    else:
        right = format_literal(r.right_value, spec.ref)
    words = _OP_WORDS.get(r.operator or "", r.operator or "?")
    if r.passed:
        return f"{spec.name} ({left}) is {words} {right} - condition met"
    return f"{spec.name} ({left}) is not {words} {right} - condition not met"


def _threshold(r: EvaluationResult) -> float | None:
    """Numeric literal threshold of a leaf, or None if the right side is a column or text."""
    if r.right_ref is not None or not isinstance(r.right_value, float):
        return None
    if not isinstance(r.left_value, float):
        return None
    return r.right_value


def _is_upper_test(r: EvaluationResult) -> bool:
    return r.operator in (">", ">=")


def _relation(value: float, reference: float) -> tuple[str, str]:
    """('above'|'below'|'at', '2.4% ') for value relative to reference."""
    diff = pct_diff(value, reference)
    if value == reference:
        return "at", ""
    rel = "above" if value > reference else "below"
    return rel, (f"{abs(diff):.1f}% " if diff is not None else "")


# ---------------------------------------------------------------------------
# Price and levels
# ---------------------------------------------------------------------------


def _price(r: EvaluationResult, spec: FieldSpec) -> str:
    if r.right_ref is None or not isinstance(r.left_value, float) or not isinstance(r.right_value, float):
        return _generic(r, spec)

    level = field_for(r.right_ref)
    price = format_ref(spec.ref, r.left_value)
    value = format_ref(level.ref, r.right_value)
    rel, pct = _relation(r.left_value, r.right_value)
    suffix = "" if r.passed else " - condition not met"

    if level.attribute in _SMA_DAYS:
        days = _SMA_DAYS[level.attribute]
        meaning = _SMA_MEANING.get((level.attribute, rel), "sitting right on the average")
        return f"Price ({price}) is {pct}{rel} the {days}-day moving average ({value}), {meaning}{suffix}"
    if level.attribute == "support":
        if rel == "below":
            return (
                f"Price at {price} is {pct}below support ({value}), "
                f"triggering stop loss - structural breakdown{suffix}"
            )
        return f"Price at {price} is {pct}{rel} support ({value}), structure intact{suffix}"
    if level.attribute == "resistance":
        if rel == "above":
            return f"Price at {price} is {pct}above resistance ({value}), confirming breakout{suffix}"
        return f"Price at {price} is {pct}{rel} resistance ({value}), still capped by overhead supply{suffix}"
    return f"Price ({price}) is {pct}{rel} {level.name} ({value}){suffix}"


def _moving_average(r: EvaluationResult, spec: FieldSpec) -> str:
    if r.right_ref is None or not isinstance(r.left_value, float) or not isinstance(r.right_value, float):
        return _generic(r, spec)
    other = field_for(r.right_ref)
    if other.attribute not in _SMA_DAYS:
        return _generic(r, spec)
    rel, pct = _relation(r.left_value, r.right_value)
    alignment = {
        "above": "bullish moving-average alignment",
        "below": "bearish moving-average alignment",
    }.get(rel, "moving averages converging")
    suffix = "" if r.passed else " - condition not met"
    return (
        f"{spec.name} ({format_ref(spec.ref, r.left_value)}) is {pct}{rel} {other.name} "
        f"({format_ref(other.ref, r.right_value)}), {alignment}{suffix}"
    )


def _ath_distance(r: EvaluationResult, spec: FieldSpec) -> str:
    thr = _threshold(r)
    if thr is None or r.operator == "=":
        return _generic(r, spec)
    v = format_ref(spec.ref, r.left_value)
    t = format_ref(spec.ref, thr)
    if _is_upper_test(r):
        if r.passed:
            return f"Distance from all-time high ({v}) is above {t}, trading at or near record levels"
        return f"Distance from all-time high ({v}) is below {t} - too far from record levels"
    if r.passed:
        return f"Distance from all-time high ({v}) is below {t}, well off the highs"
    return f"Distance from all-time high ({v}) is above {t} - not far enough off the highs"


def _risk_reward(r: EvaluationResult, spec: FieldSpec) -> str:
    thr = _threshold(r)
    if thr is None or not _is_upper_test(r):
        return _generic(r, spec)
    v = format_ref(spec.ref, r.left_value)
    if r.passed:
        return f"Risk/reward quality of {v} meets the {thr:g} minimum"
    return f"Risk/reward quality of {v} is below the {thr:g} minimum"


# ---------------------------------------------------------------------------
# Momentum
# ---------------------------------------------------------------------------


def _rsi(r: EvaluationResult, spec: FieldSpec) -> str:
    thr = _threshold(r)
    if thr is None or r.operator == "=":
        return _generic(r, spec)
    v = f"{r.left_value:.1f}"
    t = f"{thr:g}"
    if _is_upper_test(r):
        if r.passed:
            if thr >= 70:
                return f"RSI at {v} is in overbought territory (above {t}) - momentum exhaustion risk"
            if thr >= 50:
                return f"RSI at {v} is above {t}, showing bullish momentum"
            return f"RSI at {v} is above {t}, momentum has recovered from weak levels"
        if thr >= 70:
            return f"RSI at {v} has not reached {t} - not overbought"
        return f"RSI at {v} has not reached {t} - momentum too weak"
    if r.passed:
        if thr <= 30:
            return f"RSI at {v} signals an oversold condition (below {t}) - potential mean reversion"
        if thr >= 70:
            return f"RSI at {v} is below {t}, not yet overbought"
        return f"RSI at {v} is below {t}, momentum not stretched"
    if thr <= 30:
        return f"RSI at {v} is above {t} - not oversold"
    return f"RSI at {v} is above {t} - momentum too extended"


def _macd(r: EvaluationResult, spec: FieldSpec) -> str:
    thr = _threshold(r)
    if thr is None or r.operator == "=":
        return _generic(r, spec)
    v = f"{r.left_value:.3f}"
    level = "zero" if thr == 0 else f"{thr:g}"
    if _is_upper_test(r):
        if r.passed:
            return f"MACD histogram at {v} is above {level}, confirming bullish momentum"
        return f"MACD histogram at {v} is not above {level} - bullish momentum not confirmed"
    if r.passed:
        return f"MACD histogram at {v} is below {level}, showing bearish momentum"
    return f"MACD histogram at {v} is not below {level} - bearish momentum not confirmed"


def _stochastic(r: EvaluationResult, spec: FieldSpec) -> str:
    thr = _threshold(r)
    if thr is None or r.operator == "=":
        return _generic(r, spec)
    v = format_ref(spec.ref, r.left_value)
    t = format_ref(spec.ref, thr)
    if _is_upper_test(r):
        if r.passed:
            tail = " - overbought" if thr >= 0.8 else ""
            return f"Stochastic %K at {v} is above {t}{tail}"
        return f"Stochastic %K at {v} is below {t} - condition not met"
    if r.passed:
        return f"Stochastic %K at {v} is in oversold territory (below {t})"
    return f"Stochastic %K at {v} is above {t} - not oversold"


# ---------------------------------------------------------------------------
# Trend, volume, volatility
# ---------------------------------------------------------------------------


def _adx(r: EvaluationResult, spec: FieldSpec) -> str:
    thr = _threshold(r)
    if thr is None or r.operator == "=":
        return _generic(r, spec)
    v = f"{r.left_value:.1f}"
    t = f"{thr:g}"
    if _is_upper_test(r):
        if r.passed:
            strength = "a strong" if thr >= 25 else "a developing"
            return f"ADX at {v} is above {t}, showing {strength} trend"
        return f"ADX at {v} is below {t} - trend too weak"
    if r.passed:
        return f"ADX at {v} is below {t}, indicating a range-bound, trendless market"
    return f"ADX at {v} is above {t} - market is trending, not ranging"


def _volume(r: EvaluationResult, spec: FieldSpec) -> str:
    thr = _threshold(r)
    if thr is None or r.operator == "=":
        return _generic(r, spec)
    v = f"{r.left_value:.2f}x"
    t = f"{thr:g}x"
    if _is_upper_test(r):
        if r.passed:
            if thr >= 2:
                return f"Volume at {v} average confirms a surge in participation (above {t})"
            return f"Volume at {v} average is above {t}, confirming participation"
        return f"Volume at {v} average is below the {t} confirmation threshold"
    if r.passed:
        return f"Volume at {v} average is below {t}, quiet participation"
    return f"Volume at {v} average exceeds {t}"


def _bollinger(r: EvaluationResult, spec: FieldSpec) -> str:
    thr = _threshold(r)
    if thr is None or r.operator == "=":
        return _generic(r, spec)
    v = format_ref(spec.ref, r.left_value)
    t = format_ref(spec.ref, thr)
    if _is_upper_test(r):
        if r.passed:
            if thr >= 0.85:
                return f"Bollinger %B at {v} is near the upper band (above {t}) - price extended"
            return f"Bollinger %B at {v} is above {t}"
        return f"Bollinger %B at {v} is below {t} - not extended"
    if r.passed:
        if thr <= 0.15:
            return f"Bollinger %B at {v} is near the lower band (below {t})"
        return f"Bollinger %B at {v} is below {t}"
    return f"Bollinger %B at {v} is above {t}"


# ---------------------------------------------------------------------------
# Decision inputs
# ---------------------------------------------------------------------------


def _signal(r: EvaluationResult, spec: FieldSpec) -> str:
    if r.left_value is None:
        return "Signal: not available"
    if r.passed:
        return f"Signal '{r.left_value}' matches {r.right_value}"
    return f"Signal '{r.left_value}' does not match {r.right_value}"


def _pattern(r: EvaluationResult, snapshot: IndicatorSnapshot) -> str:
    required = r.right_value
    if r.left_value == PatternType.NONE.value:
        return f"No chart pattern detected ({required} pattern required)"
    raw = snapshot.patterns or ""
    if r.passed:
        return f"Pattern '{raw}' reads {r.left_value}, matching the {required} requirement"
    return f"Pattern '{raw}' reads {r.left_value}, not {required}"


_HANDLERS: dict[str, Callable[[EvaluationResult, FieldSpec], str]] = {
    "price": _price,
    "sma20": _moving_average,
    "sma50": _moving_average,
    "sma200": _moving_average,
    "ath_distance": _ath_distance,
    "risk_reward_quality": _risk_reward,
    "rsi": _rsi,
    "macd_histogram": _macd,
    "stochastic_k": _stochastic,
    "adx": _adx,
    "volume_ratio": _volume,
    "bollinger_percent_b": _bollinger,
    "signal": _signal,
}
