"""Display formatting for snapshot values."""

from __future__ import annotations

from market_explainer.models.condition import Scalar
from market_explainer.rules.fields import ValueFormat, field_for

MISSING = "N/A"


def format_value(value: Scalar, fmt: ValueFormat) -> str:
    """Render a value for a narrative sentence.

    >>> format_value(1234.5, ValueFormat.CURRENCY)
    '$1,234.50'
    >>> format_value(-0.05, ValueFormat.PERCENT)
    '-5.0%'
    """
    if value is None:
        return MISSING
    if isinstance(value, bool) or isinstance(value, str) or fmt is ValueFormat.TEXT:
        return str(value)

    match fmt:
        case ValueFormat.CURRENCY:
            sign = "-" if value < 0 else ""
            return f"{sign}${abs(value):,.2f}"
        case ValueFormat.PERCENT:
            return f"{value * 100:.1f}%"
        case ValueFormat.DECIMAL1:
            return f"{value:.1f}"
        case ValueFormat.DECIMAL2:
            return f"{value:.2f}"
        case ValueFormat.DECIMAL3:
            return f"{value:.3f}"
    return str(value)


def format_ref(ref: str, value: Scalar) -> str:
    """Format a value using the display format of column ``ref``."""
    return format_value(value, field_for(ref).fmt)


def format_literal(value: Scalar, like_ref: str | None) -> str:
    """Format a comparison threshold in the same units as the column it is compared with."""
    if isinstance(value, float) and like_ref is not None:
        return format_ref(like_ref, value)
    if isinstance(value, float):
        return f"{value:g}"
    return format_value(value, ValueFormat.TEXT)


def pct_diff(value: float, reference: float) -> float | None:
    """Percent distance of ``value`` from ``reference``. None when reference is zero."""
    if reference == 0:
        return None
    return (value - reference) / abs(reference) * 100
