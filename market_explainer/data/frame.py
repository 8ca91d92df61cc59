"""Build IndicatorSnapshots from dashboard rows held in pandas, and explain them in bulk.

Columns may be named by snapshot attribute (``price``, ``sma200``) or by
sheet column reference (``$G``, ``$Q``). Unknown columns are ignored.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING

import pandas as pd

from market_explainer.models.snapshot import IndicatorSnapshot, TradingMode
from market_explainer.rules.fields import FIELD_MAP

if TYPE_CHECKING:
    from market_explainer.service.explainer import ExplanationService

logger = logging.getLogger(__name__)

PURCHASED_TAG_RE = re.compile(r"(^|[\s,;|])PURCHASED($|[\s,;|])", re.IGNORECASE)

_TRUTHY = {"TRUE", "YES", "Y", "1"}
_FALSY = {"FALSE", "NO", "N", "0"}


def _is_missing(value: object) -> bool:
    return value is None or (pd.api.types.is_scalar(value) and bool(pd.isna(value)))


def is_purchased_tag(tags: object) -> bool:
    """True when a free-text tags cell carries the PURCHASED tag."""
    if _is_missing(tags):
        return False
    return bool(PURCHASED_TAG_RE.search(str(tags)))


def _as_flag(value: object) -> bool:
    if _is_missing(value):
        return False
    if isinstance(value, str):
        return value.strip().upper() in _TRUTHY
    return bool(value)


def _as_mode(value: object) -> TradingMode | None:
    """Mode column value as a TradingMode.

    Accepts the mode name or a long-term checkbox (True means INVEST).
    Unrecognized values return None so the configured default applies.
    """
    if _is_missing(value):
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.lower() in {m.value for m in TradingMode}:
            return TradingMode(text.lower())
        if text.upper() in _TRUTHY:
            return TradingMode.INVEST
        if text.upper() in _FALSY:
            return TradingMode.TRADE
    elif pd.api.types.is_bool(value) or pd.api.types.is_number(value):
        return TradingMode.INVEST if value else TradingMode.TRADE
    logger.warning("Unrecognized mode %r, using the default mode", value)
    return None


def snapshot_from_row(
    row: pd.Series | Mapping[str, object],
    mode: TradingMode | None = None,
    ticker: str | None = None,
) -> IndicatorSnapshot:
    """Convert one dashboard row into an IndicatorSnapshot.

    Args:
        row: A DataFrame row or plain mapping.
        mode: Trading mode for this row. Falls back to a ``mode`` column.
        ticker: Ticker override. Falls back to ``ticker``/``$A`` columns,
            then to the Series name.
    """
    known = set(IndicatorSnapshot.model_fields)
    values: dict[str, object] = {}
    for key, value in dict(row).items():
        name = str(key).strip()
        attr = FIELD_MAP[name].attribute if name in FIELD_MAP else name
        if attr in known and attr not in ("ticker", "mode", "is_purchased"):
            values[attr] = None if _is_missing(value) else value

    items = dict(row)
    symbol = ticker or items.get("ticker") or items.get("$A")
    if _is_missing(symbol) and isinstance(row, pd.Series):
        symbol = row.name
    if _is_missing(symbol):
        raise ValueError("Row has no ticker column and no ticker was given")

    if "is_purchased" in items:
        purchased = _as_flag(items["is_purchased"])
    else:
        purchased = is_purchased_tag(items.get("tags"))

    row_mode = mode if mode is not None else _as_mode(items.get("mode"))

    return IndicatorSnapshot(
        ticker=str(symbol).strip(),
        mode=row_mode,
        is_purchased=purchased,
        **values,
    )


def snapshots_from_frame(df: pd.DataFrame, mode: TradingMode | None = None) -> list[IndicatorSnapshot]:
    """One snapshot per row. The index is used as ticker when there is no ticker column."""
    use_index = "ticker" not in df.columns and "$A" not in df.columns
    return [
        snapshot_from_row(row, mode=mode, ticker=str(idx) if use_index else None)
        for idx, row in df.iterrows()
    ]


def explain_frame(
    df: pd.DataFrame,
    service: ExplanationService | None = None,
    mode: TradingMode | None = None,
) -> pd.DataFrame:
    """Explain every row's signal and decision.

    Returns:
        DataFrame indexed by ticker with signal, decision, both narratives and
        whether each label was traced to a rule.
    """
    if service is None:
        from market_explainer.service.explainer import ExplanationService

        service = ExplanationService()

    records = []
    for snapshot in snapshots_from_frame(df, mode=mode):
        sig = service.explain_signal(snapshot)
        dec = service.explain_decision(snapshot, signal=snapshot.signal)
        records.append({
            "ticker": snapshot.ticker,
            "signal": sig.signal,
            "signal_resolved": sig.resolved,
            "signal_explanation": sig.narrative,
            "decision": dec.decision,
            "decision_resolved": dec.resolved,
            "decision_explanation": dec.narrative,
        })
    return pd.DataFrame.from_records(
        records,
        columns=[
            "ticker", "signal", "signal_resolved", "signal_explanation",
            "decision", "decision_resolved", "decision_explanation",
        ],
    ).set_index("ticker")
