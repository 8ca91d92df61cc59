"""Shared test fixtures for market_explainer tests."""

import pytest

from market_explainer.config import reset_settings
from market_explainer.models.snapshot import IndicatorSnapshot, TradingMode
from market_explainer.rules.cache import ConditionCache
from market_explainer.rules.catalog import build_default_catalogs
from market_explainer.service.explainer import ExplanationService


def _make_snapshot(**overrides) -> IndicatorSnapshot:
    """Healthy uptrend snapshot; override any field.

    Defaults match no breakout or stop condition, so tests opt in to the
    values they care about.
    """
    values = dict(
        ticker="TEST",
        mode=TradingMode.TRADE,
        price=100.0,
        change_pct=0.004,
        volume_ratio=1.1,
        ath_price=120.0,
        ath_distance=-0.17,
        sma20=98.0,
        sma50=95.0,
        sma200=90.0,
        rsi=55.0,
        macd_histogram=0.12,
        adx=18.0,
        stochastic_k=0.55,
        atr=2.1,
        bollinger_percent_b=0.6,
        target=115.0,
        risk_reward_quality=2.0,
        support=92.0,
        resistance=110.0,
        atr_stop=96.0,
        atr_target=106.0,
    )
    values.update(overrides)
    return IndicatorSnapshot(**values)


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def make_snapshot():
    return _make_snapshot


@pytest.fixture
def amzn_snapshot() -> IndicatorSnapshot:
    """AMZN row showing HOLD while the sheet is in TRADE mode."""
    return _make_snapshot(
        ticker="AMZN",
        mode=TradingMode.TRADE,
        price=230.50,
        sma50=228.00,
        sma200=225.00,
        rsi=55.1,
        signal="HOLD",
    )


@pytest.fixture
def cache() -> ConditionCache:
    return ConditionCache()


@pytest.fixture
def catalogs(cache):
    return build_default_catalogs(cache=cache)


@pytest.fixture
def service(catalogs, cache) -> ExplanationService:
    return ExplanationService(catalogs=catalogs, cache=cache)
