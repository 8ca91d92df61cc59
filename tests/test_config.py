"""Tests for YAML-backed settings."""

from market_explainer.config import get_settings, load_settings, reset_settings
from market_explainer.models.snapshot import TradingMode


class TestSettings:
    def test_defaults_loaded(self):
        settings = get_settings()
        assert settings.default_mode == TradingMode.TRADE
        assert "BRKOUT" in settings.patterns.bullish
        assert "H&S" in settings.patterns.bearish
        assert "LOADING" in settings.labels.loading_markers
        assert settings.narrative.category_headings["price"] == "PRICE ACTION:"
        assert settings.catalog.fail_fast is True

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_reset_reloads(self):
        first = get_settings()
        reset_settings()
        assert get_settings() is not first

    def test_user_override_merges(self, tmp_path):
        user = tmp_path / "config.yaml"
        user.write_text(
            "default_mode: invest\n"
            "narrative:\n"
            "  include_trace: false\n"
            "  category_headings:\n"
            "    price: 'PRICE:'\n",
            encoding="utf-8",
        )
        settings = load_settings(user_config_path=user, _force_reload=True)
        assert settings.default_mode == TradingMode.INVEST
        assert settings.narrative.include_trace is False
        assert settings.narrative.category_headings["price"] == "PRICE:"
        # Sibling keys survive the merge
        assert settings.narrative.category_headings["trend"] == "TREND STRUCTURE:"
        assert settings.patterns.bearish == ["DESC_TRI", "H&S", "DBL_TOP"]

    def test_missing_user_file_ignored(self, tmp_path):
        settings = load_settings(user_config_path=tmp_path / "absent.yaml", _force_reload=True)
        assert settings.default_mode == TradingMode.TRADE
