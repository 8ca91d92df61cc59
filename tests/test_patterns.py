"""Tests for chart pattern classification."""

import pytest

from market_explainer.config import PatternSettings
from market_explainer.models.rules import PatternRequirement
from market_explainer.models.snapshot import PatternType
from market_explainer.rules.patterns import classify_patterns, has_pattern


class TestClassifyPatterns:
    @pytest.mark.parametrize("text", [None, "", "  ", "—", "-"])
    def test_no_pattern(self, text):
        assert classify_patterns(text) == PatternType.NONE
        assert not has_pattern(text)

    @pytest.mark.parametrize("text", ["ASC_TRI", "BRKOUT (72%)", "DBL_BTM", "INV_H&S", "cup_hdl"])
    def test_bullish(self, text):
        assert classify_patterns(text) == PatternType.BULLISH

    @pytest.mark.parametrize("text", ["DESC_TRI", "H&S (64%)", "DBL_TOP"])
    def test_bearish(self, text):
        assert classify_patterns(text) == PatternType.BEARISH

    def test_bullish_checked_first(self):
        assert classify_patterns("DBL_TOP, BRKOUT") == PatternType.BULLISH

    def test_unrecognized_is_any(self):
        assert classify_patterns("PENNANT") == PatternType.ANY

    def test_custom_vocabulary(self):
        settings = PatternSettings(bullish=["FLAG"], bearish=["WEDGE"])
        assert classify_patterns("FLAG", settings) == PatternType.BULLISH
        assert classify_patterns("BRKOUT", settings) == PatternType.ANY


class TestPatternRequirement:
    def test_none_admits_everything(self):
        for pattern_type in PatternType:
            assert PatternRequirement.NONE.admits(pattern_type)

    def test_any_requires_a_pattern(self):
        assert PatternRequirement.ANY.admits(PatternType.BEARISH)
        assert PatternRequirement.ANY.admits(PatternType.ANY)
        assert not PatternRequirement.ANY.admits(PatternType.NONE)

    def test_directional(self):
        assert PatternRequirement.BULLISH.admits(PatternType.BULLISH)
        assert not PatternRequirement.BULLISH.admits(PatternType.ANY)
        assert not PatternRequirement.BEARISH.admits(PatternType.BULLISH)
