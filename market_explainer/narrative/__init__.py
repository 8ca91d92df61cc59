"""Plain-language narratives for evaluated rule branches."""

from market_explainer.narrative.formatting import format_value
from market_explainer.narrative.narrator import Narrator
from market_explainer.narrative.trace import format_condition_line

__all__ = ["Narrator", "format_condition_line", "format_value"]
