"""Memoized condition trees, keyed by (classifier, mode, branch order)."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from market_explainer.rules.parser import parse_condition

if TYPE_CHECKING:
    from market_explainer.models.condition import ConditionNode
    from market_explainer.models.rules import Classifier
    from market_explainer.models.snapshot import TradingMode

CacheKey = tuple["Classifier", "TradingMode", int]


class ConditionCache:
    """Parse-once store for condition trees.

    Safe to share between threads. Parsing is pure, so a race only costs a
    duplicate parse and the first stored tree wins.
    """

    def __init__(self) -> None:
        self._trees: dict[CacheKey, ConditionNode] = {}
        self._lock = threading.Lock()

    def get_or_parse(self, key: CacheKey, expression: str) -> ConditionNode:
        tree = self._trees.get(key)
        if tree is not None:
            return tree
        tree = parse_condition(expression)
        with self._lock:
            return self._trees.setdefault(key, tree)

    def get(self, key: CacheKey) -> ConditionNode | None:
        return self._trees.get(key)

    def clear(self) -> None:
        with self._lock:
            self._trees.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._trees

    def __len__(self) -> int:
        return len(self._trees)
