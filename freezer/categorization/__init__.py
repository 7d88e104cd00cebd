"""Item categorization package."""

from freezer.categorization.heuristic import (
    BUILT_IN_KEYWORDS,
    suggest_category,
    suggest_drawer,
)

__all__ = ["BUILT_IN_KEYWORDS", "suggest_category", "suggest_drawer"]
