"""
Abstract base class for ranking strategies and shared score helpers.

Both rankers (local hybrid and vault-assisted) implement this interface so
the search service can pick one based on configuration.
"""

import math
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from ..models import ScoredMatch, SearchFilters, SearchWeights


class InvalidQueryError(ValueError):
    """Raised when a ranking function is called without a usable query string.

    This is a programmer error, not a "no results" condition - empty result
    lists are always returned as [] and never raise.
    """


def validate_query(query: Any) -> str:
    """Return the stripped query, or raise InvalidQueryError if it is not a string"""
    if query is None:
        raise InvalidQueryError("query is required")
    if not isinstance(query, str):
        raise InvalidQueryError(f"query must be a string, got {type(query).__name__}")
    return query.strip()


def round_half_up(value: float) -> int:
    """Round .5 upwards (round() in Python rounds half to even)"""
    return int(math.floor(value + 0.5))


def to_display_score(value: float) -> int:
    """Round a 0-100 score to an int and clamp it into [0, 100]"""
    return max(0, min(100, round_half_up(value)))


def sort_by_score(matches: Sequence[ScoredMatch]) -> List[ScoredMatch]:
    """Sort descending by score. Stable: ties keep their input order."""
    return sorted(matches, key=lambda match: match.score, reverse=True)


class BaseRanker(ABC):
    """
    Abstract base class for ranking strategies.

    All rankers must implement this interface to be swappable.
    """

    @abstractmethod
    async def rank(
        self,
        query: str,
        *,
        query_embedding: Optional[Sequence[float]] = None,
        weights: Optional[SearchWeights] = None,
        filters: Optional[SearchFilters] = None,
    ) -> List[ScoredMatch]:
        """
        Rank evidence documents for a query.

        Args:
            query: Free-text query (blank = no filtering)
            query_embedding: Precomputed query vector (local strategy only)
            weights: Keyword/semantic weights (local strategy only)
            filters: Category/tag filters (vault strategy only)

        Returns:
            List of ScoredMatch sorted by score (descending), possibly empty
        """
        pass

    @abstractmethod
    def get_strategy_info(self) -> dict:
        """
        Get information about the ranking strategy.

        Returns:
            Dict with keys: name, type, plus strategy-specific settings
        """
        pass

    async def close(self):
        """Optional cleanup (close HTTP clients, etc.)"""
        pass
