"""
Local hybrid ranking: weighted fusion of keyword and semantic scores.

Runs entirely on locally held metadata and embeddings.

Formula:
    combined(doc) = round(keyword(doc) × keyword_weight + semantic(doc) × semantic_weight)

Where keyword() and semantic() are the 0-100 scores from the keyword and
semantic scorers, and a document missing from one result set contributes 0
for that signal. Without a query embedding the ranking degrades to
keyword-only, still scaled by keyword_weight.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..models import ScoredMatch, SearchFilters, SearchWeights
from ..repository import EvidenceRepository
from .base import BaseRanker, sort_by_score, to_display_score, validate_query
from .keyword import keyword_scores
from .semantic import semantic_scores

logger = logging.getLogger(__name__)

# Semantic threshold used inside hybrid ranking (looser than standalone semantic search)
HYBRID_MIN_SIMILARITY = 0.2


class _ScoreAccumulator:
    """Per-document keyword/semantic sub-scores"""

    __slots__ = ("document", "keyword_score", "semantic_score")

    def __init__(self, document):
        self.document = document
        self.keyword_score = 0
        self.semantic_score = 0


def rank_by_hybrid_local(
    query: str,
    repository: EvidenceRepository,
    query_embedding: Optional[Sequence[float]] = None,
    weights: Optional[SearchWeights] = None,
    semantic_min_score: float = HYBRID_MIN_SIMILARITY,
    drop_zero_scores: bool = False,
) -> List[ScoredMatch]:
    """
    Combine keyword and semantic rankings over the repository.

    Args:
        query: Free-text query
        repository: Evidence metadata (documents with optional embeddings)
        query_embedding: Query vector. None disables the semantic signal.
        weights: Keyword/semantic weights (default 0.3 / 0.7)
        semantic_min_score: Similarity threshold for semantic hits
        drop_zero_scores: Exclude documents whose combined score rounds to 0.
            Off by default: matched documents are returned with their computed
            score and the caller decides what to display.

    Returns:
        List of ScoredMatch sorted by combined score (descending).
        Ties keep first-seen order: keyword hits in corpus order, then
        semantic-only hits in corpus order.

    Example:
        >>> rank_by_hybrid_local("lease", repo)  # no embedding
        [ScoredMatch(document=..., score=14)]  # 45 × 0.3
    """
    validate_query(query)
    weights = weights or SearchWeights()
    documents = repository.list()

    keyword_results = keyword_scores(query, documents)
    semantic_results = (
        semantic_scores(query_embedding, documents, min_score=semantic_min_score)
        if query_embedding is not None
        else []
    )

    accumulators: Dict[str, _ScoreAccumulator] = {}

    for match in keyword_results:
        entry = accumulators.setdefault(match.document.id, _ScoreAccumulator(match.document))
        entry.keyword_score = match.score

    for match in semantic_results:
        entry = accumulators.setdefault(match.document.id, _ScoreAccumulator(match.document))
        entry.semantic_score = match.score

    results = []
    for entry in accumulators.values():
        combined = to_display_score(
            entry.keyword_score * weights.keyword_weight
            + entry.semantic_score * weights.semantic_weight
        )
        if combined == 0 and drop_zero_scores:
            continue
        results.append(ScoredMatch(document=entry.document, score=combined))

    logger.debug(
        f"Local hybrid ranking for '{query}': {len(keyword_results)} keyword, "
        f"{len(semantic_results)} semantic, {len(results)} combined"
    )

    return sort_by_score(results)


class LocalHybridRanker(BaseRanker):
    """
    Ranking strategy for deployments without a vault.

    Fuses keyword and (when an embedding is supplied) semantic scores
    computed from local metadata.
    """

    def __init__(
        self,
        repository: EvidenceRepository,
        default_weights: Optional[SearchWeights] = None,
        semantic_min_score: float = HYBRID_MIN_SIMILARITY,
    ):
        self.repository = repository
        self.default_weights = default_weights or SearchWeights()
        self.semantic_min_score = semantic_min_score

    async def rank(
        self,
        query: str,
        *,
        query_embedding: Optional[Sequence[float]] = None,
        weights: Optional[SearchWeights] = None,
        filters: Optional[SearchFilters] = None,
    ) -> List[ScoredMatch]:
        if filters is not None and (filters.categories or filters.tags):
            logger.debug("Category/tag filters are not applied by local hybrid ranking")
        return rank_by_hybrid_local(
            query,
            self.repository,
            query_embedding=query_embedding,
            weights=weights or self.default_weights,
            semantic_min_score=self.semantic_min_score,
        )

    def get_strategy_info(self) -> dict:
        return {
            "name": "local_hybrid",
            "type": "local",
            "keyword_weight": self.default_weights.keyword_weight,
            "semantic_weight": self.default_weights.semantic_weight,
            "semantic_min_score": self.semantic_min_score,
        }
