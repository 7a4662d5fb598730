"""
Evidence ranking: keyword, semantic and hybrid score fusion.

Components:
- similarity: cosine similarity over embedding vectors
- keyword: weighted field substring matching (filename/summary/tags/text)
- semantic: threshold-filtered cosine similarity over stored embeddings
- local: weighted keyword + semantic fusion over local metadata
- remote: vault relevance re-mapped onto local metadata (orphans kept)
- factory / service: strategy selection and fallback policy

Usage:
    from src.ranking import rank_by_keyword, rank_by_hybrid_local

    results = rank_by_hybrid_local("lease", repository, query_embedding=vector)

    # Or let configuration pick the strategy:
    from src.ranking import RankingFactory, EvidenceSearchService

    ranker = RankingFactory.create(repository, vault=vault_client)
    outcome = await EvidenceSearchService(repository, ranker).search("lease")
"""

from .base import BaseRanker, InvalidQueryError
from .similarity import cosine_similarity
from .keyword import MAX_RAW_SCORE, keyword_scores, rank_by_keyword
from .semantic import semantic_scores
from .local import LocalHybridRanker, rank_by_hybrid_local
from .remote import RemoteAssistedRanker, map_vault_results, rank_by_hybrid_remote
from .factory import RankingFactory
from .service import EvidenceSearchService, SearchOutcome

__all__ = [
    "BaseRanker",
    "InvalidQueryError",
    "cosine_similarity",
    "MAX_RAW_SCORE",
    "keyword_scores",
    "rank_by_keyword",
    "semantic_scores",
    "LocalHybridRanker",
    "rank_by_hybrid_local",
    "RemoteAssistedRanker",
    "map_vault_results",
    "rank_by_hybrid_remote",
    "RankingFactory",
    "EvidenceSearchService",
    "SearchOutcome",
]
