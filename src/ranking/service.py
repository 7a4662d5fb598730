"""
Evidence search service - owns strategy selection and fallback policy.

    vault strategy:  vault-assisted ranking -> keyword ranking if it returns nothing
    local strategy:  best-effort query embedding -> local hybrid ranking
    blank query:     every document, unranked
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

import httpx

from ..models import ScoredMatch, SearchFilters, SearchWeights
from ..repository import EvidenceRepository
from ..vault_client import VaultError
from .base import BaseRanker, to_display_score, validate_query
from .keyword import rank_by_keyword
from .remote import RemoteAssistedRanker

logger = logging.getLogger(__name__)

SOURCE_NONE = "none"
SOURCE_VAULT = "vault"
SOURCE_KEYWORD_FALLBACK = "keyword_fallback"
SOURCE_LOCAL = "local_hybrid"


class QueryEmbedder(Protocol):
    async def embed(self, text: str) -> List[float]:
        ...


@dataclass
class SearchOutcome:
    """Ranked results plus which path produced them"""
    query: str
    results: List[ScoredMatch] = field(default_factory=list)
    source: str = SOURCE_NONE

    @property
    def total(self) -> int:
        return len(self.results)


class EvidenceSearchService:
    """Runs a search with the configured strategy and applies fallbacks."""

    def __init__(
        self,
        repository: EvidenceRepository,
        ranker: BaseRanker,
        embedder: Optional[QueryEmbedder] = None,
    ):
        self.repository = repository
        self.ranker = ranker
        self.embedder = embedder

    @property
    def uses_vault(self) -> bool:
        return isinstance(self.ranker, RemoteAssistedRanker)

    async def _query_embedding(self, query: str) -> Optional[Sequence[float]]:
        if self.embedder is None:
            return None
        try:
            return await self.embedder.embed(query)
        except (VaultError, httpx.HTTPError) as e:
            logger.warning(f"Query embedding failed, ranking by keyword signal only: {e}")
            return None

    async def search(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
        weights: Optional[SearchWeights] = None,
        query_embedding: Optional[Sequence[float]] = None,
    ) -> SearchOutcome:
        """
        Search evidence.

        Args:
            query: Free-text query
            filters: Category/tag filters (vault strategy)
            weights: Keyword/semantic weights (local strategy)
            query_embedding: Precomputed query vector; skips the embedder

        Returns:
            SearchOutcome with results sorted by score (descending)
        """
        query = validate_query(query)

        if not query:
            documents = self.repository.list()
            return SearchOutcome(
                query=query,
                results=[
                    ScoredMatch(document=d, score=to_display_score(d.relevance_score))
                    for d in documents
                ],
                source=SOURCE_NONE,
            )

        if self.uses_vault:
            results = await self.ranker.rank(query, filters=filters)
            if results:
                return SearchOutcome(query=query, results=results, source=SOURCE_VAULT)

            logger.info(f"No vault results for '{query}', falling back to keyword search")
            return SearchOutcome(
                query=query,
                results=rank_by_keyword(query, self.repository),
                source=SOURCE_KEYWORD_FALLBACK,
            )

        if query_embedding is None:
            query_embedding = await self._query_embedding(query)

        results = await self.ranker.rank(
            query,
            query_embedding=query_embedding,
            weights=weights,
        )
        return SearchOutcome(query=query, results=results, source=SOURCE_LOCAL)
