"""
Vault-assisted ranking: re-map vault relevance onto local metadata.

The vault already fuses vector and BM25 scores per document. This module
resolves each hit against local metadata by vault object id, applies
category/tag filters, and converts scores to the 0-100 display scale.

Hits with no local metadata (orphaned / not yet synced) are kept as
placeholder documents flagged `needs_sync`, with category `other` and no
tags. Filters see that placeholder:
    category filter without `other` -> orphan dropped
    any tag filter                  -> orphan dropped
"""

import logging
from typing import List, Optional, Protocol, Sequence

import httpx

from ..models import (
    DEFAULT_CATEGORY,
    EvidenceDocument,
    ScoredMatch,
    SearchFilters,
    SearchWeights,
    VaultSearchOptions,
    VaultSearchResult,
)
from ..repository import EvidenceRepository
from ..vault_client import VaultError
from .base import BaseRanker, sort_by_score, to_display_score, validate_query

logger = logging.getLogger(__name__)

ORPHAN_ID_PREFIX = "vault-"
ORPHAN_FILENAME = "Unknown document"


class VaultSearcher(Protocol):
    """Remote search collaborator (VaultClient or a test double)"""

    async def search(
        self,
        query: str,
        options: Optional[VaultSearchOptions] = None,
    ) -> List[VaultSearchResult]:
        ...


def passes_filters(document: EvidenceDocument, filters: Optional[SearchFilters]) -> bool:
    """Category must be listed (if any listed); at least one tag must match (if any listed)"""
    if filters is None:
        return True
    if filters.categories and document.category not in filters.categories:
        return False
    if filters.tags and not any(tag in document.tags for tag in filters.tags):
        return False
    return True


def _metadata_str(metadata: dict, key: str) -> Optional[str]:
    value = metadata.get(key)
    return value if isinstance(value, str) and value else None


def _metadata_size(metadata: dict) -> int:
    try:
        return max(0, int(metadata.get("size") or 0))
    except (TypeError, ValueError, OverflowError):
        return 0


def orphan_placeholder(result: VaultSearchResult, score: int) -> EvidenceDocument:
    """
    Minimal evidence record for a vault hit that has no local metadata.

    Vault metadata only fills in content type, size and creation time when
    it has the expected type; anything else falls back to the defaults.
    """
    placeholder = {
        "id": f"{ORPHAN_ID_PREFIX}{result.object_id}",
        "filename": result.filename or ORPHAN_FILENAME,
        "content_type": _metadata_str(result.metadata, "contentType") or "application/octet-stream",
        "size_bytes": _metadata_size(result.metadata),
        "category": DEFAULT_CATEGORY,
        "tags": [],
        "relevance_score": score,
        "status": "completed",
        "needs_sync": True,
    }
    created_at = _metadata_str(result.metadata, "createdAt")
    if created_at:
        placeholder["created_at"] = created_at
    return EvidenceDocument(**placeholder)


def map_vault_results(
    vault_results: Sequence[VaultSearchResult],
    repository: EvidenceRepository,
    filters: Optional[SearchFilters] = None,
) -> List[ScoredMatch]:
    """
    Resolve, filter and score vault results against local metadata.

    Args:
        vault_results: Per-object hits from the vault (scores 0-1)
        repository: Local metadata, looked up by vault object id
        filters: Optional category/tag filters

    Returns:
        List of ScoredMatch sorted by score (descending); ties keep vault order
    """
    results = []

    for result in vault_results:
        score = to_display_score(result.score * 100)
        metadata = repository.find_by_object_id(result.object_id)
        logger.debug(
            f"Vault result {result.object_id} ({result.filename}): "
            f"raw={result.score:.4f}, score={score}, metadata={'yes' if metadata else 'no'}"
        )

        if metadata is not None:
            if not passes_filters(metadata, filters):
                continue
            results.append(ScoredMatch(document=metadata, score=score))
        else:
            placeholder = orphan_placeholder(result, score)
            if not passes_filters(placeholder, filters):
                continue
            results.append(ScoredMatch(document=placeholder, score=score))

    return sort_by_score(results)


async def rank_by_hybrid_remote(
    query: str,
    vault: VaultSearcher,
    repository: EvidenceRepository,
    filters: Optional[SearchFilters] = None,
    options: Optional[VaultSearchOptions] = None,
) -> List[ScoredMatch]:
    """
    Rank evidence using the vault's hybrid search.

    A single vault request per call. Vault failures are logged and reported
    as an empty list - the caller decides whether to fall back to keyword
    ranking. A blank query returns [] without calling the vault.

    Args:
        query: Free-text query
        vault: Remote search collaborator
        repository: Local metadata
        filters: Optional category/tag filters
        options: Vault search options (default: hybrid, limit 50, min score 0.01)

    Returns:
        List of ScoredMatch sorted by score (descending)
    """
    query = validate_query(query)
    if not query:
        return []

    options = options or VaultSearchOptions()

    try:
        vault_results = await vault.search(query, options)
    except (VaultError, httpx.HTTPError) as e:
        logger.warning(f"Vault search failed, reporting no results: {e}")
        return []

    results = map_vault_results(vault_results, repository, filters)
    orphans = sum(1 for match in results if match.document.needs_sync)
    logger.info(
        f"Vault-assisted ranking for '{query}': {len(vault_results)} vault hits, "
        f"{len(results)} results ({orphans} need sync)"
    )
    return results


class RemoteAssistedRanker(BaseRanker):
    """
    Ranking strategy for deployments with a configured vault.

    Relevance comes from the vault; local metadata supplies categories and
    tags for filtering and display.
    """

    def __init__(
        self,
        repository: EvidenceRepository,
        vault: VaultSearcher,
        options: Optional[VaultSearchOptions] = None,
    ):
        self.repository = repository
        self.vault = vault
        self.options = options or VaultSearchOptions()

    async def rank(
        self,
        query: str,
        *,
        query_embedding: Optional[Sequence[float]] = None,
        weights: Optional[SearchWeights] = None,
        filters: Optional[SearchFilters] = None,
    ) -> List[ScoredMatch]:
        return await rank_by_hybrid_remote(
            query,
            self.vault,
            self.repository,
            filters=filters,
            options=self.options,
        )

    def get_strategy_info(self) -> dict:
        return {
            "name": "vault_hybrid",
            "type": "remote",
            "method": self.options.method,
            "limit": self.options.limit,
            "min_score": self.options.min_score,
        }

    async def close(self):
        close = getattr(self.vault, "close", None)
        if close is not None:
            await close()
