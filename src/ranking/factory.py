"""
Factory to create ranking strategies based on configuration.
"""

import logging
import os
from typing import Optional

from ..models import SearchWeights
from ..repository import EvidenceRepository
from ..vault_client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS, VaultClient
from .base import BaseRanker
from .local import LocalHybridRanker
from .remote import RemoteAssistedRanker, VaultSearcher

logger = logging.getLogger(__name__)


def weights_from_env() -> SearchWeights:
    """Read SEARCH_KEYWORD_WEIGHT / SEARCH_SEMANTIC_WEIGHT (defaults 0.3 / 0.7)"""
    return SearchWeights(
        keyword_weight=float(os.getenv("SEARCH_KEYWORD_WEIGHT", "0.3")),
        semantic_weight=float(os.getenv("SEARCH_SEMANTIC_WEIGHT", "0.7")),
    )


def vault_client_from_env() -> Optional[VaultClient]:
    """
    Create a VaultClient from environment configuration.

    Config (env vars):
        CASE_API_KEY: API key (required, otherwise None is returned)
        CASE_VAULT_ID: Vault to search (optional - without it the client
            only serves embeddings)
        CASE_API_URL: API root (default: https://api.case.dev)
        VAULT_TIMEOUT_SECONDS: Request timeout (default: 30)
    """
    api_key = os.getenv("CASE_API_KEY")
    if not api_key:
        logger.info("CASE_API_KEY not set - vault search and embeddings disabled")
        return None

    return VaultClient(
        api_key=api_key,
        vault_id=os.getenv("CASE_VAULT_ID") or None,
        base_url=os.getenv("CASE_API_URL", DEFAULT_BASE_URL),
        timeout=float(os.getenv("VAULT_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))),
    )


class RankingFactory:
    """Factory to create the ranking strategy for a deployment."""

    @classmethod
    def create(
        cls,
        repository: EvidenceRepository,
        vault: Optional[VaultSearcher] = None,
        weights: Optional[SearchWeights] = None,
    ) -> BaseRanker:
        """
        Select the ranking strategy.

        Supported strategies:
            - vault_hybrid: used when a vault searcher is supplied; relevance
              comes from the vault, filtering from local metadata
            - local_hybrid: keyword + semantic fusion over local metadata

        Args:
            repository: Local evidence metadata
            vault: Vault search collaborator. A VaultClient without a vault id
                cannot search and selects the local strategy.
            weights: Default weights for the local strategy

        Returns:
            Ranker instance
        """
        if vault is not None and getattr(vault, "vault_id", True):
            logger.info("Creating vault-assisted ranker")
            return RemoteAssistedRanker(repository=repository, vault=vault)

        logger.info("Creating local hybrid ranker (no vault configured)")
        return LocalHybridRanker(repository=repository, default_weights=weights)
