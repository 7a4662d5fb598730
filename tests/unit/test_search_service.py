"""
Unit tests for EvidenceSearchService (strategy + fallback policy)
"""

import httpx
import pytest

from fakes import FakeEmbedder, FakeVault, make_document
from src.models import EvidenceCategory, SearchFilters, SearchWeights, VaultSearchResult
from src.ranking import EvidenceSearchService, InvalidQueryError, LocalHybridRanker, RemoteAssistedRanker
from src.ranking.service import SOURCE_KEYWORD_FALLBACK, SOURCE_LOCAL, SOURCE_NONE, SOURCE_VAULT
from src.repository import InMemoryEvidenceRepository
from src.vault_client import VaultClient, VaultError

pytestmark = pytest.mark.unit


def vault_service(repository, vault):
    return EvidenceSearchService(repository, RemoteAssistedRanker(repository, vault))


class TestVaultStrategy:
    """Test vault-assisted search with keyword fallback"""
    
    @pytest.mark.asyncio
    async def test_vault_results_returned(self, vault_corpus):
        vault = FakeVault(results=[VaultSearchResult(object_id="obj-contract", score=0.81)])
        outcome = await vault_service(vault_corpus, vault).search("lease")
        
        assert outcome.source == SOURCE_VAULT
        assert outcome.total == 1
        assert outcome.results[0].document.id == "local-1"
        assert outcome.results[0].score == 81
    
    @pytest.mark.asyncio
    async def test_empty_vault_falls_back_to_keyword(self, lease_corpus):
        """Vault not indexed yet -> keyword ranking over local metadata"""
        outcome = await vault_service(lease_corpus, FakeVault()).search("lease")
        
        assert outcome.source == SOURCE_KEYWORD_FALLBACK
        assert [r.document.id for r in outcome.results] == ["1"]
        assert outcome.results[0].score == 64
    
    @pytest.mark.asyncio
    async def test_vault_failure_falls_back_to_keyword(self, vault_down, lease_corpus):
        outcome = await vault_service(lease_corpus, vault_down).search("lease")
        
        assert outcome.source == SOURCE_KEYWORD_FALLBACK
        assert outcome.total == 1
        assert len(vault_down.calls) == 1
    
    @pytest.mark.asyncio
    async def test_filters_forwarded(self, vault_corpus):
        vault = FakeVault(results=[
            VaultSearchResult(object_id="obj-contract", score=0.9),
            VaultSearchResult(object_id="obj-email", score=0.8),
        ])
        filters = SearchFilters(categories=[EvidenceCategory.EMAIL])
        outcome = await vault_service(vault_corpus, vault).search("x", filters=filters)
        
        assert [r.document.id for r in outcome.results] == ["local-2"]
    
    @pytest.mark.parametrize("body", [
        [None],
        {"chunks": {"a": 1}},
        [{"objectId": "o", "score": "high"}],
    ])
    @pytest.mark.asyncio
    async def test_malformed_vault_body_falls_back_to_keyword(self, lease_corpus, body):
        vault = VaultClient(
            api_key="test-key",
            vault_id="vault-1",
            base_url="https://vault.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)),
        )
        
        outcome = await vault_service(lease_corpus, vault).search("lease")
        await vault.close()
        
        assert outcome.source == SOURCE_KEYWORD_FALLBACK
        assert [(r.document.id, r.score) for r in outcome.results] == [("1", 64)]
    
    @pytest.mark.asyncio
    async def test_uses_vault(self, lease_corpus):
        assert vault_service(lease_corpus, FakeVault()).uses_vault is True
        assert EvidenceSearchService(lease_corpus, LocalHybridRanker(lease_corpus)).uses_vault is False


class TestLocalStrategy:
    """Test local hybrid search with best-effort query embedding"""
    
    @pytest.fixture
    def corpus(self):
        return InMemoryEvidenceRepository([
            make_document("kw", filename="lease.pdf"),
            make_document("sem", filename="scan.png", embedding=[1.0, 0.0]),
        ])
    
    @pytest.mark.asyncio
    async def test_embedding_used(self, corpus):
        embedder = FakeEmbedder(vector=[1.0, 0.0])
        service = EvidenceSearchService(corpus, LocalHybridRanker(corpus), embedder=embedder)
        
        outcome = await service.search("lease")
        
        assert outcome.source == SOURCE_LOCAL
        assert embedder.calls == ["lease"]
        assert {r.document.id: r.score for r in outcome.results} == {"sem": 70, "kw": 14}
    
    @pytest.mark.asyncio
    async def test_embedder_failure_ranks_by_keyword(self, corpus):
        embedder = FakeEmbedder(error=VaultError("quota exceeded", status_code=429))
        service = EvidenceSearchService(corpus, LocalHybridRanker(corpus), embedder=embedder)
        
        outcome = await service.search("lease")
        
        assert outcome.source == SOURCE_LOCAL
        assert [(r.document.id, r.score) for r in outcome.results] == [("kw", 14)]
    
    @pytest.mark.asyncio
    async def test_malformed_embedding_response(self, corpus):
        embedder = VaultClient(
            api_key="test-key",
            base_url="https://vault.test",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"data": ["not-a-dict"]})
            ),
        )
        service = EvidenceSearchService(corpus, LocalHybridRanker(corpus), embedder=embedder)
        
        outcome = await service.search("lease")
        await embedder.close()
        
        assert [(r.document.id, r.score) for r in outcome.results] == [("kw", 14)]
    
    @pytest.mark.asyncio
    async def test_embedder_transport_failure(self, corpus):
        embedder = FakeEmbedder(error=httpx.ReadTimeout("slow"))
        service = EvidenceSearchService(corpus, LocalHybridRanker(corpus), embedder=embedder)
        
        outcome = await service.search("lease")
        assert [r.document.id for r in outcome.results] == ["kw"]
    
    @pytest.mark.asyncio
    async def test_precomputed_embedding_skips_embedder(self, corpus):
        embedder = FakeEmbedder(vector=[0.0, 1.0])
        service = EvidenceSearchService(corpus, LocalHybridRanker(corpus), embedder=embedder)
        
        outcome = await service.search("lease", query_embedding=[1.0, 0.0])
        
        assert embedder.calls == []
        assert outcome.results[0].document.id == "sem"
    
    @pytest.mark.asyncio
    async def test_weights_forwarded(self, corpus):
        service = EvidenceSearchService(corpus, LocalHybridRanker(corpus))
        outcome = await service.search(
            "lease",
            weights=SearchWeights(keyword_weight=1.0, semantic_weight=0.0),
        )
        assert [(r.document.id, r.score) for r in outcome.results] == [("kw", 45)]


class TestBlankQuery:
    
    @pytest.mark.asyncio
    async def test_blank_query_lists_everything(self, lease_corpus):
        vault = FakeVault()
        outcome = await vault_service(lease_corpus, vault).search("  ")
        
        assert outcome.source == SOURCE_NONE
        assert outcome.query == ""
        assert [r.document.id for r in outcome.results] == ["1", "2"]
        assert all(r.score == 50 for r in outcome.results)
        assert vault.calls == []
    
    @pytest.mark.asyncio
    async def test_missing_query_raises(self, lease_corpus):
        service = EvidenceSearchService(lease_corpus, LocalHybridRanker(lease_corpus))
        with pytest.raises(InvalidQueryError):
            await service.search(None)
