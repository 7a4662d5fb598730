"""
Unit tests for local hybrid (keyword + semantic) ranking.
"""

import pytest

from fakes import make_document
from src.models import SearchWeights
from src.ranking import InvalidQueryError, LocalHybridRanker, rank_by_hybrid_local, rank_by_keyword
from src.repository import InMemoryEvidenceRepository


@pytest.fixture
def mixed_corpus():
    """
    Query "lease" with embedding [1, 0]:
        both     - filename + all fields match, identical embedding
        keyword  - filename+summary+tag+text match, no embedding
        semantic - no keyword match, identical embedding
        neither  - no keyword match, orthogonal embedding
    """
    return InMemoryEvidenceRepository([
        make_document(
            "keyword", filename="lease.pdf", summary="lease", tags=["lease"], extracted_text="lease",
        ),
        make_document("semantic", filename="scan.png", embedding=[1.0, 0.0]),
        make_document("neither", filename="photo.jpg", embedding=[0.0, 1.0]),
        make_document(
            "both", filename="lease.pdf", summary="lease", tags=["lease"], extracted_text="lease",
            embedding=[1.0, 0.0],
        ),
    ])


class TestHybridWeights:
    """Test weighted fusion"""
    
    def test_keyword_only_document(self, mixed_corpus):
        """keyword 100, semantic 0 -> 30 with default weights"""
        results = rank_by_hybrid_local("lease", mixed_corpus, query_embedding=[1.0, 0.0])
        scores = {r.document.id: r.score for r in results}
        assert scores["keyword"] == 30
    
    def test_semantic_only_document(self, mixed_corpus):
        """keyword 0, semantic 100 -> 70 with default weights"""
        results = rank_by_hybrid_local("lease", mixed_corpus, query_embedding=[1.0, 0.0])
        scores = {r.document.id: r.score for r in results}
        assert scores["semantic"] == 70
    
    def test_both_signals(self, mixed_corpus):
        results = rank_by_hybrid_local("lease", mixed_corpus, query_embedding=[1.0, 0.0])
        assert results[0].document.id == "both"
        assert results[0].score == 100
    
    def test_unmatched_document_absent(self, mixed_corpus):
        """Below the semantic threshold and no keyword match -> never accumulated"""
        results = rank_by_hybrid_local("lease", mixed_corpus, query_embedding=[1.0, 0.0])
        assert "neither" not in {r.document.id for r in results}
    
    def test_ranking_order(self, mixed_corpus):
        results = rank_by_hybrid_local("lease", mixed_corpus, query_embedding=[1.0, 0.0])
        assert [r.document.id for r in results] == ["both", "semantic", "keyword"]
    
    def test_custom_weights(self, mixed_corpus):
        weights = SearchWeights(keyword_weight=0.5, semantic_weight=0.5)
        results = rank_by_hybrid_local(
            "lease", mixed_corpus, query_embedding=[1.0, 0.0], weights=weights,
        )
        scores = {r.document.id: r.score for r in results}
        assert scores == {"both": 100, "keyword": 50, "semantic": 50}
    
    def test_scores_clamped_to_100(self, mixed_corpus):
        """Weights summing above 1 cannot push scores past 100"""
        weights = SearchWeights(keyword_weight=1.0, semantic_weight=1.0)
        results = rank_by_hybrid_local(
            "lease", mixed_corpus, query_embedding=[1.0, 0.0], weights=weights,
        )
        assert all(0 <= r.score <= 100 for r in results)
        assert results[0].score == 100
    
    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            SearchWeights(keyword_weight=-0.1)


class TestHybridWithoutEmbedding:
    """Test graceful degradation to keyword ranking"""
    
    def test_weighted_keyword_scores(self, mixed_corpus):
        """Without an embedding scores are keyword scores scaled by keyword_weight"""
        hybrid = rank_by_hybrid_local("lease", mixed_corpus)
        keyword = rank_by_keyword("lease", mixed_corpus)
        
        assert [r.document.id for r in hybrid] == [r.document.id for r in keyword]
        assert [r.score for r in hybrid] == [30, 30]
        assert [r.score for r in keyword] == [100, 100]
    
    def test_filename_only_weighted(self, lease_corpus):
        """64 x 0.3 = 19.2 -> 19"""
        results = rank_by_hybrid_local("lease", lease_corpus)
        assert [(r.document.id, r.score) for r in results] == [("1", 19)]
    
    def test_half_rounds_up(self):
        """45 x 0.3 = 13.5 -> 14 (half-up, not banker's rounding)"""
        repository = InMemoryEvidenceRepository([make_document("1", filename="lease.pdf")])
        results = rank_by_hybrid_local("lease", repository)
        assert results[0].score == 14


class TestZeroScorePolicy:
    """Test handling of matched documents whose combined score rounds to 0"""
    
    @pytest.fixture
    def weak_corpus(self):
        return InMemoryEvidenceRepository([
            make_document("weak", filename="notes.txt", extracted_text="lease"),
        ])
    
    def test_zero_scores_kept_by_default(self, weak_corpus):
        """keyword 9 x 0.05 = 0.45 -> 0, still returned"""
        weights = SearchWeights(keyword_weight=0.05, semantic_weight=0.7)
        results = rank_by_hybrid_local("lease", weak_corpus, weights=weights)
        
        assert len(results) == 1
        assert results[0].score == 0
    
    def test_zero_scores_dropped_on_request(self, weak_corpus):
        weights = SearchWeights(keyword_weight=0.05, semantic_weight=0.7)
        results = rank_by_hybrid_local("lease", weak_corpus, weights=weights, drop_zero_scores=True)
        assert results == []


class TestTieBreaking:
    """Test stable ordering for equal scores"""
    
    def test_ties_keep_corpus_order(self):
        repository = InMemoryEvidenceRepository([
            make_document("c", filename="lease-c.pdf"),
            make_document("a", filename="lease-a.pdf"),
            make_document("b", filename="lease-b.pdf"),
        ])
        results = rank_by_hybrid_local("lease", repository)
        assert [r.document.id for r in results] == ["c", "a", "b"]
    
    def test_keyword_hits_precede_semantic_only_ties(self):
        """Equal scores: keyword hits first (corpus order), then semantic-only hits"""
        repository = InMemoryEvidenceRepository([
            make_document("semantic", filename="scan.png", embedding=[1.0, 0.0]),
            make_document("keyword", filename="lease.pdf", summary="lease", tags=["lease"], extracted_text="lease"),
        ])
        weights = SearchWeights(keyword_weight=0.5, semantic_weight=0.5)
        results = rank_by_hybrid_local("lease", repository, query_embedding=[1.0, 0.0], weights=weights)
        assert [r.document.id for r in results] == ["keyword", "semantic"]


class TestHybridEdgeCases:
    
    def test_empty_repository(self):
        assert rank_by_hybrid_local("lease", InMemoryEvidenceRepository()) == []
    
    def test_missing_query_raises(self):
        with pytest.raises(InvalidQueryError):
            rank_by_hybrid_local(None, InMemoryEvidenceRepository())
    
    def test_semantic_threshold_is_configurable(self):
        repository = InMemoryEvidenceRepository([
            make_document("d", filename="scan.png", embedding=[3.0, 4.0]),  # cos 0.6
        ])
        assert rank_by_hybrid_local("lease", repository, query_embedding=[1.0, 0.0]) != []
        assert rank_by_hybrid_local(
            "lease", repository, query_embedding=[1.0, 0.0], semantic_min_score=0.7,
        ) == []


class TestLocalHybridRanker:
    """Test the strategy wrapper"""
    
    @pytest.mark.asyncio
    async def test_rank_uses_default_weights(self, mixed_corpus):
        ranker = LocalHybridRanker(
            mixed_corpus, default_weights=SearchWeights(keyword_weight=1.0, semantic_weight=0.0),
        )
        results = await ranker.rank("lease", query_embedding=[1.0, 0.0])
        scores = {r.document.id: r.score for r in results}
        assert scores["keyword"] == 100
        assert scores["semantic"] == 0
    
    @pytest.mark.asyncio
    async def test_request_weights_override_defaults(self, mixed_corpus):
        ranker = LocalHybridRanker(mixed_corpus)
        results = await ranker.rank(
            "lease", weights=SearchWeights(keyword_weight=1.0, semantic_weight=0.0),
        )
        assert results[0].score == 100
    
    def test_strategy_info(self, mixed_corpus):
        info = LocalHybridRanker(mixed_corpus).get_strategy_info()
        assert info["name"] == "local_hybrid"
        assert info["type"] == "local"
        assert info["keyword_weight"] == 0.3
        assert info["semantic_weight"] == 0.7
