"""
Semantic scoring over stored document embeddings.

Documents without an embedding are skipped. Similarity is compared against
the threshold on the raw 0-1 value (inclusive), then reported as a
0-100 percentage.
"""

from typing import Iterable, List, Sequence

from ..models import EvidenceDocument, ScoredMatch
from .base import to_display_score
from .similarity import cosine_similarity

DEFAULT_MIN_SIMILARITY = 0.3


def semantic_scores(
    query_embedding: Sequence[float],
    documents: Iterable[EvidenceDocument],
    min_score: float = DEFAULT_MIN_SIMILARITY,
) -> List[ScoredMatch]:
    """
    Score documents by cosine similarity to the query embedding.

    Args:
        query_embedding: Query vector (same dimensionality as stored embeddings)
        documents: Corpus to score
        min_score: Minimum cosine similarity (0-1) to include a document

    Returns:
        Unsorted list of ScoredMatch with score = round(similarity × 100)
    """
    results = []
    for document in documents:
        if not document.embedding:
            continue

        similarity = cosine_similarity(query_embedding, document.embedding)
        if similarity >= min_score:
            results.append(ScoredMatch(
                document=document,
                score=to_display_score(similarity * 100),
            ))

    return results
