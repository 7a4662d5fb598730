"""
Keyword scoring by weighted field matches.

Matching is case-insensitive substring containment (no tokenization, no
fuzziness). Each field contributes at most once per document:

    filename       +50
    summary        +30
    any tag        +20
    extracted text +10

Raw scores are normalized against the 110-point maximum:
    score = round(raw / 110 × 100)
"""

import logging
from typing import Iterable, List, Optional

from ..models import EvidenceDocument, ScoredMatch
from ..repository import EvidenceRepository
from .base import sort_by_score, to_display_score, validate_query

logger = logging.getLogger(__name__)

FILENAME_WEIGHT = 50
SUMMARY_WEIGHT = 30
TAG_WEIGHT = 20
EXTRACTED_TEXT_WEIGHT = 10
MAX_RAW_SCORE = FILENAME_WEIGHT + SUMMARY_WEIGHT + TAG_WEIGHT + EXTRACTED_TEXT_WEIGHT


def _contains(field: Optional[str], query_lower: str) -> bool:
    return field is not None and query_lower in field.lower()


def raw_keyword_score(query_lower: str, document: EvidenceDocument) -> int:
    """Sum of field weights matched by an already lower-cased query"""
    raw = 0
    if _contains(document.filename, query_lower):
        raw += FILENAME_WEIGHT
    if _contains(document.summary, query_lower):
        raw += SUMMARY_WEIGHT
    if any(query_lower in tag.lower() for tag in document.tags):
        raw += TAG_WEIGHT
    if _contains(document.extracted_text, query_lower):
        raw += EXTRACTED_TEXT_WEIGHT
    return raw


def keyword_scores(query: str, documents: Iterable[EvidenceDocument]) -> List[ScoredMatch]:
    """
    Score documents by keyword match.

    Args:
        query: Free-text query. Surrounding whitespace is ignored; a blank
            query matches every present field (no filtering).
        documents: Corpus to score

    Returns:
        Unsorted list of ScoredMatch. Documents with raw score 0 are absent.
    """
    query_lower = validate_query(query).lower()

    results = []
    for document in documents:
        raw = raw_keyword_score(query_lower, document)
        if raw == 0:
            continue
        results.append(ScoredMatch(
            document=document,
            score=to_display_score(raw / MAX_RAW_SCORE * 100),
        ))

    return results


def rank_by_keyword(query: str, repository: EvidenceRepository) -> List[ScoredMatch]:
    """Keyword-only ranking over the repository, sorted by score (descending)"""
    results = sort_by_score(keyword_scores(query, repository.list()))
    logger.debug(f"Keyword ranking for '{query}': {len(results)} matches")
    return results
