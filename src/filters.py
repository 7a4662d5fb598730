"""Evidence list filtering and sorting (list view, no ranking)"""

from typing import List, Sequence

from .models import EvidenceDocument, FilterState


def _display_date(document: EvidenceDocument) -> str:
    return document.date_detected or document.created_at


def _matches_text(document: EvidenceDocument, query_lower: str) -> bool:
    fields = [document.filename, document.summary, document.extracted_text]
    if any(field is not None and query_lower in field.lower() for field in fields):
        return True
    return any(query_lower in tag.lower() for tag in document.tags)


def filter_evidence(documents: Sequence[EvidenceDocument], state: FilterState) -> List[EvidenceDocument]:
    """
    Apply list-view filters and sort order.

    Dates are ISO-8601 strings compared lexically (inclusive range) against
    `date_detected`, falling back to `created_at`.
    """
    items = list(documents)

    if state.categories:
        items = [item for item in items if item.category in state.categories]

    if state.tags:
        items = [item for item in items if any(tag in item.tags for tag in state.tags)]

    if state.date_start:
        items = [item for item in items if _display_date(item) >= state.date_start]
    if state.date_end:
        items = [item for item in items if _display_date(item) <= state.date_end]

    if state.search_query:
        query_lower = state.search_query.lower()
        items = [item for item in items if _matches_text(item, query_lower)]

    if state.sort_by == "date":
        sort_key = _display_date
    elif state.sort_by == "relevance":
        sort_key = lambda item: item.relevance_score
    else:
        sort_key = lambda item: item.filename.lower()

    return sorted(items, key=sort_key, reverse=state.sort_order == "desc")
