"""
Evidence data model shared by the repository, rankers and API.

One explicit model per record type - optional signals (summary, extracted text,
embedding, vault reference) are nullable fields, never free-form dicts, so
every scorer has to handle their absence explicitly.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EvidenceCategory(str, Enum):
    """Legal evidence categories assigned by classification"""
    CONTRACT = "contract"
    EMAIL = "email"
    PHOTO = "photo"
    HANDWRITTEN_NOTE = "handwritten_note"
    MEDICAL_RECORD = "medical_record"
    FINANCIAL_DOCUMENT = "financial_document"
    LEGAL_FILING = "legal_filing"
    CORRESPONDENCE = "correspondence"
    REPORT = "report"
    OTHER = "other"


DEFAULT_CATEGORY = EvidenceCategory.OTHER
DEFAULT_RELEVANCE_SCORE = 50

VaultStatus = Literal["uploading", "processing", "ready", "failed"]
EvidenceStatus = Literal["uploading", "processing", "classifying", "completed", "failed"]
SearchMethod = Literal["hybrid", "fast", "local", "global"]


def utc_now_iso() -> str:
    return datetime.utcnow().isoformat() + "Z"


class VaultDocumentRef(BaseModel):
    """Link from a local evidence record to its object in the remote vault"""
    vault_id: str
    object_id: str
    filename: str
    content_type: str = "application/octet-stream"
    size_bytes: int = 0
    uploaded_at: str = Field(default_factory=utc_now_iso)
    status: VaultStatus = "ready"


class EvidenceDocument(BaseModel):
    """
    Evidence record as held locally.

    `id` is the local primary key. Vault search results are keyed by the
    vault's own object id (see `object_id`), which lives in a different
    identifier space.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., min_length=1)
    filename: str = ""
    content_type: str = "application/octet-stream"
    size_bytes: int = 0
    category: EvidenceCategory = DEFAULT_CATEGORY
    tags: List[str] = Field(default_factory=list)
    relevance_score: int = DEFAULT_RELEVANCE_SCORE
    summary: Optional[str] = None
    extracted_text: Optional[str] = None
    date_detected: Optional[str] = None
    status: EvidenceStatus = "completed"
    created_at: str = Field(default_factory=utc_now_iso)
    embedding: Optional[List[float]] = None
    vault_doc_ref: Optional[VaultDocumentRef] = None
    needs_sync: bool = False

    @property
    def object_id(self) -> Optional[str]:
        """Vault object id, or None for records never uploaded to a vault"""
        return self.vault_doc_ref.object_id if self.vault_doc_ref else None


class ScoredMatch(BaseModel):
    """A document paired with its display score (integer 0-100)"""
    document: EvidenceDocument
    score: int = Field(..., ge=0, le=100)


class VaultSearchResult(BaseModel):
    """
    Per-document hit returned by the vault search endpoint.

    `score` is the vault's own fused relevance (0-1). `object_id` may not
    correspond to any local record (orphaned / unsynced document).
    """
    object_id: str
    score: float
    filename: Optional[str] = None
    matched_text: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SearchFilters(BaseModel):
    """Category/tag restrictions for vault-assisted search (empty = no restriction)"""
    categories: List[EvidenceCategory] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class SearchWeights(BaseModel):
    """Weights applied to keyword and semantic sub-scores in local hybrid ranking"""
    keyword_weight: float = 0.3
    semantic_weight: float = 0.7

    @field_validator("keyword_weight", "semantic_weight")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"Search weights must be non-negative, got {value}")
        return value


class VaultSearchOptions(BaseModel):
    """Options forwarded to the vault search endpoint"""
    method: SearchMethod = "hybrid"
    limit: int = Field(default=50, ge=1)
    # Recall floor only - local metadata filtering is the real relevance gate
    min_score: float = Field(default=0.01, ge=0.0, le=1.0)


class FilterState(BaseModel):
    """Evidence list view state: filters plus sort order"""
    categories: List[EvidenceCategory] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    date_start: Optional[str] = None
    date_end: Optional[str] = None
    search_query: str = ""
    sort_by: Literal["date", "relevance", "name"] = "date"
    sort_order: Literal["asc", "desc"] = "desc"


class SyncReport(BaseModel):
    """Outcome of reconciling vault objects with local metadata"""
    synced: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)
