"""
Evidence Search - FastAPI application for ranking legal evidence documents

Search API over evidence metadata using:
- Remote vault (case.dev style API) for OCR, indexing and hybrid vector + BM25 search
- Local keyword + embedding score fusion when no vault is configured
- FastAPI (async REST API)

Architecture:
- Metadata repository is the source of truth for categories, tags and summaries
- Vault relevance is re-mapped onto local metadata; unsynced vault documents
  are returned as placeholders flagged `needs_sync`
- Vault failures degrade to local keyword ranking instead of failing the request
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Literal, Optional

# Load environment variables from .env.local (local dev) or .env (production)
from dotenv import load_dotenv

# Load .env.local first (highest priority), then .env as fallback
env_local = Path(__file__).parent.parent / ".env.local"
env_file = Path(__file__).parent.parent / ".env"

if env_local.exists():
    load_dotenv(env_local, override=True)
elif env_file.exists():
    load_dotenv(env_file, override=True)

# Configure logging: console (brief) + file (detailed)
from src.logging_config import setup_logging

log_level = os.getenv("LOG_LEVEL", "INFO").upper()
console_level = getattr(logging, log_level, logging.INFO)
setup_logging(
    log_file="logs/evidence-search.log",
    console_level=console_level,
    file_level=logging.DEBUG  # Always DEBUG in file for troubleshooting
)

logger = logging.getLogger(__name__)


from fastapi import FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from .filters import filter_evidence
from .models import (
    EvidenceCategory,
    EvidenceDocument,
    FilterState,
    ScoredMatch,
    SearchFilters,
    SearchMethod,
    SearchWeights,
    SyncReport,
    VaultSearchOptions,
)
from .ranking import (
    EvidenceSearchService,
    InvalidQueryError,
    RankingFactory,
    rank_by_hybrid_local,
    rank_by_hybrid_remote,
    rank_by_keyword,
)
from .ranking.factory import vault_client_from_env, weights_from_env
from .repository import InMemoryEvidenceRepository
from .sync import sync_from_vault
from .vault_client import VaultClient

PORT = int(os.getenv("PORT", "8080"))

# Version tracking
APP_VERSION = "0.1.0"
APP_START_TIME = datetime.utcnow().isoformat() + "Z"

# Metadata repository (process-local)
evidence_repository = InMemoryEvidenceRepository()

# Global instances
vault_client: Optional[VaultClient] = None
search_service: Optional[EvidenceSearchService] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources"""
    global vault_client, search_service

    vault_client = vault_client_from_env()
    ranker = RankingFactory.create(
        evidence_repository,
        vault=vault_client,
        weights=weights_from_env(),
    )
    search_service = EvidenceSearchService(
        repository=evidence_repository,
        ranker=ranker,
        embedder=vault_client,
    )
    logger.info(f"Search strategy: {ranker.get_strategy_info()}")

    yield

    logger.info("Shutting down...")
    if vault_client is not None:
        await vault_client.close()
    vault_client = None
    search_service = None


# FastAPI app
app = FastAPI(
    title="Evidence Search API",
    description="Hybrid keyword / semantic / vault ranking for legal evidence",
    version=APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class HealthResponse(BaseModel):
    status: str
    version: str
    started_at: str
    uptime_seconds: float
    strategy: dict
    documents: int


class EvidenceUpdateRequest(BaseModel):
    filename: Optional[str] = None
    category: Optional[EvidenceCategory] = None
    tags: Optional[List[str]] = None
    summary: Optional[str] = None
    extracted_text: Optional[str] = None
    date_detected: Optional[str] = None
    relevance_score: Optional[int] = None
    embedding: Optional[List[float]] = None
    needs_sync: Optional[bool] = None


class EvidenceListResponse(BaseModel):
    total: int
    documents: List[dict]


class DeleteResponse(BaseModel):
    id: str
    deleted: bool


class KeywordSearchRequest(BaseModel):
    query: str = Field(..., description="Free-text query (blank = no filtering)")


class HybridSearchRequest(BaseModel):
    query: str = Field(..., description="Free-text query")
    embedding: Optional[List[float]] = Field(
        default=None,
        description="Precomputed query embedding. Omit for keyword-only ranking (still weighted)."
    )
    keyword_weight: float = Field(default=0.3, ge=0.0)
    semantic_weight: float = Field(default=0.7, ge=0.0)
    drop_zero_scores: bool = Field(
        default=False,
        description="Exclude documents whose combined score rounds to 0"
    )


class VaultSearchRequest(BaseModel):
    query: str = Field(..., description="Free-text query")
    categories: List[EvidenceCategory] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    method: SearchMethod = "hybrid"
    limit: int = Field(default=50, ge=1, le=200)
    min_score: float = Field(default=0.01, ge=0.0, le=1.0)


class SearchRequest(BaseModel):
    query: str = Field(..., description="Free-text query (blank = list everything)")
    categories: List[EvidenceCategory] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    embedding: Optional[List[float]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "query": "lease",
                "categories": ["contract"],
                "tags": ["lease"],
            }
        }


class SearchResultItem(BaseModel):
    document: dict
    score: int


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResultItem]
    total: int
    source: str


def _document_payload(document: EvidenceDocument) -> dict:
    # embeddings stay server-side
    return document.model_dump(mode="json", exclude={"embedding"})


def _search_response(query: str, matches: List[ScoredMatch], source: str) -> SearchResponse:
    items = [
        SearchResultItem(document=_document_payload(match.document), score=match.score)
        for match in matches
    ]
    return SearchResponse(query=query, results=items, total=len(items), source=source)


def _get_search_service() -> EvidenceSearchService:
    if search_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search service not initialized",
        )
    return search_service


# Routes
@app.get("/", response_model=dict)
async def root():
    """Root endpoint"""
    return {
        "service": "Evidence Search API",
        "version": APP_VERSION,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint"""
    start_time = datetime.fromisoformat(APP_START_TIME.rstrip('Z'))
    uptime = (datetime.utcnow() - start_time).total_seconds()
    strategy = search_service.ranker.get_strategy_info() if search_service else {}

    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        started_at=APP_START_TIME,
        uptime_seconds=round(uptime, 2),
        strategy=strategy,
        documents=len(evidence_repository.list()),
    )


@app.post("/v1/evidence", response_model=dict, status_code=status.HTTP_201_CREATED)
async def put_evidence(document: EvidenceDocument):
    """Store (insert or replace) evidence metadata"""
    evidence_repository.put(document)
    logger.info(f"Stored evidence {document.id}: {document.filename} ({document.category.value})")
    return _document_payload(document)


@app.get("/v1/evidence", response_model=EvidenceListResponse)
async def list_evidence(
    category: List[EvidenceCategory] = Query(default=[]),
    tag: List[str] = Query(default=[]),
    date_start: Optional[str] = None,
    date_end: Optional[str] = None,
    q: str = "",
    sort_by: Literal["date", "relevance", "name"] = "date",
    sort_order: Literal["asc", "desc"] = "desc",
):
    """
    List evidence with list-view filters (no relevance ranking).

    - `category` / `tag` may repeat; a document needs its category listed
      and at least one listed tag
    - `date_start` / `date_end` compare against the detected date, falling
      back to the creation date
    - `q` is a case-insensitive substring match over filename, summary,
      extracted text and tags
    """
    state = FilterState(
        categories=category,
        tags=tag,
        date_start=date_start,
        date_end=date_end,
        search_query=q,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    documents = filter_evidence(evidence_repository.list(), state)
    return EvidenceListResponse(
        total=len(documents),
        documents=[_document_payload(d) for d in documents],
    )


@app.get("/v1/evidence/tags", response_model=List[str])
async def list_tags():
    """All distinct tags, sorted"""
    return evidence_repository.all_tags()


@app.get("/v1/evidence/categories/counts", response_model=Dict[str, int])
async def category_counts():
    """Document count per category"""
    return {category.value: count for category, count in evidence_repository.category_counts().items()}


@app.post("/v1/evidence/sync", response_model=SyncReport)
async def sync_evidence():
    """
    Create local metadata for vault objects that have none.

    New records get category `other` and the `synced-from-vault` tag, so
    vault search results for them stop being flagged `needs_sync`.
    """
    if vault_client is None or not vault_client.vault_id:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vault not configured (set CASE_API_KEY and CASE_VAULT_ID)",
        )
    return await sync_from_vault(evidence_repository, vault_client)


@app.get("/v1/evidence/{evidence_id}", response_model=dict)
async def get_evidence(evidence_id: str):
    """Get evidence metadata by local id"""
    document = evidence_repository.get(evidence_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Evidence {evidence_id} not found",
        )
    return _document_payload(document)


@app.patch("/v1/evidence/{evidence_id}", response_model=dict)
async def update_evidence(evidence_id: str, request: EvidenceUpdateRequest):
    """Update classification results or re-synced fields"""
    try:
        document = evidence_repository.update(evidence_id, **request.model_dump(exclude_unset=True))
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid update: {e.errors()}",
        )
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Evidence {evidence_id} not found",
        )
    return _document_payload(document)


@app.delete("/v1/evidence/{evidence_id}", response_model=DeleteResponse)
async def delete_evidence(evidence_id: str):
    """Delete the whole evidence record"""
    if not evidence_repository.delete(evidence_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Evidence {evidence_id} not found",
        )
    logger.info(f"Deleted evidence {evidence_id}")
    return DeleteResponse(id=evidence_id, deleted=True)


@app.post("/v1/search/keyword", response_model=SearchResponse)
async def search_keyword(request: KeywordSearchRequest):
    """
    Keyword ranking over local metadata.

    Scores: filename 50, summary 30, any tag 20, extracted text 10,
    normalized against 110. Documents matching nothing are omitted.
    """
    results = rank_by_keyword(request.query, evidence_repository)
    return _search_response(request.query, results, source="keyword")


@app.post("/v1/search/hybrid", response_model=SearchResponse)
async def search_hybrid_local(request: HybridSearchRequest):
    """
    Local hybrid ranking: round(keyword × keyword_weight + semantic × semantic_weight).

    Without `embedding` the semantic signal is empty and scores are the
    weighted keyword scores.
    """
    results = rank_by_hybrid_local(
        request.query,
        evidence_repository,
        query_embedding=request.embedding,
        weights=SearchWeights(
            keyword_weight=request.keyword_weight,
            semantic_weight=request.semantic_weight,
        ),
        drop_zero_scores=request.drop_zero_scores,
    )
    return _search_response(request.query, results, source="local_hybrid")


@app.post("/v1/search/vault", response_model=SearchResponse)
async def search_vault(request: VaultSearchRequest):
    """
    Vault-assisted ranking with category/tag filters on local metadata.

    Vault documents without local metadata are returned with
    `needs_sync=true`, category `other` and no tags. A vault failure yields
    an empty result list (no fallback here - see POST /v1/search).
    """
    if vault_client is None or not vault_client.vault_id:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vault not configured (set CASE_API_KEY and CASE_VAULT_ID)",
        )

    results = await rank_by_hybrid_remote(
        request.query,
        vault_client,
        evidence_repository,
        filters=SearchFilters(categories=request.categories, tags=request.tags),
        options=VaultSearchOptions(
            method=request.method,
            limit=request.limit,
            min_score=request.min_score,
        ),
    )
    return _search_response(request.query, results, source="vault")


@app.post("/v1/search", response_model=SearchResponse)
async def search(request: SearchRequest):
    """
    Search with the configured strategy.

    - Vault configured: vault-assisted ranking, falling back to keyword
      ranking when the vault returns nothing or is unreachable
    - No vault: local hybrid ranking, embedding the query when an API key
      is available
    - Blank query: all evidence, unranked
    """
    service = _get_search_service()
    outcome = await service.search(
        request.query,
        filters=SearchFilters(categories=request.categories, tags=request.tags),
        query_embedding=request.embedding,
    )
    return _search_response(outcome.query, outcome.results, source=outcome.source)


@app.exception_handler(InvalidQueryError)
async def invalid_query_handler(request, exc):
    """Programmer error in the query argument"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid query", "detail": str(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc),
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=PORT,
        reload=True,  # Development only
    )
