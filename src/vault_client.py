"""
Vault API client for remote search and embeddings.

The vault (case.dev style API) owns OCR, chunk embeddings and its own
vector + BM25 fusion. This client only:
- Sends search requests and normalizes the chunk-level response into one
  VaultSearchResult per vault object (best chunk wins)
- Requests query embeddings for local semantic ranking

Response shapes seen from the search endpoint:
    [...]                                  bare list of chunks
    {"chunks": [...], "sources": [...]}    chunks plus object -> filename map
    {"results": [...]} / {"data": [...]}   wrapped list of chunks

Chunk score fields, in priority order:
    hybridScore   0-1, higher is better (hybrid method)
    distance      cosine distance 0-2, lower is better -> max(0, 1 - distance/2)
    score / relevance  0-1, higher is better
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .models import VaultSearchOptions, VaultSearchResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.case.dev"
DEFAULT_TIMEOUT_SECONDS = 30.0
EMBEDDING_MODEL = "text-embedding-3-small"
MAX_EMBEDDING_CHARS = 30000


class VaultError(Exception):
    """Vault request failed (transport error, timeout or non-2xx response)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def chunk_score(chunk: Dict[str, Any]) -> float:
    """Relevance of a single chunk on a 0-1 scale (higher is better)"""
    if chunk.get("hybridScore") is not None:
        return float(chunk["hybridScore"])
    if chunk.get("distance") is not None:
        return max(0.0, 1.0 - float(chunk["distance"]) / 2.0)
    return float(chunk.get("score") or chunk.get("relevance") or 0)


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def parse_search_response(payload: Any) -> List[VaultSearchResult]:
    """
    Collapse a chunk-level search response into per-object results.

    Args:
        payload: Decoded JSON body of the vault search endpoint

    Returns:
        One VaultSearchResult per object id, sorted by score (descending).
        When a `sources` list is present, objects without a source entry are
        dropped (stale index entries for deleted objects). Entries that are
        not JSON objects are skipped.

    Raises:
        ValueError / TypeError: A chunk carries a non-numeric score
    """
    chunks: List[Any] = []
    sources: List[Any] = []

    if isinstance(payload, list):
        chunks = payload
    elif isinstance(payload, dict):
        if payload.get("chunks") is not None:
            chunks = _as_list(payload["chunks"])
            sources = _as_list(payload.get("sources"))
        elif payload.get("results") is not None:
            chunks = _as_list(payload["results"])
        elif payload.get("data") is not None:
            chunks = _as_list(payload["data"])

    source_filenames = {
        str(source.get("id")): source.get("filename")
        for source in sources
        if isinstance(source, dict) and source.get("id") is not None
    }

    # object_id -> best chunk
    best: Dict[str, Dict[str, Any]] = {}
    for chunk in chunks:
        if not isinstance(chunk, dict):
            logger.debug(f"Skipping malformed vault chunk: {chunk!r}")
            continue
        object_id = chunk.get("object_id") or chunk.get("objectId") or chunk.get("id")
        if not object_id:
            logger.debug(f"Skipping vault chunk without object id: {chunk}")
            continue
        object_id = str(object_id)

        score = chunk_score(chunk)
        existing = best.get(object_id)
        if existing is None or score > existing["score"]:
            metadata = chunk.get("metadata")
            filename = chunk.get("filename")
            text = chunk.get("text")
            best[object_id] = {
                "score": score,
                "text": text if isinstance(text, str) else "",
                "filename": filename if isinstance(filename, str) else None,
                "metadata": metadata if isinstance(metadata, dict) else {},
            }

    results = []
    for object_id, entry in best.items():
        filename = entry["filename"]
        if sources:
            filename = source_filenames.get(object_id)
            if not filename:
                logger.debug(f"Skipping orphaned vault index entry: {object_id}")
                continue

        results.append(VaultSearchResult(
            object_id=object_id,
            score=entry["score"],
            filename=str(filename) if filename is not None else None,
            matched_text=entry["text"],
            metadata=entry["metadata"],
        ))

    results.sort(key=lambda result: result.score, reverse=True)
    return results


class VaultClient:
    """
    Async HTTP client for the vault API.

    Embeddings only need the API key; search also needs a vault id.
    """

    def __init__(
        self,
        api_key: str,
        vault_id: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize vault client.

        Args:
            api_key: Bearer token for the vault API
            vault_id: Vault to search (None = embeddings only)
            base_url: API root (default: https://api.case.dev)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        if not api_key:
            raise ValueError("api_key is required for VaultClient")

        self.vault_id = vault_id
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        logger.info(f"VaultClient initialized: vault={vault_id}, base_url={self.base_url}")

    async def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self.client.request(method, path, json=body)
        except httpx.TimeoutException as e:
            raise VaultError(f"Vault request timed out: {path}") from e
        except httpx.HTTPError as e:
            raise VaultError(f"Vault request failed: {path} - {e}") from e

        if response.status_code >= 400:
            raise VaultError(
                f"Vault API error {response.status_code} for {path}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise VaultError(f"Vault returned invalid JSON for {path}") from e

    async def search(
        self,
        query: str,
        options: Optional[VaultSearchOptions] = None,
    ) -> List[VaultSearchResult]:
        """
        Search the vault.

        Args:
            query: Free-text query
            options: Method, limit and min score (defaults: hybrid, 50, 0.01)

        Returns:
            Per-object results sorted by score (descending)

        Raises:
            VaultError: Vault unreachable or returned an error
        """
        if not self.vault_id:
            raise ValueError("VaultClient has no vault_id configured; search unavailable")

        options = options or VaultSearchOptions()
        payload = await self._request(
            "POST",
            f"/vault/{self.vault_id}/search",
            {
                "query": query,
                "method": options.method,
                "limit": options.limit,
                "minScore": options.min_score,
            },
        )
        try:
            results = parse_search_response(payload)
        except (AttributeError, TypeError, ValueError, ValidationError) as e:
            raise VaultError(f"Unexpected vault search response: {e}") from e
        logger.info(f"Vault search ({options.method}) for '{query}': {len(results)} documents")
        return results

    async def embed(self, text: str) -> List[float]:
        """
        Generate an embedding vector for text.

        Raises:
            VaultError: Request failed or response carried no usable embedding
        """
        payload = await self._request(
            "POST",
            "/llm/v1/embeddings",
            {"input": text[:MAX_EMBEDDING_CHARS], "model": EMBEDDING_MODEL},
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        first = data[0] if isinstance(data, list) and data else None
        embedding = first.get("embedding") if isinstance(first, dict) else None
        if not embedding or not isinstance(embedding, list):
            raise VaultError("No embedding returned")
        try:
            return [float(value) for value in embedding]
        except (TypeError, ValueError) as e:
            raise VaultError(f"Embedding contains non-numeric values: {e}") from e

    async def list_objects(self) -> List[Dict[str, Any]]:
        """
        List every object stored in the vault.

        Accepts a bare list or a list wrapped in `objects` / `data`; entries
        that are not JSON objects are dropped.

        Raises:
            VaultError: Request failed
        """
        if not self.vault_id:
            raise ValueError("VaultClient has no vault_id configured; listing unavailable")

        payload = await self._request("GET", f"/vault/{self.vault_id}/objects")
        if isinstance(payload, dict):
            payload = payload.get("objects") or payload.get("data") or []
        objects = [entry for entry in _as_list(payload) if isinstance(entry, dict)]
        logger.info(f"Vault {self.vault_id} lists {len(objects)} objects")
        return objects

    def get_client_info(self) -> dict:
        return {
            "vault_id": self.vault_id,
            "base_url": self.base_url,
        }

    async def close(self):
        """Close the underlying HTTP client"""
        await self.client.aclose()
