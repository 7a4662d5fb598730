"""
Vault -> local metadata reconciliation.

Vault objects uploaded elsewhere (or whose metadata was lost) show up in
vault search as `needs_sync` placeholders. Syncing creates a minimal local
record for each such object so later searches resolve it by object id:

    category  other (re-classify later)
    tags      ["synced-from-vault"]
    relevance 50
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import ValidationError

from .models import (
    DEFAULT_CATEGORY,
    DEFAULT_RELEVANCE_SCORE,
    EvidenceDocument,
    SyncReport,
    VaultDocumentRef,
    utc_now_iso,
)
from .repository import EvidenceRepository
from .vault_client import VaultError

logger = logging.getLogger(__name__)

SYNCED_TAG = "synced-from-vault"
UNKNOWN_FILENAME = "Unknown"


class VaultObjectLister(Protocol):
    vault_id: Optional[str]

    async def list_objects(self) -> List[Dict[str, Any]]:
        ...


def _vault_status(value: Any) -> str:
    if value in ("ready", "failed"):
        return value
    return "processing"


def _string_field(vault_object: Dict[str, Any], key: str) -> Optional[str]:
    value = vault_object.get(key)
    return value if isinstance(value, str) and value else None


def _size(vault_object: Dict[str, Any]) -> int:
    try:
        return max(0, int(vault_object.get("size") or 0))
    except (TypeError, ValueError, OverflowError):
        return 0


def document_from_vault_object(vault_id: str, vault_object: Dict[str, Any]) -> EvidenceDocument:
    """Minimal local record for a vault object (new local id)"""
    object_id = str(vault_object["id"])
    filename = _string_field(vault_object, "filename") or UNKNOWN_FILENAME
    content_type = _string_field(vault_object, "contentType") or "application/octet-stream"
    created_at = _string_field(vault_object, "createdAt") or utc_now_iso()
    size_bytes = _size(vault_object)

    return EvidenceDocument(
        id=uuid.uuid4().hex,
        filename=filename,
        content_type=content_type,
        size_bytes=size_bytes,
        category=DEFAULT_CATEGORY,
        tags=[SYNCED_TAG],
        relevance_score=DEFAULT_RELEVANCE_SCORE,
        created_at=created_at,
        vault_doc_ref=VaultDocumentRef(
            vault_id=vault_id,
            object_id=object_id,
            filename=filename,
            content_type=content_type,
            size_bytes=size_bytes,
            uploaded_at=created_at,
            status=_vault_status(vault_object.get("status")),
        ),
    )


async def sync_from_vault(repository: EvidenceRepository, vault: VaultObjectLister) -> SyncReport:
    """
    Create local metadata for vault objects that have none.

    Objects already referenced by a local record are counted as skipped.
    Failures never raise: a failed listing is reported in `errors` with
    nothing synced, and a malformed object is reported and passed over.

    Args:
        repository: Local metadata to add records to
        vault: Vault collaborator able to list its objects

    Returns:
        SyncReport with synced/skipped counts and error messages
    """
    report = SyncReport()

    if not vault.vault_id:
        report.errors.append("No vault ID available")
        return report

    try:
        vault_objects = await vault.list_objects()
    except (VaultError, httpx.HTTPError) as e:
        logger.warning(f"Listing vault objects failed: {e}")
        report.errors.append(f"Failed to list vault objects: {e}")
        return report

    known_object_ids = {d.object_id for d in repository.list() if d.object_id is not None}

    for vault_object in vault_objects:
        if not vault_object.get("id"):
            report.errors.append(f"Vault object without id: {vault_object}")
            continue

        object_id = str(vault_object["id"])
        if object_id in known_object_ids:
            report.skipped += 1
            continue

        try:
            document = document_from_vault_object(vault.vault_id, vault_object)
        except ValidationError as e:
            report.errors.append(f"Invalid vault object {object_id}: {e}")
            continue

        repository.put(document)
        known_object_ids.add(object_id)
        report.synced += 1
        logger.debug(f"Synced vault object {object_id} as {document.id} ({document.filename})")

    logger.info(
        f"Vault sync complete: {report.synced} synced, {report.skipped} skipped, "
        f"{len(report.errors)} errors"
    )
    return report
