"""
Evidence metadata repository.

Rankers receive a repository explicitly instead of reading a global cache,
so scoring has no hidden state and can be tested against the in-memory
implementation.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .models import EvidenceCategory, EvidenceDocument

logger = logging.getLogger(__name__)


class EvidenceRepository(ABC):
    """Stores evidence metadata keyed by local document id."""

    @abstractmethod
    def get(self, document_id: str) -> Optional[EvidenceDocument]:
        """Return the document with this local id, or None"""

    @abstractmethod
    def put(self, document: EvidenceDocument) -> None:
        """Insert the document, replacing any record with the same id"""

    @abstractmethod
    def delete(self, document_id: str) -> bool:
        """Remove the whole record. Returns False if it did not exist."""

    @abstractmethod
    def list(self) -> List[EvidenceDocument]:
        """Return all documents in insertion order"""

    def find_by_object_id(self, object_id: str) -> Optional[EvidenceDocument]:
        """
        Resolve a vault object id to local metadata.

        Matches against `vault_doc_ref.object_id` only - the local `id`
        is a different identifier space and is never compared here.
        """
        for document in self.list():
            if document.object_id is not None and document.object_id == object_id:
                return document
        return None

    def update(self, document_id: str, **changes) -> Optional[EvidenceDocument]:
        """
        Apply field changes to an existing document.

        Returns the updated document, or None if the id is unknown.
        """
        current = self.get(document_id)
        if current is None:
            return None
        changes.pop("id", None)
        updated = EvidenceDocument.model_validate({**current.model_dump(), **changes})
        self.put(updated)
        return updated

    def all_tags(self) -> List[str]:
        """Unique tags across all documents, sorted"""
        tags = set()
        for document in self.list():
            tags.update(document.tags)
        return sorted(tags)

    def category_counts(self) -> Dict[EvidenceCategory, int]:
        """Number of documents per category (every category present, zero included)"""
        counts = {category: 0 for category in EvidenceCategory}
        for document in self.list():
            counts[document.category] += 1
        return counts


class InMemoryEvidenceRepository(EvidenceRepository):
    """Dict-backed repository (insertion ordered)"""

    def __init__(self, documents: Optional[List[EvidenceDocument]] = None):
        self._documents: Dict[str, EvidenceDocument] = {}
        for document in documents or []:
            self.put(document)

    def get(self, document_id: str) -> Optional[EvidenceDocument]:
        return self._documents.get(document_id)

    def put(self, document: EvidenceDocument) -> None:
        self._documents[document.id] = document
        logger.debug(f"Stored evidence metadata: {document.id} ({document.filename})")

    def delete(self, document_id: str) -> bool:
        if document_id not in self._documents:
            return False
        del self._documents[document_id]
        logger.debug(f"Deleted evidence metadata: {document_id}")
        return True

    def list(self) -> List[EvidenceDocument]:
        return list(self._documents.values())

    def __len__(self) -> int:
        return len(self._documents)
