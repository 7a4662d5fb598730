"""Unit test configuration - in-memory repository fixtures"""

import os

import pytest

# Vault settings must not leak in from the developer environment:
# the app picks its ranking strategy from these at startup
for var in ("CASE_API_KEY", "CASE_VAULT_ID", "CASE_API_URL"):
    os.environ.pop(var, None)

from fakes import FakeVault, make_document
from src.models import EvidenceCategory
from src.repository import InMemoryEvidenceRepository
from src.vault_client import VaultError


@pytest.fixture
def lease_corpus():
    """The two-document corpus from the lease scenario"""
    return InMemoryEvidenceRepository([
        make_document("1", filename="lease-agreement.pdf", tags=["lease"]),
        make_document("2", filename="photo.jpg", summary="a scanned photo"),
    ])


@pytest.fixture
def vault_corpus():
    """
    Documents linked to vault objects.

    The third record's local id collides with a vault object id but it has
    no vault reference - lookups by object id must not find it.
    """
    return InMemoryEvidenceRepository([
        make_document(
            "local-1", object_id="obj-contract",
            filename="lease.pdf", category=EvidenceCategory.CONTRACT, tags=["lease", "2024"],
        ),
        make_document(
            "local-2", object_id="obj-email",
            filename="email.eml", category=EvidenceCategory.EMAIL, tags=["correspondence"],
        ),
        make_document(
            "obj-orphan", filename="local-only.txt", category=EvidenceCategory.REPORT,
        ),
    ])


@pytest.fixture
def vault_down():
    """Vault that fails every request"""
    return FakeVault(error=VaultError("connection refused"))
