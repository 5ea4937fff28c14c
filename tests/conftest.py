"""
Shared pytest fixtures
"""

import pytest
from fastapi.testclient import TestClient

from ledger_store import LedgerStore
from main import create_app
from storage import GroupRepository


@pytest.fixture
def store() -> LedgerStore:
    """Empty ledger store"""
    return LedgerStore()


@pytest.fixture
def trio(store: LedgerStore):
    """Group with members A, B and C and no expenses"""
    return store.create_group("Flat 3B", ["A", "B", "C"])


@pytest.fixture
def repository(tmp_path) -> GroupRepository:
    """Repository writing into a temporary directory"""
    return GroupRepository(str(tmp_path / "data" / "groups.json"))


@pytest.fixture
def client(repository: GroupRepository) -> TestClient:
    """API client backed by a fresh store and a temporary groups file"""
    return TestClient(create_app(repository=repository))
