"""
Pytest configuration and shared fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from api.config import config
from api.database import MemoryBackend
from api.dependencies import get_backend
from api.main import app

ADMIN_KEY = "admin_test_key"
USER_KEY = "user_test_key"


def catalog_documents():
    """
    Three authors and ten books.

    Books 1-9 go round-robin to authors 1, 2, 3; book 10 has no author.
    """
    authors = [
        {"_id": 1, "firstname": "Victor", "lastname": "Hugo"},
        {"_id": 2, "firstname": "Emile", "lastname": "Zola"},
        {"_id": 3, "firstname": "Jules", "lastname": "Verne"},
    ]
    books = [
        {
            "_id": index,
            "title": f"Book {index}",
            "description": f"Description {index}",
            "author_id": ((index - 1) % 3) + 1 if index < 10 else None,
        }
        for index in range(1, 11)
    ]
    return {"authors": authors, "books": books}


@pytest.fixture
def catalog():
    """Seed documents for an in-memory backend."""
    return catalog_documents()


@pytest.fixture
def backend(catalog):
    """In-memory backend seeded with the test catalog."""
    return MemoryBackend(catalog)


@pytest.fixture
def api_keys(monkeypatch):
    """Configure one admin key and one user key."""
    monkeypatch.setattr(config, "admin_api_keys", ADMIN_KEY)
    monkeypatch.setattr(config, "api_keys", USER_KEY)


@pytest.fixture
def client(backend, api_keys):
    """Test client wired to the in-memory backend."""
    app.dependency_overrides[get_backend] = lambda: backend
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_KEY}"}


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {USER_KEY}"}
