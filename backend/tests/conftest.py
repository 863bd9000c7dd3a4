"""Shared pytest fixtures for all tests.

These fixtures properly clean up resources to prevent file descriptor leaks.
"""

import gc
from datetime import datetime, timedelta, UTC
from unittest.mock import AsyncMock

import pytest

from campus.db.connection import Database
from campus.db.migrations import run_migrations
from campus.errors import EmbeddingUnavailable
from campus.posts.store import PostStore

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class FakeEmbeddings:
    """Embedding provider returning preset vectors.

    Unknown text gets the default vector; with no default it fails like an
    unreachable provider would.
    """

    def __init__(self, vectors=None, default=None):
        self.vectors = dict(vectors or {})
        self.default = default
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.vectors:
            return list(self.vectors[text])
        if self.default is None:
            raise EmbeddingUnavailable(f"No vector for {text!r}")
        return list(self.default)


class FakeSession:
    """Stand-in for a WebSocket that records pushed payloads."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []

    async def send_json(self, data) -> None:
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(data)


async def _json_reply(prompt, system_prompt=None):
    if "sentiment" in prompt:
        return '{"score": 0.2, "label": "positive"}'
    return '["placements", "aptitude"]'


@pytest.fixture(autouse=True)
def cleanup_after_test():
    """Clean up resources after each test to prevent file descriptor leaks."""
    yield
    # Force garbage collection to release file handles
    gc.collect()


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database with the production schema."""
    db = Database(tmp_path / "test.db")
    run_migrations(db)
    yield db
    # Clean up to release file handles
    db.close()
    gc.collect()


@pytest.fixture
def store(temp_db):
    return PostStore(temp_db)


@pytest.fixture
def users(store):
    """Three users: an author and two voters."""
    return {
        "author": store.add_user("Asha Patil", "asha@example.edu", "Computer", "TE"),
        "voter": store.add_user("Ravi Kumar", "ravi@example.edu", "IT", "SE"),
        "other": store.add_user("Meera Shah", "meera@example.edu", "Civil", "BE"),
    }


@pytest.fixture
def make_post(store, users):
    """Factory for posts with explicit embeddings and creation times."""
    counter = {"n": 0}

    def _make(
        embedding=None,
        title=None,
        body="Post body",
        scope="Computer",
        author=None,
        age_minutes=None,
        post_id=None,
    ):
        counter["n"] += 1
        n = counter["n"]
        minutes = n if age_minutes is None else age_minutes
        return store.create_post(
            author_id=(author or users["author"]).id,
            title=title or f"Post {n}",
            body=body,
            scope=scope,
            embedding=embedding,
            post_id=post_id,
            created_at=BASE_TIME + timedelta(minutes=minutes),
        )

    return _make


@pytest.fixture
def mock_llm():
    """Mock LLMClient for testing."""
    llm = AsyncMock()
    llm.complete.return_value = "According to community discussions, start early."
    llm.generate.return_value = "A short summary."
    llm.generate_with_json.return_value = '{"score": 0.5, "label": "positive"}'
    return llm


@pytest.fixture
def api_env(tmp_path, monkeypatch):
    """Point the app at a temporary data directory with fake providers.

    Yields:
        dict with 'data_dir', 'store', 'embeddings' and 'llm'
    """
    from campus.config import load_settings
    from campus.api.deps import (
        _reset_db_instance,
        _reset_embeddings_instance,
        _reset_llm_instance,
        get_embeddings,
        get_llm,
        get_settings,
        get_store,
    )
    from campus.main import app

    data_dir = tmp_path / "campus"
    data_dir.mkdir()
    monkeypatch.setenv("CAMPUS_DATA_DIR", str(data_dir))
    monkeypatch.delenv("CAMPUS_ENV", raising=False)

    # Clear caches before setting up
    load_settings.cache_clear()
    get_settings.cache_clear()
    _reset_db_instance()
    _reset_llm_instance()
    _reset_embeddings_instance()

    embeddings = FakeEmbeddings(default=[1.0, 0.0])
    llm = AsyncMock()
    llm.complete.return_value = "According to community discussions, start early."
    llm.generate.return_value = "A short summary."
    llm.generate_with_json.side_effect = _json_reply
    app.dependency_overrides[get_embeddings] = lambda: embeddings
    app.dependency_overrides[get_llm] = lambda: llm

    yield {
        "data_dir": data_dir,
        "store": get_store(),
        "embeddings": embeddings,
        "llm": llm,
    }

    # Cleanup
    app.dependency_overrides.clear()
    _reset_db_instance()
    _reset_llm_instance()
    _reset_embeddings_instance()
    load_settings.cache_clear()
    get_settings.cache_clear()


@pytest.fixture
async def client(api_env):
    """Create async test client."""
    from httpx import ASGITransport, AsyncClient

    from campus.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def fake_embeddings():
    """The FakeEmbeddings class, for tests that build their own vectors."""
    return FakeEmbeddings


@pytest.fixture
def fake_session():
    """The FakeSession class."""
    return FakeSession
