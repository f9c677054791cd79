"""
conftest.py — Pytest fixtures for the blog backend.

Uses an in-memory SQLite database so no PostgreSQL connection is needed.
pgvector's <=> operator is not available in SQLite; PostVectorStore falls
back to its numpy cosine scan there, which keeps the same filters and
ordering. The OpenAI client is replaced by FakeOpenAI, which returns
deterministic 3-dim vectors keyed by post title.
"""

import os
import sys
from contextlib import nullcontext
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from flask import has_app_context

# Put backend on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

os.environ.setdefault("FLASK_ENV",        "testing")
os.environ.setdefault("FLASK_SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL",     "sqlite:///:memory:")
os.environ.setdefault("REDIS_URL",        "redis://localhost:6379/0")

from werkzeug.security import generate_password_hash  # noqa: E402

from config import Config  # noqa: E402


class TestConfig(Config):
    TESTING                   = True
    DEBUG                     = False
    SQLALCHEMY_DATABASE_URI   = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    OPENAI_API_KEY            = "test-key"
    EMBEDDING_DIMENSIONS      = 3
    BULK_EMBED_DELAY_MS       = 0
    BACKGROUND_TASKS          = "thread"
    DEFAULT_LOCALE            = "ko"
    RELATED_POSTS_LIMIT       = 4
    ADMIN_USERNAME            = "admin"
    ADMIN_PASSWORD_HASH       = generate_password_hash("testpass")


# ─── Fake OpenAI ──────────────────────────────────────────────────────────────

class FakeEmbeddingsAPI:
    """
    Stand-in for openai.OpenAI().embeddings.

    vectors:       title → vector returned for that title
    failures:      number of upcoming calls that raise ConnectionError
    empty_replies: number of upcoming calls that return no data
    """

    def __init__(self):
        self.calls = []
        self.vectors = {}
        self.default = [1.0, 0.0, 0.0]
        self.failures = 0
        self.empty_replies = 0

    def create(self, model, input):
        self.calls.append({"model": model, "input": input})
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("provider unavailable")
        if self.empty_replies > 0:
            self.empty_replies -= 1
            return SimpleNamespace(data=[])

        title = input.split("\n\n", 1)[0]
        vector = self.vectors.get(title, self.default)
        return SimpleNamespace(data=[SimpleNamespace(embedding=list(vector))])


class FakeOpenAI:
    def __init__(self):
        self.embeddings = FakeEmbeddingsAPI()


# ─── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def sleeps():
    """Seconds passed to the provider's sleep, in order."""
    return []


@pytest.fixture
def provider(fake_openai, sleeps):
    from utils.embeddings import EmbeddingProvider
    return EmbeddingProvider(api_key="test-key", client=fake_openai, sleep=sleeps.append)


@pytest.fixture
def app(provider):
    """Fresh application + empty in-memory database per test."""
    from app import create_app
    from database import db
    import models  # noqa: F401

    test_app = create_app(TestConfig, embedding_provider=provider)
    with test_app.app_context():
        db.create_all()

    yield test_app

    with test_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def service(app_ctx):
    from utils.embeddings import get_embedding_service
    return get_embedding_service()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    """Authenticated admin test client."""
    with app.test_client() as c:
        with c.session_transaction() as sess:
            sess["admin"] = True
            sess["username"] = "admin"
        yield c


@pytest.fixture
def make_post(app):
    """
    Insert a post and return its id.

        make_post(title="A", locale="ko", state="published", embedding=[1, 0, 0])
    """
    from database import db
    from models import Post, PostState
    from utils.vector_store import to_pgvector

    counter = {"n": 0}

    def _make(title=None, content="Body text", locale="ko", state="published",
              embedding=None, slug=None, created_at=None):
        counter["n"] += 1
        n = counter["n"]
        with _context(app):
            post = Post(
                slug=slug or f"post-{n}",
                title=title or f"Post {n}",
                content=content,
                summary=f"Summary {n}",
                state=PostState[state],
                locale=locale,
                embedding=to_pgvector(embedding) if embedding is not None else None,
                created_at=created_at or datetime.now(timezone.utc) - timedelta(days=1),
            )
            db.session.add(post)
            db.session.commit()
            return post.id

    return _make


@pytest.fixture
def stored_embedding(app):
    """Read a post's embedding straight from the database."""
    from utils.vector_store import PostVectorStore

    def _read(post_id):
        with _context(app):
            return PostVectorStore(dimensions=3).get_embedding(post_id)

    return _read


def _context(app):
    """Reuse the active app context (and its session) when a test holds one."""
    return nullcontext() if has_app_context() else app.app_context()
