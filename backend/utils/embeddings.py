"""
embeddings.py — OpenAI embedding provider and the embedding service.

This is the ONLY module that talks to the embedding API. To swap to a
local model, replace EmbeddingProvider. Nothing else changes.

Current provider: OpenAI text-embedding-3-small (1536 dimensions)

The EmbeddingService is built once in create_app() and kept on
app.extensions["embedding_service"]. Routes and tasks reach it through
get_embedding_service().
"""

import time
import logging

import openai
from flask import current_app

from utils.retry import call_with_backoff
from utils.vector_store import PostVectorStore
from utils.indexing import IndexingEngine
from utils.similarity import SimilaritySearch

logger = logging.getLogger(__name__)

EXTENSION_KEY = "embedding_service"


class EmbeddingConfigError(RuntimeError):
    """The embedding provider is not configured (e.g. missing API key)."""


class EmbeddingResponseError(RuntimeError):
    """The provider answered without a usable vector."""


# ════════════════════════════════════════════════════════════
#  Provider
# ════════════════════════════════════════════════════════════

class EmbeddingProvider:
    """
    Turns a post's (title, content) into a vector.

    Args:
        api_key:         OpenAI API key. Required.
        model:           Embedding model name
        max_attempts:    Total attempts per call
        retry_delay_ms:  Wait before the 2nd attempt; doubles after each failure
        client:          Pre-built OpenAI-compatible client (tests)
        sleep:           Sleep function used between attempts

    Raises:
        EmbeddingConfigError if api_key is empty
    """

    def __init__(self, api_key: str, model: str = "text-embedding-3-small",
                 max_attempts: int = 3, retry_delay_ms: int = 1000,
                 client=None, sleep=time.sleep):
        if not api_key:
            raise EmbeddingConfigError("OPENAI_API_KEY not configured.")
        self.model = model
        self.max_attempts = max_attempts
        self.retry_delay_ms = retry_delay_ms
        self._client = client or openai.OpenAI(api_key=api_key)
        self._sleep = sleep

    def generate_embedding(self, title: str, content: str) -> list:
        """
        Embed "<title>\\n\\n<content>".

        Retries on any failure; the last error is raised once attempts
        are exhausted.
        """
        text = f"{title}\n\n{content}"
        return call_with_backoff(
            self._request_embedding, text,
            max_attempts=self.max_attempts,
            base_delay_ms=self.retry_delay_ms,
            sleep=self._sleep,
            log=logger,
        )

    def _request_embedding(self, text: str) -> list:
        response = self._client.embeddings.create(model=self.model, input=text)

        data = getattr(response, "data", None)
        embedding = getattr(data[0], "embedding", None) if data else None
        if not embedding:
            raise EmbeddingResponseError("Invalid response from OpenAI")
        return list(embedding)


# ════════════════════════════════════════════════════════════
#  Service
# ════════════════════════════════════════════════════════════

class EmbeddingService:
    """Indexing + similarity search sharing one provider and one store."""

    def __init__(self, provider, store, bulk_delay_ms: int = 200,
                 default_locale: str = "ko", default_limit: int = 4, sleep=time.sleep):
        self.store = store
        self.default_locale = default_locale
        self.default_limit = default_limit
        self.indexer = IndexingEngine(provider, store, bulk_delay_ms=bulk_delay_ms, sleep=sleep)
        self.search = SimilaritySearch(store)

    def index_post(self, post_id: int):
        return self.indexer.index_post(post_id)

    def bulk_index_posts(self):
        return self.indexer.bulk_index_posts()

    def delete_post_embedding(self, post_id: int) -> bool:
        return self.indexer.delete_post_embedding(post_id)

    def find_similar_posts(self, post_id: int, locale: str = None, limit: int = None) -> list:
        return self.search.find_similar_posts(
            post_id,
            locale or self.default_locale,
            self.default_limit if limit is None else limit,
        )


def build_embedding_service(config, provider=None, store=None) -> EmbeddingService:
    """Build the service from a Flask config mapping."""
    if provider is None:
        provider = EmbeddingProvider(
            api_key=config.get("OPENAI_API_KEY"),
            model=config.get("EMBEDDING_MODEL", "text-embedding-3-small"),
            max_attempts=config.get("EMBEDDING_MAX_ATTEMPTS", 3),
            retry_delay_ms=config.get("EMBEDDING_RETRY_DELAY_MS", 1000),
        )
    if store is None:
        store = PostVectorStore(dimensions=config.get("EMBEDDING_DIMENSIONS", 1536))

    return EmbeddingService(
        provider,
        store,
        bulk_delay_ms=config.get("BULK_EMBED_DELAY_MS", 200),
        default_locale=config.get("DEFAULT_LOCALE", "ko"),
        default_limit=config.get("RELATED_POSTS_LIMIT", 4),
    )


def init_embedding_service(app, provider=None, store=None) -> EmbeddingService:
    """Create the service for this app. Raises EmbeddingConfigError if misconfigured."""
    service = build_embedding_service(app.config, provider=provider, store=store)
    app.extensions[EXTENSION_KEY] = service
    logger.info(f"[Embed] Embedding service ready (model={app.config.get('EMBEDDING_MODEL')}).")
    return service


def get_embedding_service() -> EmbeddingService:
    return current_app.extensions[EXTENSION_KEY]
