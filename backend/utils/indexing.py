"""
indexing.py — Keeps each post's stored embedding in step with its text.

  index_post             — one post: load → embed → single UPDATE
  bulk_index_posts       — every post, sequential, paced for rate limits
  delete_post_embedding  — NULL the column (before/after post deletion)

Nothing here raises for per-post conditions. A failed attempt is reported
as EmbeddingResult(success=False) and leaves the previous vector in place.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

POST_NOT_FOUND = "Post not found"


@dataclass
class EmbeddingResult:
    post_id: int
    success: bool
    error: Optional[str] = None

    def __post_init__(self):
        # error is present exactly when the attempt failed
        if self.success:
            self.error = None
        elif not self.error:
            self.error = "Unknown error"

    def to_dict(self) -> dict:
        payload = {"postId": self.post_id, "success": self.success}
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass
class BulkEmbeddingResult:
    results: List[EmbeddingResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def to_dict(self) -> dict:
        return {
            "total":     self.total,
            "succeeded": self.succeeded,
            "failed":    self.failed,
            "results":   [r.to_dict() for r in self.results],
        }


class IndexingEngine:
    """
    Orchestrates EmbeddingProvider + PostVectorStore.

    Args:
        provider:       Object with generate_embedding(title, content) -> list[float]
        store:          PostVectorStore (or anything with the same methods)
        bulk_delay_ms:  Pause before every bulk item except the first
        sleep:          Sleep function (seconds); injectable for tests
    """

    def __init__(self, provider, store, bulk_delay_ms: int = 200, sleep=time.sleep):
        self.provider = provider
        self.store = store
        self.bulk_delay_ms = bulk_delay_ms
        self._sleep = sleep

    def index_post(self, post_id: int) -> EmbeddingResult:
        try:
            post = self.store.get_post_by_id(post_id)
            if post is None:
                logger.info(f"[Embed] Post {post_id} not found, nothing to index.")
                return EmbeddingResult(post_id, False, POST_NOT_FOUND)

            vector = self.provider.generate_embedding(post.title, post.content)

            if not self.store.set_embedding(post_id, vector):
                # Deleted between the lookup and the write
                return EmbeddingResult(post_id, False, POST_NOT_FOUND)
        except Exception as exc:
            logger.warning(f"[Embed] Indexing post {post_id} failed: {exc}")
            return EmbeddingResult(post_id, False, str(exc) or exc.__class__.__name__)

        logger.info(f"[Embed] Post {post_id} indexed ({len(vector)} dims).")
        return EmbeddingResult(post_id, True)

    def bulk_index_posts(self) -> BulkEmbeddingResult:
        posts = self.store.list_all_posts()
        logger.info(f"[Embed] Bulk indexing {len(posts)} posts.")

        bulk = BulkEmbeddingResult()
        for post in posts:
            if bulk.results:
                self._sleep(self.bulk_delay_ms / 1000.0)
            bulk.results.append(self.index_post(post.id))

        logger.info(
            f"[Embed] Bulk indexing done: {bulk.succeeded}/{bulk.total} succeeded, "
            f"{bulk.failed} failed."
        )
        return bulk

    def delete_post_embedding(self, post_id: int) -> bool:
        try:
            self.store.clear_embedding(post_id)
        except Exception as exc:
            logger.warning(f"[Embed] Clearing embedding for post {post_id} failed: {exc}")
            return False
        return True
