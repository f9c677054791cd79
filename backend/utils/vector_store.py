"""
vector_store.py — Post embedding persistence and nearest-neighbour queries.

PostgreSQL: cosine distance is computed server-side with the pgvector
            <=> operator (HNSW index created by scripts/init_db.py).
Other:      brute-force cosine scan with numpy over the filtered rows.
            Same filters, same ordering, same limit.

Candidate filter for every nearest query:
    state = published AND locale = :locale AND id != :exclude_id
    AND embedding IS NOT NULL AND created_at <= now
Ordering: distance ascending, then post id ascending.
"""

import json
import logging
from datetime import datetime, timezone

import numpy as np
from sqlalchemy import text as sql_text

from database import db, is_postgres
from models import Post, PostState

logger = logging.getLogger(__name__)


class VectorDimensionError(ValueError):
    """Raised when a vector does not have the configured dimension."""


# ════════════════════════════════════════════════════════════
#  pgvector text format
# ════════════════════════════════════════════════════════════

def to_pgvector(vector) -> str:
    """Format a sequence of floats as a pgvector literal: '[0.1,0.2,...]'."""
    return "[" + ",".join(str(float(v)) for v in vector) + "]"


def from_pgvector(value):
    """Parse a stored pgvector literal back into a list of floats. None stays None."""
    if value is None:
        return None
    if isinstance(value, str):
        return [float(v) for v in json.loads(value)]
    return [float(v) for v in value]


# ════════════════════════════════════════════════════════════
#  Store
# ════════════════════════════════════════════════════════════

class PostVectorStore:
    """Reads posts and reads/writes their embedding column through db.session."""

    def __init__(self, dimensions: int = 1536):
        self.dimensions = dimensions

    # ── Post lookups ──────────────────────────────────────────

    def get_post_by_id(self, post_id: int):
        return db.session.get(Post, post_id)

    def list_all_posts(self) -> list:
        """Every post (id, title, content) regardless of state or locale, by id."""
        return (
            db.session.query(Post.id, Post.title, Post.content)
            .order_by(Post.id.asc())
            .all()
        )

    def get_embedding(self, post_id: int):
        """Stored vector for a post, or None if the post or its vector is missing."""
        row = db.session.query(Post.embedding).filter(Post.id == post_id).first()
        if row is None:
            return None
        return from_pgvector(row.embedding)

    # ── Writes ────────────────────────────────────────────────

    def set_embedding(self, post_id: int, vector) -> bool:
        """
        Replace the post's embedding in a single UPDATE.
        Returns False if no row matched. On error the transaction is rolled
        back so the previous vector survives, and the error is re-raised.
        """
        if len(vector) != self.dimensions:
            raise VectorDimensionError(
                f"Expected {self.dimensions}-dim embedding, got {len(vector)}"
            )

        if is_postgres():
            sql = "UPDATE posts SET embedding = CAST(:vec AS vector) WHERE id = :post_id"
        else:
            sql = "UPDATE posts SET embedding = :vec WHERE id = :post_id"

        return self._execute_update(sql, {"vec": to_pgvector(vector), "post_id": post_id})

    def clear_embedding(self, post_id: int) -> bool:
        return self._execute_update(
            "UPDATE posts SET embedding = NULL WHERE id = :post_id",
            {"post_id": post_id},
        )

    def _execute_update(self, sql: str, params: dict) -> bool:
        try:
            result = db.session.execute(sql_text(sql), params)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return result.rowcount > 0

    # ── Nearest neighbours ────────────────────────────────────

    def query_nearest_by_vector(self, exclude_id: int, locale: str, vector, limit: int, now=None) -> list:
        """
        Return up to `limit` candidate posts closest to `vector`.

        Each row is a dict: { id, slug, title, distance } with
        distance = cosine distance (0 = identical direction).
        """
        if limit <= 0:
            return []
        now = now or datetime.now(timezone.utc)

        if is_postgres():
            return self._nearest_pgvector(exclude_id, locale, vector, limit, now)
        return self._nearest_scan(exclude_id, locale, vector, limit, now)

    def _nearest_pgvector(self, exclude_id, locale, vector, limit, now) -> list:
        rows = db.session.execute(sql_text(
            """
            SELECT id, slug, title,
                   (embedding <=> CAST(:vec AS vector)) AS distance
            FROM posts
            WHERE state = 'published'
              AND locale = :locale
              AND id != :exclude_id
              AND embedding IS NOT NULL
              AND created_at <= :now
            ORDER BY distance ASC, id ASC
            LIMIT :limit
            """
        ), {
            "vec":        to_pgvector(vector),
            "locale":     locale,
            "exclude_id": exclude_id,
            "now":        now,
            "limit":      limit,
        }).fetchall()

        return [
            {"id": r.id, "slug": r.slug, "title": r.title, "distance": float(r.distance)}
            for r in rows
            if r.distance is not None
        ]

    def _nearest_scan(self, exclude_id, locale, vector, limit, now) -> list:
        query = np.asarray(vector, dtype=float)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            return []

        rows = (
            db.session.query(Post.id, Post.slug, Post.title, Post.embedding)
            .filter(
                Post.state == PostState.published,
                Post.locale == locale,
                Post.id != exclude_id,
                Post.embedding.isnot(None),
                Post.created_at <= now,
            )
            .all()
        )

        scored = []
        for r in rows:
            candidate = np.asarray(from_pgvector(r.embedding), dtype=float)
            if candidate.shape != query.shape:
                logger.debug(f"[Vectors] Skipping post {r.id}: dimension {candidate.shape[0]}")
                continue
            norm = np.linalg.norm(candidate)
            if norm == 0:
                continue
            distance = 1.0 - float(np.dot(query, candidate) / (query_norm * norm))
            scored.append({"id": r.id, "slug": r.slug, "title": r.title, "distance": distance})

        scored.sort(key=lambda row: (row["distance"], row["id"]))
        return scored[:limit]
