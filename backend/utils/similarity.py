"""
similarity.py — Related posts by embedding cosine similarity.

similarity = 1 - cosine_distance, so 1.0 is the same direction and
results come back most similar first.
"""

import logging
from dataclasses import dataclass, asdict

logger = logging.getLogger(__name__)


@dataclass
class RelatedPost:
    id: int
    slug: str
    title: str
    similarity: float

    def to_dict(self) -> dict:
        return asdict(self)


class SimilaritySearch:

    def __init__(self, store):
        self.store = store

    def find_similar_posts(self, post_id: int, locale: str, limit: int) -> list:
        """
        Closest published posts in `locale` to post `post_id`, excluding itself.

        Returns [] when the post is missing, has no embedding yet, or the
        store fails. Never raises.
        """
        if limit <= 0:
            return []

        try:
            embedding = self.store.get_embedding(post_id)
            if embedding is None:
                return []

            rows = self.store.query_nearest_by_vector(post_id, locale, embedding, limit)
            related = [
                RelatedPost(
                    id=row["id"],
                    slug=row["slug"],
                    title=row["title"],
                    similarity=1.0 - float(row["distance"]),
                )
                for row in rows
                if row["id"] != post_id
            ]
        except Exception as exc:
            logger.warning(f"[Related] Similar posts lookup for {post_id} failed: {exc}")
            return []

        return related[:limit]
