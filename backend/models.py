"""
models.py — Database table definitions for the blog.

The embedding column is declared as Text so the schema also builds on
SQLite. On PostgreSQL, scripts/init_db.py patches it to vector(1536) and
adds the HNSW cosine index. Values are always written in the pgvector text
form '[0.1,0.2,...]'.
"""

from datetime import datetime, timezone
from database import db
from sqlalchemy import (
    Column, Integer, BigInteger, String, Text, DateTime,
    ForeignKey, Enum as PgEnum, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
import enum


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class PostState(enum.Enum):
    draft = "draft"
    published = "published"


# ─────────────────────────────────────────────
# Helper
# ─────────────────────────────────────────────

def utcnow():
    return datetime.now(timezone.utc)


# SQLite only autoincrements INTEGER PRIMARY KEY
PostId = BigInteger().with_variant(Integer, "sqlite")


# ─────────────────────────────────────────────
# Posts
# ─────────────────────────────────────────────

class Post(db.Model):
    __tablename__ = "posts"

    id = Column(PostId, primary_key=True, autoincrement=True)
    slug = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    summary = Column(String(500), nullable=True)
    state = Column(
        PgEnum(PostState, name="post_state_enum"),
        nullable=False,
        default=PostState.draft,
    )
    locale = Column(String(5), nullable=False, default="ko")
    original_post_id = Column(PostId, ForeignKey("posts.id", ondelete="SET NULL"), nullable=True)
    views = Column(Integer, nullable=False, default=0)
    embedding = Column(Text, nullable=True)   # vector(1536) on PostgreSQL
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    original_post = relationship("Post", remote_side=[id], backref="translations")

    __table_args__ = (
        UniqueConstraint("slug", "locale", name="idx_posts_slug_locale"),
        Index("idx_posts_state", "state"),
        Index("idx_posts_locale", "locale"),
        Index("idx_posts_created_at", "created_at"),
    )

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def __repr__(self):
        return f"<Post {self.id} {self.slug} ({self.locale})>"
