"""
posts.py — Public post API.

GET /api/posts          published posts, newest first
GET /api/posts/<slug>   one published post + relatedPosts
"""

import logging
from datetime import datetime, timezone
from flask import Blueprint, request, current_app

from models import Post, PostState
from utils.response import success, error, not_found, paginated
from utils.validation import parse_page_args
from utils.embeddings import get_embedding_service

posts_bp = Blueprint("posts", __name__)
logger = logging.getLogger(__name__)


def serialize_post(post: Post, include_content: bool = True) -> dict:
    data = {
        "id":             post.id,
        "slug":           post.slug,
        "title":          post.title,
        "summary":        post.summary,
        "state":          post.state.value,
        "locale":         post.locale,
        "originalPostId": post.original_post_id,
        "views":          post.views,
        "createdAt":      post.created_at.isoformat() if post.created_at else None,
        "updatedAt":      post.updated_at.isoformat() if post.updated_at else None,
    }
    if include_content:
        data["content"] = post.content
    return data


def _visible_posts(locale: str):
    return Post.query.filter(
        Post.state == PostState.published,
        Post.locale == locale,
        Post.created_at <= datetime.now(timezone.utc),
    )


# ════════════════════════════════════════════════════════════
#  List
# ════════════════════════════════════════════════════════════

@posts_bp.route("", methods=["GET"])
def list_posts():
    """GET /api/posts?locale=ko&page=0&size=10"""
    locale = request.args.get("locale") or current_app.config["DEFAULT_LOCALE"]
    page, size = parse_page_args(request.args)   # ValidationError → 400 via app handler

    try:
        q = _visible_posts(locale).order_by(Post.created_at.desc(), Post.id.desc())
        total = q.count()
        posts = q.offset(page * size).limit(size).all()
    except Exception as e:
        logger.exception("GET /api/posts failed")
        return error(f"Database error: {e}", 500)

    return paginated([serialize_post(p, include_content=False) for p in posts], total, page, size)


# ════════════════════════════════════════════════════════════
#  Detail + related posts
# ════════════════════════════════════════════════════════════

@posts_bp.route("/<slug>", methods=["GET"])
def get_post(slug):
    """
    GET /api/posts/<slug>?locale=ko

    relatedPosts is best-effort: any similarity failure renders as [].
    """
    locale = request.args.get("locale") or current_app.config["DEFAULT_LOCALE"]

    post = _visible_posts(locale).filter(Post.slug == slug).first()
    if not post:
        return not_found("Post")

    related = []
    try:
        related = get_embedding_service().find_similar_posts(
            post.id, post.locale, current_app.config["RELATED_POSTS_LIMIT"]
        )
    except Exception as e:
        logger.warning(f"Failed to get related posts for {post.id}: {e}")

    data = serialize_post(post)
    data["relatedPosts"] = [r.to_dict() for r in related]
    return success(data=data)
