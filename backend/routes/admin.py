"""
admin.py — Admin post management and embedding maintenance.

Post CRUD       → writes commit first, embedding work is scheduled detached
Embed actions   → run synchronously and report the outcome
"""

import logging
from datetime import datetime, timezone
from flask import Blueprint, request, current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from database import db
from models import Post, PostState
from routes.posts import serialize_post
from utils.response import success, created, error, not_found, paginated
from utils.auth import admin_required
from utils.validation import validate_post_data, parse_id, parse_page_args, ValidationError
from utils.indexing import POST_NOT_FOUND
from utils.embeddings import get_embedding_service
from tasks.embeddings import schedule_post_indexing, schedule_embedding_delete

admin_bp = Blueprint("admin", __name__)
logger = logging.getLogger(__name__)


def _parse_created_at(value):
    """ISO-8601 string → aware UTC datetime. None passes through."""
    if value in (None, ""):
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("createdAt must be an ISO-8601 datetime")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    # SQLite drops the offset on write, so everything is stored as UTC
    return parsed.astimezone(timezone.utc)


def _admin_post(post: Post) -> dict:
    data = serialize_post(post)
    data["hasEmbedding"] = post.has_embedding
    return data


# ════════════════════════════════════════════════════════════
#  Post CRUD
# ════════════════════════════════════════════════════════════

@admin_bp.route("/posts", methods=["GET"])
@admin_required
def list_posts():
    """
    GET /api/admin/posts?locale=&page=0&size=10&embedded=true|false
    All posts regardless of state, newest first, with hasEmbedding.
    """
    locale   = request.args.get("locale")
    embedded = request.args.get("embedded")
    try:
        page, size = parse_page_args(request.args)
    except ValidationError as e:
        return error(str(e), 400)

    try:
        q = Post.query
        if locale:
            q = q.filter(Post.locale == locale)
        if embedded == "true":
            q = q.filter(Post.embedding.isnot(None))
        elif embedded == "false":
            q = q.filter(Post.embedding.is_(None))

        q = q.order_by(Post.created_at.desc(), Post.id.desc())
        total = q.count()
        posts = q.offset(page * size).limit(size).all()
    except Exception as e:
        logger.exception("GET /api/admin/posts failed")
        return error(f"Database error: {e}", 500)

    return paginated([_admin_post(p) for p in posts], total, page, size)


@admin_bp.route("/posts", methods=["POST"])
@admin_required
def create_post():
    """
    POST /api/admin/posts
    Body: { slug, title, content, summary, state, locale?, originalPostId?, createdAt? }
    """
    body = request.get_json() or {}

    errors = validate_post_data(body, require_slug=True)
    if errors:
        return error(", ".join(errors), 400)

    try:
        created_at = _parse_created_at(body.get("createdAt"))
    except ValidationError as e:
        return error(str(e), 400)

    post = Post(
        slug             = body["slug"],
        title            = body["title"].strip(),
        content          = body["content"],
        summary          = body["summary"].strip(),
        state            = PostState[body["state"]],
        locale           = body.get("locale") or current_app.config["DEFAULT_LOCALE"],
        original_post_id = parse_id(body.get("originalPostId")),
    )
    if created_at:
        post.created_at = created_at

    try:
        db.session.add(post)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return error(f"Slug '{body['slug']}' already exists for this locale", 409)

    logger.info(f"[Admin] Post {post.id} created ({post.state.value}, {post.locale}).")
    schedule_post_indexing(post.id)

    return created(data=_admin_post(post))


@admin_bp.route("/posts/<post_id>", methods=["GET"])
@admin_required
def get_post(post_id):
    pid = parse_id(post_id)
    if pid is None:
        return error("Invalid post ID", 400)

    post = db.session.get(Post, pid)
    if not post:
        return not_found("Post")
    return success(data=_admin_post(post))


@admin_bp.route("/posts/<post_id>", methods=["PUT"])
@admin_required
def update_post(post_id):
    """
    PUT /api/admin/posts/<id>
    Body: { title, content, summary, state, slug?, createdAt? }
    """
    pid = parse_id(post_id)
    if pid is None:
        return error("Invalid post ID", 400)

    body = request.get_json() or {}
    errors = validate_post_data(body)
    if errors:
        return error(", ".join(errors), 400)

    post = db.session.get(Post, pid)
    if not post:
        return not_found("Post")

    try:
        created_at = _parse_created_at(body.get("createdAt"))
    except ValidationError as e:
        return error(str(e), 400)

    post.title   = body["title"].strip()
    post.content = body["content"]
    post.summary = body["summary"].strip()
    post.state   = PostState[body["state"]]
    if body.get("slug"):
        post.slug = body["slug"]
    if created_at:
        post.created_at = created_at

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return error(f"Slug '{body.get('slug')}' already exists for this locale", 409)

    logger.info(f"[Admin] Post {pid} updated.")
    schedule_post_indexing(pid)

    return success(data=_admin_post(post))


@admin_bp.route("/posts/<post_id>", methods=["DELETE"])
@admin_required
def delete_post(post_id):
    pid = parse_id(post_id)
    if pid is None:
        return error("Invalid post ID", 400)

    post = db.session.get(Post, pid)
    if not post:
        return not_found("Post")

    try:
        db.session.delete(post)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception(f"DELETE /api/admin/posts/{pid} failed")
        return error(f"Database error: {e}", 500)

    logger.info(f"[Admin] Post {pid} deleted.")
    # After the commit so the clear never races the DELETE
    schedule_embedding_delete(pid)
    return success(data={"id": pid, "deleted": True})


# ════════════════════════════════════════════════════════════
#  Embedding maintenance
# ════════════════════════════════════════════════════════════

@admin_bp.route("/posts/<post_id>/embed", methods=["POST"])
@admin_required
def embed_post(post_id):
    """
    POST /api/admin/posts/<id>/embed
    Re-embed one post now and report the EmbeddingResult.
    """
    pid = parse_id(post_id)
    if pid is None:
        return error("Invalid post ID", 400)

    result = get_embedding_service().index_post(pid)
    if not result.success:
        status = 404 if result.error == POST_NOT_FOUND else 500
        return error(result.error or "Failed to generate embedding", status)

    return success(data=result.to_dict())


@admin_bp.route("/posts/<post_id>/embedding", methods=["DELETE"])
@admin_required
def delete_embedding(post_id):
    pid = parse_id(post_id)
    if pid is None:
        return error("Invalid post ID", 400)

    if not get_embedding_service().delete_post_embedding(pid):
        return error("Failed to delete embedding", 500)
    return success(data={"postId": pid, "deleted": True})


@admin_bp.route("/posts/embed/bulk", methods=["POST"])
@admin_required
def embed_all_posts():
    """
    POST /api/admin/posts/embed/bulk
    Re-embed every post sequentially. Returns total/succeeded/failed
    plus the per-post results.
    """
    try:
        result = get_embedding_service().bulk_index_posts()
    except Exception as e:
        logger.exception("POST /api/admin/posts/embed/bulk failed")
        return error(f"Bulk embedding failed: {e}", 500)

    return success(data=result.to_dict())


@admin_bp.route("/vectors/stats", methods=["GET"])
@admin_required
def vector_stats():
    """GET /api/admin/vectors/stats — embedding coverage per locale."""
    try:
        rows = (
            db.session.query(
                Post.locale,
                func.count(Post.id),
                func.count(Post.embedding),
            )
            .group_by(Post.locale)
            .all()
        )
    except Exception as e:
        return error(f"Database error: {e}", 500)

    by_locale = {
        locale: {"total": total, "embedded": embedded, "missing": total - embedded}
        for locale, total, embedded in rows
    }
    total    = sum(v["total"] for v in by_locale.values())
    embedded = sum(v["embedded"] for v in by_locale.values())

    return success(data={
        "total":    total,
        "embedded": embedded,
        "missing":  total - embedded,
        "byLocale": by_locale,
    })
