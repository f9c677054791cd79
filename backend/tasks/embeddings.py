"""
embeddings.py — Background embedding tasks.

Post writes never wait on embeddings. After a create/update commits the
route calls schedule_post_indexing(); after a delete it calls
schedule_embedding_delete(). Both enqueue a Celery task, or, when Celery is
disabled or the broker is unreachable, run the same work on a daemon
thread inside an app context. Failures are logged only.
"""

import logging
import threading

from flask import current_app

from tasks.celery_app import celery

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════
#  Celery tasks
# ════════════════════════════════════════════════════════════

@celery.task(bind=True, name="tasks.index_post_embedding")
def index_post_embedding(self, post_id: int):
    """Generate and store the embedding for one post. Not retried here."""
    result = _index_post(post_id)
    return result.to_dict()


@celery.task(bind=True, name="tasks.delete_post_embedding")
def delete_post_embedding(self, post_id: int):
    return {"postId": post_id, "success": _delete_embedding(post_id)}


@celery.task(bind=True, name="tasks.bulk_index_posts")
def bulk_index_posts(self):
    """Re-embed every post, sequentially and paced."""
    from utils.embeddings import get_embedding_service

    logger.info("[Celery] Bulk embedding started.")
    result = get_embedding_service().bulk_index_posts()
    logger.info(f"[Celery] Bulk embedding finished: {result.succeeded}/{result.total} succeeded.")
    return result.to_dict()


# ════════════════════════════════════════════════════════════
#  Fire-and-forget triggers (called from routes)
# ════════════════════════════════════════════════════════════

def schedule_post_indexing(post_id: int):
    """Queue indexing for a post without blocking the caller."""
    _dispatch(index_post_embedding, _index_post, post_id)


def schedule_embedding_delete(post_id: int):
    """Queue clearing a post's embedding without blocking the caller."""
    _dispatch(delete_post_embedding, _delete_embedding, post_id)


def _dispatch(task, fallback, post_id: int):
    if current_app.config.get("BACKGROUND_TASKS", "celery") == "celery":
        try:
            task.delay(post_id)
            return
        except Exception as exc:
            logger.warning(f"Celery unavailable, running {task.name} for post {post_id} in a thread: {exc}")

    _run_detached(current_app._get_current_object(), fallback, post_id)


def _run_detached(app, func, post_id: int):
    def runner():
        with app.app_context():
            try:
                func(post_id)
            except Exception:
                logger.exception(f"[Embed] Background job for post {post_id} failed")

    thread = threading.Thread(target=runner, name=f"embed-post-{post_id}", daemon=True)
    thread.start()
    return thread


# ════════════════════════════════════════════════════════════
#  Work
# ════════════════════════════════════════════════════════════

def _index_post(post_id: int):
    from utils.embeddings import get_embedding_service

    result = get_embedding_service().index_post(post_id)
    if result.success:
        logger.info(f"[Embed] Background embedding done for post {post_id}.")
    else:
        logger.error(f"[Embed] Background embedding failed for post {post_id}: {result.error}")
    return result


def _delete_embedding(post_id: int) -> bool:
    from utils.embeddings import get_embedding_service

    ok = get_embedding_service().delete_post_embedding(post_id)
    if not ok:
        logger.error(f"[Embed] Failed to delete embedding for post {post_id}.")
    return ok
