"""
reindex_embeddings.py — Regenerate post embeddings from the command line.

Same work as the admin "embed all" button, without going through HTTP.
Posts are processed one at a time with the configured pacing delay.

Usage:
    python scripts/reindex_embeddings.py              # every post
    python scripts/reindex_embeddings.py --post 42    # one post
    python scripts/reindex_embeddings.py --queue      # hand off to a Celery worker
"""

import sys
import os
import argparse

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

from app import create_app
from utils.embeddings import get_embedding_service


def main():
    parser = argparse.ArgumentParser(description="Regenerate post embeddings.")
    parser.add_argument("--post", type=int, help="Only re-embed this post id")
    parser.add_argument("--queue", action="store_true", help="Queue the bulk job on Celery instead")
    args = parser.parse_args()

    app = create_app()

    with app.app_context():
        if args.queue:
            from tasks.embeddings import bulk_index_posts
            task = bulk_index_posts.delay()
            print(f"[Embed] Bulk job queued (task_id={task.id}).")
            return 0

        service = get_embedding_service()

        if args.post is not None:
            result = service.index_post(args.post)
            if result.success:
                print(f"[Embed] Post {args.post} indexed.")
                return 0
            print(f"[Embed] Post {args.post} failed: {result.error}")
            return 1

        result = service.bulk_index_posts()

    print("=" * 60)
    print(f" Total: {result.total}   Succeeded: {result.succeeded}   Failed: {result.failed}")
    print("=" * 60)
    for r in result.results:
        if not r.success:
            print(f"  post {r.post_id}: {r.error}")

    return 0 if result.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
