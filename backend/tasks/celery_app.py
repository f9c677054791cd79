"""
celery_app.py — Celery configuration and app instance.

Tasks run inside a Flask application context so they can use db.session
and the embedding service registered by create_app().
"""

import os
from celery import Celery, Task
from dotenv import load_dotenv

load_dotenv()

REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

_flask_app = None


def get_flask_app():
    """Create the Flask app once per worker process."""
    global _flask_app
    if _flask_app is None:
        from app import create_app
        _flask_app = create_app()
    return _flask_app


class FlaskTask(Task):
    def __call__(self, *args, **kwargs):
        with get_flask_app().app_context():
            return self.run(*args, **kwargs)


celery = Celery(
    "blog_backend",
    broker=REDIS_URL,
    backend=REDIS_URL,
    task_cls=FlaskTask,
    include=[
        "tasks.embeddings",
    ],
)

celery.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="Asia/Seoul",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)
