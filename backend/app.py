"""
app.py — Flask application factory for the blog backend.

The embedding service is built here and handed to routes and tasks through
app.extensions, so tests can pass in a fake provider.
"""

import logging
from datetime import datetime, timezone
from flask import Flask, jsonify, request, g
from config import get_config
from database import db
from sqlalchemy import text
from utils.embeddings import init_embedding_service
from utils.response import error, forbidden, not_found, server_error, unauthorized
from utils.validation import ValidationError


def create_app(config_object=None, embedding_provider=None):
    app = Flask(__name__)
    app.config.from_object(config_object or get_config())

    _configure_logging(app)
    _init_extensions(app, embedding_provider)
    _register_blueprints(app)
    _register_error_handlers(app)
    _register_hooks(app)
    _register_health_check(app)

    return app


# ─── Logging ──────────────────────────────────────────────────────────────────

def _configure_logging(app):
    level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    app.logger.setLevel(level)
    # openai/httpx log every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ─── Extensions ───────────────────────────────────────────────────────────────

def _init_extensions(app, embedding_provider=None):
    db.init_app(app)
    # Fails fast on a missing OPENAI_API_KEY
    init_embedding_service(app, provider=embedding_provider)


# ─── Blueprints ───────────────────────────────────────────────────────────────

def _register_blueprints(app):
    from routes.auth  import auth_bp
    from routes.posts import posts_bp
    from routes.admin import admin_bp

    app.register_blueprint(auth_bp,  url_prefix="/auth")
    app.register_blueprint(posts_bp, url_prefix="/api/posts")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")


# ─── Error handlers ───────────────────────────────────────────────────────────

def _register_error_handlers(app):
    """Every error leaves as the same JSON envelope the routes use."""

    @app.errorhandler(ValidationError)
    def invalid_input(e):
        return error(str(e), e.status)

    @app.errorhandler(400)
    def bad_request(e):
        return error("Bad request.", 400)

    @app.errorhandler(401)
    def unauthenticated(e):
        return unauthorized("Authentication required.")

    @app.errorhandler(403)
    def access_denied(e):
        return forbidden("Access denied.")

    @app.errorhandler(404)
    def route_not_found(e):
        return not_found(f"Route {request.path}")

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error(f"Method {request.method} not allowed.", 405)

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.exception("Unhandled server error")
        return server_error("Internal server error.")


# ─── Request / response hooks ─────────────────────────────────────────────────

def _register_hooks(app):

    @app.before_request
    def start_timer():
        g.request_start = datetime.now(timezone.utc)

    @app.after_request
    def finish_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        if hasattr(g, "request_start"):
            elapsed = (datetime.now(timezone.utc) - g.request_start).total_seconds() * 1000
            app.logger.debug(f"{request.method} {request.path} → {response.status_code} ({elapsed:.1f}ms)")

        return response


# ─── Health check ─────────────────────────────────────────────────────────────

def _register_health_check(app):

    @app.route("/health")
    def health():
        """GET /health — database reachability plus embedding config."""
        try:
            db.session.execute(text("SELECT 1"))
            db_status = "ok"
        except Exception as e:
            db_status = f"error: {e}"

        healthy = db_status == "ok"
        return jsonify({
            "status":         "ok" if healthy else "degraded",
            "database":       db_status,
            "embeddingModel": app.config["EMBEDDING_MODEL"],
            "timestamp":      datetime.now(timezone.utc).isoformat(),
        }), 200 if healthy else 503


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, port=5000, host="0.0.0.0")
