"""
auth.py — Admin session decorator + helpers.
"""

from functools import wraps
from flask import session, current_app
from werkzeug.security import check_password_hash
from utils.response import unauthorized


# ─── Decorators ───────────────────────────────────────────────────────────────

def admin_required(f):
    """Require a logged-in admin session. Returns 401 otherwise."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not session.get("admin"):
            return unauthorized("You must be logged in.")
        return f(*args, **kwargs)
    return decorated


# ─── Session helpers ──────────────────────────────────────────────────────────

def get_current_admin() -> dict | None:
    """Return the admin session dict. None if not logged in."""
    if not session.get("admin"):
        return None
    return {"username": session.get("username")}


def verify_admin_credentials(username: str, password: str) -> bool:
    """Check credentials against ADMIN_USERNAME / ADMIN_PASSWORD_HASH."""
    expected_user = current_app.config.get("ADMIN_USERNAME")
    password_hash = current_app.config.get("ADMIN_PASSWORD_HASH")
    if not password_hash or not username or not password:
        return False
    if username != expected_user:
        return False
    return check_password_hash(password_hash, password)
