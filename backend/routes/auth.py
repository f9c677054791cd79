"""
auth.py — Login, logout, and session check for the blog admin.
"""

import logging
from datetime import datetime, timezone
from flask import Blueprint, request, session

from utils.response import success, error, unauthorized
from utils.auth import admin_required, get_current_admin, verify_admin_credentials

auth_bp = Blueprint("auth", __name__)
logger = logging.getLogger(__name__)


# ─── Login ────────────────────────────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
def login():
    """
    POST /auth/login
    Body: { "username": str, "password": str }

    On success: sets the admin session.
    On failure: returns 401.
    """
    if request.is_json:
        body = request.get_json() or {}
    else:
        body = request.form.to_dict()

    username = (body.get("username") or "").strip()
    password = body.get("password") or ""

    if not username or not password:
        return error("Username and password are required.", 400)

    if not verify_admin_credentials(username, password):
        logger.warning(f"[Auth] Failed login for '{username}' from {request.remote_addr}")
        return unauthorized("Invalid username or password.")

    session.permanent = True
    session["admin"] = True
    session["username"] = username
    session["logged_in_at"] = datetime.now(timezone.utc).isoformat()

    logger.info(f"[Auth] Admin '{username}' logged in.")
    return success(data={"username": username})


# ─── Logout ───────────────────────────────────────────────────────────────────

@auth_bp.route("/logout", methods=["POST"])
@admin_required
def logout():
    """POST /auth/logout — clears the session."""
    session.clear()
    return success(data={"loggedOut": True})


# ─── Session ──────────────────────────────────────────────────────────────────

@auth_bp.route("/session", methods=["GET"])
def current_session():
    """GET /auth/session — { authenticated, username }."""
    admin = get_current_admin()
    return success(data={
        "authenticated": admin is not None,
        "username":      admin["username"] if admin else None,
    })
