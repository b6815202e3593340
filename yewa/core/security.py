"""
Security Middleware — Route Guards, CORS, Response Headers
==========================================================

Route guards:
- login_required / admin_required build the request's UserSession once and
  pass it to the view as the `user` keyword argument
- 401 JSON when not signed in, 403 JSON when signed in without admin rights

CORS:
- The relay endpoints are called from the browser on other origins, so they
  answer OPTIONS preflights and carry permissive CORS headers
"""

import logging
import functools

from flask import request, session, jsonify, make_response

from yewa.core.auth import load_user_session

log = logging.getLogger("yewa.security")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


# ═══════════════════════════════════════════════════════════════════════════════
# Route Guards
# ═══════════════════════════════════════════════════════════════════════════════

def current_user():
    """UserSession for the active request."""
    return load_user_session(session)


def login_required(f):
    """Reject anonymous requests; inject `user` into the view."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        user = current_user()
        if not user.is_authenticated:
            return jsonify({"ok": False, "error": "Please sign in to continue"}), 401
        kwargs["user"] = user
        return f(*args, **kwargs)
    return wrapper


def admin_required(f):
    """Reject anyone not listed in the admins table; inject `user` into the view."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        user = current_user()
        if not user.is_authenticated:
            return jsonify({"ok": False, "error": "Please sign in to continue"}), 401
        if not user.is_admin:
            log.warning("Admin route denied: %s %s", request.method, request.path,
                        extra={"user": user.user_id, "route": request.path})
            return jsonify({"ok": False, "error": "Admin access required"}), 403
        kwargs["user"] = user
        return f(*args, **kwargs)
    return wrapper


# ═══════════════════════════════════════════════════════════════════════════════
# CORS
# ═══════════════════════════════════════════════════════════════════════════════

def with_cors(response):
    for k, v in CORS_HEADERS.items():
        response.headers[k] = v
    return response


def cors_enabled(f):
    """Answer OPTIONS preflights and add CORS headers to whatever the view returns."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        if request.method == "OPTIONS":
            return with_cors(make_response("", 204))
        return with_cors(make_response(f(*args, **kwargs)))
    return wrapper


# ═══════════════════════════════════════════════════════════════════════════════
# Security Headers Middleware
# ═══════════════════════════════════════════════════════════════════════════════

def add_security_headers(response):
    """Add security headers to every response."""
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if not response.headers.get("Cache-Control"):
        response.headers["Cache-Control"] = "no-store"
    return response


def init_security(app):
    """Initialize security middleware on the Flask app."""
    app.after_request(add_security_headers)
    log.info("Security middleware initialized: route guards, CORS, security headers")
