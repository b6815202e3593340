"""
shell.py — App shell endpoints: index, health, offline cache manifest, media

The offline cache is network-first: the browser tries the network, stores
200 GET responses under CACHE_NAME and only falls back to the cache when
the network fails. should_cache() is the rule the service worker applies.
"""

import logging

from flask import Blueprint, send_from_directory

from yewa import __version__
from yewa.core import db, paths, secrets
from yewa.core.db import StoreError
from yewa.api.helpers import json_response

log = logging.getLogger("yewa.shell")

bp = Blueprint("shell", __name__)

CACHE_NAME = "yewa-v2"
STATIC_ASSETS = ("/", "/cache-manifest.json")
# URLs containing any of these are never cached
NO_CACHE_PATTERNS = ("/api/", "/etenders-proxy", "/payfast-notify", "/payment-success",
                     "ocds-api.etenders.gov.za")


def should_cache(url: str, method: str = "GET") -> bool:
    if method.upper() != "GET":
        return False
    return not any(p in url for p in NO_CACHE_PATTERNS)


@bp.route("/")
def index():
    return json_response({
        "name": "Yewa",
        "version": __version__,
        "endpoints": ["/api/products", "/api/cart", "/api/wishlist", "/api/checkout",
                      "/api/tenders", "/etenders-proxy", "/pdf-proxy", "/payfast-notify"],
    })


@bp.route("/api/health")
def health():
    report = secrets.validate_all()
    try:
        stats = db.get_stats()
        db_ok = True
    except StoreError as e:
        log.error("Health check DB error: %s", e)
        stats, db_ok = {"error": str(e)}, False
    status = "ok" if db_ok and not report["warnings"] else "degraded"
    return json_response({
        "status": status,
        "version": __version__,
        "db": {"ok": db_ok, "stats": stats},
        "secrets": {"set": report["set"], "total": report["total"],
                    "warnings": report["warnings"]},
    }, 200 if db_ok else 503)


@bp.route("/cache-manifest.json")
def cache_manifest():
    return json_response({
        "cache_name": CACHE_NAME,
        "strategy": "network-first",
        "assets": list(STATIC_ASSETS),
        "exclude": list(NO_CACHE_PATTERNS),
        "methods": ["GET"],
    })


@bp.route("/media/<path:filename>")
def media(filename):
    return send_from_directory(paths.MEDIA_DIR, filename)
