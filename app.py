#!/usr/bin/env python3
"""
Yewa — Application Entry Point
Creates the Flask app and registers the storefront, admin, tender,
relay and shell Blueprints.
"""

import os
import time
import logging

from flask import Flask, request

log = logging.getLogger("yewa")


def create_app(config: dict | None = None):
    """Application factory."""
    from yewa.core import db, secrets
    from yewa.core.paths import validate_paths
    from yewa.core.security import init_security

    app = Flask(__name__)
    app.secret_key = secrets.get_key("secret_key")
    app.config["MAX_CONTENT_LENGTH"] = 10 * 1024 * 1024
    if config:
        app.config.update(config)

    if not app.config.get("TESTING"):
        from logging_config import setup_logging
        setup_logging()

    path_check = validate_paths()
    for err in path_check["errors"]:
        log.error("PATHS: %s", err)

    # ── Persistent database init ──────────────────────────────────────────────
    result = db.startup(admin_emails=secrets.get_list("admin_emails"))
    log.info("DB: %s | products=%d orders=%d admins=%d", result["db_path"],
             result["stats"]["products"], result["stats"]["orders"], result["stats"]["admins"])

    if not app.config.get("TESTING") and os.environ.get("YEWA_SEED_DEMO", "true") == "true":
        from yewa.shop.catalog import seed_demo_products
        seed_demo_products()

    from yewa.api import routes_shop, routes_admin, routes_tenders, proxies, shell
    for module in (routes_shop, routes_admin, routes_tenders, proxies, shell):
        app.register_blueprint(module.bp)

    # ── Security middleware (CORS on relays, response headers) ───────────────
    init_security(app)

    # ── Request-level structured logging ──────────────────────────────────────
    @app.before_request
    def _log_request_start():
        request._start_time = time.time()

    @app.after_request
    def _log_request_end(response):
        if hasattr(request, "_start_time"):
            duration_ms = round((time.time() - request._start_time) * 1000, 1)
            # Skip health spam
            if request.path != "/api/health":
                log.info("%s %s → %d (%.0fms)",
                         request.method, request.path, response.status_code, duration_ms,
                         extra={"route": request.path, "method": request.method,
                                "status": response.status_code, "duration_ms": duration_ms})
        return response

    secrets.startup_check()
    return app


# For gunicorn: gunicorn app:app
app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=False)
