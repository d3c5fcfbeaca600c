"""
QMS Web Application Factory

Flask app that registers one JSON blueprint per module under /api.
Mirrors how cli/main.py assembles module CLIs.
"""

import os
from datetime import timedelta
from pathlib import Path
from typing import Optional

from flask import Flask, abort, jsonify, request, session
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

# Endpoints reachable without a session
PUBLIC_ENDPOINTS = {"health.health", "auth.login"}

# Room for multipart boundaries and form fields on top of the file size limit
MULTIPART_OVERHEAD = 64 * 1024

DEV_USER = {
    "id": 0,
    "email": "dev@localhost",
    "display_name": "Dev User",
    "role": "admin",
    "is_active": True,
    "must_change_password": False,
}


def _get_or_create_secret() -> str:
    """Resolve SECRET_KEY with priority: env var > config > file > generate.

    On first run with no key configured, generates a random key and persists
    it to data/.secret_key so sessions survive server restarts.
    """
    from qms.core.config import get_config, QMS_PATHS

    # 1. Environment variable
    env_key = os.environ.get("QMS_SECRET_KEY")
    if env_key:
        return env_key

    # 2. config.yaml auth.secret_key
    cfg_key = get_config().get("auth", {}).get("secret_key")
    if cfg_key:
        return cfg_key

    # 3. Persistent file next to the database
    key_file = Path(QMS_PATHS.database).parent / ".secret_key"
    if key_file.exists():
        stored = key_file.read_text().strip()
        if stored:
            return stored

    # 4. Generate, persist, and return
    new_key = os.urandom(32).hex()
    key_file.parent.mkdir(parents=True, exist_ok=True)
    key_file.write_text(new_key)
    return new_key


def create_app(config_overrides: Optional[dict] = None) -> Flask:
    """Create and configure the QMS Flask application."""
    from qms.core import get_logger
    from qms.core.config import get_allowed_origins, get_config
    from qms.documents.db import max_upload_bytes

    logger = get_logger("qms.api")
    app = Flask(__name__)

    config = get_config()
    auth_cfg = config.get("auth", {})

    if not (config_overrides or {}).get("SECRET_KEY"):
        app.config["SECRET_KEY"] = _get_or_create_secret()

    session_minutes = auth_cfg.get("session_lifetime_minutes", 480)
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(minutes=session_minutes)
    app.config["MAX_CONTENT_LENGTH"] = max_upload_bytes() + MULTIPART_OVERHEAD
    app.config["JSON_SORT_KEYS"] = False

    # ── Session cookie hardening ─────────────────────────────────────────
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_NAME"] = "qms_session"

    if config_overrides:
        app.config.update(config_overrides)

    # ── CORS for the single-page frontend ────────────────────────────────
    CORS(app, resources={r"/api/*": {"origins": get_allowed_origins()}},
         supports_credentials=True)

    # ── Security headers ─────────────────────────────────────────────────
    @app.after_request
    def set_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # ── JSON errors ──────────────────────────────────────────────────────
    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description, "code": exc.code}), exc.code

    @app.errorhandler(ValueError)
    def handle_value_error(exc: ValueError):
        return jsonify({"error": str(exc), "code": 400}), 400

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return handle_http_error(exc)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Internal server error", "code": 500}), 500

    # ── Auth gate (before_request) ───────────────────────────────────────
    @app.before_request
    def require_auth():
        if request.method == "OPTIONS" or request.endpoint in PUBLIC_ENDPOINTS:
            return None
        if not request.path.startswith("/api/"):
            return None

        if "user" not in session:
            if get_config().get("auth", {}).get("dev_bypass"):
                session["user"] = dict(DEV_USER)
            else:
                abort(401, "Authentication required")

        # Make session permanent so it respects PERMANENT_SESSION_LIFETIME
        session.permanent = True
        return None

    # ── Register blueprints ──────────────────────────────────────────────
    from qms.api.health import bp as health_bp
    app.register_blueprint(health_bp)

    from qms.api.auth import bp as auth_bp
    app.register_blueprint(auth_bp)

    from qms.api.settings import bp as settings_bp
    app.register_blueprint(settings_bp)

    from qms.api.customers import bp as customers_bp
    app.register_blueprint(customers_bp)

    from qms.api.products import bp as products_bp
    app.register_blueprint(products_bp)

    from qms.api.vendors import bp as vendors_bp
    app.register_blueprint(vendors_bp)

    from qms.api.quotations import bp as quotations_bp
    app.register_blueprint(quotations_bp)

    from qms.api.documents import bp as documents_bp
    app.register_blueprint(documents_bp)

    return app
