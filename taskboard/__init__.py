from __future__ import annotations

import logging

from flask import Flask
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from .auth.routes import auth_bp
from .clock import utcnow
from .config import AuthSettings, Config
from .db import init_db
from .db_bootstrap import ensure_database_exists
from .dev.routes import dev_bp
from .errors import register_error_handlers
from .security.tokens import TokenCodec
from .tasks.routes import tasks_bp


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    x_for = int(app.config.get("PROXY_FIX_X_FOR", 0))
    if x_for > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=x_for)

    ensure_database_exists(app.config["DATABASE_URL"])
    init_db(app)

    settings = AuthSettings.from_mapping(app.config)
    app.extensions["auth_settings"] = settings
    app.extensions["token_codec"] = TokenCodec(app.config["JWT_SECRET"], settings.session_ttl_seconds)
    app.extensions.setdefault("clock", utcnow)

    if app.config.get("EMAIL_BACKEND") == "memory":
        app.extensions["email_outbox"] = []

    CORS(app, origins=[app.config["CORS_ORIGIN"]], supports_credentials=True)
    register_error_handlers(app)

    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(tasks_bp, url_prefix="/tasks")
    if app.config.get("DEV_ROUTES"):
        app.register_blueprint(dev_bp, url_prefix="/dev")

    @app.get("/health")
    def health_check():
        return {"ok": True}

    return app
