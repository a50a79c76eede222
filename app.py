"""Application factory."""

import os
import uuid

from flask import Flask, g, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes.admin import admin_bp
from routes.auth import auth_bp, me_bp
from routes.oauth import oauth_bp
from routes.pages import pages_bp
from routes.profile import profile_bp
from services.claims import register_jwt_callbacks
from services.guard import register_route_guard
from services.mail import init_mail
from utils.errors import json_error

migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

register_jwt_callbacks(jwt)


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    init_mail(app)

    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )
    _init_rate_limiting(app)

    upload_dir = app.config.get("UPLOAD_DIR")
    if upload_dir:
        os.makedirs(upload_dir, exist_ok=True)

    # Request IDs before the guard so redirects and errors carry one
    _register_request_ids(app)
    register_route_guard(app)

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(me_bp, url_prefix="/api")
    app.register_blueprint(oauth_bp, url_prefix="/api/auth/oauth")
    app.register_blueprint(profile_bp, url_prefix="/api/user")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(pages_bp)

    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"})

    @app.route("/uploads/<path:filename>", methods=["GET"])
    def uploaded_file(filename: str):
        return send_from_directory(app.config["UPLOAD_DIR"], filename)

    _register_error_handlers(app)

    return app


def _init_rate_limiting(app: Flask) -> None:
    """Apply ``RATE_LIMIT`` to every route, with storage isolated per app instance."""

    key_prefix = app.config.get("RATELIMIT_KEY_PREFIX") or str(uuid.uuid4())

    global limiter
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[lambda: app.config.get("RATE_LIMIT", "60 per minute")],
        storage_uri=app.config.get("RATELIMIT_STORAGE_URI", "memory://"),
        headers_enabled=app.config.get("RATELIMIT_HEADERS_ENABLED", True),
        key_prefix=key_prefix,
    )
    limiter.init_app(app)
    app.config["RATELIMIT_KEY_PREFIX"] = key_prefix


def _register_request_ids(app: Flask) -> None:
    @app.before_request
    def _assign_request_id():  # pragma: no cover
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):  # pragma: no cover
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response


def _register_error_handlers(app: Flask) -> None:
    """Render every error as ``{"error", "detail", "request_id"}`` JSON."""

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        if error.code and error.code >= 500:
            app.logger.error("%s: %s", error.name, error.description)
        return json_error(
            error.code or 500,
            getattr(error, "name", "Error"),
            error.description,
            headers=error.get_headers(),
        )

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled application error", exc_info=error)
        return json_error(500, "Internal Server Error", "An unexpected error occurred.")


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
