import os
import logging
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify, request
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

from database import db
from database.live_cache import DEFAULT_TTL_SECONDS, LiveStateCache
from database.models import User
from database.registry import MatchRegistry, SquadRegistry
from engine.delivery import MAX_RUNS_PER_BALL
from engine.errors import CricTallyError
from match_archiver import MatchArchiver
from routes.core_routes import register_core_routes
from routes.match_routes import register_match_routes
from routes.public_routes import register_public_routes
from utils.helpers import PROJECT_ROOT, config_value, load_config


def _configure_logging(config):
    log_file = config_value(config, "logging", "file", os.path.join("logs", "execution.log"))
    if not os.path.isabs(log_file):
        log_file = os.path.join(PROJECT_ROOT, log_file)
    os.makedirs(os.path.dirname(log_file), exist_ok=True)
    level = getattr(logging, str(config_value(config, "logging", "level", "DEBUG")).upper(), logging.DEBUG)

    # Clear existing handlers to avoid duplicates
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    # File handler for persistent logging
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(level)

    # Console handler for terminal visibility
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=[file_handler, console_handler])

    logger = logging.getLogger("CricTally")
    logger.setLevel(level)
    return logger


# ────── App Factory ──────
def create_app():
    app = Flask(__name__)
    config = load_config()

    app.logger = _configure_logging(config)

    # --- Secret key setup ---
    secret = config_value(config, "app", "secret_key") or os.getenv("FLASK_SECRET_KEY")
    if not secret or not isinstance(secret, str):
        secret = os.urandom(24).hex()
        app.logger.warning("Using random Flask SECRET_KEY; sessions won't persist across restarts")
    app.config["SECRET_KEY"] = secret
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"

    # --- Database ---
    app.config["SQLALCHEMY_DATABASE_URI"] = (
        os.getenv("CRICTALLY_DB_URI")
        or config_value(config, "database", "uri", "sqlite:///crictally.db")
    )
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    db.init_app(app)
    with app.app_context():
        db.create_all()

    # --- Flask-Login setup ---
    login_manager = LoginManager(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"ok": False, "error": "unauthorized", "message": "Login required"}), 401

    # --- Request logging ---
    @app.before_request
    def log_request():
        app.logger.info(f"{request.remote_addr} {request.method} {request.path}")

    # --- Error handling ---
    @app.errorhandler(CricTallyError)
    def handle_domain_error(e):
        if e.status_code >= 500:
            app.logger.error(f"[{e.code}] {request.method} {request.path}: {e.message}")
        else:
            app.logger.warning(f"[{e.code}] {request.method} {request.path}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"ok": False, "error": e.name, "message": e.description}), e.code
        app.logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({"ok": False, "error": "internal_error", "message": "An internal error occurred"}), 500

    # --- Collaborators ---
    live_cache = LiveStateCache(
        ttl_seconds=int(config_value(config, "live_cache", "ttl_seconds", DEFAULT_TTL_SECONDS))
    )
    match_registry = MatchRegistry()
    app.extensions["live_cache"] = live_cache

    register_core_routes(app, db=db)
    register_match_routes(
        app,
        match_registry=match_registry,
        squad_registry=SquadRegistry(),
        live_cache=live_cache,
        archiver=MatchArchiver(db),
        max_runs_per_ball=int(config_value(config, "scoring", "max_runs_per_ball", MAX_RUNS_PER_BALL)),
    )
    register_public_routes(app, match_registry=match_registry, live_cache=live_cache)

    return app


if __name__ == "__main__":
    create_app().run(host="127.0.0.1", port=5000)
