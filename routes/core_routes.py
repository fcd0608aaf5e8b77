"""Core app route registration (liveness + database check)."""

from datetime import datetime, timezone

from flask import jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError


def register_core_routes(app, *, db):
    @app.route("/")
    def home():
        return jsonify({"message": "CricTally Backend is live", "status": "success"}), 200

    @app.route("/db-test")
    def db_test():
        try:
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            app.logger.error(f"[DBTest] Database connection error: {e}", exc_info=True)
            return jsonify({"ok": False, "error": "Database connection error"}), 500
        return jsonify({"ok": True, "time": datetime.now(timezone.utc).isoformat()}), 200
