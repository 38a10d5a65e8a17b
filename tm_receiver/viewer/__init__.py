"""
Flask app factory for the archive viewer: registers config, logging,
the archive index, blueprints, and error handlers.

The viewer runs as its own process next to the receiver and only reads the
archive directory.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Type

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .archive_index import ArchiveIndex
from .config import Config, DevelopmentConfig, ProductionConfig
from .routes import archive as archive_bp


def _init_logging(app: Flask) -> logging.Logger:
    """Console logger for the viewer process."""
    log_level = getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO)
    logger = logging.getLogger("tm_receiver.viewer")
    logger.setLevel(log_level)
    logger.propagate = False
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
        logger.addHandler(ch)
    return logger


def create_app(config_class: Type[Config] | None = None) -> Flask:
    """Create and configure the viewer application."""
    app = Flask(__name__)

    # Config selection
    cfg: Type[Config]
    env = os.getenv("FLASK_ENV", "production").lower()
    if config_class is not None:
        cfg = config_class
    elif env.startswith("dev"):
        cfg = DevelopmentConfig
    else:
        cfg = ProductionConfig
    app.config.from_object(cfg)

    logger = _init_logging(app)
    app.logger = logger  # align Flask's logger with ours

    app.extensions["archive_index"] = ArchiveIndex(
        archive_dir=Path(app.config["ARCHIVE_DIR"]),
        catalog_subdir=app.config["CATALOG_ARCHIVE_SUBDIR"],
        max_listing=int(app.config["MAX_LISTING"]),
    )

    # Error handlers
    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        return jsonify({"success": False, "error": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_exception(e: Exception):
        app.logger.exception("Unhandled error")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    # Blueprints
    app.register_blueprint(archive_bp.bp)

    # Health
    @app.route("/healthz")
    def healthz():
        return jsonify({"status": "ok"}), 200

    return app
