"""
Archive routes: list and download archived images and catalogs.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from flask import Blueprint, current_app, jsonify, send_from_directory
from werkzeug.security import safe_join
from werkzeug.utils import secure_filename

from ..archive_index import ArchiveIndex

bp = Blueprint("archive", __name__, url_prefix="/archive")


def _index() -> ArchiveIndex:
    return current_app.extensions["archive_index"]


@bp.route("/images")
def list_images():
    """Return archived images, newest first."""
    return jsonify({"success": True, "images": _index().images()})


@bp.route("/images/<path:filename>")
def download_image(filename: str):
    """Serve one archived image."""
    idx = _index()
    # Sender names are kept verbatim; only plain names inside the archive directory
    if "/" in filename or safe_join(str(idx.archive_dir), filename) is None:
        current_app.logger.warning("Illegal image path: %s", filename)
        return jsonify({"success": False, "error": "Invalid path"}), 400
    if not (idx.archive_dir / filename).is_file():
        return jsonify({"success": False, "error": "Image not found"}), 404
    return send_from_directory(
        idx.archive_dir.resolve(), filename, as_attachment=False, max_age=0
    )


@bp.route("/catalogs")
def list_catalogs():
    """Return archived catalogs, newest first."""
    return jsonify({"success": True, "catalogs": _index().catalogs()})


@bp.route("/catalogs/latest/entries")
def latest_catalog_entries():
    """Parse the most recently archived catalog and return its entries."""
    idx = _index()
    latest = idx.latest_catalog()
    if latest is None:
        return jsonify({"success": False, "error": "No catalog archived yet"}), 404
    try:
        entries = idx.catalog_entries(latest)
    except ET.ParseError as e:
        current_app.logger.exception("Catalog parse failed: %s", latest)
        return jsonify({"success": False, "error": f"Malformed catalog: {e}"}), 500
    return jsonify({"success": True, "catalog": latest.name, "entries": entries})


@bp.route("/catalogs/<path:filename>")
def download_catalog(filename: str):
    """Serve one archived catalog as XML."""
    idx = _index()
    if secure_filename(filename) != filename or not filename.endswith(".xml"):
        current_app.logger.warning("Illegal catalog path: %s", filename)
        return jsonify({"success": False, "error": "Invalid path"}), 400
    if not (idx.catalog_dir / filename).is_file():
        return jsonify({"success": False, "error": "Catalog not found"}), 404
    return send_from_directory(
        idx.catalog_dir.resolve(), filename, mimetype="application/xml", max_age=0
    )
