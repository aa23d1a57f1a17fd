"""
Flask Blueprint for generative field extraction.
POST /api/extract with multipart "files": returns the model's field JSON with the
signing-date and plaintiff-name overrides applied, or, when no model backend is
configured, the file metadata and a prompt preview.
"""
import logging

from flask import Blueprint, current_app, jsonify, request
from werkzeug.utils import secure_filename

from docfill.extraction import ExtractionService, UploadedFile

logger = logging.getLogger("docfill.extract_bp")

extract_bp = Blueprint("extract", __name__, url_prefix="/api")


def _service() -> ExtractionService:
    """App-provided service (tests inject one with a fake backend), else one built from config."""
    return current_app.config.get("EXTRACTION_SERVICE") or ExtractionService()


@extract_bp.route("/extract", methods=["POST"])
def extract():
    files = []
    for storage in request.files.getlist("files"):
        if not storage or not storage.filename:
            continue
        files.append(
            UploadedFile(
                filename=secure_filename(storage.filename) or "upload",
                mime_type=storage.mimetype or "application/octet-stream",
                data=storage.read(),
            )
        )
    result = _service().extract(files)
    return jsonify(result)
