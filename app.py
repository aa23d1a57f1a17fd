"""
Web API: list templates, look up courts, scan DOCX templates for quoted variables,
fill DOCX / PDF templates from JSON field data, and list a PDF template's form
fields. Field extraction from uploaded documents lives in the extract blueprint
(/api/extract).
Run: python run_flask.py  then open http://127.0.0.1:3000/api/health
"""
import base64
import logging
import sys
from pathlib import Path

from flask import Flask, current_app, jsonify, request, send_from_directory

# Allow importing the docfill package from project root
_root = Path(__file__).resolve().parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from docfill.config import Config
from docfill.derived_fields import prepare_field_data
from docfill.docx_filler import DocxFiller
from docfill.errors import DocFillError, TemplateError
from docfill.jurisdiction import JurisdictionResolver
from docfill.logging_config import setup_logging
from docfill.pdf_filler import PdfFormFiller
from extract_bp import extract_bp

logger = logging.getLogger("docfill.app")

TEMPLATE_EXTENSIONS = (".pdf", ".docx")

_config = Config()
setup_logging(_config.LOG_LEVEL)

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = 50 * 1024 * 1024  # 50 MB max upload
app.config["TEMPLATES_DIR"] = _config.TEMPLATES_DIR
# None -> process-wide tables from DOCFILL_DATA_DIR; tests inject CourtTables.from_rows(...)
app.config["COURT_TABLES"] = None
app.config["EXTRACTION_SERVICE"] = None
app.register_blueprint(extract_bp)


@app.errorhandler(DocFillError)
def handle_docfill_error(e: DocFillError):
    return jsonify(e.to_dict()), e.status_code


def _templates_dir() -> Path:
    return Path(current_app.config["TEMPLATES_DIR"])


def _resolver() -> JurisdictionResolver:
    return JurisdictionResolver(current_app.config.get("COURT_TABLES"))


def check_template_name(filename: str) -> str:
    """Reject names that could leave the templates directory."""
    if not filename or ".." in filename or "/" in filename or "\\" in filename:
        raise TemplateError("Invalid filename")
    return filename


def read_template(filename: str) -> bytes:
    path = _templates_dir() / check_template_name(filename)
    if not path.is_file():
        raise TemplateError("Template not found", status_code=404)
    return path.read_bytes()


def _fill_request() -> tuple[str, object]:
    body = request.get_json(silent=True) or {}
    template_name = body.get("templateName")
    json_data = body.get("jsonData")
    if not template_name or not json_data:
        raise TemplateError("Template name and JSON data are required")
    return check_template_name(template_name), json_data


@app.route("/api/health")
def health():
    return jsonify({"status": "ok"})


@app.route("/api/templates")
def list_templates():
    try:
        names = sorted(
            p.name for p in _templates_dir().iterdir()
            if p.is_file() and p.name.lower().endswith(TEMPLATE_EXTENSIONS)
        )
    except OSError:
        logger.exception("Error reading templates")
        return jsonify({"error": "Failed to read templates"}), 500
    return jsonify({"templates": names})


@app.route("/api/fetch-template/<path:filename>")
def fetch_template(filename):
    """Serve a raw template; PDFs are marked inline so browsers preview instead of downloading."""
    check_template_name(filename)
    response = send_from_directory(_templates_dir(), filename)
    if filename.lower().endswith(".pdf"):
        response.headers["Content-Type"] = "application/pdf"
        response.headers["Content-Disposition"] = f'inline; filename="{filename}"'
    return response


@app.route("/api/court-lookup")
def court_lookup():
    postal_code = (request.args.get("zip") or "").strip()
    if not postal_code:
        return jsonify({"error": "ZIP code is required"}), 400
    # CourtDataError (unreadable tables) goes to handle_docfill_error as a JSON 500
    result = _resolver().resolve(
        postal_code,
        request.args.get("amount"),
        request.args.get("citySelection") or None,
    )
    return jsonify(result.to_dict())


@app.route("/api/scan-docx/<path:filename>")
def scan_docx(filename):
    content = read_template(filename)
    variables = DocxFiller().scan(content)
    logger.info("Scanned %s: found %d quoted variables", filename, len(variables))
    return jsonify({"success": True, "variables": variables, "filename": filename})


@app.route("/api/process-data", methods=["POST"])
def process_data():
    """Sanitize and derive fields without filling a template (preview of what a fill would use)."""
    body = request.get_json(silent=True) or {}
    if "jsonData" not in body:
        return jsonify({"error": "JSON data is required"}), 400
    data = prepare_field_data(body["jsonData"], _resolver())
    return jsonify({"success": True, "processedData": data})


@app.route("/api/fill-docx", methods=["POST"])
def fill_docx():
    template_name, json_data = _fill_request()
    data = prepare_field_data(json_data, _resolver())
    content = read_template(template_name)
    try:
        result = DocxFiller().fill(content, data)
    except DocFillError:
        raise
    except Exception as e:
        logger.exception("Error filling DOCX")
        return jsonify({"error": f"Failed to fill DOCX: {e}"}), 500

    filled_count = sum(1 for v in data.values() if v not in ("", None, False))
    return jsonify({
        "success": True,
        "docxData": base64.b64encode(result.docx).decode("ascii"),
        "filename": template_name.replace(".docx", "_filled.docx"),
        "filledCount": filled_count,
        "replacedCount": result.replaced,
        "variables": result.variables,
        "unresolved": result.unresolved,
    })


# Sample values for /api/auto-fill-pdf, to check a form's field names end to end
AUTO_FILL_DATA = {
    "[ATTY_NAME]": "Auto Test Attorney",
    "[DEFENDANT_NAME]": "Auto Test Debtor",
    "[CASE_NUMBER]": "AUTO-TEST-123",
    "[JUDGMENT_TOTAL_AMOUNT]": "12345.67",
    "[ADDRESS]": "123 Auto Lane",
    "[CITY]": "Autoville",
    "[STATE]": "CA",
    "[ZIP_CODE]": "12345",
    "[PHONE_NUMBER]": "555-1234",
    "[EMAIL]": "auto@test.com",
}


def _pdf_fill_response(template_name: str, json_data):
    data = prepare_field_data(json_data, _resolver())
    content = read_template(template_name)
    try:
        pdf_bytes, report = PdfFormFiller().fill(content, data)
    except DocFillError:
        raise
    except Exception as e:
        logger.exception("Error filling PDF")
        return jsonify({"error": f"Failed to fill PDF: {e}"}), 500

    return jsonify({
        "success": True,
        "pdfData": base64.b64encode(pdf_bytes).decode("ascii"),
        "filename": template_name.replace(".pdf", "_filled.pdf"),
        **report.to_dict(),
        "processedData": data,
    })


@app.route("/api/fill-pdf", methods=["POST"])
def fill_pdf():
    template_name, json_data = _fill_request()
    return _pdf_fill_response(template_name, json_data)


@app.route("/api/auto-fill-pdf", methods=["POST"])
def auto_fill_pdf():
    body = request.get_json(silent=True) or {}
    template_name = body.get("templateName")
    if not template_name:
        raise TemplateError("Template name is required")
    return _pdf_fill_response(check_template_name(template_name), dict(AUTO_FILL_DATA))


@app.route("/api/pdf-fields/<path:filename>")
def pdf_fields(filename):
    """Name and kind of every form field in a PDF template."""
    fields = PdfFormFiller().field_names(read_template(filename))
    return jsonify({"success": True, "filename": filename, "fields": fields})


if __name__ == "__main__":
    app.run(debug=True, port=_config.PORT, use_reloader=False)
