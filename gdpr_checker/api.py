"""
API Blueprint - upload, analysis and report endpoints
"""
import io
import logging
import uuid

from flask import Blueprint, current_app, jsonify, request, send_file

from gdpr_checker import EXTENSION_KEY
from gdpr_checker.errors import (
    ComplianceServiceError,
    FileTooLarge,
    InvalidContent,
    MissingField,
    ReportNotFound,
    ReportNotReady,
    UnsupportedFormat,
)
from gdpr_checker.models import ReportStatus
from gdpr_checker.services.document_service import (
    build_metadata,
    now_utc_iso,
    preprocess_content,
    validate_content,
)
from gdpr_checker.services.extraction_service import SUPPORTED_MEDIA_TYPES, extract_text
from gdpr_checker.services.pdf_service import export_report_pdf, report_filename

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def orchestrator():
    return current_app.extensions[EXTENSION_KEY]


def _media_type(file) -> str:
    return (getattr(file, "mimetype", "") or "").strip().lower()


@api_bp.route("/health", methods=["GET"])
def health():
    return jsonify({
        "status": "OK",
        "message": "GDPR Compliance Checker API is running",
        "timestamp": now_utc_iso(),
    }), 200


@api_bp.route("/upload", methods=["POST"])
def upload_document():
    file = request.files.get("document") or request.files.get("file")
    if not file or not (file.filename or "").strip():
        raise MissingField("Please select a file to upload", error="No file uploaded")

    media_type = _media_type(file)
    if media_type not in SUPPORTED_MEDIA_TYPES:
        logger.info("Upload rejected: unsupported type %s (%s)", media_type, file.filename)
        raise UnsupportedFormat("Only PDF, DOC, DOCX, and TXT files are allowed")

    data = file.read()
    if not data:
        raise InvalidContent("Uploaded file is empty", reason="EmptyContent")
    max_bytes = current_app.config["MAX_UPLOAD_BYTES"]
    if max_bytes and len(data) > max_bytes:
        raise FileTooLarge("File size must be less than 10MB")

    raw_text = extract_text(data, media_type, file.filename)
    content = preprocess_content(raw_text)
    result = validate_content(
        content,
        min_length=current_app.config["MIN_CONTENT_CHARS"],
        max_length=current_app.config["MAX_CONTENT_CHARS"],
    )
    if not result.valid:
        logger.info("Upload rejected: %s (%s)", result.reason, file.filename)
        raise InvalidContent(result.message, reason=result.reason)

    document_id = str(uuid.uuid4())
    metadata = build_metadata(file.filename, media_type, len(data), content)
    orchestrator().documents.put(document_id, content, metadata)
    logger.info("Document %s uploaded: %s (%s words)", document_id, file.filename, metadata["wordCount"])

    return jsonify({
        "success": True,
        "documentId": document_id,
        "metadata": metadata,
        "message": "Document uploaded and processed successfully",
    }), 201


@api_bp.route("/analyze", methods=["POST"])
def analyze_document():
    payload = request.get_json(silent=True) or {}
    document_id = str(payload.get("documentId") or "").strip()
    if not document_id:
        raise MissingField("Please provide a document ID", error="Missing document ID")

    report_id = orchestrator().start_analysis(document_id)
    return jsonify({
        "success": True,
        "reportId": report_id,
        "status": ReportStatus.PROCESSING.value,
        "message": "Analysis started. Check report status using the report ID.",
    }), 200


@api_bp.route("/reports/<report_id>", methods=["GET"])
def get_report(report_id):
    report = orchestrator().get_report(report_id)
    if report is None:
        raise ReportNotFound("The specified report could not be found")
    return jsonify({"success": True, "report": report}), 200


@api_bp.route("/reports/<report_id>/export", methods=["GET"])
def export_report(report_id):
    report = orchestrator().get_report(report_id)
    if report is None:
        raise ReportNotFound("The specified report could not be found")
    if report.get("status") != ReportStatus.COMPLETED.value:
        raise ReportNotReady(f"Report is {report.get('status')}; only completed reports can be exported")

    pdf_bytes = export_report_pdf(report)
    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=report_filename(report),
    )


@api_bp.route("/models", methods=["GET"])
def list_models():
    analyzer = orchestrator().analyzer
    try:
        models = analyzer.list_models()
    except ComplianceServiceError as e:
        logger.error("Failed to fetch models: %s", e.message)
        return jsonify({"error": "Failed to fetch models", "message": e.message}), 500
    return jsonify({
        "success": True,
        "models": models,
        "defaultModel": analyzer.default_model,
    }), 200


@api_bp.route("/stats", methods=["GET"])
def stats():
    return jsonify({"success": True, "stats": orchestrator().stats()}), 200
