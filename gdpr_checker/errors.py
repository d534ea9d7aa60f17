"""
Error taxonomy shared by the HTTP layer and the services.

Every error carries the HTTP status it maps to, a short title (``error``) and a
human-readable ``message`` so handlers can render ``{error, message}`` directly.
"""
from typing import Optional


class ComplianceCheckerError(Exception):
    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str = "", error: Optional[str] = None):
        super().__init__(message or self.error)
        self.message = message or self.error
        if error:
            self.error = error

    def to_dict(self):
        return {"error": self.error, "message": self.message}


class BadInput(ComplianceCheckerError):
    status_code = 400
    error = "Bad request"


class MissingField(BadInput):
    error = "Missing field"


class UnsupportedFormat(BadInput):
    error = "Invalid file type"


class FileTooLarge(BadInput):
    error = "File too large"


class InvalidContent(BadInput):
    """Extracted text failed validation (reason is EmptyContent/TooShort/TooLong)."""
    error = "Invalid document content"

    def __init__(self, message: str = "", reason: str = ""):
        super().__init__(message)
        self.reason = reason


class NotFound(ComplianceCheckerError):
    status_code = 404
    error = "Not found"


class DocumentNotFound(NotFound):
    error = "Document not found"


class ReportNotFound(NotFound):
    error = "Report not found"


class ReportNotReady(ComplianceCheckerError):
    status_code = 409
    error = "Report not ready"


class UpstreamFailure(ComplianceCheckerError):
    status_code = 500
    error = "Upstream failure"


class ExtractionFailed(UpstreamFailure):
    error = "Document processing failed"


class ComplianceServiceError(UpstreamFailure):
    error = "Compliance analysis failed"


class ReportStateError(ComplianceCheckerError):
    """A terminal report was about to be overwritten."""
    status_code = 409
    error = "Report already finished"
