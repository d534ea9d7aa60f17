"""
HTTP client for the compliance checker API.

Uploads a document, starts the analysis, then polls the report until it
reaches a terminal state. The client state (current step, ids, last report) can
be persisted to JSON so an interrupted run can be resumed.
"""
import json
import logging
import mimetypes
import os
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from gdpr_checker.services.extraction_service import SUPPORTED_MEDIA_TYPES

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

EXTENSION_MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".doc": "application/msword",
    ".txt": "text/plain",
}

STEP_UPLOAD = "upload"
STEP_ANALYZING = "analyzing"
STEP_REPORT = "report"


class ClientError(Exception):
    """Base class for client-side failures."""


class UploadError(ClientError):
    """Upload failed; ``kind`` is wrong_type, oversize, network, timeout, rejected or server."""

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class AnalysisStartError(ClientError):
    pass


class AnalysisFailedError(ClientError):
    """The server finished the analysis with status ``failed``."""


class PollTimeoutError(ClientError):
    """The report was still processing after the poll budget ran out."""


def guess_media_type(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext in EXTENSION_MEDIA_TYPES:
        return EXTENSION_MEDIA_TYPES[ext]
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or "application/octet-stream"


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or f"HTTP {response.status_code}")
    return f"HTTP {response.status_code}"


class ComplianceClient:
    """Thin wrapper around the REST API built on ``requests.Session``."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 60,
        poll_interval: float = 2.0,
        max_poll_attempts: int = 30,
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.sleep = sleep

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def check_health(self) -> Dict[str, Any]:
        r = self.session.get(self._url("health"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def list_models(self) -> List[str]:
        r = self.session.get(self._url("models"), timeout=self.timeout)
        r.raise_for_status()
        return r.json().get("models") or []

    def upload_document(
        self,
        source: Union[str, bytes],
        filename: Optional[str] = None,
        media_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Upload a file path or raw bytes; returns the server's upload response.

        Raises:
            UploadError: local pre-check failed or the server refused the file.
        """
        if isinstance(source, (bytes, bytearray)):
            data = bytes(source)
            filename = filename or "document"
        else:
            filename = filename or os.path.basename(source)
            if os.path.getsize(source) > MAX_UPLOAD_BYTES:
                raise UploadError("oversize", "File size must be less than 10MB")
            with open(source, "rb") as f:
                data = f.read()

        media_type = media_type or guess_media_type(filename)
        if media_type not in SUPPORTED_MEDIA_TYPES:
            raise UploadError("wrong_type", "Only PDF, DOC, DOCX, and TXT files are allowed")
        if len(data) > MAX_UPLOAD_BYTES:
            raise UploadError("oversize", "File size must be less than 10MB")

        try:
            r = self.session.post(
                self._url("upload"),
                files={"document": (filename, data, media_type)},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise UploadError("timeout", "Upload timed out, please try again") from e
        except requests.exceptions.RequestException as e:
            raise UploadError("network", f"Network error during upload: {e}") from e

        if r.status_code >= 500:
            raise UploadError("server", _error_message(r))
        if r.status_code >= 400:
            raise UploadError("rejected", _error_message(r))
        body = r.json()
        if not body.get("success"):
            raise UploadError("rejected", _error_message(r))
        return body

    def start_analysis(self, document_id: str) -> str:
        """Ask the server to analyze a document and return the report id.

        Connection errors, timeouts and 5xx responses are retried up to
        ``max_retries`` times with a linearly growing delay.
        """
        last_error = ""
        for attempt in range(self.max_retries + 1):
            if attempt:
                delay = self.retry_base_delay * attempt
                logger.warning("Retrying analysis start (%d/%d) in %.1fs: %s", attempt, self.max_retries, delay, last_error)
                self.sleep(delay)
            try:
                r = self.session.post(
                    self._url("analyze"),
                    json={"documentId": document_id},
                    timeout=self.timeout,
                )
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                last_error = str(e)
                continue

            if r.status_code >= 500:
                last_error = _error_message(r)
                continue
            if r.status_code >= 400:
                raise AnalysisStartError(_error_message(r))
            body = r.json()
            if not body.get("success") or not body.get("reportId"):
                raise AnalysisStartError(body.get("message") or "Analysis could not be started")
            return body["reportId"]

        raise AnalysisStartError(f"Failed to start analysis after {self.max_retries} retries: {last_error}")

    def get_report(self, report_id: str) -> Dict[str, Any]:
        r = self.session.get(self._url(f"reports/{report_id}"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()["report"]

    def poll_for_report(self, report_id: str) -> Dict[str, Any]:
        """Read the report until it completes, fails, or the poll budget runs out."""
        for attempt in range(1, self.max_poll_attempts + 1):
            try:
                report = self.get_report(report_id)
            except (requests.exceptions.RequestException, ValueError, KeyError) as e:
                logger.warning("Poll %d for report %s failed: %s", attempt, report_id, e)
                report = None

            if report is not None:
                status = report.get("status")
                logger.debug("Poll %d for report %s: %s", attempt, report_id, status)
                if status == "completed":
                    return report
                if status == "failed":
                    raise AnalysisFailedError(report.get("error") or "Analysis failed")

            if attempt < self.max_poll_attempts:
                self.sleep(self.poll_interval)

        raise PollTimeoutError(
            f"Analysis is taking longer than expected (report {report_id} still processing)"
        )

    def check_document(self, path: str, state: Optional["ClientState"] = None, state_path: Optional[str] = None) -> Dict[str, Any]:
        """Upload, analyze and poll in one go, updating ``state`` along the way."""
        state = state or ClientState()
        uploaded = self.upload_document(path)
        state.document_id = uploaded["documentId"]
        state.current_step = STEP_ANALYZING
        state.report_id = self.start_analysis(state.document_id)
        if state_path:
            state.save(state_path)

        report = self.poll_for_report(state.report_id)
        state.current_step = STEP_REPORT
        state.report_data = report
        if state_path:
            state.save(state_path)
        return report


@dataclass
class ClientState:
    current_step: str = STEP_UPLOAD
    document_id: Optional[str] = None
    report_id: Optional[str] = None
    report_data: Optional[Dict[str, Any]] = None

    def save(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f)

    @classmethod
    def load(cls, path: str) -> Optional["ClientState"]:
        """Restore a saved state; a corrupt or incomplete file is discarded."""
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.warning("Discarding unreadable client state at %s", path)
            cls.clear(path)
            return None
        if not isinstance(data, dict) or not data.get("current_step") or not data.get("report_data"):
            return None
        return cls(
            current_step=data["current_step"],
            document_id=data.get("document_id"),
            report_id=data.get("report_id"),
            report_data=data["report_data"],
        )

    @staticmethod
    def clear(path: str) -> None:
        if os.path.exists(path):
            os.remove(path)
