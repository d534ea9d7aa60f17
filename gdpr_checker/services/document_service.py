"""Content validation, preprocessing and metadata for uploaded documents."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from gdpr_checker.services.extraction_service import DOC, DOCX, PDF, TEXT

MIN_CONTENT_CHARS = 100
MAX_CONTENT_CHARS = 50000

EMPTY_CONTENT = "EmptyContent"
TOO_SHORT = "TooShort"
TOO_LONG = "TooLong"

DOCUMENT_TYPE_LABELS = {
    PDF: "PDF",
    DOCX: "Word Document (DOCX)",
    DOC: "Word Document (DOC)",
    TEXT: "Text Document",
}

_PAGE_MARKER = re.compile(r"Page \d+ of \d+", flags=re.IGNORECASE)
_NUMBER_ONLY_LINE = re.compile(r"^[ \t]*\d+[ \t]*$", flags=re.MULTILINE)
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None
    message: str = ""
    word_count: int = 0
    character_count: int = 0


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def count_words(text: str) -> int:
    return len((text or "").split())


def validate_content(
    text: str,
    min_length: int = MIN_CONTENT_CHARS,
    max_length: int = MAX_CONTENT_CHARS,
) -> ValidationResult:
    """Check extracted text against the configured length bounds."""
    trimmed = (text or "").strip()
    if not trimmed:
        return ValidationResult(
            valid=False,
            reason=EMPTY_CONTENT,
            message="Document appears to be empty or unreadable",
        )
    if len(trimmed) < min_length:
        return ValidationResult(
            valid=False,
            reason=TOO_SHORT,
            message=f"Document too short for meaningful analysis (minimum {min_length} characters)",
        )
    if len(text) > max_length:
        return ValidationResult(
            valid=False,
            reason=TOO_LONG,
            message=(
                f"Document too long for analysis (maximum {max_length} characters). "
                "Please split into smaller sections."
            ),
        )
    return ValidationResult(valid=True, word_count=count_words(text), character_count=len(text))


def _preprocess_once(text: str) -> str:
    s = text.replace("\r\n", "\n").replace("\r", "\n")
    s = s.replace("\f", " ")
    s = _PAGE_MARKER.sub("", s)
    s = _NUMBER_ONLY_LINE.sub("", s)
    s = _WHITESPACE.sub(" ", s)
    return s.strip()


def preprocess_content(text: str) -> str:
    """Normalize extracted text before storage and analysis.

    Line endings are unified, form feeds dropped, "Page N of M" markers and
    number-only lines removed, and whitespace runs collapsed to a single space.
    Applied to a fixed point, so removing a marker can never expose a new one.
    """
    current = _preprocess_once(text or "")
    while True:
        nxt = _preprocess_once(current)
        if nxt == current:
            return current
        current = nxt


def document_type_label(media_type: str) -> str:
    return DOCUMENT_TYPE_LABELS.get(media_type, "Unknown")


def build_metadata(filename: str, media_type: str, size_bytes: int, content: str) -> Dict[str, Any]:
    return {
        "filename": filename,
        "mimeType": media_type,
        "sizeBytes": size_bytes,
        "sizeKB": int(round(size_bytes / 1024)),
        "wordCount": count_words(content),
        "characterCount": len(content),
        "uploadedAt": now_utc_iso(),
        "type": document_type_label(media_type),
    }
