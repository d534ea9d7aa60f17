"""Upload text extraction.

Dispatch is by the declared media type only. Parsers run in-process on the raw
upload buffer; nothing touches disk.
"""
from __future__ import annotations

import io
import logging
from typing import Callable, Dict, List

import PyPDF2
from docx import Document as DocxDocument

from gdpr_checker.errors import ExtractionFailed, UnsupportedFormat

logger = logging.getLogger(__name__)

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC = "application/msword"
TEXT = "text/plain"

SUPPORTED_MEDIA_TYPES = (PDF, DOCX, DOC, TEXT)


def extract_pdf_text(data: bytes) -> str:
    reader = PyPDF2.PdfReader(io.BytesIO(data))
    parts: List[str] = []
    for page in reader.pages:
        parts.append(page.extract_text() or "")
    return "\n".join(parts).strip()


def extract_word_text(data: bytes) -> str:
    doc = DocxDocument(io.BytesIO(data))
    return "\n".join(p.text for p in doc.paragraphs).strip()


def extract_plain_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


# Legacy .doc goes through the same Word parser; true binary .doc files fail there.
EXTRACTORS: Dict[str, Callable[[bytes], str]] = {
    PDF: extract_pdf_text,
    DOCX: extract_word_text,
    DOC: extract_word_text,
    TEXT: extract_plain_text,
}


def extract_text(data: bytes, media_type: str, filename: str = "") -> str:
    """Extract plain text from an uploaded file buffer.

    Raises:
        UnsupportedFormat: media type outside the supported set.
        ExtractionFailed: the format parser raised; the parser error is chained.
    """
    extractor = EXTRACTORS.get((media_type or "").strip().lower())
    if extractor is None:
        raise UnsupportedFormat(f"Unsupported file type: {media_type}")
    try:
        return extractor(data)
    except Exception as e:
        logger.error("Error extracting text from %s: %s", filename or "upload", e)
        raise ExtractionFailed(f"Failed to extract text from document: {e}") from e
