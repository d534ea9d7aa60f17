"""
Document and report stores.

Both stores are keyed maps behind a small put/get interface so the
orchestrator never depends on where records live. The memory backend keeps
everything for the lifetime of the process; the SQL backend goes through the
Flask-SQLAlchemy models.
"""
import copy
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from gdpr_checker.errors import ReportStateError
from gdpr_checker.models import TERMINAL_STATUSES, Document, Report
from gdpr_checker.services.document_service import now_utc_iso


class DocumentStore(ABC):

    @abstractmethod
    def put(self, document_id: str, content: str, metadata: Dict[str, Any]) -> None:
        """Store a document record. Each id is written exactly once."""

    @abstractmethod
    def get(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Return ``{id, content, metadata, uploadedAt}`` or None."""

    @abstractmethod
    def __len__(self) -> int:
        ...


class ReportStore(ABC):

    @abstractmethod
    def put(self, report: Dict[str, Any]) -> None:
        """Replace the whole record stored under ``report["id"]``.

        Raises:
            ReportStateError: the stored record is already terminal.
        """

    @abstractmethod
    def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...


class MemoryDocumentStore(DocumentStore):

    def __init__(self):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def put(self, document_id, content, metadata):
        record = {
            "id": document_id,
            "content": content,
            "metadata": copy.deepcopy(metadata),
            "uploadedAt": metadata.get("uploadedAt") or now_utc_iso(),
        }
        with self._lock:
            self._documents[document_id] = record

    def get(self, document_id):
        with self._lock:
            record = self._documents.get(document_id)
            return copy.deepcopy(record) if record is not None else None

    def __len__(self):
        with self._lock:
            return len(self._documents)


class MemoryReportStore(ReportStore):

    def __init__(self):
        self._reports: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def put(self, report):
        record = copy.deepcopy(report)
        with self._lock:
            current = self._reports.get(record["id"])
            if current is not None and current.get("status") in TERMINAL_STATUSES:
                raise ReportStateError(f"Report {record['id']} is already {current['status']}")
            self._reports[record["id"]] = record

    def get(self, report_id):
        with self._lock:
            record = self._reports.get(report_id)
            return copy.deepcopy(record) if record is not None else None

    def __len__(self):
        with self._lock:
            return len(self._reports)


class SqlDocumentStore(DocumentStore):
    """Documents table via Flask-SQLAlchemy; usable from worker threads."""

    def __init__(self, app, db):
        self.app = app
        self.db = db

    def put(self, document_id, content, metadata):
        with self.app.app_context():
            doc = Document(id=document_id, content=content, document_metadata=copy.deepcopy(metadata))
            self.db.session.add(doc)
            self.db.session.commit()

    def get(self, document_id):
        with self.app.app_context():
            doc = self.db.session.get(Document, document_id)
            return doc.to_dict() if doc else None

    def __len__(self):
        with self.app.app_context():
            return self.db.session.query(Document).count()


class SqlReportStore(ReportStore):

    def __init__(self, app, db):
        self.app = app
        self.db = db

    def put(self, report):
        with self.app.app_context():
            row = self.db.session.get(Report, report["id"])
            if row is None:
                row = Report(id=report["id"])
                self.db.session.add(row)
            elif row.status in TERMINAL_STATUSES:
                raise ReportStateError(f"Report {row.id} is already {row.status}")
            row.update_from_dict(report)
            # one commit per record write
            self.db.session.commit()

    def get(self, report_id):
        with self.app.app_context():
            row = self.db.session.get(Report, report_id)
            return row.to_dict() if row else None

    def __len__(self):
        with self.app.app_context():
            return self.db.session.query(Report).count()


def build_stores(app, db):
    """Pick the storage backend named by STORAGE_BACKEND."""
    backend = (app.config.get("STORAGE_BACKEND") or "memory").strip().lower()
    if backend == "memory":
        return MemoryDocumentStore(), MemoryReportStore()
    if backend == "sql":
        with app.app_context():
            db.create_all()
        return SqlDocumentStore(app, db), SqlReportStore(app, db)
    raise ValueError(f"Unknown STORAGE_BACKEND '{backend}'. Choose from: ['memory', 'sql']")
