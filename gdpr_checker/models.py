"""
Database Models (SQL storage backend)

Key Models:
- Document: uploaded file text + metadata, written once at upload
- Report: one analysis run over a document; processing -> completed | failed
"""
from datetime import datetime, timezone
import enum
from gdpr_checker import db


class ReportStatus(enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = {ReportStatus.COMPLETED.value, ReportStatus.FAILED.value}


def _iso(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _parse_iso(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class Document(db.Model):
    __tablename__ = 'documents'

    id = db.Column(db.String(36), primary_key=True)
    content = db.Column(db.Text, nullable=False)
    document_metadata = db.Column(db.JSON, nullable=False)
    uploaded_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    reports = db.relationship('Report', back_populates='document', lazy='dynamic')

    def to_dict(self):
        """Convert document to the store's record shape"""
        return {
            'id': self.id,
            'content': self.content,
            'metadata': dict(self.document_metadata or {}),
            'uploadedAt': _iso(self.uploaded_at),
        }


class Report(db.Model):
    """
    Analysis report for one document.

    Written once as processing when analysis is requested and once more when
    the background job reaches a terminal state.
    """
    __tablename__ = 'reports'

    id = db.Column(db.String(36), primary_key=True)
    document_id = db.Column(db.String(36), db.ForeignKey('documents.id'), nullable=False, index=True)
    document_name = db.Column(db.String(255))

    # Status tracking
    status = db.Column(db.String(20), default=ReportStatus.PROCESSING.value, index=True)
    error = db.Column(db.Text)

    # Results (JSON)
    analysis_data = db.Column(db.JSON)
    improvements = db.Column(db.JSON)

    # Timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    completed_at = db.Column(db.DateTime(timezone=True))
    failed_at = db.Column(db.DateTime(timezone=True))

    document = db.relationship('Document', back_populates='reports')

    def to_dict(self):
        """Convert report to dictionary for API responses"""
        result = {
            'id': self.id,
            'documentId': self.document_id,
            'documentName': self.document_name,
            'status': self.status,
            'createdAt': _iso(self.created_at),
        }
        if self.status == ReportStatus.COMPLETED.value:
            result['analysis'] = self.analysis_data
            result['improvements'] = self.improvements
            result['completedAt'] = _iso(self.completed_at)
        elif self.status == ReportStatus.FAILED.value:
            result['error'] = self.error
            result['failedAt'] = _iso(self.failed_at)
        return result

    def update_from_dict(self, data):
        """Replace report state from a record dict (used by SqlReportStore.put)"""
        field_mapping = {
            'documentId': 'document_id',
            'documentName': 'document_name',
            'status': 'status',
            'error': 'error',
            'analysis': 'analysis_data',
            'improvements': 'improvements',
        }
        for key, attr in field_mapping.items():
            setattr(self, attr, data.get(key))

        # Handle timestamps
        if data.get('createdAt'):
            self.created_at = _parse_iso(data['createdAt'])
        self.completed_at = _parse_iso(data.get('completedAt'))
        self.failed_at = _parse_iso(data.get('failedAt'))
