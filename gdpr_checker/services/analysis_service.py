"""Background GDPR analysis jobs.

``start_analysis`` writes the report as ``processing`` and hands the slow part
to an executor, returning the report id before the LLM round-trip starts. The
background job writes the terminal record exactly once.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, Optional

from gdpr_checker.errors import DocumentNotFound
from gdpr_checker.models import ReportStatus
from gdpr_checker.services.document_service import now_utc_iso
from gdpr_checker.services.openai_service import ComplianceAnalyzer
from gdpr_checker.storage import DocumentStore, ReportStore

logger = logging.getLogger(__name__)


def new_report_id() -> str:
    return str(uuid.uuid4())


class AnalysisOrchestrator:
    """Runs compliance analysis for stored documents and tracks report state."""

    def __init__(
        self,
        documents: DocumentStore,
        reports: ReportStore,
        analyzer: ComplianceAnalyzer,
        executor: Optional[Executor] = None,
        max_workers: int = 4,
    ):
        self.documents = documents
        self.reports = reports
        self.analyzer = analyzer
        self.executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="analysis")
        self.started_at = time.time()
        self._pending: Dict[str, Future] = {}
        self._pending_lock = threading.Lock()

    def start_analysis(self, document_id: str) -> str:
        """Create a processing report for the document and schedule the analysis.

        Raises:
            DocumentNotFound: no document is stored under ``document_id``.
        """
        document = self.documents.get(document_id)
        if document is None:
            raise DocumentNotFound("The specified document could not be found")

        report_id = new_report_id()
        document_name = (document.get("metadata") or {}).get("filename") or "document"
        created_at = now_utc_iso()
        self.reports.put({
            "id": report_id,
            "documentId": document_id,
            "documentName": document_name,
            "status": ReportStatus.PROCESSING.value,
            "createdAt": created_at,
        })

        future = self.executor.submit(
            self._run_analysis_job, report_id, document_id, document_name, document["content"], created_at
        )
        with self._pending_lock:
            if not future.done():
                self._pending[report_id] = future
        future.add_done_callback(lambda _f: self._forget(report_id))
        logger.info("Analysis %s started for document %s", report_id, document_id)
        return report_id

    def _forget(self, report_id: str) -> None:
        with self._pending_lock:
            self._pending.pop(report_id, None)

    def _run_analysis_job(
        self,
        report_id: str,
        document_id: str,
        document_name: str,
        content: str,
        created_at: str,
    ) -> None:
        base = {
            "id": report_id,
            "documentId": document_id,
            "documentName": document_name,
            "createdAt": created_at,
        }
        try:
            analysis = self.analyzer.assess_compliance(content, document_name)
            improvements = self.analyzer.suggest_improvements(analysis)
        except Exception as e:
            logger.exception("Analysis %s failed", report_id)
            self.reports.put({
                **base,
                "status": ReportStatus.FAILED.value,
                "error": str(e) or type(e).__name__,
                "failedAt": now_utc_iso(),
            })
            return

        self.reports.put({
            **base,
            "status": ReportStatus.COMPLETED.value,
            "analysis": analysis,
            "improvements": improvements,
            "completedAt": now_utc_iso(),
        })
        logger.info(
            "Analysis %s completed: score %s, %s",
            report_id,
            analysis.get("overallScore"),
            analysis.get("complianceLevel"),
        )

    def get_report(self, report_id: str) -> Optional[Dict[str, Any]]:
        return self.reports.get(report_id)

    def wait(self, report_id: str, timeout: Optional[float] = None) -> bool:
        """Block until the background job for ``report_id`` is done.

        Returns False only when the timeout elapsed first.
        """
        with self._pending_lock:
            future = self._pending.get(report_id)
        if future is None:
            return True
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError:
            return False
        return True

    def stats(self) -> Dict[str, Any]:
        return {
            "documentsProcessed": len(self.documents),
            "reportsGenerated": len(self.reports),
            "uptimeSeconds": round(time.time() - self.started_at, 3),
            "timestamp": now_utc_iso(),
        }

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
