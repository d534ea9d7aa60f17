"""
Analysis Orchestrator Tests
"""
from unittest.mock import MagicMock, patch

import pytest
from gdpr_checker.errors import ComplianceServiceError, DocumentNotFound, ReportStateError
from gdpr_checker.services.analysis_service import AnalysisOrchestrator
from gdpr_checker.services.openai_service import OpenAIComplianceService
from gdpr_checker.storage import MemoryDocumentStore, MemoryReportStore


@pytest.fixture
def orchestrator(analyzer, policy_text):
    documents = MemoryDocumentStore()
    documents.put('doc-1', policy_text, {'filename': 'policy.txt', 'uploadedAt': '2024-01-01T00:00:00+00:00'})
    orch = AnalysisOrchestrator(documents, MemoryReportStore(), analyzer, max_workers=2)
    yield orch
    analyzer.gate.set()
    orch.shutdown(wait=True)


class TestStartAnalysis:
    """Test report lifecycle"""

    def test_processing_then_completed(self, orchestrator, analyzer):
        analyzer.gate.clear()
        report_id = orchestrator.start_analysis('doc-1')

        report = orchestrator.get_report(report_id)
        assert report['status'] == 'processing'
        assert report['documentId'] == 'doc-1'
        assert report['documentName'] == 'policy.txt'
        assert 'createdAt' in report
        assert orchestrator.wait(report_id, timeout=0.05) is False

        analyzer.gate.set()
        assert orchestrator.wait(report_id, timeout=5) is True
        report = orchestrator.get_report(report_id)
        assert report['status'] == 'completed'
        assert report['analysis']['overallScore'] == 82
        assert 'prioritizedImprovements' in report['improvements']
        assert 'completedAt' in report
        assert analyzer.calls == ['policy.txt']

    def test_failed(self, orchestrator, analyzer):
        analyzer.error = ComplianceServiceError('LLM API error: quota exceeded')
        report_id = orchestrator.start_analysis('doc-1')
        assert orchestrator.wait(report_id, timeout=5)

        report = orchestrator.get_report(report_id)
        assert report['status'] == 'failed'
        assert report['error'] == 'LLM API error: quota exceeded'
        assert 'failedAt' in report
        assert 'analysis' not in report

    def test_unparseable_score_still_completes(self, orchestrator):
        """Malformed model output degrades to a completed report"""
        choice = MagicMock()
        choice.message.content = '{"overallScore": 1e999, "complianceLevel": "x"}'
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = MagicMock(choices=[choice])
        orchestrator.analyzer = OpenAIComplianceService(api_key='k', base_url=None, model='m')

        with patch('gdpr_checker.services.openai_service.OpenAI', return_value=mock_client):
            report_id = orchestrator.start_analysis('doc-1')
            assert orchestrator.wait(report_id, timeout=5)

        report = orchestrator.get_report(report_id)
        assert report['status'] == 'completed'
        assert report['analysis']['overallScore'] == 0

    def test_failure_without_message(self, orchestrator, analyzer):
        """Exceptions with no message still leave a non-empty error"""
        analyzer.error = RuntimeError()
        report_id = orchestrator.start_analysis('doc-1')
        assert orchestrator.wait(report_id, timeout=5)
        assert orchestrator.get_report(report_id)['error'] == 'RuntimeError'

    def test_unknown_document(self, orchestrator):
        """No report is created for a missing document"""
        with pytest.raises(DocumentNotFound):
            orchestrator.start_analysis('missing')
        assert len(orchestrator.reports) == 0

    def test_terminal_state_is_final(self, orchestrator):
        report_id = orchestrator.start_analysis('doc-1')
        assert orchestrator.wait(report_id, timeout=5)
        before = orchestrator.get_report(report_id)

        with pytest.raises(ReportStateError):
            orchestrator.reports.put({**before, 'status': 'failed', 'error': 'late write'})
        assert orchestrator.get_report(report_id) == before

    def test_each_request_gets_its_own_report(self, orchestrator):
        first = orchestrator.start_analysis('doc-1')
        second = orchestrator.start_analysis('doc-1')
        assert first != second
        assert orchestrator.wait(first, timeout=5) and orchestrator.wait(second, timeout=5)
        assert len(orchestrator.reports) == 2

    def test_stats(self, orchestrator):
        orchestrator.wait(orchestrator.start_analysis('doc-1'), timeout=5)
        stats = orchestrator.stats()
        assert stats['documentsProcessed'] == 1
        assert stats['reportsGenerated'] == 1
        assert stats['uptimeSeconds'] >= 0


class TestMemoryStores:
    """Test in-memory store isolation"""

    def test_get_returns_copy(self):
        store = MemoryReportStore()
        store.put({'id': 'r1', 'status': 'processing'})
        record = store.get('r1')
        record['status'] = 'completed'
        assert store.get('r1')['status'] == 'processing'

    def test_missing(self):
        assert MemoryDocumentStore().get('nope') is None
        assert MemoryReportStore().get('nope') is None
