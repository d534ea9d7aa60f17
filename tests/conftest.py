"""
Test Configuration and Fixtures
"""
import io
import threading

import pytest
from gdpr_checker import EXTENSION_KEY, create_app
from gdpr_checker.services.openai_service import GDPR_AREAS, ComplianceAnalyzer

POLICY_TEXT = (
    'Privacy Policy. We process personal data on the basis of consent and legitimate interest. '
    'Data subjects may request access, rectification and erasure of their data at any time. '
    'Personal data is retained for no longer than two years and protected with encryption. '
) * 3

DOCX_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'


def sample_analysis(score=82):
    return {
        'overallScore': score,
        'complianceLevel': 'Mostly Compliant',
        'summary': 'The policy covers most GDPR requirements.',
        'strengths': ['Clear lawful basis'],
        'weaknesses': ['No DPIA process'],
        'recommendations': ['Document a DPIA process'],
        'detailedAnalysis': {key: {'status': 'partial', 'details': label} for key, label in GDPR_AREAS},
    }


SAMPLE_IMPROVEMENTS = {
    'prioritizedImprovements': [
        {
            'priority': 'High',
            'area': 'DPIA',
            'description': 'Introduce a DPIA procedure',
            'implementation': 'Adopt a DPIA template',
            'templateText': 'We carry out DPIAs for high-risk processing.',
            'timeline': '30 days',
        }
    ]
}


class FakeAnalyzer(ComplianceAnalyzer):
    """In-process analyzer; ``gate`` holds jobs in processing until set."""

    default_model = 'fake-model'

    def __init__(self, analysis=None, improvements=None, error=None, models=None):
        self.analysis = analysis or sample_analysis()
        self.improvements = improvements or SAMPLE_IMPROVEMENTS
        self.error = error
        self.models = models if models is not None else ['fake-model', 'fake-model-large']
        self.gate = threading.Event()
        self.gate.set()
        self.calls = []

    def assess_compliance(self, document_text, document_name='document'):
        self.gate.wait(5)
        self.calls.append(document_name)
        if self.error:
            raise self.error
        return dict(self.analysis)

    def suggest_improvements(self, analysis):
        return dict(self.improvements)

    def list_models(self):
        if isinstance(self.models, Exception):
            raise self.models
        return list(self.models)


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture(scope='function')
def app(analyzer):
    """Create application for testing"""
    app = create_app('testing', analyzer=analyzer)
    yield app
    analyzer.gate.set()
    app.extensions[EXTENSION_KEY].shutdown(wait=True)


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def orchestrator(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture
def upload_text(client):
    """Upload plain text and return the response"""
    def _upload(text=POLICY_TEXT, filename='policy.txt', content_type='text/plain'):
        return client.post(
            '/api/upload',
            data={'document': (io.BytesIO(text.encode('utf-8')), filename, content_type)},
            content_type='multipart/form-data',
        )
    return _upload


@pytest.fixture
def policy_text():
    return POLICY_TEXT
