"""
API Client Tests
"""
import json
from unittest.mock import MagicMock

import pytest
import requests

from gdpr_checker.client import (
    AnalysisFailedError,
    AnalysisStartError,
    ClientState,
    ComplianceClient,
    PollTimeoutError,
    UploadError,
    guess_media_type,
)


def _response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    response.text = json.dumps(body or {})
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f'{status_code}')
    return response


def _report(status, **extra):
    return _response(200, {'success': True, 'report': {'id': 'r1', 'status': status, **extra}})


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def api(session, sleeps):
    return ComplianceClient('http://server/api/', session=session, sleep=sleeps.append)


class TestUpload:
    """Test document upload"""

    def test_upload_bytes(self, api, session):
        session.post.return_value = _response(201, {'success': True, 'documentId': 'd1', 'metadata': {}})
        body = api.upload_document(b'policy text', filename='policy.txt')

        assert body['documentId'] == 'd1'
        url = session.post.call_args.args[0]
        assert url == 'http://server/api/upload'
        files = session.post.call_args.kwargs['files']
        assert files['document'] == ('policy.txt', b'policy text', 'text/plain')

    def test_upload_path(self, api, session, tmp_path):
        path = tmp_path / 'policy.docx'
        path.write_bytes(b'docx bytes')
        session.post.return_value = _response(201, {'success': True, 'documentId': 'd2'})

        api.upload_document(str(path))
        name, data, media_type = session.post.call_args.kwargs['files']['document']
        assert name == 'policy.docx'
        assert data == b'docx bytes'
        assert media_type == 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'

    def test_wrong_type_checked_locally(self, api, session):
        with pytest.raises(UploadError) as exc:
            api.upload_document(b'png', filename='photo.png')
        assert exc.value.kind == 'wrong_type'
        session.post.assert_not_called()

    def test_oversize_checked_locally(self, api, session):
        with pytest.raises(UploadError) as exc:
            api.upload_document(b'a' * (10 * 1024 * 1024 + 1), filename='big.txt')
        assert exc.value.kind == 'oversize'
        session.post.assert_not_called()

    @pytest.mark.parametrize('error,kind', [
        (requests.exceptions.Timeout('slow'), 'timeout'),
        (requests.exceptions.ConnectionError('down'), 'network'),
    ])
    def test_transport_errors(self, api, session, error, kind):
        session.post.side_effect = error
        with pytest.raises(UploadError) as exc:
            api.upload_document(b'text', filename='a.txt')
        assert exc.value.kind == kind

    def test_rejected(self, api, session):
        session.post.return_value = _response(400, {'error': 'Invalid document content', 'message': 'Document too short'})
        with pytest.raises(UploadError) as exc:
            api.upload_document(b'text', filename='a.txt')
        assert exc.value.kind == 'rejected'
        assert exc.value.message == 'Document too short'

    def test_server_error(self, api, session):
        session.post.return_value = _response(500, {'error': 'Document processing failed', 'message': 'bad pdf'})
        with pytest.raises(UploadError) as exc:
            api.upload_document(b'%PDF', filename='a.pdf')
        assert exc.value.kind == 'server'

    def test_guess_media_type(self):
        assert guess_media_type('A.PDF') == 'application/pdf'
        assert guess_media_type('legacy.doc') == 'application/msword'


class TestStartAnalysis:
    """Test analysis start with retries"""

    def test_success(self, api, session, sleeps):
        session.post.return_value = _response(200, {'success': True, 'reportId': 'r1', 'status': 'processing'})
        assert api.start_analysis('d1') == 'r1'
        assert session.post.call_args.kwargs['json'] == {'documentId': 'd1'}
        assert sleeps == []

    def test_retries_transient_failures(self, api, session, sleeps):
        session.post.side_effect = [
            requests.exceptions.ConnectionError('down'),
            _response(503, {'error': 'unavailable'}),
            requests.exceptions.Timeout('slow'),
            _response(200, {'success': True, 'reportId': 'r9'}),
        ]
        assert api.start_analysis('d1') == 'r9'
        assert session.post.call_count == 4
        assert sleeps == [2.0, 4.0, 6.0]

    def test_gives_up_after_three_retries(self, api, session, sleeps):
        session.post.side_effect = requests.exceptions.ConnectionError('down')
        with pytest.raises(AnalysisStartError):
            api.start_analysis('d1')
        assert session.post.call_count == 4
        assert sleeps == [2.0, 4.0, 6.0]

    def test_client_error_not_retried(self, api, session, sleeps):
        session.post.return_value = _response(404, {'error': 'Document not found', 'message': 'missing'})
        with pytest.raises(AnalysisStartError, match='missing'):
            api.start_analysis('d1')
        assert session.post.call_count == 1
        assert sleeps == []

    def test_unsuccessful_body_not_retried(self, api, session):
        session.post.return_value = _response(200, {'success': False, 'message': 'nope'})
        with pytest.raises(AnalysisStartError, match='nope'):
            api.start_analysis('d1')
        assert session.post.call_count == 1


class TestPolling:
    """Test report polling"""

    def test_completed(self, api, session, sleeps):
        session.get.side_effect = [_report('processing'), _report('processing'), _report('completed', analysis={})]
        report = api.poll_for_report('r1')
        assert report['status'] == 'completed'
        assert session.get.call_args.args[0] == 'http://server/api/reports/r1'
        assert sleeps == [2.0, 2.0]

    def test_failed(self, api, session):
        session.get.return_value = _report('failed', error='LLM API error')
        with pytest.raises(AnalysisFailedError, match='LLM API error'):
            api.poll_for_report('r1')
        assert session.get.call_count == 1

    def test_times_out_after_thirty_reads(self, api, session, sleeps):
        session.get.return_value = _report('processing')
        with pytest.raises(PollTimeoutError):
            api.poll_for_report('r1')
        assert session.get.call_count == 30
        assert len(sleeps) == 29

    def test_transient_read_errors_keep_polling(self, api, session):
        session.get.side_effect = [
            requests.exceptions.ConnectionError('blip'),
            _response(502, {}),
            _report('completed'),
        ]
        assert api.poll_for_report('r1')['status'] == 'completed'
        assert session.get.call_count == 3

    def test_timeout_is_not_a_failure(self):
        assert not issubclass(PollTimeoutError, AnalysisFailedError)


class TestCheckDocument:
    """Test the full upload, analyze, poll sequence"""

    def test_check_document_persists_state(self, api, session, tmp_path):
        path = tmp_path / 'policy.txt'
        path.write_text('privacy policy text')
        state_path = str(tmp_path / 'state.json')
        session.post.side_effect = [
            _response(201, {'success': True, 'documentId': 'd1'}),
            _response(200, {'success': True, 'reportId': 'r1'}),
        ]
        session.get.return_value = _report('completed', analysis={'overallScore': 88})

        report = api.check_document(str(path), state_path=state_path)
        assert report['analysis']['overallScore'] == 88

        state = ClientState.load(state_path)
        assert state.current_step == 'report'
        assert state.document_id == 'd1'
        assert state.report_id == 'r1'
        assert state.report_data['status'] == 'completed'


class TestClientState:
    """Test persisted client state"""

    def test_round_trip(self, tmp_path):
        path = str(tmp_path / 'state.json')
        ClientState('report', 'd1', 'r1', {'status': 'completed'}).save(path)
        state = ClientState.load(path)
        assert state == ClientState('report', 'd1', 'r1', {'status': 'completed'})

    def test_missing_file(self, tmp_path):
        assert ClientState.load(str(tmp_path / 'none.json')) is None

    def test_corrupt_file_discarded(self, tmp_path):
        path = tmp_path / 'state.json'
        path.write_text('{not json')
        assert ClientState.load(str(path)) is None
        assert not path.exists()

    def test_incomplete_state_not_restored(self, tmp_path):
        path = str(tmp_path / 'state.json')
        ClientState('analyzing', 'd1', 'r1', None).save(path)
        assert ClientState.load(path) is None

    def test_clear(self, tmp_path):
        path = tmp_path / 'state.json'
        ClientState('report', 'd1', 'r1', {'status': 'completed'}).save(str(path))
        ClientState.clear(str(path))
        assert not path.exists()
