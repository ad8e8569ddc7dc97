"""
Integration tests: real HTTP requests against the Django views.

Uses the DRF test client end to end:
  HTTP Request → urls.py → View → intake adapter → Celery task (eager)
  → orchestrator → ledger / graph → Response

The orchestrator is the `installed_orchestrator` fixture, wired to
FakeLLMService and the in-memory graph; nothing leaves the process.
"""
import json
import re
import pytest
from unittest.mock import MagicMock, patch

from django.core.files.uploadedfile import SimpleUploadedFile

from prescriptions.analysis import PrescriptionAnalyzer
from tests.conftest import FakeLLMService, PrescriptionFormFactory


# -------------------------------------------------------------------
# Helper
# -------------------------------------------------------------------

def post_prescription(api_client, payload, **kwargs):
    """POST /api/prescriptions/ as JSON, returns (status_code, body_dict)."""
    response = api_client.post(
        '/api/prescriptions/',
        data=json.dumps(payload),
        content_type='application/json',
        **kwargs,
    )
    return response.status_code, json.loads(response.content)


def get_json(api_client, url, **params):
    response = api_client.get(url, params)
    return response.status_code, json.loads(response.content)


# ===================================================================
# POST /api/prescriptions/
# ===================================================================

class TestSubmitPrescription:

    def test_submit_success(self, api_client, installed_orchestrator, sample_form_payload):
        status, body = post_prescription(api_client, sample_form_payload)

        assert status == 202
        assert body['id'].startswith('rx-')
        assert body['status'] == 'warning'
        assert body['blockchainStatus'] == 'Recorded'
        # success bodies never carry "type"
        assert 'type' not in body

        assert installed_orchestrator.latest().id == body['id']

    def test_validation_error_400(self, api_client, installed_orchestrator, sample_form_payload):
        sample_form_payload['symptoms'] = 'tired'
        sample_form_payload['age'] = '0'

        status, body = post_prescription(api_client, sample_form_payload)

        assert status == 400
        assert body['type'] == 'validation_error'
        assert {e['field'] for e in body['detail']['errors']} == {'symptoms', 'age'}
        assert installed_orchestrator.results.latest() is None

    def test_malformed_json_400(self, api_client, installed_orchestrator):
        response = api_client.post(
            '/api/prescriptions/', data='{broken', content_type='application/json',
        )

        assert response.status_code == 400
        assert json.loads(response.content)['code'] == 'MALFORMED_JSON'

    def test_unknown_form_source_400(self, api_client, installed_orchestrator, sample_form_payload):
        status, body = post_prescription(
            api_client, sample_form_payload, HTTP_X_FORM_SOURCE='fax',
        )

        assert status == 400
        assert body['code'] == 'UNKNOWN_SOURCE'

    def test_invalid_ai_answer_502(self, api_client, installed_orchestrator, sample_form_payload):
        installed_orchestrator.analyzer = PrescriptionAnalyzer(FakeLLMService(content='I cannot help.'))

        status, body = post_prescription(api_client, sample_form_payload)

        assert status == 502
        assert body['type'] == 'analysis_failed'
        assert body['code'] == 'AI_RESPONSE_INVALID'

    def test_llm_outage_502(self, api_client, installed_orchestrator, sample_form_payload):
        installed_orchestrator.analyzer = PrescriptionAnalyzer(
            FakeLLMService(error=TimeoutError('upstream timeout'))
        )

        status, body = post_prescription(api_client, sample_form_payload)

        assert status == 502
        assert body['code'] == 'ANALYSIS_FAILED'

    def test_image_data_url(self, api_client, installed_orchestrator, sample_form_payload, fake_llm):
        sample_form_payload['prescription'] = ''
        sample_form_payload['prescriptionImage'] = 'data:image/png;base64,iVBORw0KGgo='

        status, _ = post_prescription(api_client, sample_form_payload)

        assert status == 202
        assert fake_llm.calls[0]['image'].mime_type == 'image/png'

    def test_garbage_image_400_without_llm_call(self, api_client, installed_orchestrator, sample_form_payload, fake_llm):
        sample_form_payload['prescription'] = 'x'
        sample_form_payload['prescriptionImage'] = '%%% not base64 %%%'

        status, body = post_prescription(api_client, sample_form_payload)

        assert status == 400
        assert body['detail']['errors'][0]['field'] == 'prescriptionImage'
        assert fake_llm.calls == []

    def test_multipart_upload(self, api_client, installed_orchestrator, sample_form_payload, fake_llm):
        sample_form_payload['prescriptionImage'] = SimpleUploadedFile(
            'rx.jpg', b'\xff\xd8\xff', content_type='image/jpeg',
        )

        response = api_client.post('/api/prescriptions/', data=sample_form_payload, format='multipart')

        assert response.status_code == 202
        image = fake_llm.calls[0]['image']
        assert image.mime_type == 'image/jpeg'
        assert image.data == '/9j/'

    @patch('prescriptions.views.analyze_prescription')
    def test_queued_when_worker_is_async(self, mock_task, api_client, installed_orchestrator, sample_form_payload):
        mock_task.delay.return_value = MagicMock(id='task-1', ready=MagicMock(return_value=False))

        status, body = post_prescription(api_client, sample_form_payload)

        assert status == 202
        assert body == {
            'taskId': 'task-1',
            'status': 'queued',
            'message': 'Prescription queued for analysis.',
        }
        payload = mock_task.delay.call_args.args[0]
        assert payload['patient']['name'] == 'Alice Wang'
        assert payload['patient']['age'] == 52


# ===================================================================
# GET /api/prescriptions/latest/ and /api/prescriptions/<id>/
# ===================================================================

class TestReadResults:

    def test_latest_demo_when_empty(self, api_client, installed_orchestrator):
        status, body = get_json(api_client, '/api/prescriptions/latest/')

        assert status == 200
        assert body['id'] == 'rx-mock-123456'
        assert body['dataSources'] == {'vectorDbEntries': 1245, 'searchQueries': 3}

    def test_latest_after_submit(self, api_client, installed_orchestrator, sample_form_payload):
        _, created = post_prescription(api_client, sample_form_payload)

        status, body = get_json(api_client, '/api/prescriptions/latest/')

        assert status == 200
        assert body['id'] == created['id']
        assert body['originalPrescription'] == sample_form_payload['prescription']
        assert body['blockchainStatus'] == 'Recorded'
        assert body['issues'][0]['severity'] == 'medium'
        assert body['historyReference'] == 'No prior prescriptions on record.'
        assert 'imageAnalysis' not in body

    def test_detail(self, api_client, installed_orchestrator):
        result_id = installed_orchestrator.submit(PrescriptionFormFactory())

        status, body = get_json(api_client, f'/api/prescriptions/{result_id}/')

        assert status == 200
        assert body['id'] == result_id

    def test_detail_unknown_404(self, api_client, installed_orchestrator):
        status, body = get_json(api_client, '/api/prescriptions/rx-missing/')

        assert status == 404
        assert body['type'] == 'not_found'
        assert body['code'] == 'RECORD_NOT_FOUND'


# ===================================================================
# /api/prescriptions/<id>/ledger/
# ===================================================================

class TestLedgerRecord:

    def test_get_returns_hash(self, api_client, installed_orchestrator, sample_form_payload):
        _, created = post_prescription(api_client, sample_form_payload)

        status, body = get_json(api_client, f"/api/prescriptions/{created['id']}/ledger/")

        assert status == 200
        assert body['id'] == created['id']
        assert body['status'] == 'warning'
        assert re.fullmatch(r'[0-9a-f]{8}', body['hash'])
        assert body['data'] == {'status': 'warning', 'issuesCount': 1, 'suggestionsCount': 1}

    def test_get_unknown_404(self, api_client, installed_orchestrator):
        status, body = get_json(api_client, '/api/prescriptions/rx-missing/ledger/')

        assert status == 404
        assert body['code'] == 'RECORD_NOT_FOUND'


class TestLedgerRefresh:

    def test_refresh_marks_updated(self, api_client, installed_orchestrator):
        result_id = installed_orchestrator.submit(PrescriptionFormFactory())
        before = installed_orchestrator.get(result_id)

        response = api_client.post(f'/api/prescriptions/{result_id}/ledger/')
        body = json.loads(response.content)

        assert response.status_code == 200
        assert body['blockchainStatus'] == 'Updated'
        assert body['timestamp'] == before.timestamp
        assert body['lastUpdated'] >= before.last_updated

    def test_refresh_unknown_404(self, api_client, installed_orchestrator):
        response = api_client.post('/api/prescriptions/rx-missing/ledger/')

        assert response.status_code == 404
        assert json.loads(response.content)['code'] == 'RECORD_NOT_FOUND'


# ===================================================================
# GET /api/prescriptions/by-fingerprint/<hash>/
# ===================================================================

class TestFingerprintSearch:

    def test_search_with_hash_from_ledger_endpoint(self, api_client, sample_form_payload, installed_orchestrator):
        _, created = post_prescription(api_client, sample_form_payload)
        _, record = get_json(api_client, f"/api/prescriptions/{created['id']}/ledger/")

        status, body = get_json(api_client, f"/api/prescriptions/by-fingerprint/{record['hash']}/")

        assert status == 200
        assert body['id'] == created['id']
        assert body['originalPrescription'] == sample_form_payload['prescription']

    def test_search_after_refresh_uses_new_hash(self, api_client, sample_form_payload, installed_orchestrator):
        _, created = post_prescription(api_client, sample_form_payload)
        ledger_url = f"/api/prescriptions/{created['id']}/ledger/"
        _, before = get_json(api_client, ledger_url)

        api_client.post(ledger_url)
        _, after = get_json(api_client, ledger_url)

        assert after['hash'] != before['hash']
        status, body = get_json(api_client, f"/api/prescriptions/by-fingerprint/{after['hash']}/")
        assert status == 200
        assert body['blockchainStatus'] == 'Updated'
        old_status, _ = get_json(api_client, f"/api/prescriptions/by-fingerprint/{before['hash']}/")
        assert old_status == 404

    def test_unknown_404(self, api_client, installed_orchestrator):
        status, body = get_json(api_client, '/api/prescriptions/by-fingerprint/deadbeef/')

        assert status == 404
        assert body['code'] == 'RECORD_NOT_FOUND'
        assert body['detail'] == {'hash': 'deadbeef'}


# ===================================================================
# GET /api/patients/history/
# ===================================================================

class TestPatientHistory:

    def test_history_for_patient(self, api_client, installed_orchestrator, sample_form_payload):
        post_prescription(api_client, sample_form_payload)
        post_prescription(api_client, sample_form_payload)

        status, body = get_json(
            api_client, '/api/patients/history/', name='Alice Wang', age='52', gender='female',
        )

        assert status == 200
        assert body['count'] == 2
        assert all(p['originalPrescription'] == sample_form_payload['prescription'] for p in body['prescriptions'])

    def test_history_other_patient_empty(self, api_client, installed_orchestrator, sample_form_payload):
        post_prescription(api_client, sample_form_payload)

        status, body = get_json(api_client, '/api/patients/history/', name='Bob Stone')

        assert status == 200
        assert body == {'count': 0, 'prescriptions': []}

    def test_name_required_400(self, api_client, installed_orchestrator):
        status, body = get_json(api_client, '/api/patients/history/')

        assert status == 400
        assert body['type'] == 'validation_error'
        assert body['detail']['errors'][0]['field'] == 'name'
