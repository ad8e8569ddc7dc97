"""
HTTP views.

Views only parse the request, call the orchestrator and serialize.
Errors are raised, never formatted here: exception_handler does that.
"""

import logging

from django.http import JsonResponse
from rest_framework.views import APIView

from .exceptions import RecordNotFound, ValidationError
from .intake import DEFAULT_SOURCE, get_adapter
from .intake.base import parse_age
from .serializers import serialize_history, serialize_result, serialize_submission
from .services import get_orchestrator
from .tasks import analyze_prescription
from .types import PatientInfo

logger = logging.getLogger(__name__)


class PrescriptionSubmitView(APIView):
    """POST /api/prescriptions/ - validate intake, analyse and record"""

    def post(self, request):
        content_type = request.content_type or ""
        if content_type.startswith("multipart/"):
            source = request.headers.get("X-Form-Source", "multipart")
            adapter = get_adapter(source, request.POST, content_type, files=request.FILES)
        else:
            source = request.headers.get("X-Form-Source", DEFAULT_SOURCE)
            adapter = get_adapter(source, request.body, content_type)

        form = adapter.process()

        task = analyze_prescription.delay(form.to_payload())
        if not task.ready():
            return JsonResponse({
                'taskId': task.id,
                'status': 'queued',
                'message': 'Prescription queued for analysis.',
            }, status=202)

        result = get_orchestrator().get(task.result)
        return JsonResponse(serialize_submission(result), status=202)


class LatestResultView(APIView):
    """GET /api/prescriptions/latest/ - newest result, or the demo example"""

    def get(self, request):
        return JsonResponse(serialize_result(get_orchestrator().latest()))


class PrescriptionDetailView(APIView):
    """GET /api/prescriptions/<id>/"""

    def get(self, request, result_id):
        return JsonResponse(serialize_result(get_orchestrator().get(result_id)))


class LedgerView(APIView):
    """
    GET  /api/prescriptions/<id>/ledger/ - the ledger record, including its hash
    POST /api/prescriptions/<id>/ledger/ - re-record on the ledger
    """

    def get(self, request, result_id):
        return JsonResponse(get_orchestrator().ledger_record(result_id).to_dict())

    def post(self, request, result_id):
        result = get_orchestrator().refresh_ledger_status(result_id)
        return JsonResponse(serialize_result(result))


class FingerprintSearchView(APIView):
    """GET /api/prescriptions/by-fingerprint/<hash>/"""

    def get(self, request, fingerprint):
        fingerprint = fingerprint.strip()
        result = get_orchestrator().find_by_fingerprint(fingerprint)
        if result is None:
            raise RecordNotFound(
                message='No prescription record found with this hash',
                detail={'hash': fingerprint},
            )
        return JsonResponse(serialize_result(result))


class PatientHistoryView(APIView):
    """GET /api/patients/history/?name=...&age=...&gender=..."""

    def get(self, request):
        name = request.query_params.get('name', '').strip()
        if not name:
            raise ValidationError(
                message='Query parameter "name" is required.',
                detail={'errors': [{'field': 'name', 'message': 'This field is required.'}]},
            )

        patient = PatientInfo(
            name=name,
            age=parse_age(request.query_params.get('age')),
            gender=request.query_params.get('gender', '').strip(),
        )
        return JsonResponse(serialize_history(get_orchestrator().history(patient)))
