import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=0)
def analyze_prescription(self, payload: dict) -> str:
    """
    Run one submission through the orchestrator.

    No retries: a failed analysis is reported to the caller as
    AnalysisFailed. Results live in process memory, so settings run this
    eagerly (CELERY_TASK_ALWAYS_EAGER) unless the stores are shared.
    """
    from prescriptions.intake.types import PrescriptionForm
    from prescriptions.services import get_orchestrator

    form = PrescriptionForm.from_payload(payload)
    logger.info("[Celery][analyze_prescription] start, patient=%r source=%s",
                form.patient.name, form.source or "-")

    result_id = get_orchestrator().submit(form)

    logger.info("[Celery][analyze_prescription] done, id=%s", result_id)
    return result_id
