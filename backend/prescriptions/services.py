import logging
import time
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from .analysis import PrescriptionAnalyzer
from .exceptions import AnalysisFailed, RecordNotFound
from .graph import GraphAdapter, build_graph_adapter
from .intake.types import PrescriptionForm
from .ledger import Ledger
from .llm import get_llm_service
from .stores import InMemoryResultStore, ResultStore
from .types import (
    BLOCKCHAIN_PENDING,
    BLOCKCHAIN_RECORDED,
    BLOCKCHAIN_UPDATED,
    DataSources,
    Issue,
    LedgerRecord,
    PatientInfo,
    PrescriptionResult,
    Suggestion,
)

logger = logging.getLogger(__name__)


def generate_result_id() -> str:
    return f"rx-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def demo_result() -> PrescriptionResult:
    """Shown by the dashboard before anything has been submitted."""
    now = _now()
    return PrescriptionResult(
        id="rx-mock-123456",
        original_prescription="Lisinopril 10mg once daily, Metformin 500mg twice daily",
        status="warning",
        issues=[
            Issue(
                title="Potential Drug Interaction",
                description="Lisinopril and Metformin may interact, causing hypoglycemia in some patients.",
                severity="medium",
            ),
        ],
        suggestions=[
            Suggestion(
                title="Monitor Blood Sugar",
                description="Regularly monitor blood sugar levels when taking these medications together.",
            ),
            Suggestion(
                title="Consider Alternative",
                description="If hypoglycemia occurs, consider alternative blood pressure medications.",
            ),
        ],
        data_sources=DataSources(vector_db_entries=1245, search_queries=3),
        timestamp=now,
        blockchain_status=BLOCKCHAIN_RECORDED,
        last_updated=now,
    )


class AnalysisOrchestrator:
    """
    intake → AI analysis → result → ledger (→ graph) → retrieval.

    Writes to the result store, the ledger and the graph are not atomic:
    a failure after the local save leaves the result stored with
    blockchain_status Pending. Nothing is rolled back.
    """

    def __init__(
        self,
        analyzer: PrescriptionAnalyzer,
        ledger: Ledger,
        graph: GraphAdapter,
        results: Optional[ResultStore] = None,
    ):
        self.analyzer = analyzer
        self.ledger = ledger
        self.graph = graph
        self.results = results if results is not None else InMemoryResultStore()

    def submit(self, form: PrescriptionForm) -> str:
        """
        Analyse and record one prescription. Returns the new result id.

        Raises AnalysisFailed (or one of its subclasses) on any failure.
        """
        result_id = generate_result_id()
        logger.info("[Orchestrator] submit id=%s source=%s", result_id, form.source or "-")

        try:
            history = self.history(form.patient)
            analysis = self.analyzer.analyze(
                form.prescription,
                form.patient,
                image=form.image,
                history=history,
            )

            now = _now()
            result = PrescriptionResult(
                id=result_id,
                original_prescription=form.prescription,
                status=analysis.status,
                issues=analysis.issues,
                suggestions=analysis.suggestions,
                data_sources=analysis.data_sources,
                image_analysis=analysis.image_analysis,
                history_reference=analysis.history_reference,
                timestamp=now,
                blockchain_status=BLOCKCHAIN_PENDING,
                last_updated=now,
            )
            self.results.save(result)

            self.ledger.store(result, form.patient)
            result.blockchain_status = BLOCKCHAIN_RECORDED

        except AnalysisFailed:
            logger.exception("[Orchestrator] analysis failed for id=%s", result_id)
            raise
        except Exception as exc:
            logger.exception("[Orchestrator] analysis failed for id=%s", result_id)
            raise AnalysisFailed(
                message="Failed to analyze prescription",
                detail={"id": result_id, "error": str(exc)},
            ) from exc

        logger.info("[Orchestrator] id=%s status=%s recorded", result_id, result.status)
        return result_id

    def latest(self) -> PrescriptionResult:
        result = self.results.latest()
        return result if result is not None else demo_result()

    def get(self, result_id: str) -> PrescriptionResult:
        result = self.results.get(result_id)
        if result is None:
            raise RecordNotFound(
                message=f"No prescription with id {result_id!r}",
                detail={"id": result_id},
            )
        return result

    def ledger_record(self, result_id: str) -> LedgerRecord:
        """The ledger entry for a result; its hash is what find_by_fingerprint takes."""
        return self.ledger.get(result_id)

    def refresh_ledger_status(self, result_id: str) -> PrescriptionResult:
        current = self.get(result_id)

        refreshed = replace(current, last_updated=_now(), blockchain_status=BLOCKCHAIN_UPDATED)
        self.ledger.update(result_id, refreshed)
        self.results.save(refreshed)

        logger.info("[Orchestrator] id=%s ledger status refreshed", result_id)
        return refreshed

    def find_by_fingerprint(self, fingerprint: str) -> Optional[PrescriptionResult]:
        record = self.ledger.find_by_fingerprint(fingerprint)
        if record is None:
            return None

        found = self.graph.by_fingerprint(fingerprint)
        if found is not None:
            return found
        # graph write may have failed; the local copy is still there
        return self.results.get(record.id)

    def history(self, patient: PatientInfo) -> list[PrescriptionResult]:
        try:
            return self.graph.history(patient)
        except Exception:
            logger.exception("[Orchestrator] history lookup failed for patient %r", patient.name)
            return []


# ── Process-wide instance ─────────────────────────────────────────────────

_orchestrator: Optional[AnalysisOrchestrator] = None


def build_orchestrator() -> AnalysisOrchestrator:
    graph = build_graph_adapter()
    return AnalysisOrchestrator(
        analyzer=PrescriptionAnalyzer(get_llm_service()),
        ledger=Ledger(graph),
        graph=graph,
    )


def get_orchestrator() -> AnalysisOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator


def reset_orchestrator() -> None:
    global _orchestrator
    if _orchestrator is not None:
        _orchestrator.graph.close()
    _orchestrator = None
