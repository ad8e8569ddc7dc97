"""
Shared fixtures for all tests.

factory-boy factories live here so both unit/ and integration/ can import
them. Nothing talks to a real LLM, Neo4j or Redis: the LLM is FakeLLMService,
the graph is the in-memory adapter and Celery runs eagerly.
"""
import json
import pytest
from datetime import datetime, timezone

import factory
from rest_framework.test import APIClient

from prescriptions import services
from prescriptions.analysis import PrescriptionAnalyzer
from prescriptions.graph import InMemoryGraphAdapter
from prescriptions.intake.types import PrescriptionForm
from prescriptions.ledger import Ledger
from prescriptions.llm.base import BaseLLMService
from prescriptions.llm.types import LLMResponse
from prescriptions.services import AnalysisOrchestrator
from prescriptions.types import DataSources, Issue, PatientInfo, PrescriptionResult, Suggestion


# ---------------------------------------------------------------------------
# Canned model answers
# ---------------------------------------------------------------------------

ANALYSIS_PAYLOAD = {
    'status': 'warning',
    'issues': [
        {
            'title': 'Potential Drug Interaction',
            'description': 'Lisinopril with potassium supplements may cause hyperkalemia.',
            'severity': 'medium',
        },
    ],
    'suggestions': [
        {'title': 'Monitor Potassium', 'description': 'Check serum potassium within 2 weeks.'},
    ],
    'dataSources': {'vectorDbEntries': 2, 'searchQueries': 1},
    'imageAnalysis': None,
    'historyReference': 'No prior prescriptions on record.',
}

ANALYSIS_JSON = json.dumps(ANALYSIS_PAYLOAD)


class FakeLLMService(BaseLLMService):
    """Returns a fixed answer and remembers every call."""

    def __init__(self, content=ANALYSIS_JSON, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def complete(self, system_prompt, user_prompt, image=None):
        self.calls.append({'system_prompt': system_prompt, 'user_prompt': user_prompt, 'image': image})
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content, model='fake-model')


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class PatientInfoFactory(factory.Factory):
    class Meta:
        model = PatientInfo

    name = 'John Doe'
    age = 45
    gender = 'male'
    medications = 'Aspirin 81mg daily'
    symptoms = 'Elevated blood pressure and fatigue'


class PrescriptionFormFactory(factory.Factory):
    class Meta:
        model = PrescriptionForm

    patient = factory.SubFactory(PatientInfoFactory)
    prescription = 'Lisinopril 10mg once daily, Metformin 500mg twice daily'
    image = None
    source = 'web_form'


class PrescriptionResultFactory(factory.Factory):
    class Meta:
        model = PrescriptionResult

    id = factory.Sequence(lambda n: f'rx-test-{n:04d}')
    original_prescription = 'Lisinopril 10mg once daily'
    status = 'valid'
    issues = factory.LazyFunction(
        lambda: [Issue(title='Dry cough', description='Common ACE inhibitor effect.', severity='low')]
    )
    suggestions = factory.LazyFunction(
        lambda: [Suggestion(title='Follow up', description='Review in 4 weeks.')]
    )
    data_sources = factory.LazyFunction(lambda: DataSources(vector_db_entries=1, search_queries=1))
    timestamp = factory.LazyFunction(lambda: datetime.now(timezone.utc).isoformat())
    last_updated = factory.SelfAttribute('timestamp')
    blockchain_status = 'Pending'


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def no_ledger_delay(settings):
    """Simulated ledger latency is real sleep; switch it off in tests."""
    settings.LEDGER_WRITE_DELAY = 0
    settings.LEDGER_READ_DELAY = 0
    settings.LEDGER_UPDATE_DELAY = 0
    settings.GRAPH_ENABLED = False


@pytest.fixture
def fake_llm():
    return FakeLLMService()


@pytest.fixture
def graph():
    return InMemoryGraphAdapter()


@pytest.fixture
def ledger(graph):
    return Ledger(graph)


@pytest.fixture
def orchestrator(fake_llm, ledger, graph):
    return AnalysisOrchestrator(
        analyzer=PrescriptionAnalyzer(fake_llm),
        ledger=ledger,
        graph=graph,
    )


@pytest.fixture
def installed_orchestrator(orchestrator, monkeypatch):
    """Make `orchestrator` the process-wide instance the views use."""
    monkeypatch.setattr(services, '_orchestrator', orchestrator)
    return orchestrator


@pytest.fixture
def api_client():
    """DRF test client for integration tests."""
    return APIClient()


@pytest.fixture
def sample_form_payload():
    """Minimal valid body for POST /api/prescriptions/."""
    return {
        'name': 'Alice Wang',
        'age': '52',
        'gender': 'female',
        'symptoms': 'Frequent headaches and dizziness',
        'medications': 'Potassium supplements',
        'prescription': 'Lisinopril 10mg once daily, Metformin 500mg twice daily',
    }
