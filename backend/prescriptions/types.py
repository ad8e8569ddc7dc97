"""
Domain records shared by the ledger, the graph adapter and the orchestrator.

Everything is an in-memory dataclass; nothing here touches a database.
to_dict() / from_dict() use the camelCase keys the dashboard expects.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

STATUS_CHOICES = ('valid', 'warning', 'invalid')
SEVERITY_CHOICES = ('low', 'medium', 'high')

BLOCKCHAIN_PENDING = 'Pending'
BLOCKCHAIN_RECORDED = 'Recorded'
BLOCKCHAIN_UPDATED = 'Updated'


@dataclass
class PatientInfo:
    name: str
    age: int
    gender: str
    medications: str = ""     # current medications, free text
    symptoms: str = ""

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'age': self.age,
            'gender': self.gender,
            'medications': self.medications,
            'symptoms': self.symptoms,
        }


@dataclass
class Issue:
    title: str
    description: str
    severity: str             # low | medium | high

    def to_dict(self) -> dict:
        return {'title': self.title, 'description': self.description, 'severity': self.severity}


@dataclass
class Suggestion:
    title: str
    description: str

    def to_dict(self) -> dict:
        return {'title': self.title, 'description': self.description}


@dataclass
class DataSources:
    vector_db_entries: int = 0
    search_queries: int = 0

    def to_dict(self) -> dict:
        return {'vectorDbEntries': self.vector_db_entries, 'searchQueries': self.search_queries}


@dataclass
class AnalysisResult:
    """Validated model answer, before it is merged into a PrescriptionResult."""

    status: str
    issues: list[Issue] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)
    data_sources: DataSources = field(default_factory=DataSources)
    image_analysis: Optional[str] = None
    history_reference: Optional[str] = None


@dataclass
class PrescriptionResult:
    id: str
    original_prescription: str
    status: str
    data_sources: DataSources
    timestamp: str
    last_updated: str
    blockchain_status: str = BLOCKCHAIN_PENDING
    issues: Optional[list[Issue]] = None
    suggestions: Optional[list[Suggestion]] = None
    image_analysis: Optional[str] = None
    history_reference: Optional[str] = None
    medications: Optional[list[str]] = None

    def to_dict(self) -> dict:
        body: dict[str, Any] = {
            'id': self.id,
            'originalPrescription': self.original_prescription,
            'status': self.status,
            'dataSources': self.data_sources.to_dict(),
            'timestamp': self.timestamp,
            'blockchainStatus': self.blockchain_status,
            'lastUpdated': self.last_updated,
        }
        if self.issues is not None:
            body['issues'] = [i.to_dict() for i in self.issues]
        if self.suggestions is not None:
            body['suggestions'] = [s.to_dict() for s in self.suggestions]
        if self.image_analysis is not None:
            body['imageAnalysis'] = self.image_analysis
        if self.history_reference is not None:
            body['historyReference'] = self.history_reference
        if self.medications is not None:
            body['medications'] = list(self.medications)
        return body

    @classmethod
    def from_dict(cls, data: dict) -> "PrescriptionResult":
        sources = data.get('dataSources') or {}
        issues = data.get('issues')
        suggestions = data.get('suggestions')
        return cls(
            id=data['id'],
            original_prescription=data.get('originalPrescription', ''),
            status=data['status'],
            data_sources=DataSources(
                vector_db_entries=sources.get('vectorDbEntries', 0),
                search_queries=sources.get('searchQueries', 0),
            ),
            timestamp=data['timestamp'],
            last_updated=data.get('lastUpdated', data['timestamp']),
            blockchain_status=data.get('blockchainStatus', BLOCKCHAIN_PENDING),
            issues=[Issue(**i) for i in issues] if issues is not None else None,
            suggestions=[Suggestion(**s) for s in suggestions] if suggestions is not None else None,
            image_analysis=data.get('imageAnalysis'),
            history_reference=data.get('historyReference'),
            medications=data.get('medications'),
        )


@dataclass
class LedgerRecord:
    """Ledger-side copy of a result. `hash` is a lookup key, not a signature."""

    id: str
    timestamp: str
    status: str
    hash: str
    issues_count: int = 0
    suggestions_count: int = 0

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'status': self.status,
            'hash': self.hash,
            'data': {
                'status': self.status,
                'issuesCount': self.issues_count,
                'suggestionsCount': self.suggestions_count,
            },
        }
