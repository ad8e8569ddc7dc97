"""
Graph persistence for prescriptions.

One interface, two implementations:
  Neo4jGraphAdapter: connected; patients / prescriptions / medications /
                     issues / suggestions as a property graph
  InMemoryGraphAdapter: degraded; dict keyed by fingerprint

build_graph_adapter() picks one at startup. Callers never check for a
missing driver: if Neo4j is unreachable they simply get the in-memory one.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from django.conf import settings
from neo4j import GraphDatabase

from .exceptions import RecordNotFound, UpstreamUnavailable
from .types import (
    BLOCKCHAIN_RECORDED,
    DataSources,
    Issue,
    PatientInfo,
    PrescriptionResult,
    Suggestion,
)

logger = logging.getLogger(__name__)

_SPLIT_RE = re.compile(r"[,\n]")
_LEADING_NAME_RE = re.compile(r"^[A-Za-z\s]+")


def extract_medications(prescription: str) -> list[str]:
    """
    Medication names from free text.

    "Lisinopril 10mg, Metformin 500mg" -> ["Lisinopril", "Metformin"]
    """
    medications = []
    for part in _SPLIT_RE.split(prescription or ""):
        part = part.strip()
        match = _LEADING_NAME_RE.match(part)
        name = match.group(0).strip() if match else part
        if name:
            medications.append(name)
    return medications


class GraphAdapter(ABC):

    connected = False

    @abstractmethod
    def store_record(self, result: PrescriptionResult, patient: PatientInfo, fingerprint: str) -> None:
        """Persist one result and its relations as a single atomic unit."""

    @abstractmethod
    def history(self, patient: PatientInfo) -> list[PrescriptionResult]:
        """All prescriptions for the patient name, most recent first."""

    @abstractmethod
    def by_fingerprint(self, fingerprint: str) -> Optional[PrescriptionResult]:
        ...

    @abstractmethod
    def update_record(self, result: PrescriptionResult, fingerprint: str) -> None:
        """Refresh status / lastUpdated / fingerprint. RecordNotFound if absent."""

    def close(self) -> None:
        pass


# ── InMemoryGraphAdapter ──────────────────────────────────────────────────

class InMemoryGraphAdapter(GraphAdapter):

    def __init__(self):
        self._entries: dict[str, tuple[PrescriptionResult, PatientInfo]] = {}

    def store_record(self, result, patient, fingerprint):
        logger.debug("[Graph] memory store id=%s hash=%s", result.id, fingerprint)
        self._entries[fingerprint] = (result, patient)

    def history(self, patient):
        matches = [
            result for result, owner in self._entries.values()
            if owner.name == patient.name
        ]
        return sorted(matches, key=lambda r: r.timestamp, reverse=True)

    def by_fingerprint(self, fingerprint):
        entry = self._entries.get(fingerprint)
        return entry[0] if entry else None

    def update_record(self, result, fingerprint):
        for old_hash, (stored, patient) in list(self._entries.items()):
            if stored.id == result.id:
                del self._entries[old_hash]
                self._entries[fingerprint] = (result, patient)
                return
        raise RecordNotFound(
            message='Prescription not found in graph',
            detail={'id': result.id},
        )


# ── Neo4jGraphAdapter ─────────────────────────────────────────────────────

_CONSTRAINTS = (
    "CREATE CONSTRAINT prescription_id_unique IF NOT EXISTS "
    "FOR (p:Prescription) REQUIRE p.id IS UNIQUE",
    "CREATE CONSTRAINT patient_name_age_gender_unique IF NOT EXISTS "
    "FOR (p:Patient) REQUIRE (p.name, p.age, p.gender) IS NODE KEY",
    "CREATE CONSTRAINT medication_name_unique IF NOT EXISTS "
    "FOR (m:Medication) REQUIRE m.name IS UNIQUE",
)

_MERGE_PATIENT = """
MERGE (p:Patient {name: $name, age: $age, gender: $gender})
RETURN p
"""

_CREATE_PRESCRIPTION = """
CREATE (rx:Prescription {
  id: $id,
  blockchainHash: $blockchainHash,
  originalPrescription: $originalPrescription,
  status: $status,
  timestamp: $timestamp,
  lastUpdated: $lastUpdated
})
WITH rx
MATCH (p:Patient {name: $name, age: $age, gender: $gender})
CREATE (p)-[:RECEIVED]->(rx)
RETURN rx
"""

_LINK_MEDICATION = """
MERGE (m:Medication {name: $medName})
WITH m
MATCH (rx:Prescription {id: $rxId})
CREATE (rx)-[:INCLUDES]->(m)
"""

_CREATE_ISSUE = """
MATCH (rx:Prescription {id: $rxId})
CREATE (i:Issue {title: $title, description: $description, severity: $severity})
CREATE (rx)-[:HAS_ISSUE]->(i)
"""

_CREATE_SUGGESTION = """
MATCH (rx:Prescription {id: $rxId})
CREATE (s:Suggestion {title: $title, description: $description})
CREATE (rx)-[:HAS_SUGGESTION]->(s)
"""

_AGGREGATE = """
OPTIONAL MATCH (rx)-[:HAS_ISSUE]->(i:Issue)
OPTIONAL MATCH (rx)-[:HAS_SUGGESTION]->(s:Suggestion)
OPTIONAL MATCH (rx)-[:INCLUDES]->(m:Medication)
RETURN rx,
       collect(distinct i) AS issues,
       collect(distinct s) AS suggestions,
       collect(distinct m.name) AS medications
"""

_HISTORY = "MATCH (p:Patient {name: $name})-[:RECEIVED]->(rx:Prescription)" + _AGGREGATE + "ORDER BY rx.timestamp DESC"

_BY_HASH = "MATCH (rx:Prescription {blockchainHash: $blockchainHash})" + _AGGREGATE

_UPDATE_PRESCRIPTION = """
MATCH (rx:Prescription {id: $id})
SET rx.status = $status,
    rx.lastUpdated = $lastUpdated,
    rx.blockchainHash = $blockchainHash
RETURN rx
"""


def _record_to_result(record) -> PrescriptionResult:
    rx = dict(record["rx"])
    issues = [Issue(**dict(node)) for node in record["issues"]]
    suggestions = [Suggestion(**dict(node)) for node in record["suggestions"]]
    return PrescriptionResult(
        id=rx["id"],
        original_prescription=rx.get("originalPrescription", ""),
        status=rx["status"],
        issues=issues or None,
        suggestions=suggestions or None,
        data_sources=DataSources(),
        timestamp=rx["timestamp"],
        blockchain_status=BLOCKCHAIN_RECORDED,
        last_updated=rx.get("lastUpdated", rx["timestamp"]),
        medications=list(record["medications"]),
    )


class Neo4jGraphAdapter(GraphAdapter):

    connected = True

    def __init__(self, driver):
        self._driver = driver

    @staticmethod
    def _open_driver(uri, user, password):
        driver = GraphDatabase.driver(uri, auth=(user, password))
        try:
            driver.verify_connectivity()
        except Exception as exc:
            driver.close()
            raise UpstreamUnavailable(
                message=f"Neo4j unreachable at {uri}",
                detail={'error': str(exc)},
            ) from exc
        return driver

    @classmethod
    def connect(cls, uri: str, user: str, password: str) -> Optional["Neo4jGraphAdapter"]:
        """Returns a connected adapter, or None when Neo4j is unreachable."""
        try:
            driver = cls._open_driver(uri, user, password)
        except UpstreamUnavailable as exc:
            logger.warning("[Graph] %s: %s. Using in-memory graph.", exc.message, exc.detail['error'])
            return None
        except Exception as exc:
            logger.warning("[Graph] could not build Neo4j driver for %s: %s. Using in-memory graph.", uri, exc)
            return None

        logger.info("[Graph] connected to Neo4j at %s", uri)
        adapter = cls(driver)
        adapter._initialize_schema()
        return adapter

    def _initialize_schema(self):
        with self._driver.session() as session:
            for statement in _CONSTRAINTS:
                try:
                    session.run(statement)
                except Exception:
                    logger.exception("[Graph] could not create constraint")

    def store_record(self, result, patient, fingerprint):
        with self._driver.session() as session:
            try:
                session.execute_write(self._write_record, result, patient, fingerprint)
            except Exception:
                logger.error("[Graph] store rolled back for id=%s", result.id)
                raise

        logger.info("[Graph] stored id=%s hash=%s", result.id, fingerprint)

    @staticmethod
    def _write_record(tx, result, patient, fingerprint):
        """Unit of work for store_record; the driver commits or rolls back."""
        patient_params = {"name": patient.name, "age": int(patient.age), "gender": patient.gender}

        tx.run(_MERGE_PATIENT, **patient_params)
        tx.run(
            _CREATE_PRESCRIPTION,
            id=result.id,
            blockchainHash=fingerprint,
            originalPrescription=result.original_prescription,
            status=result.status,
            timestamp=result.timestamp,
            lastUpdated=result.last_updated,
            **patient_params,
        )
        for med in extract_medications(result.original_prescription):
            tx.run(_LINK_MEDICATION, medName=med, rxId=result.id)
        for issue in result.issues or []:
            tx.run(_CREATE_ISSUE, rxId=result.id, **issue.to_dict())
        for suggestion in result.suggestions or []:
            tx.run(_CREATE_SUGGESTION, rxId=result.id, **suggestion.to_dict())

    def history(self, patient):
        with self._driver.session() as session:
            records = list(session.run(_HISTORY, name=patient.name))
        return [_record_to_result(r) for r in records]

    def by_fingerprint(self, fingerprint):
        with self._driver.session() as session:
            record = session.run(_BY_HASH, blockchainHash=fingerprint).single()
        return _record_to_result(record) if record is not None else None

    def update_record(self, result, fingerprint):
        with self._driver.session() as session:
            record = session.run(
                _UPDATE_PRESCRIPTION,
                id=result.id,
                status=result.status,
                lastUpdated=result.last_updated,
                blockchainHash=fingerprint,
            ).single()
        if record is None:
            raise RecordNotFound(
                message='Prescription not found in graph',
                detail={'id': result.id},
            )
        logger.info("[Graph] updated id=%s hash=%s", result.id, fingerprint)

    def close(self):
        self._driver.close()


def build_graph_adapter() -> GraphAdapter:
    """
    Select the graph implementation once.

    GRAPH_ENABLED=0 or an unreachable Neo4j both yield InMemoryGraphAdapter.
    """
    if not settings.GRAPH_ENABLED:
        logger.info("[Graph] disabled by settings, using in-memory graph")
        return InMemoryGraphAdapter()

    adapter = Neo4jGraphAdapter.connect(
        settings.NEO4J_URI,
        settings.NEO4J_USER,
        settings.NEO4J_PASSWORD,
    )
    return adapter if adapter is not None else InMemoryGraphAdapter()
