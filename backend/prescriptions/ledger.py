"""
Ledger stub: an in-memory stand-in for a distributed ledger.

The ledger keeps one LedgerRecord per result id and forwards every write to
the graph adapter. Latency of a real chain is simulated with blocking sleeps
(LEDGER_WRITE_DELAY / LEDGER_READ_DELAY / LEDGER_UPDATE_DELAY seconds).
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from django.conf import settings

from .exceptions import RecordNotFound
from .graph import GraphAdapter
from .types import LedgerRecord, PatientInfo, PrescriptionResult

logger = logging.getLogger(__name__)


def fingerprint(result: PrescriptionResult) -> str:
    """
    Non-cryptographic checksum of a result, rendered as 8 hex digits.

    acc = acc * 31 + ord(ch), truncated to a signed 32-bit integer after
    every step; the absolute value of the final accumulator is the key.
    """
    text = json.dumps(result.to_dict(), sort_keys=True, separators=(',', ':'))
    acc = 0
    for ch in text:
        acc = (acc * 31 + ord(ch)) & 0xFFFFFFFF
    if acc >= 0x80000000:
        acc -= 0x100000000
    return format(abs(acc), '08x')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Storage ───────────────────────────────────────────────────────────────

class LedgerStore(ABC):
    """Where ledger records live. Swap in a real backend by subclassing."""

    @abstractmethod
    def get(self, record_id: str) -> Optional[LedgerRecord]:
        ...

    @abstractmethod
    def put(self, record: LedgerRecord) -> None:
        ...

    @abstractmethod
    def all(self) -> list[LedgerRecord]:
        ...


class InMemoryLedgerStore(LedgerStore):

    def __init__(self):
        self._records: dict[str, LedgerRecord] = {}

    def get(self, record_id):
        return self._records.get(record_id)

    def put(self, record):
        self._records[record.id] = record

    def all(self):
        return list(self._records.values())


# ── Ledger ────────────────────────────────────────────────────────────────

class Ledger:

    def __init__(self, graph: GraphAdapter, store: Optional[LedgerStore] = None,
                 write_delay=None, read_delay=None, update_delay=None):
        self.graph = graph
        self.records = store if store is not None else InMemoryLedgerStore()
        self.write_delay = settings.LEDGER_WRITE_DELAY if write_delay is None else write_delay
        self.read_delay = settings.LEDGER_READ_DELAY if read_delay is None else read_delay
        self.update_delay = settings.LEDGER_UPDATE_DELAY if update_delay is None else update_delay

    @staticmethod
    def _sleep(seconds):
        if seconds > 0:
            time.sleep(seconds)

    def store(self, result: PrescriptionResult, patient: PatientInfo) -> str:
        """Record a result. Never fails on conflicts: the last write wins."""
        self._sleep(self.write_delay)

        record_hash = fingerprint(result)
        self.records.put(LedgerRecord(
            id=result.id,
            timestamp=result.timestamp,
            status=result.status,
            hash=record_hash,
            issues_count=len(result.issues or []),
            suggestions_count=len(result.suggestions or []),
        ))
        logger.info("[Ledger] recorded id=%s hash=%s", result.id, record_hash)

        try:
            self.graph.store_record(result, patient, record_hash)
        except Exception:
            logger.exception("[Ledger] graph write failed for id=%s", result.id)

        return result.id

    def get(self, record_id: str) -> LedgerRecord:
        self._sleep(self.read_delay)

        record = self.records.get(record_id)
        if record is None:
            raise RecordNotFound(
                message='Record not found on ledger',
                detail={'id': record_id},
            )
        return record

    def update(self, record_id: str, result: PrescriptionResult) -> None:
        self._sleep(self.update_delay)

        existing = self.records.get(record_id)
        if existing is None:
            raise RecordNotFound(
                message='Record not found on ledger',
                detail={'id': record_id},
            )

        record_hash = fingerprint(result)
        self.records.put(LedgerRecord(
            id=existing.id,
            timestamp=_now(),
            status=result.status,
            hash=record_hash,
            issues_count=len(result.issues or []),
            suggestions_count=len(result.suggestions or []),
        ))
        logger.info("[Ledger] updated id=%s hash %s -> %s", record_id, existing.hash, record_hash)

        try:
            self.graph.update_record(result, record_hash)
        except Exception:
            logger.exception("[Ledger] graph update failed for id=%s", record_id)

    def find_by_fingerprint(self, record_hash: str) -> Optional[LedgerRecord]:
        for record in self.records.all():
            if record.hash == record_hash:
                return record
        return None
