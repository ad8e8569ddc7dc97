"""
Result store owned by the orchestrator.

Insertion ordered, so the newest result is always the last one.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .types import PrescriptionResult


class ResultStore(ABC):

    @abstractmethod
    def save(self, result: PrescriptionResult) -> None:
        ...

    @abstractmethod
    def get(self, result_id: str) -> Optional[PrescriptionResult]:
        ...

    @abstractmethod
    def latest(self) -> Optional[PrescriptionResult]:
        ...


class InMemoryResultStore(ResultStore):

    def __init__(self):
        self._results: dict[str, PrescriptionResult] = {}

    def save(self, result):
        self._results[result.id] = result

    def get(self, result_id):
        return self._results.get(result_id)

    def latest(self):
        if not self._results:
            return None
        return next(reversed(self._results.values()))

    def __len__(self):
        return len(self._results)
