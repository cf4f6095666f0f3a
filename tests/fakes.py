"""In-memory services shared by the pipeline tests."""

from __future__ import annotations

from conceptextract.backoff import QueryCounter
from conceptextract.core import base_service
from conceptextract.core import data
from conceptextract.core import exceptions


class FakeAnnotationService(base_service.BaseAnnotationService):
    """Replays a script of outcomes, one per query.

    Each outcome is either a list of ``RawAnnotation`` or an exception to
    raise. Every call records the queried text and, when a counter is
    attached, its value at call time.
    """

    def __init__(self, outcomes, counter: QueryCounter | None = None):
        self.outcomes = list(outcomes)
        self.counter = counter
        self.calls: list[str] = []
        self.counts_seen: list[int] = []

    def query(self, text, language):
        self.calls.append(text)
        if self.counter is not None:
            self.counts_seen.append(self.counter.count)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeKnowledgeBase(base_service.BaseKnowledgeBase):
    """Knowledge base with a fixed set of concepts and hypernym edges."""

    def __init__(self, known=(), edges=None, failing=()):
        self.known = set(known)
        self.edges = edges or {}
        self.failing = set(failing)
        self.lookups: list[str] = []

    def resolve(self, concept_id):
        self.lookups.append(concept_id)
        if concept_id in self.failing:
            raise RuntimeError(f"lookup of {concept_id} failed")
        return concept_id in self.known

    def outgoing_hypernyms(self, concept_id):
        if concept_id in self.failing:
            raise exceptions.ServiceRuntimeError(f"unknown {concept_id}")
        return [
            data.HypernymEdge(target, kind)
            for target, kind in self.edges.get(concept_id, [])
        ]


def word(concept_id: str, start: int = 0, end: int = 3, score: float = 0.5):
    return data.RawAnnotation(start=start, end=end, score=score, concept_id=concept_id)
