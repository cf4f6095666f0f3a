# Copyright 2025 Google LLC.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Consolidates overlapping annotations into one entry per span cluster.

Annotation queries over neighbouring chunks, and re-queries of the same text,
often return several annotations for the same surface text with different
confidence. ``SpanConsolidator`` receives the candidates one at a time, in
chunk order and then in discovery order, and keeps a single list of accepted
entries:

* A candidate with exactly the same span as an entry replaces it when its
  score is higher, and is dropped otherwise.
* A candidate inside an entry is dropped.
* A candidate that contains an entry replaces it.
* Anything else is appended as a new entry.

The list keeps insertion order; replaced entries keep their position.

Two strategies decide which entry a candidate is compared with:

``first_or_last``
  A linear scan that stops at the first entry containing, or contained in,
  the candidate, or at the last entry when there is none.
``best_match``
  Every related entry is examined through an ``IntervalTree``. An identical
  or enclosing entry takes precedence, and a candidate that encloses several
  entries replaces all of them at once.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from absl import logging
from intervaltree import IntervalTree

from conceptextract import config as config_lib
from conceptextract.core import data


class SpanConsolidator:
    """Accumulates the consolidated annotations of one document."""

    def __init__(self, strategy: str = config_lib.STRATEGY_FIRST_OR_LAST):
        if strategy not in config_lib.CONSOLIDATION_STRATEGIES:
            raise ValueError(f"Unknown consolidation strategy: {strategy!r}")
        self._strategy = strategy
        self._entries: list[data.AnnotationCandidate] = []
        self._tree: IntervalTree | None = None
        if strategy == config_lib.STRATEGY_BEST_MATCH:
            self._tree = IntervalTree()

    @property
    def strategy(self) -> str:
        return self._strategy

    @property
    def entries(self) -> list[data.AnnotationCandidate]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[data.AnnotationCandidate]:
        return iter(list(self._entries))

    def extend(self, candidates: Iterable[data.AnnotationCandidate]) -> None:
        for candidate in candidates:
            self.add(candidate)

    def add(self, candidate: data.AnnotationCandidate) -> None:
        """Merges one candidate into the consolidated list."""
        if not self._entries:
            self._append(candidate)
            return
        if self._strategy == config_lib.STRATEGY_BEST_MATCH:
            self._add_best_match(candidate)
        else:
            self._add_first_or_last(candidate)

    def _add_first_or_last(self, candidate: data.AnnotationCandidate) -> None:
        pos = 0
        entry = self._entries[pos]
        while (
            not entry.contains(candidate)
            and not candidate.contains(entry)
            and pos < len(self._entries) - 1
        ):
            pos += 1
            entry = self._entries[pos]

        if entry.same_span(candidate):
            if candidate.score > entry.score:
                self._replace(pos, candidate)
            else:
                _log_discard(candidate, entry)
        elif entry.contains(candidate):
            _log_discard(candidate, entry)
        elif candidate.contains(entry):
            self._replace(pos, candidate)
        else:
            self._append(candidate)

    def _add_best_match(self, candidate: data.AnnotationCandidate) -> None:
        related = self._related_positions(candidate)
        if not related:
            self._append(candidate)
            return

        for pos in related:
            entry = self._entries[pos]
            if entry.same_span(candidate):
                if candidate.score > entry.score:
                    self._replace(pos, candidate)
                else:
                    _log_discard(candidate, entry)
                return
        for pos in related:
            entry = self._entries[pos]
            if entry.contains(candidate):
                _log_discard(candidate, entry)
                return

        # The candidate encloses every related entry.
        first, *rest = related
        self._replace(first, candidate)
        if rest:
            for pos in reversed(rest):
                logging.debug(
                    "Dropping [%d, %d] %r, now covered by [%d, %d].",
                    self._entries[pos].start,
                    self._entries[pos].end,
                    self._entries[pos].text,
                    candidate.start,
                    candidate.end,
                )
                del self._entries[pos]
            self._rebuild_tree()

    def _related_positions(
        self, candidate: data.AnnotationCandidate
    ) -> list[int]:
        """Positions of the entries containing or contained in ``candidate``."""
        positions = []
        for iv in self._tree.overlap(candidate.start, candidate.end + 1):
            entry = self._entries[iv.data]
            if entry.contains(candidate) or candidate.contains(entry):
                positions.append(iv.data)
        return sorted(positions)

    def _append(self, candidate: data.AnnotationCandidate) -> None:
        self._entries.append(candidate)
        if self._tree is not None:
            pos = len(self._entries) - 1
            self._tree.addi(candidate.start, candidate.end + 1, pos)

    def _replace(self, pos: int, candidate: data.AnnotationCandidate) -> None:
        old = self._entries[pos]
        logging.debug(
            "Replacing [%d, %d] %r (%.3f) with [%d, %d] %r (%.3f).",
            old.start,
            old.end,
            old.text,
            old.score,
            candidate.start,
            candidate.end,
            candidate.text,
            candidate.score,
        )
        self._entries[pos] = candidate
        if self._tree is not None:
            self._tree.removei(old.start, old.end + 1, pos)
            self._tree.addi(candidate.start, candidate.end + 1, pos)

    def _rebuild_tree(self) -> None:
        self._tree = IntervalTree()
        for idx, entry in enumerate(self._entries):
            self._tree.addi(entry.start, entry.end + 1, idx)


def _log_discard(
    candidate: data.AnnotationCandidate, entry: data.AnnotationCandidate
) -> None:
    logging.debug(
        "Discarding [%d, %d] %r, already covered by [%d, %d] %r.",
        candidate.start,
        candidate.end,
        candidate.text,
        entry.start,
        entry.end,
        entry.text,
    )


def consolidate(
    candidates: Iterable[data.AnnotationCandidate],
    strategy: str = config_lib.STRATEGY_FIRST_OR_LAST,
) -> list[data.AnnotationCandidate]:
    """Consolidates ``candidates`` with a fresh ``SpanConsolidator``."""
    consolidator = SpanConsolidator(strategy)
    consolidator.extend(candidates)
    return consolidator.entries
