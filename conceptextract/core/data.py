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

"""Classes used to represent chunks, annotations and consolidated concepts."""

from __future__ import annotations

import dataclasses
import enum
from typing import NamedTuple, Union

# Languages that mean "could not be determined" to the language guesser.
UNDETERMINED_LANGUAGES = frozenset({"", "UND"})


class _Unsupported(enum.Enum):
    """Sentinel type for documents that cannot be annotated."""

    UNSUPPORTED = "unsupported"

    def __repr__(self) -> str:
        return "UNSUPPORTED"


# Returned instead of a concept list when the whole document must be
# treated as invalid by the caller.
UNSUPPORTED = _Unsupported.UNSUPPORTED


@dataclasses.dataclass(frozen=True)
class RawAnnotation:
    """One annotation exactly as the service reports it for a chunk.

    Attributes:
      start: Chunk-local index of the first character (inclusive).
      end: Chunk-local index of the last character (inclusive).
      score: Confidence of the annotation, higher is better.
      concept_id: Knowledge-base key of the annotated concept.
    """

    start: int
    end: int
    score: float
    concept_id: str


@dataclasses.dataclass(frozen=True)
class ChunkDescriptor:
    """A slice of a document submitted in a single annotation query.

    Attributes:
      text: The chunk text.
      offset: Number of document characters consumed by previous chunks.
      index: Position of the chunk in emission order.
    """

    text: str
    offset: int
    index: int = 0

    def to_global(
        self, annotation: RawAnnotation, document: str
    ) -> AnnotationCandidate:
        """Translates a chunk-local annotation into document coordinates."""
        start = self.offset + annotation.start
        end = self.offset + annotation.end
        return AnnotationCandidate(
            start=start,
            end=end,
            score=annotation.score,
            concept_id=annotation.concept_id,
            text=document[start : end + 1],
        )


@dataclasses.dataclass(frozen=True)
class AnnotationCandidate:
    """An annotation expressed in document-global coordinates.

    Attributes:
      start: Index of the first annotated character (inclusive).
      end: Index of the last annotated character (inclusive).
      score: Confidence of the annotation.
      concept_id: Knowledge-base key of the annotated concept.
      text: The annotated surface text, ``document[start:end + 1]``.
    """

    start: int
    end: int
    score: float
    concept_id: str
    text: str = ""

    def same_span(self, other: AnnotationCandidate) -> bool:
        return self.start == other.start and self.end == other.end

    def contains(self, other: AnnotationCandidate) -> bool:
        """True when ``other`` lies entirely within this span."""
        return self.start <= other.start and other.end <= self.end


class ConceptPair(NamedTuple):
    """A validated concept together with the text it was found in."""

    concept_id: str
    text: str


AnnotationResult = Union[list[ConceptPair], _Unsupported]


@dataclasses.dataclass
class Document:
    """A document to annotate.

    Attributes:
      text: Raw text of the document.
      language: Language code the annotation service should use.
      document_id: Optional identifier, echoed back in the result.
    """

    text: str
    language: str | None
    document_id: str | None = None


@dataclasses.dataclass
class AnnotatedDocument:
    """Result of annotating one document."""

    document_id: str | None
    text: str
    concepts: AnnotationResult

    @property
    def is_supported(self) -> bool:
        return self.concepts is not UNSUPPORTED


def is_undetermined_language(language: str | None) -> bool:
    if language is None:
        return True
    return language.strip().upper() in UNDETERMINED_LANGUAGES


class RelationKind(enum.Enum):
    """Hypernymy relations followed when climbing the concept graph."""

    HYPERNYM = "HYPERNYM"
    ANY_HYPERNYM = "ANY_HYPERNYM"


@dataclasses.dataclass(frozen=True)
class HypernymEdge:
    """An outgoing hypernymy edge of a knowledge-base concept."""

    target: str
    kind: RelationKind
