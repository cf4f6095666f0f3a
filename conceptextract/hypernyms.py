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

"""Navigation of the hypernymy graph of a knowledge base.

Usage example:
    navigator = HypernymNavigator(BabelNetKnowledgeBase())
    navigator.all_hypernyms('bn:00015267n')
"""

from __future__ import annotations

from collections.abc import Iterable

from absl import logging

from conceptextract.core import base_service
from conceptextract.core import data
from conceptextract.core import exceptions

# Root of the hypernymy hierarchy ("entity"); climbing stops here.
ROOT_CONCEPT = "bn:00031027n"


def _first_of_kind(
    edges: list[data.HypernymEdge], kind: data.RelationKind
) -> str | None:
    for edge in edges:
        if edge.kind is kind:
            return edge.target
    return None


class HypernymNavigator:
    """Climbs hypernymy relations, preferring HYPERNYM over ANY_HYPERNYM."""

    def __init__(
        self,
        knowledge_base: base_service.BaseKnowledgeBase,
        root: str = ROOT_CONCEPT,
    ):
        self._knowledge_base = knowledge_base
        self._root = root

    def direct_hypernym(self, concept_id: str) -> str | None:
        """Returns the first hypernym of ``concept_id``, or None.

        Raises:
          ServiceRuntimeError: The concept cannot be looked up.
        """
        edges = self._knowledge_base.outgoing_hypernyms(concept_id)
        hypernym = _first_of_kind(edges, data.RelationKind.HYPERNYM)
        if hypernym is None:
            hypernym = _first_of_kind(edges, data.RelationKind.ANY_HYPERNYM)
        return hypernym

    def hypernym_at_level(self, concept_id: str, levels: int) -> str:
        """Climbs ``levels`` steps up from ``concept_id``.

        A concept without hypernyms is its own ancestor, so climbing stops
        there. When a lookup fails the last concept reached is returned.
        """
        current = concept_id
        for _ in range(levels):
            try:
                hypernym = self.direct_hypernym(current)
            except exceptions.ServiceRuntimeError as e:
                logging.error(
                    "Hypernym search problem. The concept %s could not be"
                    " looked up: %s",
                    current,
                    e,
                )
                break
            if hypernym is None:
                break
            current = hypernym
        return current

    def all_hypernyms(self, concept_id: str) -> list[str]:
        """Lists ``concept_id`` followed by its ancestors.

        The root concept and anything above it are not included, and the walk
        stops when it reaches a concept already listed.
        """
        chain: list[str] = []
        current = concept_id
        while current != self._root and current not in chain:
            chain.append(current)
            try:
                hypernym = self.direct_hypernym(current)
            except exceptions.ServiceRuntimeError as e:
                logging.error(
                    "Hypernym search problem. The concept %s could not be"
                    " looked up: %s",
                    current,
                    e,
                )
                break
            if hypernym is None:
                break
            current = hypernym
        return chain

    def hypernym_map(self, concept_ids: Iterable[str]) -> dict[str, str]:
        """Maps each concept that has a hypernym to its first hypernym."""
        hypernyms = {}
        for concept_id in concept_ids:
            try:
                hypernym = self.direct_hypernym(concept_id)
            except exceptions.ServiceRuntimeError as e:
                logging.error(
                    "Hypernym search problem. The concept %s could not be"
                    " looked up: %s",
                    concept_id,
                    e,
                )
                continue
            if hypernym is not None:
                hypernyms[concept_id] = hypernym
        return hypernyms

    def is_hypernym_of(self, concept_id: str, ancestor_id: str) -> bool:
        """True when ``ancestor_id`` is reached by climbing from ``concept_id``.

        A concept is not its own hypernym.
        """
        if concept_id == ancestor_id:
            return False
        current = concept_id
        seen = {current}
        while current != self._root:
            parent = self.hypernym_at_level(current, 1)
            if parent == ancestor_id:
                return True
            if parent in seen:
                return False
            seen.add(parent)
            current = parent
        return False
