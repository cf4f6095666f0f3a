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

"""Interfaces for the remote annotation service and knowledge base.

Both are modelled as explicitly constructed handles so callers (and tests)
can inject their own implementations.
"""

from __future__ import annotations

import abc
import asyncio

from conceptextract.core import data


class BaseAnnotationService(abc.ABC):
    """An external service that annotates text with knowledge-base concepts."""

    @abc.abstractmethod
    def query(self, text: str, language: str) -> list[data.RawAnnotation]:
        """Annotates one chunk of text.

        Args:
          text: The chunk to annotate.
          language: Language code of the text (e.g. ``'EN'``).

        Returns:
          Annotations with chunk-local, inclusive character offsets.

        Raises:
          RetryableQuotaError: The daily request quota has been reached.
          FatalLanguageError: The service does not accept ``language``.
          TransientChunkError: Any other failure of this query.
        """

    async def async_query(
        self, text: str, language: str
    ) -> list[data.RawAnnotation]:
        """Async version of ``query``.

        Runs the blocking ``query`` in a worker thread unless overridden.
        """
        return await asyncio.to_thread(self.query, text, language)


class BaseKnowledgeBase(abc.ABC):
    """A knowledge base of concepts addressed by opaque ids."""

    @abc.abstractmethod
    def resolve(self, concept_id: str) -> bool:
        """Returns True when ``concept_id`` exists in the knowledge base."""

    async def async_resolve(self, concept_id: str) -> bool:
        return await asyncio.to_thread(self.resolve, concept_id)

    def outgoing_hypernyms(self, concept_id: str) -> list[data.HypernymEdge]:
        """Lists the hypernymy edges leaving ``concept_id``.

        Raises:
          ServiceRuntimeError: The concept cannot be looked up.
        """
        raise NotImplementedError(
            f"{type(self).__name__} does not expose hypernymy relations."
        )

    def is_term_known(self, term: str, language: str) -> bool:
        """Returns True when ``term`` names at least one concept."""
        raise NotImplementedError(
            f"{type(self).__name__} does not support lemma lookups."
        )
