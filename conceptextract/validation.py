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

"""Drops consolidated annotations whose concept the knowledge base lacks."""

from __future__ import annotations

from collections.abc import Iterable

from absl import logging

from conceptextract.core import base_service
from conceptextract.core import data
from conceptextract.core import exceptions


class KnowledgeBaseValidator:
    """Confirms that each annotation resolves in the knowledge base."""

    def __init__(self, knowledge_base: base_service.BaseKnowledgeBase):
        self._knowledge_base = knowledge_base

    def check(self, entry: data.AnnotationCandidate) -> None:
        """Looks ``entry`` up once.

        Raises:
          ValidationMiss: The concept does not resolve, or the lookup failed.
        """
        try:
            found = self._knowledge_base.resolve(entry.concept_id)
        except Exception as e:  # pylint: disable=broad-exception-caught
            raise exceptions.ValidationMiss(entry.concept_id, entry.text) from e
        if not found:
            raise exceptions.ValidationMiss(entry.concept_id, entry.text)

    def validate(
        self, entries: Iterable[data.AnnotationCandidate]
    ) -> list[data.ConceptPair]:
        """Returns the ``(concept_id, text)`` pairs that resolve, in order."""
        validated = []
        for entry in entries:
            try:
                self.check(entry)
            except exceptions.ValidationMiss as e:
                _log_miss(e)
                continue
            validated.append(data.ConceptPair(entry.concept_id, entry.text))
        return validated

    async def async_validate(
        self, entries: Iterable[data.AnnotationCandidate]
    ) -> list[data.ConceptPair]:
        """Async version of ``validate``."""
        validated = []
        for entry in entries:
            try:
                found = await self._knowledge_base.async_resolve(
                    entry.concept_id
                )
            except Exception as e:  # pylint: disable=broad-exception-caught
                miss = exceptions.ValidationMiss(entry.concept_id, entry.text)
                miss.__cause__ = e
                _log_miss(miss)
                continue
            if not found:
                miss = exceptions.ValidationMiss(entry.concept_id, entry.text)
                _log_miss(miss)
                continue
            validated.append(data.ConceptPair(entry.concept_id, entry.text))
        return validated


def _log_miss(miss: exceptions.ValidationMiss) -> None:
    if miss.__cause__ is not None:
        logging.error("%s %s", miss, miss.__cause__)
    else:
        logging.error("%s", miss)
