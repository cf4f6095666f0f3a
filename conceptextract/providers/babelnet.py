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

"""BabelNet knowledge-base provider for conceptextract."""

# pylint: disable=duplicate-code

from __future__ import annotations

import dataclasses
import os
import re
from typing import Any

from absl import logging
import requests

from conceptextract.core import base_service
from conceptextract.core import data
from conceptextract.core import exceptions
from conceptextract.providers import patterns

# Pointer symbol of the plain "is-a" relation.
_HYPERNYM_SYMBOL = '@'
_HYPERNYM_GROUP = 'HYPERNYM'


def parse_hypernym_edges(payload: Any) -> list[data.HypernymEdge]:
  """Keeps the hypernymy edges of a ``getOutgoingEdges`` response."""
  edges = []
  for item in payload or []:
    pointer = item.get('pointer') or {}
    target = item.get('target')
    if not target:
      continue
    if pointer.get('fSymbol') == _HYPERNYM_SYMBOL:
      edges.append(data.HypernymEdge(target, data.RelationKind.HYPERNYM))
    elif pointer.get('relationGroup') == _HYPERNYM_GROUP:
      edges.append(data.HypernymEdge(target, data.RelationKind.ANY_HYPERNYM))
  return edges


@dataclasses.dataclass(init=False)
class BabelNetKnowledgeBase(base_service.BaseKnowledgeBase):
  """Knowledge base backed by the BabelNet HTTP API."""

  api_key: str | None = None
  base_url: str = 'https://babelnet.io/v9'
  timeout: float = 30.0

  def __init__(
      self,
      api_key: str | None = None,
      base_url: str = 'https://babelnet.io/v9',
      timeout: float = 30.0,
      session: requests.Session | None = None,
  ) -> None:
    """Initialize the BabelNet client.

    Args:
      api_key: API key for BabelNet (or set BABELNET_API_KEY).
      base_url: Base URL of the BabelNet HTTP API.
      timeout: Seconds to wait for each response.
      session: Optional ``requests.Session`` to reuse connections.
    """
    self.api_key = api_key
    self.base_url = base_url
    self.timeout = timeout
    self._session = session or requests.Session()

  def _resolve_api_key(self) -> str:
    key = self.api_key or os.getenv('BABELNET_API_KEY')
    if not key:
      raise exceptions.ServiceConfigError(
          'BabelNet API key not found. Set BABELNET_API_KEY or pass api_key=...'
      )
    return key

  def _get(self, endpoint: str, **params) -> Any:
    params['key'] = self._resolve_api_key()
    try:
      resp = self._session.get(
          f'{self.base_url}/{endpoint}', params=params, timeout=self.timeout
      )
      resp.raise_for_status()
      payload = resp.json()
    except Exception as e:
      raise exceptions.ServiceRuntimeError(
          f'BabelNet API error: {str(e)}', original=e
      ) from e
    if isinstance(payload, dict) and payload.get('message'):
      raise exceptions.ServiceRuntimeError(
          f'BabelNet API error: {payload["message"]}'
      )
    return payload

  def resolve(self, concept_id: str) -> bool:
    """True when BabelNet knows the synset ``concept_id``.

    Raises:
      ServiceRuntimeError: The lookup failed for another reason than an
        unknown id.
    """
    try:
      payload = self._get('getSynset', id=concept_id)
    except exceptions.ServiceRuntimeError as e:
      if any(
          re.search(p, str(e), re.IGNORECASE)
          for p in patterns.UNKNOWN_CONCEPT_PATTERNS
      ):
        return False
      raise
    return bool(payload)

  def outgoing_hypernyms(self, concept_id: str) -> list[data.HypernymEdge]:
    return parse_hypernym_edges(self._get('getOutgoingEdges', id=concept_id))

  def is_term_known(self, term: str, language: str) -> bool:
    """True when ``term`` is a lemma of at least one synset in ``language``."""
    if data.is_undetermined_language(language):
      logging.error(
          'Unable to query BabelNet because the language is not known.'
      )
      return False
    try:
      payload = self._get(
          'getSynsetIds', lemma=term, searchLang=language.upper()
      )
    except exceptions.ServiceRuntimeError as e:
      logging.error('Unable to query BabelNet: %s', e)
      return False
    return bool(payload)
