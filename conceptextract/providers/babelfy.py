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

"""Babelfy provider for conceptextract."""

# pylint: disable=duplicate-code

from __future__ import annotations

import dataclasses
import os
import re
from typing import Any, Sequence

import requests

from conceptextract.core import base_service
from conceptextract.core import data
from conceptextract.core import exceptions
from conceptextract.providers import patterns


def _matches(message: str, candidates: Sequence[str]) -> bool:
  return any(re.search(p, message, re.IGNORECASE) for p in candidates)


def classify_error(
    message: str, original: BaseException | None = None
) -> exceptions.ServiceRuntimeError:
  """Maps a Babelfy error message to the matching error type."""
  if _matches(message, patterns.LANGUAGE_UNSUPPORTED_PATTERNS):
    return exceptions.FatalLanguageError(message, original=original)
  if _matches(message, patterns.QUOTA_EXCEEDED_PATTERNS):
    return exceptions.RetryableQuotaError(message, original=original)
  return exceptions.TransientChunkError(
      f'Babelfy API error: {message}', original=original
  )


def _error_message(payload: Any) -> str | None:
  if isinstance(payload, dict):
    message = payload.get('message') or payload.get('error')
    if isinstance(message, dict):
      message = message.get('message')
    if message:
      return str(message)
  return None


def parse_annotations(payload: Any) -> list[data.RawAnnotation]:
  """Converts a ``disambiguate`` response into raw annotations.

  Raises:
    TransientChunkError: The payload is not a list of annotations.
  """
  if not isinstance(payload, list):
    raise exceptions.TransientChunkError(
        f'Unexpected Babelfy response: {payload!r:.200}'
    )
  try:
    return [
        data.RawAnnotation(
            start=int(item['charFragment']['start']),
            end=int(item['charFragment']['end']),
            score=float(item.get('globalScore', item.get('score', 0.0))),
            concept_id=str(item['babelSynsetID']),
        )
        for item in payload
    ]
  except (KeyError, TypeError, ValueError) as e:
    raise exceptions.TransientChunkError(
        f'Malformed Babelfy annotation: {e}', original=e
    ) from e


@dataclasses.dataclass(init=False)
class BabelfyAnnotationService(base_service.BaseAnnotationService):
  """Annotation service backed by the Babelfy HTTP API."""

  api_key: str | None = None
  base_url: str = 'https://babelfy.io/v1'
  timeout: float = 60.0
  _extra_params: dict[str, Any] = dataclasses.field(
      default_factory=dict, repr=False, compare=False
  )

  def __init__(
      self,
      api_key: str | None = None,
      base_url: str = 'https://babelfy.io/v1',
      timeout: float = 60.0,
      session: requests.Session | None = None,
      **kwargs,
  ) -> None:
    """Initialize the Babelfy client.

    Args:
      api_key: API key for Babelfy (or set BABELFY_API_KEY).
      base_url: Base URL of the Babelfy HTTP API.
      timeout: Seconds to wait for each response.
      session: Optional ``requests.Session`` to reuse connections.
      **kwargs: Extra query parameters sent with every request (e.g.
        ``match='EXACT_MATCHING'``). ``None`` values are skipped.
    """
    self.api_key = api_key
    self.base_url = base_url
    self.timeout = timeout
    self._session = session or requests.Session()
    self._extra_params = kwargs or {}

  def _resolve_api_key(self) -> str:
    key = self.api_key or os.getenv('BABELFY_API_KEY')
    if not key:
      raise exceptions.ServiceConfigError(
          'Babelfy API key not found. Set BABELFY_API_KEY or pass api_key=...'
      )
    return key

  def _call_disambiguate(self, text: str, language: str) -> Any:
    params = {
        'text': text,
        'lang': language.upper(),
        'key': self._resolve_api_key(),
    }
    for k, v in self._extra_params.items():
      if v is not None and k not in params:
        params[k] = v

    try:
      resp = self._session.get(
          f'{self.base_url}/disambiguate', params=params, timeout=self.timeout
      )
    except requests.RequestException as e:
      raise exceptions.TransientChunkError(
          f'Babelfy API error: {str(e)}', original=e
      ) from e

    try:
      payload = resp.json()
    except ValueError as e:
      payload = None
      if resp.ok:
        raise exceptions.TransientChunkError(
            f'Babelfy API returned invalid JSON: {str(e)}', original=e
        ) from e

    message = _error_message(payload)
    if message is not None:
      raise classify_error(message)
    if not resp.ok:
      raise exceptions.TransientChunkError(
          f'Babelfy API error: HTTP {resp.status_code}'
      )
    return payload

  def query(self, text: str, language: str) -> list[data.RawAnnotation]:
    """Annotates ``text`` through Babelfy's ``disambiguate`` endpoint."""
    return parse_annotations(self._call_disambiguate(text, language))
