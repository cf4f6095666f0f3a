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

"""Core error types for conceptextract.

Only ``FatalLanguageError`` changes the outcome of a whole document; the
other service errors shrink the result without failing the call.
"""

from __future__ import annotations


class ConceptExtractError(Exception):
    """Base class for all conceptextract errors."""


class ServiceConfigError(ConceptExtractError):
    """A remote service handle is misconfigured (e.g. no API key)."""


class ServiceRuntimeError(ConceptExtractError):
    """A remote service call failed.

    Attributes:
      original: The underlying exception, if any.
    """

    def __init__(self, message: str, *, original: BaseException | None = None):
        super().__init__(message)
        self.original = original


class TransientChunkError(ServiceRuntimeError):
    """A single chunk could not be annotated; the chunk is skipped."""


class RetryableQuotaError(ServiceRuntimeError):
    """The daily request quota is exhausted; retry the same chunk later."""


class FatalLanguageError(ServiceRuntimeError):
    """The service refuses the requested language; abort the document."""


class ValidationMiss(ConceptExtractError):
    """A concept id does not resolve in the knowledge base."""

    def __init__(self, concept_id: str, text: str = ""):
        super().__init__(
            f"The text [{text}] was annotated as [{concept_id}] which does"
            " not exist in the knowledge base."
        )
        self.concept_id = concept_id
        self.text = text


class OperationCancelledError(ConceptExtractError):
    """A quota wait was cancelled or exceeded the allowed wait time."""
