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

"""conceptextract: document annotation with knowledge-base concepts."""

from conceptextract.annotation import ConsolidationPipeline
from conceptextract.backoff import QueryCounter
from conceptextract.backoff import QuotaBackoffController
from conceptextract.chunking import TextChunker
from conceptextract.config import PipelineConfig
from conceptextract.consolidation import SpanConsolidator
from conceptextract.core.data import UNSUPPORTED
from conceptextract.validation import KnowledgeBaseValidator

__all__ = [
    "ConsolidationPipeline",
    "KnowledgeBaseValidator",
    "PipelineConfig",
    "QueryCounter",
    "QuotaBackoffController",
    "SpanConsolidator",
    "TextChunker",
    "UNSUPPORTED",
]
