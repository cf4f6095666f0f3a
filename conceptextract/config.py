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

"""Runtime configuration for the consolidation pipeline."""

from __future__ import annotations

import dataclasses
import datetime
import os

from conceptextract.core import exceptions

# Longest text the annotation service accepts in one query.
MAX_QUERY_LENGTH = 3000

# Quota counters are refreshed shortly after midnight.
DEFAULT_QUOTA_RESET = datetime.time(hour=1, minute=1, second=1)

STRATEGY_FIRST_OR_LAST = "first_or_last"
STRATEGY_BEST_MATCH = "best_match"
CONSOLIDATION_STRATEGIES = (STRATEGY_FIRST_OR_LAST, STRATEGY_BEST_MATCH)

_ENV_PREFIX = "CONCEPTEXTRACT_"


@dataclasses.dataclass(frozen=True)
class PipelineConfig:
    """Settings for ``ConsolidationPipeline``.

    Attributes:
      max_chunk_size: Maximum number of characters sent in one query.
      quota_reset: Local time of day at which the daily quota is renewed.
        After a quota error the pipeline sleeps until this time tomorrow.
      max_backoff_seconds: Upper bound for a single quota wait. A wait that
        would exceed it is cancelled instead. ``None`` waits as long as
        needed.
      strategy: Consolidation strategy, one of ``CONSOLIDATION_STRATEGIES``.
    """

    max_chunk_size: int = MAX_QUERY_LENGTH
    quota_reset: datetime.time = DEFAULT_QUOTA_RESET
    max_backoff_seconds: float | None = None
    strategy: str = STRATEGY_FIRST_OR_LAST

    def __post_init__(self):
        if self.max_chunk_size < 1:
            raise exceptions.ConceptExtractError(
                f"max_chunk_size must be at least 1, got {self.max_chunk_size}."
            )
        if self.strategy not in CONSOLIDATION_STRATEGIES:
            raise exceptions.ConceptExtractError(
                f"Unknown consolidation strategy {self.strategy!r}. Expected"
                f" one of {', '.join(CONSOLIDATION_STRATEGIES)}."
            )

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> PipelineConfig:
        """Builds a config from ``CONCEPTEXTRACT_*`` environment variables.

        Recognized variables: ``CONCEPTEXTRACT_MAX_CHUNK_SIZE``,
        ``CONCEPTEXTRACT_QUOTA_RESET`` (``HH:MM:SS``),
        ``CONCEPTEXTRACT_MAX_BACKOFF_SECONDS`` and
        ``CONCEPTEXTRACT_STRATEGY``. Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        kwargs = {}
        try:
            if v := env.get(_ENV_PREFIX + "MAX_CHUNK_SIZE"):
                kwargs["max_chunk_size"] = int(v)
            if v := env.get(_ENV_PREFIX + "QUOTA_RESET"):
                kwargs["quota_reset"] = datetime.time.fromisoformat(v)
            if v := env.get(_ENV_PREFIX + "MAX_BACKOFF_SECONDS"):
                kwargs["max_backoff_seconds"] = float(v)
        except ValueError as e:
            raise exceptions.ConceptExtractError(
                f"Invalid configuration value: {e}"
            ) from e
        if v := env.get(_ENV_PREFIX + "STRATEGY"):
            kwargs["strategy"] = v
        return cls(**kwargs)
