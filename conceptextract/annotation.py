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

"""Provides document-level semantic annotation with knowledge-base concepts.

The annotation process splits the document into chunks the annotation service
accepts, queries the service chunk by chunk, maps the chunk-local offsets of
every annotation back to the document, consolidates overlapping annotations
and finally keeps only the concepts that resolve in the knowledge base.

Usage example:
    pipeline = ConsolidationPipeline(BabelfyAnnotationService(),
                                     BabelNetKnowledgeBase())
    concepts = pipeline.annotate_text(text, language='EN')
    if concepts is UNSUPPORTED:
        ...
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Iterator
import time

from absl import logging

from conceptextract import backoff as backoff_lib
from conceptextract import chunking
from conceptextract import config as config_lib
from conceptextract import consolidation
from conceptextract import validation
from conceptextract.core import base_service
from conceptextract.core import data
from conceptextract.core import exceptions


def _to_candidates(
    chunk: data.ChunkDescriptor,
    annotations: Iterable[data.RawAnnotation],
    text: str,
) -> Iterator[data.AnnotationCandidate]:
    """Translates the annotations of ``chunk`` into document coordinates.

    Annotations falling outside the chunk are dropped.
    """
    for annotation in annotations:
        if not 0 <= annotation.start <= annotation.end < len(chunk.text):
            logging.warning(
                "Chunk %d: dropping annotation %s with offsets [%d, %d] outside"
                " the chunk of length %d.",
                chunk.index,
                annotation.concept_id,
                annotation.start,
                annotation.end,
                len(chunk.text),
            )
            continue
        yield chunk.to_global(annotation, text)


class ConsolidationPipeline:
    """Annotates documents with validated knowledge-base concepts."""

    def __init__(
        self,
        annotation_service: base_service.BaseAnnotationService,
        knowledge_base: base_service.BaseKnowledgeBase,
        config: config_lib.PipelineConfig | None = None,
        backoff: backoff_lib.QuotaBackoffController | None = None,
    ):
        """Initializes ConsolidationPipeline.

        Args:
          annotation_service: Service queried once per chunk.
          knowledge_base: Knowledge base used to validate the concepts.
          config: Pipeline settings. Defaults to ``PipelineConfig()``.
          backoff: Controller applied on quota errors. Defaults to one built
            from ``config``.
        """
        self._service = annotation_service
        self._validator = validation.KnowledgeBaseValidator(knowledge_base)
        self._config = config or config_lib.PipelineConfig()
        if backoff is None:
            backoff = backoff_lib.QuotaBackoffController(
                reset_time=self._config.quota_reset,
                max_wait=self._config.max_backoff_seconds,
            )
        self._backoff = backoff

        logging.debug(
            "ConsolidationPipeline initialized with config: %s", self._config
        )

    @property
    def config(self) -> config_lib.PipelineConfig:
        return self._config

    def cancel(self) -> None:
        """Aborts any pending quota wait, sync or async.

        Safe to call from another thread. The cancellation stays in effect,
        so every later quota wait of this pipeline raises
        ``OperationCancelledError`` until ``reset_cancel`` is called.
        """
        self._backoff.cancel()

    def reset_cancel(self) -> None:
        """Lets quota waits run again after ``cancel``."""
        self._backoff.reset()

    def _start(
        self, text: str, language: str | None
    ) -> list[data.ChunkDescriptor] | None:
        if data.is_undetermined_language(language):
            logging.error(
                "Document cannot be annotated because its language could not be"
                " determined."
            )
            return None
        chunks = chunking.chunk_text(text, self._config.max_chunk_size)
        logging.info(
            "Annotating %d characters in %d chunk(s), language %s.",
            len(text),
            len(chunks),
            language,
        )
        return chunks

    def annotate_text(
        self,
        text: str,
        language: str | None,
        counter: backoff_lib.QueryCounter | None = None,
    ) -> data.AnnotationResult:
        """Annotates one document.

        Args:
          text: Document text.
          language: Language code understood by the annotation service.
          counter: Diagnostic counter of successful queries. A fresh one is
            used when omitted.

        Returns:
          The validated ``ConceptPair`` list in consolidation order, or
          ``UNSUPPORTED`` when the service refuses the language (or the
          language is unknown).

        Raises:
          OperationCancelledError: A quota wait was cancelled.
        """
        chunks = self._start(text, language)
        if chunks is None:
            return data.UNSUPPORTED
        counter = counter if counter is not None else backoff_lib.QueryCounter()
        consolidator = consolidation.SpanConsolidator(self._config.strategy)
        start_time = time.time()

        current = 0
        while current < len(chunks):
            chunk = chunks[current]
            logging.info(
                "Querying chunk %d of %d, language %s. Previous queries: %d",
                chunk.index + 1,
                len(chunks),
                language,
                counter.count,
            )
            try:
                annotations = self._service.query(chunk.text, language)
                candidates = list(_to_candidates(chunk, annotations, text))
            except exceptions.RetryableQuotaError:
                self._backoff.wait(counter)
                continue
            except exceptions.FatalLanguageError as e:
                _log_unsupported(chunk, e)
                return data.UNSUPPORTED
            except Exception as e:  # pylint: disable=broad-exception-caught
                _log_skipped(chunk, e)
                current += 1
                continue
            counter.increment()
            consolidator.extend(candidates)
            current += 1

        concepts = self._validator.validate(consolidator)
        _log_summary(consolidator, concepts, start_time)
        return concepts

    def annotate_documents(
        self, documents: Iterable[data.Document]
    ) -> Iterator[data.AnnotatedDocument]:
        """Annotates documents one after the other, yielding each result."""
        for document in documents:
            yield data.AnnotatedDocument(
                document_id=document.document_id,
                text=document.text,
                concepts=self.annotate_text(document.text, document.language),
            )

    # ── Async API ─────────────────────────────────────────────────────

    async def async_annotate_text(
        self,
        text: str,
        language: str | None,
        counter: backoff_lib.QueryCounter | None = None,
    ) -> data.AnnotationResult:
        """Async version of ``annotate_text``.

        The quota wait is aborted by ``cancel`` as well as by cancelling the
        task (or wrapping the call in ``asyncio.wait_for``).
        """
        chunks = self._start(text, language)
        if chunks is None:
            return data.UNSUPPORTED
        counter = counter if counter is not None else backoff_lib.QueryCounter()
        consolidator = consolidation.SpanConsolidator(self._config.strategy)
        start_time = time.time()

        current = 0
        while current < len(chunks):
            chunk = chunks[current]
            logging.info(
                "Querying chunk %d of %d, language %s. Previous queries: %d",
                chunk.index + 1,
                len(chunks),
                language,
                counter.count,
            )
            try:
                annotations = await self._service.async_query(
                    chunk.text, language
                )
                candidates = list(_to_candidates(chunk, annotations, text))
            except exceptions.RetryableQuotaError:
                await self._backoff.async_wait(counter)
                continue
            except exceptions.FatalLanguageError as e:
                _log_unsupported(chunk, e)
                return data.UNSUPPORTED
            except Exception as e:  # pylint: disable=broad-exception-caught
                _log_skipped(chunk, e)
                current += 1
                continue
            counter.increment()
            consolidator.extend(candidates)
            current += 1

        concepts = await self._validator.async_validate(consolidator)
        _log_summary(consolidator, concepts, start_time)
        return concepts

    async def async_annotate_documents(
        self,
        documents: Iterable[data.Document],
        max_concurrency: int = 1,
    ) -> list[data.AnnotatedDocument]:
        """Async version of ``annotate_documents``.

        Args:
          documents: Documents to annotate.
          max_concurrency: Number of documents annotated at the same time.
            Each document keeps its own consolidated list and counter.

        Returns:
          Results in input order.

        Raises:
          OperationCancelledError: A quota wait was cancelled. The documents
            still running are cancelled before the error is raised.
        """
        semaphore = asyncio.Semaphore(max(1, max_concurrency))

        async def _annotate(document: data.Document) -> data.AnnotatedDocument:
            async with semaphore:
                concepts = await self.async_annotate_text(
                    document.text, document.language
                )
            return data.AnnotatedDocument(
                document_id=document.document_id,
                text=document.text,
                concepts=concepts,
            )

        tasks = [asyncio.ensure_future(_annotate(d)) for d in documents]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


def _log_unsupported(chunk: data.ChunkDescriptor, error: Exception) -> None:
    logging.error(
        "Chunk %d: the annotation service refused the language (%s). The"
        " document is marked as unsupported.",
        chunk.index,
        error,
    )


def _log_skipped(chunk: data.ChunkDescriptor, error: Exception) -> None:
    logging.warning(
        "Chunk %d: annotation failed, skipping %d characters starting at"
        " %d: %s",
        chunk.index,
        len(chunk.text),
        chunk.offset,
        error,
    )


def _log_summary(
    consolidator: consolidation.SpanConsolidator,
    concepts: list[data.ConceptPair],
    start_time: float,
) -> None:
    logging.info(
        "Consolidated %d annotation(s), %d validated in %.2fs.",
        len(consolidator),
        len(concepts),
        time.time() - start_time,
    )
