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

"""Tests for the async annotation path.

Verifies that:
- BaseAnnotationService.async_query delegates to sync query by default.
- ConsolidationPipeline.async_annotate_text matches annotate_text.
- Quota waits in the async path retry the same chunk and can be cancelled.
- Malformed service results only skip their chunk.
- async_annotate_documents keeps input order under concurrency and stops
  the remaining documents when one of them fails.
"""

from __future__ import annotations

import asyncio
import datetime
import threading
from unittest import mock

import pytest

from conceptextract import annotation, backoff, config
from conceptextract.core import data, exceptions
from tests.fakes import FakeAnnotationService, FakeKnowledgeBase, word


# ── Helpers ─────────────────────────────────────────────────────────────────


TEXT = "aaaa. bbbb. cccc."
KNOWN = {"bn:a", "bn:b", "bn:c"}


class FakeAsyncAnnotationService(FakeAnnotationService):
    """Fake service that overrides async_query with native async."""

    def __init__(self, outcomes, counter=None, delay: float = 0.0, slow_texts=None):
        super().__init__(outcomes, counter)
        self.delay = delay
        # Only these texts are delayed when set.
        self.slow_texts = slow_texts
        self.async_call_count = 0

    async def async_query(self, text, language):
        self.async_call_count += 1
        if self.delay and (self.slow_texts is None or text in self.slow_texts):
            await asyncio.sleep(self.delay)
        return self.query(text, language)


def _make_pipeline(service, kb=None, max_wait=None):
    return annotation.ConsolidationPipeline(
        annotation_service=service,
        knowledge_base=kb or FakeKnowledgeBase(KNOWN),
        config=config.PipelineConfig(max_chunk_size=6),
        backoff=backoff.QuotaBackoffController(
            max_wait=max_wait,
            clock=lambda: datetime.datetime(2024, 3, 10, 22, 0, 0),
        ),
    )


def _script():
    return [[word("bn:a")], [word("bn:b")], [word("bn:c")]]


# ── Tests ───────────────────────────────────────────────────────────────────


class TestBaseServiceAsyncFallback:
    """Verify the default async_query delegates to sync query."""

    @pytest.mark.asyncio
    async def test_default_async_query_delegates_to_sync(self):
        service = FakeAnnotationService([[word("bn:a")]])
        result = await service.async_query("aaaa", "EN")
        assert result == [word("bn:a")]
        assert service.calls == ["aaaa"]

    @pytest.mark.asyncio
    async def test_default_async_resolve_delegates_to_sync(self):
        kb = FakeKnowledgeBase({"bn:a"})
        assert await kb.async_resolve("bn:a")
        assert not await kb.async_resolve("bn:z")


class TestAsyncAnnotateText:

    @pytest.mark.asyncio
    async def test_async_matches_sync(self):
        sync_result = _make_pipeline(FakeAnnotationService(_script())).annotate_text(
            TEXT, "EN"
        )
        async_service = FakeAsyncAnnotationService(_script())
        async_result = await _make_pipeline(async_service).async_annotate_text(
            TEXT, "EN"
        )
        assert async_result == sync_result
        assert async_service.async_call_count == 3

    @pytest.mark.asyncio
    async def test_language_error_returns_unsupported(self):
        service = FakeAsyncAnnotationService(
            [[word("bn:a")], exceptions.FatalLanguageError("refused"), [word("bn:c")]]
        )
        result = await _make_pipeline(service).async_annotate_text(TEXT, "EN")
        assert result is data.UNSUPPORTED
        assert service.async_call_count == 2

    @pytest.mark.asyncio
    async def test_transient_error_skips_chunk(self):
        service = FakeAsyncAnnotationService(
            [[word("bn:a")], exceptions.TransientChunkError("boom"), [word("bn:c")]]
        )
        result = await _make_pipeline(service).async_annotate_text(TEXT, "EN")
        assert [p.concept_id for p in result] == ["bn:a", "bn:c"]

    @pytest.mark.asyncio
    async def test_quota_error_retries_same_chunk(self):
        counter = backoff.QueryCounter()
        service = FakeAsyncAnnotationService(
            [
                [word("bn:a")],
                exceptions.RetryableQuotaError("limit"),
                [word("bn:b")],
                [word("bn:c")],
            ],
            counter=counter,
        )
        pipeline = _make_pipeline(service)
        with mock.patch(
            "conceptextract.backoff.asyncio.sleep", new=mock.AsyncMock()
        ) as sleep:
            result = await pipeline.async_annotate_text(TEXT, "EN", counter=counter)
        sleep.assert_awaited_once()
        assert service.calls == ["aaaa. ", "bbbb. ", "bbbb. ", "cccc."]
        assert service.counts_seen == [0, 1, 0, 1]
        assert [p.concept_id for p in result] == ["bn:a", "bn:b", "bn:c"]

    @pytest.mark.asyncio
    async def test_quota_wait_is_cancelled_by_timeout(self):
        service = FakeAnnotationService([exceptions.RetryableQuotaError("limit")])
        pipeline = _make_pipeline(service)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(
                pipeline.async_annotate_text(TEXT, "EN"), timeout=0.2
            )
        assert len(service.calls) == 1

    @pytest.mark.asyncio
    async def test_cancel_aborts_pending_quota_wait(self):
        service = FakeAnnotationService([exceptions.RetryableQuotaError("limit")])
        pipeline = _make_pipeline(service)
        timer = threading.Timer(0.05, pipeline.cancel)
        timer.start()
        try:
            with pytest.raises(exceptions.OperationCancelledError):
                await asyncio.wait_for(
                    pipeline.async_annotate_text(TEXT, "EN"), timeout=2
                )
        finally:
            timer.cancel()
        assert service.calls == ["aaaa. "]

    @pytest.mark.asyncio
    async def test_malformed_service_result_skips_chunk(self):
        counter = backoff.QueryCounter()
        service = FakeAsyncAnnotationService(
            [[word("bn:a")], None, [word("bn:c")]], counter=counter
        )
        result = await _make_pipeline(service).async_annotate_text(
            TEXT, "EN", counter=counter
        )
        assert [p.concept_id for p in result] == ["bn:a", "bn:c"]
        assert counter.count == 2

    @pytest.mark.asyncio
    async def test_unknown_concepts_are_dropped(self):
        kb = FakeKnowledgeBase({"bn:a", "bn:b"}, failing={"bn:b"})
        result = await _make_pipeline(
            FakeAsyncAnnotationService(_script()), kb
        ).async_annotate_text(TEXT, "EN")
        assert result == [data.ConceptPair("bn:a", "aaaa")]


class TestAsyncAnnotateDocuments:

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self):
        service = FakeAsyncAnnotationService(
            [[word("bn:a")], [word("bn:b")], [word("bn:c")]], delay=0.01
        )
        kb = FakeKnowledgeBase(KNOWN)
        docs = [
            data.Document(text="aaaa", language="EN", document_id="doc1"),
            data.Document(text="bbbb", language="EN", document_id="doc2"),
            data.Document(text="cccc", language=None, document_id="doc3"),
        ]
        results = await _make_pipeline(service, kb).async_annotate_documents(
            docs, max_concurrency=2
        )
        assert [r.document_id for r in results] == ["doc1", "doc2", "doc3"]
        assert all(len(r.concepts) == 1 for r in results[:2])
        assert results[2].concepts is data.UNSUPPORTED
        assert {r.concepts[0].text for r in results[:2]} == {"aaaa", "bbbb"}

    @pytest.mark.asyncio
    async def test_failed_document_cancels_the_others(self):
        service = FakeAsyncAnnotationService(
            [exceptions.RetryableQuotaError("limit"), [word("bn:b")]],
            delay=0.2,
            slow_texts={"bbbb"},
        )
        pipeline = _make_pipeline(service, max_wait=1)
        docs = [
            data.Document(text="aaaa", language="EN", document_id="doc1"),
            data.Document(text="bbbb", language="EN", document_id="doc2"),
        ]
        with pytest.raises(exceptions.OperationCancelledError):
            await pipeline.async_annotate_documents(docs, max_concurrency=2)
        await asyncio.sleep(0.4)
        assert service.calls == ["aaaa"]
        assert service.outcomes == [[word("bn:b")]]
