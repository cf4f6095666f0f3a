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

"""Wait-and-retry policy for daily quota errors of the annotation service.

When the service reports that the daily request quota is exhausted, nothing
can be done until the quota is renewed shortly after midnight. The whole
consolidation is suspended until then and the same chunk is retried. The
suspension is the only blocking point of a document and it can always be
cancelled through ``QuotaBackoffController.cancel`` (e.g. from a watchdog
thread), and async pauses also through normal task cancellation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import dataclasses
import datetime
import threading

from absl import logging

from conceptextract import config as config_lib
from conceptextract.core import exceptions


@dataclasses.dataclass
class QueryCounter:
    """Number of successful queries issued by one operation.

    Only used for diagnostics. It is reset after every quota pause.
    """

    count: int = 0

    def increment(self) -> None:
        self.count += 1

    def reset(self) -> None:
        self.count = 0


def _format_delay(seconds: float) -> str:
    hours, rest = divmod(int(seconds), 3600)
    return f"{hours}h {rest // 60}m"


class QuotaBackoffController:
    """Computes and applies the pause that follows a quota error.

    ``cancel`` aborts the running pause, sync or async, and every later one
    until ``reset`` is called.
    """

    def __init__(
        self,
        reset_time: datetime.time = config_lib.DEFAULT_QUOTA_RESET,
        max_wait: float | None = None,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ):
        """Initializes the controller.

        Args:
          reset_time: Local time of day at which the quota is renewed.
          max_wait: Longest pause allowed, in seconds. Longer pauses are
            cancelled immediately. ``None`` means no limit.
          clock: Returns the current local time.
        """
        self._reset_time = reset_time
        self._max_wait = max_wait
        self._clock = clock
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        # Pending async pauses, woken through their own loop on cancel().
        self._async_waiters: set[
            tuple[asyncio.AbstractEventLoop, asyncio.Event]
        ] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Aborts the current pause and every later one until ``reset``.

        Safe to call from any thread, including while an ``async_wait`` is
        pending on an event loop.
        """
        with self._lock:
            self._cancelled.set()
            waiters = list(self._async_waiters)
        for loop, event in waiters:
            try:
                loop.call_soon_threadsafe(event.set)
            except RuntimeError:
                # The loop was closed after the pause started.
                logging.debug("Event loop closed, cannot wake quota wait.")

    def reset(self) -> None:
        """Lifts a previous ``cancel`` so that later pauses run again."""
        with self._lock:
            self._cancelled.clear()

    def delay_until_reset(
        self, now: datetime.datetime | None = None
    ) -> datetime.timedelta:
        """Time left until ``reset_time`` on the next calendar day."""
        now = now or self._clock()
        tomorrow = now.date() + datetime.timedelta(days=1)
        target = datetime.datetime.combine(
            tomorrow, self._reset_time, tzinfo=now.tzinfo
        )
        return target - now

    def _prepare(self) -> float:
        if self._cancelled.is_set():
            raise exceptions.OperationCancelledError(
                "Quota wait cancelled before it started."
            )
        seconds = self.delay_until_reset().total_seconds()
        if self._max_wait is not None and seconds > self._max_wait:
            raise exceptions.OperationCancelledError(
                f"Quota wait of {_format_delay(seconds)} exceeds the allowed"
                f" {self._max_wait:.0f}s."
            )
        logging.info(
            "The daily request limit has been reached. Pausing for %s.",
            _format_delay(seconds),
        )
        return seconds

    def _suspend(self, seconds: float) -> None:
        if self._cancelled.wait(timeout=seconds):
            raise exceptions.OperationCancelledError(
                "Quota wait cancelled by the caller."
            )

    async def _async_suspend(self, seconds: float) -> None:
        waiter = (asyncio.get_running_loop(), asyncio.Event())
        with self._lock:
            if self._cancelled.is_set():
                raise exceptions.OperationCancelledError(
                    "Quota wait cancelled before it started."
                )
            self._async_waiters.add(waiter)
        sleeper = asyncio.ensure_future(asyncio.sleep(seconds))
        watcher = asyncio.ensure_future(waiter[1].wait())
        try:
            await asyncio.wait(
                {sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            with self._lock:
                self._async_waiters.discard(waiter)
            sleeper.cancel()
            watcher.cancel()
            await asyncio.gather(sleeper, watcher, return_exceptions=True)
        if waiter[1].is_set():
            raise exceptions.OperationCancelledError(
                "Quota wait cancelled by the caller."
            )

    def wait(self, counter: QueryCounter | None = None) -> float:
        """Blocks until the quota is renewed.

        Args:
          counter: Diagnostic counter of the running operation, reset to zero
            once the pause is over.

        Returns:
          The number of seconds waited.

        Raises:
          OperationCancelledError: ``cancel`` was called, or the pause would
            exceed ``max_wait``.
        """
        seconds = self._prepare()
        self._suspend(seconds)
        if counter is not None:
            counter.reset()
        return seconds

    async def async_wait(self, counter: QueryCounter | None = None) -> float:
        """Async version of ``wait``.

        The pause ends early with ``OperationCancelledError`` when ``cancel``
        is called. Cancelling the awaiting task aborts it as well.
        """
        seconds = self._prepare()
        await self._async_suspend(seconds)
        if counter is not None:
            counter.reset()
        return seconds
