"""
Outbound Request Queue - paced, single-flight dispatcher for remote LLM calls.

Every remote text-generation call goes through one queue instance so that:
- only one call is in flight at a time (FIFO order)
- consecutive calls are spaced by at least ``min_interval`` seconds,
  measured from when the previous result was recorded
- throttled calls (HTTP 429 by default) are retried with capped
  exponential backoff

Other failures reject only the submitting caller's future; the queue keeps
draining.

Usage:
    queue = OutboundRequestQueue()
    text = await queue.submit(lambda: provider.generate(messages, 300, 0.7))
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from errors import LLMError
from logging_config import log_queue

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[str]]


@dataclass
class QueuedRequest:
    """A pending operation and the future its submitter awaits."""

    operation: Operation
    future: asyncio.Future


def is_rate_limited_error(exc: BaseException) -> bool:
    """Default retry predicate: the failure carries HTTP status 429.

    Looks at ``exc.status_code`` (ExternalServiceError, openai SDK errors),
    then ``exc.context["status_code"]``, then ``exc.response.status_code``
    (httpx.HTTPStatusError).
    """
    status = getattr(exc, "status_code", None)
    if status is None:
        context = getattr(exc, "context", None)
        if isinstance(context, dict):
            status = context.get("status_code")
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    return status == 429


def _retrieve_exception(future: asyncio.Future) -> None:
    # A cancelled submitter leaves nobody awaiting the future
    if not future.cancelled():
        future.exception()


class OutboundRequestQueue:
    """Serializes remote calls with pacing and rate-limit retries.

    ``sleep`` and ``clock`` are injectable so timing can be driven by a
    virtual clock in tests. ``clock`` must be monotonic seconds.
    """

    def __init__(
        self,
        min_interval: float = 2.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        is_rate_limited: Callable[[BaseException], bool] = is_rate_limited_error,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = min_interval
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.is_rate_limited = is_rate_limited
        self._sleep = sleep
        self._clock = clock

        self._pending: Deque[QueuedRequest] = deque()
        self._draining = False
        self._drain_task: Optional[asyncio.Task] = None
        self._in_flight: Optional[QueuedRequest] = None
        self._last_completion: Optional[float] = None

        # Counters for /api/health
        self.completed = 0
        self.failed = 0
        self.retries = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def backoff_delay(self, retry_number: int) -> float:
        """Seconds to wait before retry ``retry_number`` (1-based)."""
        return min(self.base_delay * (2 ** (retry_number - 1)), self.max_delay)

    async def submit(self, operation: Operation) -> str:
        """Enqueue an operation and wait for its result.

        Raises whatever the operation finally raised. If the caller stops
        waiting, the operation still runs in turn and its result is dropped.
        """
        loop = asyncio.get_running_loop()
        request = QueuedRequest(operation=operation, future=loop.create_future())
        request.future.add_done_callback(_retrieve_exception)
        self._pending.append(request)
        log_queue(logger, "enqueued", pending=len(self._pending), draining=self._draining)

        # No await between the check and the set: one drain task at a time
        if not self._draining:
            self._draining = True
            self._drain_task = loop.create_task(self._drain())

        return await asyncio.shield(request.future)

    async def _drain(self) -> None:
        try:
            while self._pending:
                request = self._pending.popleft()
                self._in_flight = request
                await self._wait_for_pacing()

                try:
                    result = await self._run_with_retry(request.operation)
                except Exception as exc:
                    self._last_completion = self._clock()
                    self.failed += 1
                    log_queue(logger, "failed", error=type(exc).__name__, pending=len(self._pending))
                    if not request.future.done():
                        request.future.set_exception(exc)
                else:
                    self._last_completion = self._clock()
                    self.completed += 1
                    log_queue(logger, "completed", pending=len(self._pending))
                    if not request.future.done():
                        request.future.set_result(result)
                self._in_flight = None
        finally:
            self._draining = False
            self._drain_task = None

    async def _wait_for_pacing(self) -> None:
        if self._last_completion is None:
            return
        wait = self.min_interval - (self._clock() - self._last_completion)
        if wait > 0:
            log_queue(logger, "pacing", delay=f"{wait:.2f}s")
            await self._sleep(wait)

    async def _run_with_retry(self, operation: Operation) -> str:
        retry_number = 0
        while True:
            try:
                return await operation()
            except Exception as exc:
                if retry_number >= self.max_retries or not self.is_rate_limited(exc):
                    raise
                retry_number += 1
                self.retries += 1
                delay = self.backoff_delay(retry_number)
                logger.warning(f"Rate limit hit, retry {retry_number}/{self.max_retries} in {delay:.1f}s")
                await self._sleep(delay)

    async def close(self) -> None:
        """Stop draining and reject anything still queued."""
        task = self._drain_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        abandoned = list(self._pending)
        self._pending.clear()
        if self._in_flight is not None:
            abandoned.insert(0, self._in_flight)
            self._in_flight = None
        for request in abandoned:
            if not request.future.done():
                request.future.set_exception(LLMError("Request queue closed"))

    def stats(self) -> Dict[str, Any]:
        """Snapshot of queue state."""
        since_last = None
        if self._last_completion is not None:
            since_last = round(self._clock() - self._last_completion, 3)
        return {
            "pending": len(self._pending),
            "draining": self._draining,
            "seconds_since_last_completion": since_last,
            "completed": self.completed,
            "failed": self.failed,
            "retries": self.retries,
        }
