"""
Tests for the outbound request queue: pacing, retry/backoff, FIFO
draining, failure isolation and single-flight behavior.

All timing runs on the FakeClock from conftest, so sleeps are recorded
instead of waited.
"""

import asyncio
import gc

import httpx
import pytest

from errors import ErrorCode, ExternalServiceError, LLMError
from services.request_queue import OutboundRequestQueue, is_rate_limited_error


def _throttled():
    return ExternalServiceError("Rate limit exceeded", service="gemini", status_code=429)


def _scripted(outcomes, attempts):
    """Operation that pops the next outcome per call and counts attempts."""

    async def operation():
        attempts.append(1)
        outcome = outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return operation


class TestRateLimitPredicate:
    """Default retry classification."""

    def test_status_code_attribute(self):
        assert is_rate_limited_error(_throttled()) is True

    def test_other_status_is_not_rate_limited(self):
        err = ExternalServiceError("Down", service="openai", status_code=503)
        assert is_rate_limited_error(err) is False

    def test_context_status_code(self):
        class Wrapped(Exception):
            context = {"status_code": 429}

        assert is_rate_limited_error(Wrapped()) is True

    def test_httpx_status_error(self):
        request = httpx.Request("POST", "https://example.test/generate")
        response = httpx.Response(429, request=request)
        err = httpx.HTTPStatusError("Too Many Requests", request=request, response=response)
        assert is_rate_limited_error(err) is True

    def test_plain_exception(self):
        assert is_rate_limited_error(ValueError("nope")) is False


class TestBackoff:
    def test_doubles_from_base(self, queue):
        assert [queue.backoff_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_capped_at_max_delay(self, queue):
        assert queue.backoff_delay(5) == 10.0
        assert queue.backoff_delay(12) == 10.0


class TestPacing:
    """Spacing between consecutive operations."""

    def test_first_request_starts_immediately(self, queue, fake_clock):
        async def op():
            return "first"

        assert asyncio.run(queue.submit(op)) == "first"
        assert fake_clock.sleeps == []

    def test_consecutive_requests_are_spaced(self, queue, fake_clock):
        """Each start is at least 2s after the previous settle, in FIFO order."""
        events = []

        def make_op(name):
            async def op():
                events.append(("start", name, fake_clock.now))
                fake_clock.advance(0.5)  # simulated network time
                events.append(("settle", name, fake_clock.now))
                return name

            return op

        async def run():
            return await asyncio.gather(*(queue.submit(make_op(n)) for n in ("a", "b", "c")))

        assert asyncio.run(run()) == ["a", "b", "c"]

        starts = [t for kind, _, t in events if kind == "start"]
        settles = [t for kind, _, t in events if kind == "settle"]
        assert [name for kind, name, _ in events if kind == "start"] == ["a", "b", "c"]
        for k in range(2):
            assert starts[k + 1] >= settles[k]
            assert starts[k + 1] - settles[k] >= 2.0

    def test_no_wait_when_interval_already_elapsed(self, queue, fake_clock):
        async def op():
            return "x"

        async def run():
            await queue.submit(op)
            fake_clock.advance(5.0)
            await queue.submit(op)

        asyncio.run(run())
        assert fake_clock.sleeps == []

    def test_pacing_applies_after_failure(self, queue, fake_clock):
        async def failing():
            raise ValueError("boom")

        async def ok():
            return "ok"

        async def run():
            return await asyncio.gather(queue.submit(failing), queue.submit(ok), return_exceptions=True)

        first, second = asyncio.run(run())
        assert isinstance(first, ValueError)
        assert second == "ok"
        assert fake_clock.sleeps == [2.0]


class TestRetry:
    """Rate-limit retries with exponential backoff."""

    def test_succeeds_after_three_rate_limits(self, queue, fake_clock):
        attempts = []
        op = _scripted([_throttled(), _throttled(), _throttled(), "recovered"], attempts)

        assert asyncio.run(queue.submit(op)) == "recovered"
        assert len(attempts) == 4
        assert fake_clock.sleeps == [1.0, 2.0, 4.0]
        assert queue.stats()["retries"] == 3

    def test_non_rate_limited_failure_rejects_immediately(self, queue, fake_clock):
        attempts = []
        op = _scripted([ExternalServiceError("Down", service="gemini", status_code=503), "never"], attempts)

        with pytest.raises(ExternalServiceError) as exc_info:
            asyncio.run(queue.submit(op))

        assert exc_info.value.status_code == 503
        assert len(attempts) == 1
        assert fake_clock.sleeps == []

    def test_exhausted_retries_reject_and_queue_continues(self, queue, fake_clock):
        attempts = []
        always_throttled = _scripted([_throttled() for _ in range(4)], attempts)

        async def next_op():
            return "next"

        async def run():
            return await asyncio.gather(
                queue.submit(always_throttled),
                queue.submit(next_op),
                return_exceptions=True,
            )

        first, second = asyncio.run(run())
        assert isinstance(first, ExternalServiceError)
        assert first.status_code == 429
        assert len(attempts) == 4
        assert second == "next"
        # Three backoff waits, then standard pacing before the next request
        assert fake_clock.sleeps == [1.0, 2.0, 4.0, 2.0]

    def test_custom_predicate(self, fake_clock):
        queue = OutboundRequestQueue(
            is_rate_limited=lambda exc: isinstance(exc, TimeoutError),
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )
        attempts = []
        op = _scripted([TimeoutError(), "done"], attempts)

        assert asyncio.run(queue.submit(op)) == "done"
        assert fake_clock.sleeps == [1.0]

    def test_custom_retry_budget(self, fake_clock):
        queue = OutboundRequestQueue(max_retries=1, sleep=fake_clock.sleep, clock=fake_clock)
        attempts = []
        op = _scripted([_throttled(), _throttled(), "late"], attempts)

        with pytest.raises(ExternalServiceError):
            asyncio.run(queue.submit(op))
        assert len(attempts) == 2


class TestDraining:
    """Single-flight drain and FIFO isolation."""

    def test_single_drain_task_for_concurrent_submits(self, queue, fake_clock):
        drains = []
        original_drain = queue._drain

        async def counting_drain():
            drains.append(1)
            await original_drain()

        queue._drain = counting_drain

        in_flight = []
        max_in_flight = []

        def make_op(i):
            async def op():
                in_flight.append(i)
                max_in_flight.append(len(in_flight))
                await asyncio.sleep(0)
                in_flight.remove(i)
                return i

            return op

        async def run():
            results = await asyncio.gather(*(queue.submit(make_op(i)) for i in range(5)))
            assert queue.is_draining is False
            # A submit after the queue went idle starts a new drain
            results.append(await queue.submit(make_op(5)))
            return results

        assert asyncio.run(run()) == [0, 1, 2, 3, 4, 5]
        assert len(drains) == 2
        assert max(max_in_flight) == 1

    def test_failure_only_rejects_its_own_caller(self, queue):
        async def ok(value):
            return value

        async def bad():
            raise RuntimeError("bad request")

        async def run():
            return await asyncio.gather(
                queue.submit(lambda: ok("one")),
                queue.submit(bad),
                queue.submit(lambda: ok("three")),
                return_exceptions=True,
            )

        one, two, three = asyncio.run(run())
        assert one == "one"
        assert isinstance(two, RuntimeError)
        assert three == "three"

    def test_stats(self, queue, fake_clock):
        async def op():
            return "x"

        async def bad():
            raise ValueError("x")

        async def run():
            await queue.submit(op)
            with pytest.raises(ValueError):
                await queue.submit(bad)

        asyncio.run(run())
        fake_clock.advance(3.0)
        stats = queue.stats()
        assert stats["pending"] == 0
        assert stats["draining"] is False
        assert stats["completed"] == 1
        assert stats["failed"] == 1
        assert stats["seconds_since_last_completion"] == pytest.approx(3.0)

    def test_stats_before_any_request(self, queue):
        assert queue.stats()["seconds_since_last_completion"] is None
        assert queue.pending_count == 0

    def test_close_rejects_in_flight_and_pending(self, queue):
        async def run():
            release = asyncio.Event()

            async def blocked():
                await release.wait()
                return "never"

            first = asyncio.ensure_future(queue.submit(blocked))
            second = asyncio.ensure_future(queue.submit(blocked))
            for _ in range(3):
                await asyncio.sleep(0)

            await queue.close()
            return await asyncio.gather(first, second, return_exceptions=True)

        first, second = asyncio.run(run())
        assert isinstance(first, LLMError)
        assert isinstance(second, LLMError)
        assert first.code == ErrorCode.LLM_UNAVAILABLE
        assert queue.is_draining is False

    def test_cancelled_caller_failure_is_not_reported_unretrieved(self, queue):
        reported = []

        async def run():
            asyncio.get_running_loop().set_exception_handler(lambda loop, ctx: reported.append(ctx["message"]))
            release = asyncio.Event()

            async def failing():
                await release.wait()
                raise ExternalServiceError("Down", service="openai", status_code=503)

            caller = asyncio.ensure_future(queue.submit(failing))
            await asyncio.sleep(0)
            caller.cancel()
            with pytest.raises(asyncio.CancelledError):
                await caller

            release.set()
            while queue.is_draining:
                await asyncio.sleep(0)
            for _ in range(3):
                await asyncio.sleep(0)
            gc.collect()

        asyncio.run(run())
        assert reported == []
        assert queue.failed == 1
