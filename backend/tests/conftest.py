"""
Shared pytest fixtures for HealthGuard backend tests.

- FakeClock: virtual monotonic clock with an async sleep that advances it,
  so queue pacing and backoff can be asserted without real waiting
- FakeProvider: scripted LLMProvider that records its calls
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from services.providers.base import LLMProvider
from services.request_queue import OutboundRequestQueue


class FakeClock:
    """Virtual time. ``sleeps`` records every requested delay."""

    def __init__(self, start: float = 100.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeProvider(LLMProvider):
    """Provider whose replies are scripted.

    Each item in ``replies`` is either a string to return or an exception
    to raise. When the script runs out, ``default`` is returned.
    """

    def __init__(self, replies: Optional[list] = None, default: str = "ok", name: str = "Fake"):
        self.replies = list(replies or [])
        self.default = default
        self.name = name
        self.calls: List[Dict] = []

    @property
    def provider_name(self) -> str:
        return self.name

    @property
    def model(self) -> str:
        return "fake-model"

    async def generate(self, messages, max_tokens=300, temperature=0.7) -> str:
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "temperature": temperature})
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def queue(fake_clock):
    """Request queue on virtual time with production defaults."""
    return OutboundRequestQueue(sleep=fake_clock.sleep, clock=fake_clock)


@pytest.fixture
def make_provider():
    """Factory for scripted providers."""
    return FakeProvider
