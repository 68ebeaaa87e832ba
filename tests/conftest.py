"""Shared fakes for pipeline tests."""

import asyncio
import random

import pytest

from doc_translator.exceptions import ProviderError
from doc_translator.models import ProviderResponse, Usage


class FakeProvider:
    """Provider that echoes the source with random latency and optional failures."""

    def __init__(self, fail_on=None, seed=0, max_delay=0.005, usage=None):
        self.fail_on = fail_on
        self.max_delay = max_delay
        self.usage = usage
        self._rng = random.Random(seed)
        self.requests = []
        self.events = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = 0

    @staticmethod
    def translate(text):
        return f"T<{text}>"

    async def translate_chunk(self, request):
        self.requests.append(request)
        self.events.append(("start", request.source_text))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._rng.uniform(0, self.max_delay))
            if self.fail_on and self.fail_on(request.source_text):
                raise ProviderError("boom")
            return ProviderResponse(self.translate(request.source_text), usage=self.usage)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1
            self.events.append(("end", request.source_text))


class RecordingSink:
    """Progress sink that keeps every event."""

    def __init__(self):
        self.events = []

    async def emit(self, event):
        self.events.append(event)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sink():
    return RecordingSink()
