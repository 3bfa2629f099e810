import asyncio

import pytest

from coverage_engine.cache import MemoryStorage, TieredCache

T0_MS = 1_760_000_000_000
DAY_MS = 24 * 3600 * 1000


class FakeClock:
    """Callable clock in epoch seconds, advanced in whole milliseconds."""

    def __init__(self, ms: int = T0_MS):
        self.ms = ms

    def __call__(self) -> float:
        return self.ms / 1000

    def advance(self, ms: int):
        self.ms += ms


MEMO = """# Broadcom Inc. (AVGO)

## Investment Thesis
Custom silicon compounds.

## Key Debates
### 1. Is growth sustainable?
**Bull Case:** Capex rises.
**Bear Case:** Orders are lumpy.
"""


class FakeGenerator:
    enabled = True

    def __init__(self, text=MEMO, error=None):
        self.text    = text
        self.error   = error
        self.prompts = []

    async def generate(self, system, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.text


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    return TieredCache(MemoryStorage(), clock=clock)
