"""Shared fixtures: a hand-driven clock, scripted memory probes, log capture."""

import itertools
import tracemalloc
from collections.abc import Iterable

import pytest
from loguru import logger

from calibench import OverheadBaseline


class FakeClock:
    """Integer-nanosecond clock that only moves when a test advances it."""

    def __init__(self) -> None:
        self.ns = 0

    def __call__(self) -> int:
        return self.ns

    def advance(self, ns: int) -> None:
        self.ns += ns


class ScriptedProbe:
    """MemoryProbe returning a fixed sequence of heap totals."""

    def __init__(self, totals: Iterable[int]) -> None:
        self._totals = iter(totals)
        self.quiesced = 0

    def quiesce(self) -> None:
        self.quiesced += 1

    def total_managed_bytes(self) -> int:
        return next(self._totals)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scripted_probe():
    return ScriptedProbe


@pytest.fixture
def quiet_probe() -> ScriptedProbe:
    """Probe for timing tests: counts barriers, reports a flat heap."""
    return ScriptedProbe(itertools.repeat(0))


@pytest.fixture
def fixed_baseline() -> OverheadBaseline:
    return OverheadBaseline(object_overhead=32, resume_overhead_ns=0)


@pytest.fixture
def log_messages():
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def tracing_off():
    """Start and end the test with tracemalloc stopped."""
    if tracemalloc.is_tracing():
        tracemalloc.stop()
    yield
    if tracemalloc.is_tracing():
        tracemalloc.stop()
