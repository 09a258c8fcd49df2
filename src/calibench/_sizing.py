"""Indirect object-size measurement through allocation deltas.

Python has no sizeof for an object graph, so a size is read off the heap:

- Reference kinds: total bytes after creating the value minus total bytes
  before, with the collector quiesced at both snapshots.
- Value kinds (ctypes structures, unions, simple C data): the value is boxed
  into a heap wrapper and measured as a reference kind, then the wrapper's
  overhead, learned from boxing an 8-byte integer, is subtracted.

Each measurement repeats until two consecutive attempts agree on a positive
size, because one-shot heap deltas pick up stray allocations.
"""

import ctypes
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Any

from loguru import logger

from calibench._errors import InvalidArgumentError, checked
from calibench._memory import (
    BOX_BASELINE_PAYLOAD,
    MemoryProbe,
    box,
    is_value_kind,
    measurement_session,
)
from calibench._timing import Sink

MAX_ATTEMPTS = 10


class SizeProber:
    """Measures the byte footprint of values produced by a factory.

    Not meant for production code paths: every call forces full collections.

    Args:
        probe: Heap introspection capability
        max_attempts: Stabilization budget per measurement
    """

    @checked
    def __init__(self, probe: MemoryProbe, max_attempts: int = MAX_ATTEMPTS) -> None:
        if max_attempts < 1:
            raise InvalidArgumentError(f"max_attempts must be positive: {max_attempts}")
        self.probe = probe
        self.max_attempts = max_attempts
        self._sink = Sink()

    @checked
    def measure(self, factory: Callable[[], Any], kind: type | None = None) -> int:
        """Return the size in bytes of the value ``factory`` produces.

        Args:
            factory: Zero-argument callable producing a fresh value per call
            kind: Static type of the produced values. When omitted, one value
                is produced up front (and discarded) to learn it.

        Returns:
            Size in bytes, never negative.
        """
        if kind is None:
            kind = type(factory())
        with self.session():
            if is_value_kind(kind):
                size = self._stabilize(lambda: self._boxed_delta(factory), kind)
            else:
                size = self._stabilize(lambda: self._heap_delta(factory), kind)
        return max(0, size)

    def session(self) -> AbstractContextManager[Any]:
        """Keep the probe measuring across several measure() calls."""
        return measurement_session(self.probe)

    def _stabilize(self, attempt: Callable[[], int], kind: type) -> int:
        size: int | None = None
        for attempts in range(1, self.max_attempts + 1):
            previous = size
            size = attempt()
            if size == previous and size > 0:
                return size
        logger.warning(
            f"Size of {kind.__name__} did not stabilize after {attempts} attempts; "
            f"returning last estimate {size}B"
        )
        assert size is not None
        return size

    def _heap_delta(self, factory: Callable[[], Any]) -> int:
        self.probe.quiesce()
        start = self.probe.total_managed_bytes()
        value = factory()
        self.probe.quiesce()
        end = self.probe.total_managed_bytes()
        # the value must stay reachable until the second snapshot
        self._sink.value = id(value)
        del value
        self._sink.value = None
        return end - start

    def _boxed_delta(self, factory: Callable[[], Any]) -> int:
        baseline_size = self.measure(lambda: box(ctypes.c_int64(1)), kind=bytearray)
        boxed_size = self.measure(lambda: box(factory()), kind=bytearray)
        return boxed_size - (baseline_size - BOX_BASELINE_PAYLOAD)
