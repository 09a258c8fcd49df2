"""Heap introspection and boxing capabilities used by the size prober.

A MemoryProbe forces the collector to finish (quiesce) and reports a running
total of allocated bytes. Object sizes are inferred from the difference of two
totals taken around an allocation.

- TracemallocProbe: bytes traced by tracemalloc. Exact to the byte for Python
  allocations and the default probe.
- ProcessMemoryProbe: resident set size via psutil. Page granular, only useful
  for allocations of many kilobytes or more.
"""

import ctypes
import gc
import threading
import tracemalloc
from contextlib import AbstractContextManager, nullcontext
from typing import Any, Protocol, runtime_checkable

import psutil

from calibench._errors import CalibenchError

BOX_BASELINE_PAYLOAD = ctypes.sizeof(ctypes.c_int64)

_VALUE_KINDS = (ctypes.Structure, ctypes.Union, ctypes._SimpleCData)


@runtime_checkable
class MemoryProbe(Protocol):
    def quiesce(self) -> None: ...

    def total_managed_bytes(self) -> int: ...


def measurement_session(probe: MemoryProbe) -> AbstractContextManager[Any]:
    """Context in which ``probe`` reports totals; a no-op for probes that need none."""
    if isinstance(probe, AbstractContextManager):
        return probe
    return nullcontext()


def collect_until_quiet() -> None:
    """Run full collections until one finds nothing unreachable.

    Blocks for as long as finalizers keep producing garbage; there is no timeout.
    """
    while gc.collect():
        pass


class TracemallocProbe:
    """MemoryProbe over tracemalloc's traced-bytes counter.

    Totals are only available inside a session (``with probe:``). Entering the
    outermost session starts tracing if nobody started it yet, and leaving it
    stops tracing again, so allocations outside size measurements never pay
    for the tracemalloc hook. Sessions nest; a trace started elsewhere is left
    running.
    """

    def __init__(self) -> None:
        self._owns_trace = False
        self._depth = 0
        self._lock = threading.Lock()

    def quiesce(self) -> None:
        collect_until_quiet()

    def total_managed_bytes(self) -> int:
        if not tracemalloc.is_tracing():
            raise CalibenchError("tracemalloc is not tracing; measure inside a probe session")
        return tracemalloc.get_traced_memory()[0]

    def close(self) -> None:
        with self._lock:
            self._depth = 0
            self._stop_owned_trace()

    def _stop_owned_trace(self) -> None:
        if self._owns_trace and tracemalloc.is_tracing():
            tracemalloc.stop()
        self._owns_trace = False

    def __enter__(self) -> "TracemallocProbe":
        with self._lock:
            if self._depth == 0 and not tracemalloc.is_tracing():
                tracemalloc.start()
                self._owns_trace = True
            self._depth += 1
        return self

    def __exit__(self, *args: Any) -> None:
        with self._lock:
            self._depth = max(0, self._depth - 1)
            if self._depth == 0:
                self._stop_owned_trace()


class ProcessMemoryProbe:
    """MemoryProbe over the process resident set size reported by psutil."""

    def __init__(self) -> None:
        self._process = psutil.Process()

    def quiesce(self) -> None:
        collect_until_quiet()

    def total_managed_bytes(self) -> int:
        return self._process.memory_info().rss


_default_probe: TracemallocProbe | None = None
_default_probe_lock = threading.Lock()


def default_probe() -> TracemallocProbe:
    """Process-wide TracemallocProbe shared by benches that don't bring their own.

    Tracing is only on while one of its sessions is open.
    """
    global _default_probe
    with _default_probe_lock:
        if _default_probe is None:
            _default_probe = TracemallocProbe()
        return _default_probe


def is_value_kind(kind: type) -> bool:
    """True for ctypes value kinds: structures, unions and simple C data.

    ctypes arrays are not value kinds here; they are measured as objects.
    """
    return issubclass(kind, _VALUE_KINDS)


def box(value: Any) -> bytearray:
    """Copy a value kind's raw bytes into a fresh heap wrapper.

    The wrapper's own overhead is the same for every payload size >= 1, so it
    cancels against a boxed baseline of known size.
    """
    return bytearray(bytes(value))
