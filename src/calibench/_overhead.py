"""One-time calibration of the overheads every measurement is normalized by."""

import ctypes
import threading
import time
from dataclasses import dataclass

from loguru import logger

from calibench._memory import MemoryProbe, default_probe
from calibench._sizing import SizeProber
from calibench._timing import Clock, calibrate_resume_overhead

SLOT_BYTES = ctypes.sizeof(ctypes.c_void_p)


class _ControlObject:
    """Object with a known payload: two slots, one pointer each."""

    __slots__ = ("one", "two")
    PAYLOAD = 2 * SLOT_BYTES

    def __init__(self) -> None:
        self.one = 0
        self.two = 0


@dataclass(frozen=True)
class OverheadBaseline:
    """Process-lifetime normalization constants.

    Attributes:
        object_overhead: Bytes an object costs beyond its payload (header and
            collector bookkeeping)
        resume_overhead_ns: Cost of one TimeControl pause/resume cycle
    """

    object_overhead: int
    resume_overhead_ns: int

    def __post_init__(self) -> None:
        assert self.resume_overhead_ns >= 0, (
            f"Resume overhead cannot be negative: {self.resume_overhead_ns}ns"
        )


def calibrate(
    probe: MemoryProbe | None = None,
    now: Clock = time.perf_counter_ns,
) -> OverheadBaseline:
    """Measure both overheads with a fixed, deterministic procedure.

    Call once at startup and pass the result to each Bench, or rely on
    default_baseline() to do it lazily.
    """
    prober = SizeProber(probe if probe is not None else default_probe())
    object_size = prober.measure(_ControlObject, kind=_ControlObject)
    baseline = OverheadBaseline(
        object_overhead=object_size - _ControlObject.PAYLOAD,
        resume_overhead_ns=calibrate_resume_overhead(now),
    )
    logger.debug(
        f"Calibrated overhead baseline: object={baseline.object_overhead}B, "
        f"resume={baseline.resume_overhead_ns}ns"
    )
    return baseline


_default_baseline: OverheadBaseline | None = None
_default_baseline_lock = threading.Lock()


def default_baseline() -> OverheadBaseline:
    """Shared baseline, calibrated on first call and at most once per process.

    Always measured with the shared tracemalloc probe and time.perf_counter_ns.
    """
    global _default_baseline
    with _default_baseline_lock:
        if _default_baseline is None:
            _default_baseline = calibrate()
        return _default_baseline
