"""Pausable clock and the loop that drives a timed body.

Design by Contract:
- Elapsed time MUST be non-negative (overhead subtraction is clamped at 0)
- Pause/resume transitions are checked; illegal ones raise ClockStateError
- All clock reads go through an injectable ``now`` callable returning integer
  nanoseconds (time.perf_counter_ns by default)
"""

import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from enum import Enum
from typing import Any

from loguru import logger

from calibench._errors import (
    ClockStateError,
    InvalidArgumentError,
    checked,
    require_non_negative,
)

Clock = Callable[[], int]

CALIBRATION_LOOPS = 1000
CALIBRATION_ATTEMPTS = 10


class Stopwatch:
    """Accumulating start/stop stopwatch over an integer-nanosecond clock.

    Starting a running stopwatch or stopping a stopped one is a no-op, so the
    elapsed total only ever grows between resets.
    """

    __slots__ = ("_now", "_elapsed_ns", "_started_ns")

    def __init__(self, now: Clock = time.perf_counter_ns) -> None:
        self._now = now
        self._elapsed_ns = 0
        self._started_ns: int | None = None

    @property
    def is_running(self) -> bool:
        return self._started_ns is not None

    @property
    def elapsed_ns(self) -> int:
        if self._started_ns is None:
            return self._elapsed_ns
        return self._elapsed_ns + (self._now() - self._started_ns)

    def start(self) -> None:
        if self._started_ns is None:
            self._started_ns = self._now()

    def stop(self) -> None:
        if self._started_ns is not None:
            self._elapsed_ns += self._now() - self._started_ns
            self._started_ns = None

    def reset(self) -> None:
        self._elapsed_ns = 0
        self._started_ns = None


class ClockState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class TimeControl:
    """Clock handle given to a benchmark target so it can exclude setup work.

    Every resume() charges one calibrated resume cost to the accumulated
    overhead, which elapsed_ns subtracts again. Pausing is intended for
    bodies that run for at least a millisecond; around sub-microsecond work
    the remaining calibration error dominates.

    Usage:
        def remove_all(control: TimeControl) -> None:
            with control.paused():
                d = {i: str(i) for i in range(100)}
            for i in range(100):
                del d[i]

        bench.time_controlled("dict removal", remove_all, reps_per_call=100)

    Args:
        resume_overhead_ns: Calibrated cost of one pause/resume cycle. When
            None the clock calibrates itself on construction.
        now: Integer-nanosecond clock (default: time.perf_counter_ns)
    """

    @checked
    def __init__(
        self,
        resume_overhead_ns: int | None = None,
        now: Clock = time.perf_counter_ns,
    ) -> None:
        self._watch = Stopwatch(now)
        self._state = ClockState.IDLE
        self._accumulated_ns = 0
        if resume_overhead_ns is None:
            resume_overhead_ns = calibrate_resume_overhead(now)
        require_non_negative("resume_overhead_ns", resume_overhead_ns)
        self._resume_overhead_ns = resume_overhead_ns

    @property
    def state(self) -> ClockState:
        return self._state

    @property
    def resume_overhead_ns(self) -> int:
        return self._resume_overhead_ns

    @property
    def accumulated_overhead_ns(self) -> int:
        return self._accumulated_ns

    @property
    def raw_elapsed_ns(self) -> int:
        return self._watch.elapsed_ns

    @property
    def elapsed_ns(self) -> int:
        """Elapsed time less accumulated pause/resume overhead, never below 0."""
        return max(0, self._watch.elapsed_ns - self._accumulated_ns)

    @property
    def elapsed(self) -> float:
        """Adjusted elapsed time in seconds."""
        return self.elapsed_ns / 1e9

    def reset(self) -> None:
        self._watch.reset()
        self._accumulated_ns = 0
        self._state = ClockState.IDLE

    def start(self) -> None:
        if self._state not in (ClockState.IDLE, ClockState.STOPPED):
            raise ClockStateError(f"Cannot start a clock that is {self._state.value}")
        self._watch.start()
        self._state = ClockState.RUNNING

    def stop(self) -> None:
        if self._state not in (ClockState.RUNNING, ClockState.PAUSED):
            raise ClockStateError(f"Cannot stop a clock that is {self._state.value}")
        self._watch.stop()
        self._state = ClockState.STOPPED

    def pause(self) -> None:
        if self._state is not ClockState.RUNNING:
            raise ClockStateError(f"Cannot pause a clock that is {self._state.value}")
        self._watch.stop()
        self._state = ClockState.PAUSED

    def resume(self) -> None:
        if self._state is not ClockState.PAUSED:
            raise ClockStateError(f"Cannot resume a clock that is {self._state.value}")
        self._accumulated_ns += self._resume_overhead_ns
        self._state = ClockState.RUNNING
        self._watch.start()

    @contextmanager
    def paused(self) -> Generator["TimeControl", None, None]:
        """Exclude the enclosed block from the measured time."""
        self.pause()
        try:
            yield self
        finally:
            self.resume()


def _measure_resume_overhead(now: Clock, loops: int, attempts: int) -> int:
    probe = TimeControl(resume_overhead_ns=0, now=now)
    for _ in range(attempts):
        probe.reset()
        probe.start()
        for _ in range(loops):
            pass
        probe.stop()
        loop_only_ns = probe.raw_elapsed_ns

        probe.reset()
        probe.start()
        for _ in range(loops):
            probe.pause()
            probe.resume()
        probe.stop()
        # only time the clock itself saw while running leaks into a measurement
        computed = (probe.raw_elapsed_ns - loop_only_ns) // loops
        if computed >= 0:
            return computed
    return 0


@checked
def calibrate_resume_overhead(
    now: Clock = time.perf_counter_ns,
    loops: int = CALIBRATION_LOOPS,
    attempts: int = CALIBRATION_ATTEMPTS,
) -> int:
    """Estimate the time one pause/resume cycle adds to a running clock.

    The measurement runs twice; the first pass only warms up the code paths
    and its value is discarded. A pass retries up to ``attempts`` times while
    clock noise makes the delta negative, and falls back to 0.

    Returns:
        Per-resume overhead in nanoseconds (>= 0).
    """
    if loops < 1:
        raise InvalidArgumentError(f"loops must be positive: {loops}")
    _measure_resume_overhead(now, loops, attempts)
    overhead = _measure_resume_overhead(now, loops, attempts)
    logger.debug(f"Calibrated pause/resume overhead: {overhead}ns")
    return overhead


class Sink:
    """Receives every result of a driven body so the call is never dead code."""

    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value: Any = None


Body = Callable[[TimeControl], Any]


def drive(body: Body, iterations: int, control: TimeControl, sink: Sink) -> int:
    """Call ``body`` ``iterations`` times under a fresh clock run.

    Target and overhead bodies both go through this loop, so the scaffolding
    cost is the same on both sides of the subtraction. The runner's own
    start/stop are not pause/resume cycles and carry no overhead charge.

    Returns:
        Adjusted elapsed nanoseconds.
    """
    control.reset()
    control.start()
    for _ in range(iterations):
        sink.value = body(control)
    control.stop()
    elapsed = control.elapsed_ns
    assert elapsed >= 0, f"Elapsed time cannot be negative: {elapsed}ns"
    return elapsed
