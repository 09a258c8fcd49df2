"""Exponential search for an iteration count worth timing."""

import math
import time
from collections.abc import Callable
from typing import Any

from loguru import logger

from calibench._errors import checked, require_non_negative
from calibench._timing import Body, Clock, Sink, TimeControl, drive

NOISE_FLOOR_MS = 10.0
MAX_PROBE_COUNT = 2**31 // 10


class IterationPlanner:
    """Picks how many times a target must run to fill the minimum benchmark time.

    Args:
        min_iterations: Lower bound on the returned count
        min_milliseconds: Time the planned run should take. 0 disables the
            search and plans exactly ``min_iterations``.
        now: Integer-nanosecond clock used by loop_count()
    """

    @checked
    def __init__(
        self,
        min_iterations: int,
        min_milliseconds: int,
        now: Clock = time.perf_counter_ns,
    ) -> None:
        require_non_negative("min_iterations", min_iterations)
        require_non_negative("min_milliseconds", min_milliseconds)
        self.min_iterations = min_iterations
        self.min_milliseconds = min_milliseconds
        self._now = now

    def _too_short(self, elapsed_ms: float) -> bool:
        # both noise thresholds are intentional; they diverge for minimums above 10s
        return elapsed_ms < self.min_milliseconds and (
            elapsed_ms < NOISE_FLOOR_MS or elapsed_ms < self.min_milliseconds / 1000
        )

    def plan(self, body: Body, control: TimeControl) -> int:
        """Return an iteration count whose timed run reaches min_milliseconds.

        Doubles the count while a sample is too short to trust, then rescales
        the last sample's rate to the requested minimum.
        """
        if self.min_milliseconds == 0:
            return self.min_iterations

        sink = Sink()
        count = 1
        while True:
            elapsed_ms = drive(body, count, control, sink) / 1e6
            count *= 2
            if not self._too_short(elapsed_ms) or count > MAX_PROBE_COUNT:
                break
        count //= 2

        if elapsed_ms > 0:
            estimate = math.ceil(count * self.min_milliseconds / elapsed_ms)
        else:
            estimate = count
        planned = max(estimate, self.min_iterations)
        logger.debug(
            f"Planned {planned} iterations (sample: {count} in {elapsed_ms:.3f}ms)"
        )
        return planned

    def loop_count(self, target: Callable[[int], Any]) -> int:
        """Return an inner loop count for which one call of ``target`` takes >= 10ms."""
        count = 1
        while count < MAX_PROBE_COUNT:
            started = self._now()
            target(count)
            if (self._now() - started) / 1e6 >= NOISE_FLOOR_MS:
                break
            count *= 2
        logger.debug(f"Chose inner loop count {count}")
        return count
