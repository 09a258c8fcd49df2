"""Overhead-compensated timing of a benchmark target.

The target and an overhead body with the same call structure but an empty
payload are each driven through the same counted loop, the same number of
times, after the same quiescence barrier. Subtracting the second elapsed time
from the first leaves the cost of the payload alone.
"""

import time

from loguru import logger

from calibench._errors import InvalidArgumentError, checked
from calibench._memory import MemoryProbe
from calibench._planner import IterationPlanner
from calibench._results import TimeResult
from calibench._timing import Body, Clock, Sink, TimeControl, drive

OVERHEAD_WARMUP_ITERATIONS = 100


class BenchmarkRunner:
    """Runs the warm-up / plan / quiesce / measure / subtract protocol.

    Args:
        planner: Chooses the iteration count for each run
        probe: Supplies the quiescence barrier between timed sections
        resume_overhead_ns: Calibrated pause/resume cost for the TimeControl
        now: Integer-nanosecond clock
    """

    @checked
    def __init__(
        self,
        planner: IterationPlanner,
        probe: MemoryProbe,
        resume_overhead_ns: int,
        now: Clock = time.perf_counter_ns,
    ) -> None:
        self.planner = planner
        self.probe = probe
        self.resume_overhead_ns = resume_overhead_ns
        self._now = now

    @checked
    def run(
        self,
        name: str | None,
        target: Body,
        overhead_target: Body,
        reps_per_call: int = 1,
    ) -> TimeResult:
        """Time ``target`` with the cost of ``overhead_target`` removed.

        Args:
            name: Label for the result
            target: Body under test; receives the run's TimeControl
            overhead_target: Same call structure as ``target`` with an empty payload
            reps_per_call: Operations ``target`` performs per call

        Returns:
            TimeResult with operations = iterations x reps_per_call.
        """
        if reps_per_call < 1:
            raise InvalidArgumentError(f"reps_per_call must be positive: {reps_per_call}")

        control = TimeControl(resume_overhead_ns=self.resume_overhead_ns, now=self._now)
        sink = Sink()

        # warm up both bodies so the timed runs see steady-state cost
        drive(target, 1, control, sink)
        drive(overhead_target, OVERHEAD_WARMUP_ITERATIONS, control, sink)

        iterations = max(1, self.planner.plan(target, control))

        self.probe.quiesce()
        target_ns = drive(target, iterations, control, sink)
        self.probe.quiesce()
        overhead_ns = drive(overhead_target, iterations, control, sink)

        adjusted_ns = max(0, target_ns - overhead_ns)
        logger.debug(
            f"{name}: {iterations} iterations, target={target_ns}ns, "
            f"overhead={overhead_ns}ns, adjusted={adjusted_ns}ns"
        )
        return TimeResult(
            name=name,
            operations=iterations * reps_per_call,
            elapsed_ns=adjusted_ns,
            iterations=iterations,
        )
