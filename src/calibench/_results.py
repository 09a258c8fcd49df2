"""Benchmark result records and a session that ranks and reports them.

Design by Contract:
- TimeResult.elapsed_ns MUST be >= 0 and operations MUST be > 0
- Per-operation figures are derived on access, never stored
- Results order by milliseconds per operation (ascending = faster)
"""

import threading
from dataclasses import dataclass
from datetime import timedelta

from loguru import logger

from calibench._errors import checked


@dataclass(frozen=True)
class TimeResult:
    """Outcome of one completed benchmark.

    Attributes:
        name: Label of the timed target (may be None)
        operations: Total logical operations timed (iterations x reps per call)
        elapsed_ns: Calibrated elapsed time in nanoseconds
        iterations: Number of times the target was called
    """

    name: str | None
    operations: int
    elapsed_ns: int
    iterations: int = 1

    def __post_init__(self) -> None:
        assert self.elapsed_ns >= 0, (
            f"Elapsed time cannot be negative: {self.elapsed_ns}ns"
        )
        assert self.operations > 0, f"Operations must be positive: {self.operations}"
        assert self.iterations > 0, f"Iterations must be positive: {self.iterations}"

    @property
    def elapsed(self) -> timedelta:
        return timedelta(microseconds=self.elapsed_ns / 1000)

    @property
    def elapsed_milliseconds(self) -> float:
        return self.elapsed_ns / 1e6

    @property
    def nanoseconds_per_operation(self) -> float:
        """Time of one execution of the innermost measured body."""
        return self.elapsed_ns / self.operations

    @property
    def microseconds_per_operation(self) -> float:
        return (self.elapsed_milliseconds * 1000.0) / self.operations

    @property
    def milliseconds_per_operation(self) -> float:
        return self.elapsed_milliseconds / self.operations

    @property
    def nanoseconds_per_iteration(self) -> float:
        """Average time of one call to the target."""
        return self.elapsed_ns / self.iterations

    @property
    def microseconds_per_iteration(self) -> float:
        return (self.elapsed_milliseconds * 1000.0) / self.iterations

    @property
    def milliseconds_per_iteration(self) -> float:
        return self.elapsed_milliseconds / self.iterations

    def compare_to(self, other: "TimeResult") -> int:
        """Negative if self is faster per operation, zero if equal, positive if slower."""
        mine = self.milliseconds_per_operation
        theirs = other.milliseconds_per_operation
        return (mine > theirs) - (mine < theirs)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, TimeResult):
            return NotImplemented
        return self.compare_to(other) < 0

    def __le__(self, other: object) -> bool:
        if not isinstance(other, TimeResult):
            return NotImplemented
        return self.compare_to(other) <= 0

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, TimeResult):
            return NotImplemented
        return self.compare_to(other) > 0

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, TimeResult):
            return NotImplemented
        return self.compare_to(other) >= 0

    def per_operation_display(self) -> tuple[str, float]:
        """Largest unit whose per-operation value exceeds 1 (ms, us, else ns)."""
        if self.milliseconds_per_operation > 1:
            return "ms/op", self.milliseconds_per_operation
        if self.microseconds_per_operation > 1:
            return "us/op", self.microseconds_per_operation
        return "ns/op", self.nanoseconds_per_operation

    def __str__(self) -> str:
        unit, value = self.per_operation_display()
        return (
            f"Name= {self.name}\n"
            f"{unit}= {value:.3f}, Ops= {self.operations:,}, "
            f"ElapsedMs= {self.elapsed_milliseconds:,.2f}"
        )


class BenchSession:
    """Collects TimeResults from one or more benches and reports them ranked.

    Thread-safe for concurrent record() calls from multiple threads.

    Example:
        session = BenchSession()
        session.record(bench.time("concat", lambda: a + b))
        session.record(bench.time("join", lambda: "".join((a, b))))
        session.print_summary("String building")
    """

    def __init__(self) -> None:
        self._results: list[TimeResult] = []
        self._lock = threading.Lock()

    @checked
    def record(self, result: TimeResult) -> TimeResult:
        """Record a result (thread-safe) and return it for chaining."""
        with self._lock:
            self._results.append(result)
        return result

    @property
    def results(self) -> list[TimeResult]:
        with self._lock:
            return list(self._results)

    def ranked(self) -> list[TimeResult]:
        """Recorded results, fastest per operation first."""
        return sorted(self.results)

    def get_results(self) -> dict[str, dict[str, float]]:
        """Aggregated metrics keyed by result name, fastest first.

        Unnamed results are keyed by their recording position (``#0``, ``#1``...).
        Later results with an already-seen name replace the earlier entry.
        """
        results: dict[str, dict[str, float]] = {}
        for index, result in sorted(enumerate(self.results), key=lambda item: item[1]):
            label = result.name if result.name is not None else f"#{index}"
            results[label] = {
                "operations": float(result.operations),
                "iterations": float(result.iterations),
                "elapsed_ms": result.elapsed_milliseconds,
                "ns_per_op": result.nanoseconds_per_operation,
                "throughput": (
                    result.operations / (result.elapsed_ns / 1e9)
                    if result.elapsed_ns > 0 else 0
                ),
            }
        return results

    @checked
    def log_checkpoint(self, checkpoint_name: str) -> None:
        """Log a condensed one-line-per-result snapshot via loguru."""
        ranked = self.ranked()
        if not ranked:
            logger.info(f"[CHECKPOINT: {checkpoint_name}] No benchmark results yet")
            return

        logger.info(f"[CHECKPOINT: {checkpoint_name}] {len(ranked)} result(s)")
        for result in ranked:
            unit, value = result.per_operation_display()
            logger.info(f"  {result.name}: {value:.3f} {unit}, {result.operations:,} ops")

    @checked
    def print_summary(self, title: str = "BENCHMARK RESULTS") -> None:
        """Log a formatted table of all recorded results, fastest first.

        The Relative column is each result's time per operation over the fastest one.
        """
        ranked = self.ranked()

        logger.info("")
        logger.info("=" * 100)
        logger.info(f"{title:^100}")
        logger.info("=" * 100)
        logger.info(
            f"{'Benchmark':<40} {'Per-Op':>16} {'Ops':>15} "
            f"{'Elapsed':>14} {'Relative':>10}"
        )
        logger.info("-" * 100)

        fastest = ranked[0].nanoseconds_per_operation if ranked else 0.0
        for result in ranked:
            unit, value = result.per_operation_display()
            per_op = f"{value:.3f} {unit}"
            relative = (
                f"{result.nanoseconds_per_operation / fastest:.2f}x" if fastest > 0 else "-"
            )
            logger.info(
                f"{str(result.name):<40} {per_op:>16} {result.operations:>15,} "
                f"{result.elapsed_milliseconds:>12.2f}ms {relative:>10}"
            )

        logger.info("=" * 100)
        logger.info("")
