"""calibench: Calibrated micro-benchmarks and object size measurement.

Provides:
- Bench: Times callables with loop and instrumentation overhead removed, and
  measures the byte size of values produced by a factory
- TimeControl: Pausable clock handed to targets that need to exclude setup work
- TimeResult: Immutable benchmark outcome, ordered by time per operation
- BenchSession: Thread-safe collector that ranks and logs results
- SizeReport: Size breakdown (overhead, content, array packing) of one kind of value

Usage:
    from calibench import Bench, BenchSession

    bench = Bench(min_milliseconds=500)
    session = BenchSession()

    session.record(bench.time("concat", lambda: s1 + s2))
    session.record(bench.time_loop("int division", divide_many))
    session.print_summary("String and int ops")

    print(bench.byte_size_description(lambda: {i: i for i in range(10_000)}))
"""

from calibench._bench import Bench
from calibench._errors import CalibenchError, ClockStateError, InvalidArgumentError
from calibench._memory import MemoryProbe, ProcessMemoryProbe, TracemallocProbe
from calibench._overhead import OverheadBaseline, calibrate, default_baseline
from calibench._planner import IterationPlanner
from calibench._report import SizeReport, SizeReporter
from calibench._results import BenchSession, TimeResult
from calibench._runner import BenchmarkRunner
from calibench._sizing import SizeProber
from calibench._timing import ClockState, TimeControl

__all__ = [
    "Bench",
    "BenchSession",
    "BenchmarkRunner",
    "CalibenchError",
    "ClockState",
    "ClockStateError",
    "InvalidArgumentError",
    "IterationPlanner",
    "MemoryProbe",
    "OverheadBaseline",
    "ProcessMemoryProbe",
    "SizeProber",
    "SizeReport",
    "SizeReporter",
    "TimeControl",
    "TimeResult",
    "TracemallocProbe",
    "calibrate",
    "default_baseline",
]

__version__ = "0.1.0"
