"""Sample benchmarks: ``python -m calibench``."""

import argparse
import ctypes
import time
from datetime import datetime, timezone

from loguru import logger

from calibench._bench import Bench
from calibench._results import BenchSession
from calibench._timing import TimeControl

DICT_COUNT = 100


class OneByte(ctypes.Structure):
    _fields_ = [("b", ctypes.c_byte)]


class OneInt(ctypes.Structure):
    _fields_ = [("i", ctypes.c_int32)]


class OneString(ctypes.Structure):
    _fields_ = [("s", ctypes.c_char_p)]


def dictionary_remove(control: TimeControl) -> None:
    with control.paused():
        d = {i: str(i) for i in range(DICT_COUNT)}
    for i in range(DICT_COUNT):
        del d[i]


def int_division(count: int) -> None:
    i0 = 1 << 60
    for _ in range(count):
        i0 //= 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the calibench sample benchmarks")
    parser.add_argument("--min-iterations", type=int, default=5)
    parser.add_argument("--min-ms", type=int, default=1000, help="minimum ms per benchmark")
    parser.add_argument("--skip-sizes", action="store_true", help="only run timings")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    bench = Bench(min_iterations=args.min_iterations, min_milliseconds=args.min_ms)
    session = BenchSession()

    session.record(bench.time("sleep(10ms)", lambda: time.sleep(0.01)))

    s1 = datetime.now(timezone.utc).isoformat()
    s2 = datetime.now(timezone.utc).isoformat()
    session.record(bench.time("string concat", lambda: s1 + s2))
    session.record(bench.time_controlled("dict remove", dictionary_remove, DICT_COUNT))
    session.record(bench.time_loop("int division by 2", int_division))
    session.print_summary("Sample timings")

    if args.skip_sizes:
        return 0

    factories = [
        OneByte,
        OneInt,
        lambda: "a" * 16,
        lambda: OneString(b"a" * 16),
        ctypes.c_int32 * 16,
        lambda: {i: i for i in range(10_000)},
    ]
    for factory in factories:
        logger.info(f"{bench.byte_size(factory)} bytes")
    for factory in factories:
        for line in bench.byte_size_description(factory).splitlines():
            logger.info(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
