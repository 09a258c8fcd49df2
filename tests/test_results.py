"""Tests for TimeResult and BenchSession."""

import threading
from datetime import timedelta

import pytest

from calibench import BenchSession, InvalidArgumentError, TimeResult


# ---------------------------------------------------------------------------
# TimeResult
# ---------------------------------------------------------------------------

class TestTimeResult:
    def test_derived_per_operation_figures(self):
        result = TimeResult("op", operations=1000, elapsed_ns=2_000_000, iterations=10)
        assert result.elapsed_milliseconds == 2.0
        assert result.nanoseconds_per_operation == pytest.approx(2000.0)
        assert result.microseconds_per_operation == pytest.approx(2.0)
        assert result.milliseconds_per_operation == pytest.approx(0.002)
        assert result.milliseconds_per_iteration == pytest.approx(0.2)
        assert result.microseconds_per_iteration == pytest.approx(200.0)
        assert result.nanoseconds_per_iteration == pytest.approx(200_000.0)
        assert result.elapsed == timedelta(milliseconds=2)

    def test_zero_elapsed_is_valid(self):
        result = TimeResult(None, operations=5, elapsed_ns=0)
        assert result.milliseconds_per_operation == 0.0

    def test_negative_elapsed_raises(self):
        with pytest.raises(AssertionError, match="negative"):
            TimeResult("bad", operations=1, elapsed_ns=-1)

    def test_zero_operations_raises(self):
        with pytest.raises(AssertionError, match="positive"):
            TimeResult("bad", operations=0, elapsed_ns=10)

    def test_immutable(self):
        result = TimeResult("op", operations=1, elapsed_ns=1)
        with pytest.raises(AttributeError):
            result.operations = 2

    def test_ordering_by_time_per_operation(self):
        fast = TimeResult("fast", operations=100, elapsed_ns=1000)
        slow = TimeResult("slow", operations=1, elapsed_ns=1000)
        assert fast < slow
        assert slow > fast
        assert fast <= fast
        assert fast.compare_to(slow) < 0
        assert slow.compare_to(fast) > 0
        assert sorted([slow, fast]) == [fast, slow]

    def test_equal_rate_compares_zero(self):
        a = TimeResult("a", operations=10, elapsed_ns=100)
        b = TimeResult("b", operations=20, elapsed_ns=200)
        assert a.compare_to(b) == 0
        assert a <= b and a >= b

    def test_comparison_with_other_types_unsupported(self):
        with pytest.raises(TypeError):
            TimeResult("a", operations=1, elapsed_ns=1) < 5

    @pytest.mark.parametrize(
        "operations,elapsed_ns,unit",
        [
            (1, 5_000_000, "ms/op"),
            (1, 5_000, "us/op"),
            (1, 500, "ns/op"),
        ],
        ids=["milliseconds", "microseconds", "nanoseconds"],
    )
    def test_display_unit(self, operations, elapsed_ns, unit):
        result = TimeResult("x", operations=operations, elapsed_ns=elapsed_ns)
        assert result.per_operation_display()[0] == unit
        assert unit in str(result)

    def test_text_form(self):
        result = TimeResult("concat", operations=12_345, elapsed_ns=1_234_567_890)
        assert str(result) == (
            "Name= concat\n"
            "us/op= 100.005, Ops= 12,345, ElapsedMs= 1,234.57"
        )


# ---------------------------------------------------------------------------
# BenchSession
# ---------------------------------------------------------------------------

class TestBenchSession:
    def test_record_returns_result(self):
        session = BenchSession()
        result = TimeResult("a", operations=1, elapsed_ns=1)
        assert session.record(result) is result
        assert session.results == [result]

    def test_record_rejects_non_results(self):
        session = BenchSession()
        with pytest.raises(InvalidArgumentError):
            session.record({"name": "a"})

    def test_ranked_fastest_first(self):
        session = BenchSession()
        slow = session.record(TimeResult("slow", operations=1, elapsed_ns=900))
        fast = session.record(TimeResult("fast", operations=1, elapsed_ns=100))
        mid = session.record(TimeResult("mid", operations=1, elapsed_ns=500))
        assert session.ranked() == [fast, mid, slow]

    def test_get_results(self):
        session = BenchSession()
        session.record(TimeResult("op", operations=1000, elapsed_ns=2_000_000, iterations=10))
        session.record(TimeResult(None, operations=1, elapsed_ns=0))

        results = session.get_results()
        assert list(results) == ["#1", "op"]
        assert results["op"]["operations"] == 1000.0
        assert results["op"]["iterations"] == 10.0
        assert results["op"]["elapsed_ms"] == 2.0
        assert results["op"]["ns_per_op"] == pytest.approx(2000.0)
        assert results["op"]["throughput"] == pytest.approx(500_000.0)
        assert results["#1"]["throughput"] == 0

    def test_thread_safety(self):
        session = BenchSession()

        def record_many(n: int) -> None:
            for i in range(n):
                session.record(TimeResult(f"r{i}", operations=1, elapsed_ns=i))

        threads = [threading.Thread(target=record_many, args=(100,)) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(session.results) == 400

    def test_print_summary(self, log_messages):
        session = BenchSession()
        session.record(TimeResult("fast", operations=100, elapsed_ns=1000))
        session.record(TimeResult("slow", operations=1, elapsed_ns=1000))
        session.print_summary("Ranked")

        rows = [m for m in log_messages if m.startswith(("fast", "slow"))]
        assert [row.split()[0] for row in rows] == ["fast", "slow"]
        assert rows[0].endswith("1.00x")
        assert rows[1].endswith("100.00x")

    def test_print_summary_all_zero_times(self, log_messages):
        session = BenchSession()
        session.record(TimeResult("instant", operations=1, elapsed_ns=0))
        session.print_summary()
        assert any(m.startswith("instant") and m.endswith("-") for m in log_messages)

    def test_print_summary_empty(self):
        BenchSession().print_summary("Nothing")

    def test_log_checkpoint(self, log_messages):
        session = BenchSession()
        session.record(TimeResult("op", operations=3, elapsed_ns=6_000))
        session.log_checkpoint("After warmup")
        assert "[CHECKPOINT: After warmup] 1 result(s)" in log_messages
        assert "  op: 2.000 us/op, 3 ops" in log_messages

    def test_log_checkpoint_empty_session(self, log_messages):
        BenchSession().log_checkpoint("Empty")
        assert "[CHECKPOINT: Empty] No benchmark results yet" in log_messages
