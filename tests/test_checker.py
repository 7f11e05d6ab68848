"""Tests for the sequential checklist runner."""

from __future__ import annotations

import asyncio

import pytest

from docstore_check.checker import ModuleChecker
from docstore_check.models import FailureKind, MultiOutcome, SingleOutcome, multi, single


async def _value(v):
    return v


async def _boom(msg: str = "x"):
    raise RuntimeError(msg)


# ── registration ─────────────────────────────────────────────────────────────


class TestRegister:
    def test_keeps_registration_order(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        for name in ("A", "B", "C"):
            checker.register(name, lambda: 1, lambda r: single(True))
        assert [e.name for e in checker.entries] == ["A", "B", "C"]

    def test_empty_name_rejected(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        with pytest.raises(ValueError):
            checker.register("  ", lambda: 1, lambda r: single(True))

    def test_non_callable_operation_rejected(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        with pytest.raises(TypeError):
            checker.register("A", 42, lambda r: single(True))

    def test_non_callable_validator_rejected(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        with pytest.raises(TypeError):
            checker.register("A", lambda: 1, "nope")

    def test_validator_object_accepted(self, reporter) -> None:
        class EqualsOne:
            def evaluate(self, result):
                return single(result == 1)

        checker = ModuleChecker(reporter=reporter)
        v = EqualsOne()
        checker.register("A", lambda: 1, v)
        assert checker.entries[0].validator is v

    @pytest.mark.asyncio
    async def test_register_after_run_rejected(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        await checker.run()
        with pytest.raises(RuntimeError):
            checker.register("late", lambda: 1, lambda r: single(True))

    @pytest.mark.asyncio
    async def test_second_run_rejected(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        await checker.run()
        with pytest.raises(RuntimeError):
            await checker.run()


# ── run ──────────────────────────────────────────────────────────────────────


class TestRun:
    @pytest.mark.asyncio
    async def test_empty_run(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        sections = await checker.run()
        assert sections == []
        assert checker.passed == 0
        assert checker.failed == 0

    @pytest.mark.asyncio
    async def test_each_operation_once_in_order(self, reporter) -> None:
        calls: list[str] = []

        def op(name):
            async def inner():
                calls.append(name)
                return name
            return inner

        checker = ModuleChecker(reporter=reporter)
        for name in ("one", "two", "three", "four"):
            checker.register(name, op(name), lambda r: single(True))
        await checker.run()
        assert calls == ["one", "two", "three", "four"]
        assert checker.passed == 4

    @pytest.mark.asyncio
    async def test_checks_never_overlap(self, reporter) -> None:
        running = 0
        peak = 0

        async def slow():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return True

        checker = ModuleChecker(reporter=reporter)
        for i in range(5):
            checker.register(f"C{i}", slow, lambda r: single(r))
        await checker.run()
        assert peak == 1

    @pytest.mark.asyncio
    async def test_failure_then_pass_scenario(self, reporter) -> None:
        order: list[str] = []

        async def a():
            order.append("A")
            return 1

        async def b():
            order.append("B")
            raise RuntimeError("x")

        checker = ModuleChecker(reporter=reporter)
        checker.register("A", a, lambda v: single(v == 1))
        checker.register("B", b, lambda v: single(True))
        sections = await checker.run()

        assert (checker.passed, checker.failed) == (1, 1)
        assert order == ["A", "B"]
        assert sections[1].results[0].kind == FailureKind.ERROR
        assert "RuntimeError: x" in sections[1].results[0].message

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_remaining(self, reporter) -> None:
        seen: list[str] = []

        async def record(name):
            seen.append(name)
            return name

        checker = ModuleChecker(reporter=reporter)
        checker.register("first", lambda: _boom("first"), lambda r: single(True))
        checker.register("second", lambda: record("second"), lambda r: single(True))
        checker.register("third", lambda: record("third"), lambda r: single(True))
        await checker.run()
        assert seen == ["second", "third"]
        assert checker.failed == 1
        assert checker.passed == 2

    @pytest.mark.asyncio
    async def test_multi_outcome_counts_each_element(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        checker.register("multi", lambda: _value("r"), lambda r: multi(True, False, True))
        sections = await checker.run()
        assert (checker.passed, checker.failed) == (2, 1)
        assert len(sections) == 1
        assert [r.rule for r in sections[0].results] == ["multi#1", "multi#2", "multi#3"]
        assert sections[0].results[1].kind == FailureKind.ASSERTION

    @pytest.mark.asyncio
    async def test_false_validator_is_assertion_failure(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        checker.register("count", lambda: _value(3), lambda r: single(r == 0))
        sections = await checker.run()
        assert checker.failed == 1
        assert sections[0].results[0].kind == FailureKind.ASSERTION
        assert sections[0].results[0].data == {"result": 3}

    @pytest.mark.asyncio
    async def test_sync_operation_supported(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        checker.register("sync", lambda: 5, lambda r: single(r == 5))
        await checker.run()
        assert checker.passed == 1

    @pytest.mark.asyncio
    async def test_sync_operation_raising(self, reporter) -> None:
        def explode():
            raise ValueError("bad")

        checker = ModuleChecker(reporter=reporter)
        checker.register("sync", explode, lambda r: single(True))
        await checker.run()
        assert checker.failed == 1

    @pytest.mark.asyncio
    async def test_validator_raising_is_error(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        checker.register("v", lambda: _value({}), lambda r: single(r["missing"] == 1))
        checker.register("after", lambda: _value(1), lambda r: single(True))
        sections = await checker.run()
        assert sections[0].results[0].kind == FailureKind.ERROR
        assert "KeyError" in sections[0].results[0].message
        assert checker.passed == 1

    @pytest.mark.asyncio
    async def test_bare_bool_is_rejected(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        checker.register("raw", lambda: _value(1), lambda r: True)
        sections = await checker.run()
        assert checker.failed == 1
        assert "expected an Outcome" in sections[0].results[0].message

    @pytest.mark.asyncio
    async def test_later_check_reads_earlier_state(self, reporter) -> None:
        ids: list[str] = []

        def capture(r):
            ids.append(r)
            return single(True)

        checker = ModuleChecker(reporter=reporter)
        checker.register("create", lambda: _value("id-1"), capture)
        checker.register("read", lambda: _value(ids[0]), lambda r: single(r == "id-1"))
        await checker.run()
        assert checker.passed == 2

    @pytest.mark.asyncio
    async def test_timeout_recorded_and_run_continues(self, reporter) -> None:
        async def hang():
            await asyncio.sleep(10)

        checker = ModuleChecker(timeout_s=0.01, reporter=reporter)
        checker.register("hang", hang, lambda r: single(True))
        checker.register("next", lambda: _value(1), lambda r: single(r == 1))
        sections = await checker.run()
        assert sections[0].results[0].kind == FailureKind.TIMEOUT
        assert (checker.passed, checker.failed) == (1, 1)

    @pytest.mark.asyncio
    async def test_timeout_error_from_operation_is_error(self, reporter) -> None:
        async def socket_timeout():
            raise TimeoutError("socket timed out")

        for timeout_s in (None, 5.0):
            checker = ModuleChecker(timeout_s=timeout_s, reporter=reporter)
            checker.register("x", socket_timeout, lambda r: single(True))
            sections = await checker.run()
            result = sections[0].results[0]
            assert result.kind == FailureKind.ERROR
            assert "socket timed out" in result.message

    @pytest.mark.asyncio
    async def test_timeout_does_not_apply_to_fast_checks(self, reporter) -> None:
        checker = ModuleChecker(timeout_s=5.0, reporter=reporter)
        checker.register("fast", lambda: _value(7), lambda r: single(r == 7))
        await checker.run()
        assert checker.passed == 1


# ── totals ───────────────────────────────────────────────────────────────────


class TestPrintTotal:
    @pytest.mark.asyncio
    async def test_all_pass_reports_zero_failures(self, reporter, console) -> None:
        checker = ModuleChecker(2, reporter=reporter)
        checker.register("a", lambda: _value(1), lambda r: single(True))
        checker.register("b", lambda: _value(2), lambda r: single(True))
        await checker.run()
        checker.print_total()
        out = console.file.getvalue()
        assert "Summary" in out
        assert checker.failed == 0
        assert checker.ok
        assert "Expected" not in out

    @pytest.mark.asyncio
    async def test_does_not_change_counters(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        checker.register("a", lambda: _value(1), lambda r: single(False))
        await checker.run()
        checker.print_total()
        checker.print_total()
        assert (checker.passed, checker.failed) == (0, 1)

    @pytest.mark.asyncio
    async def test_mismatched_total_is_reported(self, reporter, console) -> None:
        checker = ModuleChecker(24, reporter=reporter)
        checker.register("a", lambda: _value(1), lambda r: single(True))
        await checker.run()
        checker.print_total()
        assert "Expected 24 assertions but 1 were recorded" in console.file.getvalue()


class TestOutcomeHelpers:
    def test_single_coerces(self) -> None:
        assert single("x") == SingleOutcome(ok=True)
        assert single(None) == SingleOutcome(ok=False)

    def test_multi_coerces(self) -> None:
        assert multi(1, 0, "a") == MultiOutcome(oks=(True, False, True))

    def test_multi_rejects_sequence(self) -> None:
        with pytest.raises(TypeError):
            multi([True, False, True])

    @pytest.mark.asyncio
    async def test_multi_sequence_recorded_as_error(self, reporter) -> None:
        checker = ModuleChecker(reporter=reporter)
        checker.register("bulk", lambda: _value(1), lambda r: multi([True, False, True]))
        sections = await checker.run()
        assert checker.failed == 1
        assert sections[0].results[0].kind == FailureKind.ERROR
