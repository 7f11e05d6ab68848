"""Sequential async checklist runner.

Checks are registered up front and executed strictly one after another, in
registration order. Later checks may depend on state captured by earlier ones,
so nothing here ever runs two operations concurrently. A failing check is
recorded and the run moves on to the next one.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Any, Callable, List, Optional, Union

from rich.console import Console

from .checks.base import CheckEntry, Operation, Validator, as_validator
from .models import (
    CheckResult,
    FailureKind,
    MultiOutcome,
    Outcome,
    Section,
    Severity,
    SingleOutcome,
    Tally,
)
from .reporter import Reporter

log = logging.getLogger("docstore.checker")


class _CheckTimedOut(Exception):
    """The per-check timeout expired before the operation finished."""


def _short(value: Any, limit: int = 200) -> str:
    text = repr(value)
    if len(text) <= limit:
        return text
    return f"{text[:limit]}…"


class ModuleChecker:
    """Registers named checks and runs them one at a time.

    Parameters
    ----------
    total:
        Expected number of assertions. Only used when printing the totals.
    timeout_s:
        Optional bound on each operation. Expiry is recorded as a
        ``timeout`` failure for that check.
    reporter:
        Where sections and totals are printed. Defaults to a rich console.
    """

    def __init__(
        self,
        total: Optional[int] = None,
        *,
        timeout_s: Optional[float] = None,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self.total = total
        self.timeout_s = timeout_s
        self.reporter = reporter or Reporter(Console())
        self._entries: List[CheckEntry] = []
        self._sections: List[Section] = []
        self._tally = Tally()
        self._started = False

    # ------- setup -------

    def register(
        self,
        name: str,
        operation: Operation,
        validator: Union[Validator, Callable[[Any], Outcome]],
    ) -> None:
        if self._started:
            raise RuntimeError("cannot register checks after the run has started")
        if not name or not name.strip():
            raise ValueError("check name must not be empty")
        if not callable(operation):
            raise TypeError(f"operation for {name!r} is not callable")
        self._entries.append(CheckEntry(name=name, operation=operation, validator=as_validator(validator)))

    add = register

    # ------- state -------

    @property
    def entries(self) -> List[CheckEntry]:
        return list(self._entries)

    @property
    def sections(self) -> List[Section]:
        return list(self._sections)

    @property
    def passed(self) -> int:
        return self._tally.passed

    @property
    def failed(self) -> int:
        return self._tally.failed

    @property
    def count(self) -> int:
        return self._tally.count

    @property
    def ok(self) -> bool:
        return self._tally.failed == 0

    # ------- run -------

    async def run(self) -> List[Section]:
        if self._started:
            raise RuntimeError("checker has already been run")
        self._started = True
        log.info("Running %d checks", len(self._entries))
        for entry in self._entries:
            section = await self._run_entry(entry)
            for r in section.results:
                self._tally.add(r)
            self._sections.append(section)
            self.reporter.section(section)
        log.info("Finished: %d passed, %d failed", self.passed, self.failed)
        return self.sections

    execute = run

    async def _invoke(self, entry: CheckEntry) -> Any:
        result = entry.operation()
        if inspect.isawaitable(result):
            if self.timeout_s is not None:
                return await self._bounded(result)
            return await result
        return result

    async def _bounded(self, awaitable: Any) -> Any:
        # Only expiry of the bound counts as a timeout; a TimeoutError raised by
        # the operation itself surfaces through task.result().
        task = asyncio.ensure_future(awaitable)
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_s)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            raise _CheckTimedOut()
        return task.result()

    async def _run_entry(self, entry: CheckEntry) -> Section:
        section = Section(title=entry.name)
        log.debug("Check %s started", entry.name)
        try:
            result = await self._invoke(entry)
        except _CheckTimedOut:
            log.error("Check %s timed out after %ss", entry.name, self.timeout_s)
            section.extend([
                CheckResult(
                    rule=entry.name,
                    ok=False,
                    message=f"Timed out after {self.timeout_s}s",
                    kind=FailureKind.TIMEOUT,
                )
            ])
            return section
        except Exception as e:
            log.error("Check %s failed: %s", entry.name, e, exc_info=log.isEnabledFor(logging.DEBUG))
            section.extend([
                CheckResult(
                    rule=entry.name,
                    ok=False,
                    message=f"Operation error: {type(e).__name__}: {e}",
                    kind=FailureKind.ERROR,
                    data={"error": repr(e)},
                )
            ])
            return section

        log.debug("Check %s result: %s", entry.name, _short(result))

        try:
            outcome = entry.validator.evaluate(result)
        except Exception as e:
            log.error("Validator for %s raised: %s", entry.name, e)
            section.extend([
                CheckResult(
                    rule=entry.name,
                    ok=False,
                    message=f"Validator error: {type(e).__name__}: {e}",
                    kind=FailureKind.ERROR,
                    data={"result": result, "error": repr(e)},
                )
            ])
            return section

        section.extend(self._outcome_results(entry.name, outcome, result))
        for r in section.results:
            if not r.ok:
                log.error("Check %s failed: %s (result: %s)", r.rule, r.message, _short(result))
        return section

    def _outcome_results(self, name: str, outcome: Any, result: Any) -> List[CheckResult]:
        data = {"result": result}
        if isinstance(outcome, SingleOutcome):
            return [self._assertion(name, outcome.ok, result, data)]
        if isinstance(outcome, MultiOutcome):
            return [
                self._assertion(f"{name}#{i + 1}", ok, result, data)
                for i, ok in enumerate(outcome.oks)
            ]
        return [
            CheckResult(
                rule=name,
                ok=False,
                message=f"Validator returned {type(outcome).__name__}, expected an Outcome",
                kind=FailureKind.ERROR,
                data=data,
            )
        ]

    @staticmethod
    def _assertion(rule: str, ok: bool, result: Any, data: dict) -> CheckResult:
        if ok:
            return CheckResult(rule=rule, ok=True, message=_short(result), severity=Severity.INFO, data=data)
        return CheckResult(
            rule=rule,
            ok=False,
            message=f"Unexpected result: {_short(result)}",
            kind=FailureKind.ASSERTION,
            data=data,
        )

    # ------- report -------

    def print_total(self) -> None:
        self.reporter.total(self.passed, self.failed, self.total)
