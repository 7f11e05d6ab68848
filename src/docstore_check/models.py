from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class Severity(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class FailureKind(str, Enum):
    ASSERTION = "assertion"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class SingleOutcome:
    """One assertion."""
    ok: bool


@dataclass(frozen=True)
class MultiOutcome:
    """Several independent sub-assertions of the same check."""
    oks: Tuple[bool, ...]


Outcome = Union[SingleOutcome, MultiOutcome]


def single(value: Any) -> SingleOutcome:
    return SingleOutcome(ok=bool(value))


def multi(*values: Any) -> MultiOutcome:
    if any(isinstance(v, (list, tuple, set)) for v in values):
        raise TypeError("multi() takes the sub-assertions as separate arguments, not a sequence")
    return MultiOutcome(oks=tuple(bool(v) for v in values))


@dataclass
class CheckResult:
    """Atomic result of a single assertion."""
    rule: str
    ok: bool
    message: str
    severity: Severity = Severity.ERROR
    kind: Optional[FailureKind] = None
    data: Optional[Dict[str, Any]] = None


@dataclass
class Section:
    """All assertions recorded for one registered check."""
    title: str
    results: List[CheckResult] = field(default_factory=list)

    def extend(self, items: List[CheckResult]) -> None:
        self.results.extend(items)


@dataclass
class Tally:
    passed: int = 0
    failed: int = 0

    @property
    def count(self) -> int:
        return self.passed + self.failed

    def add(self, result: CheckResult) -> None:
        if result.ok:
            self.passed += 1
        else:
            self.failed += 1
