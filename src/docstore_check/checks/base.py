from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Union, runtime_checkable

from ..models import Outcome


Operation = Callable[[], Union[Awaitable[Any], Any]]


@runtime_checkable
class Validator(Protocol):
    """Capability for judging the result of a check operation."""

    def evaluate(self, result: Any) -> Outcome:
        ...


@dataclass(frozen=True)
class FunctionValidator:
    """Adapts a plain ``result -> Outcome`` callable to the Validator protocol."""

    fn: Callable[[Any], Outcome]

    def evaluate(self, result: Any) -> Outcome:
        return self.fn(result)


def as_validator(validator: Union[Validator, Callable[[Any], Outcome]]) -> Validator:
    if isinstance(validator, Validator):
        return validator
    if callable(validator):
        return FunctionValidator(validator)
    raise TypeError(f"validator must be callable or provide evaluate(), got {type(validator).__name__}")


@dataclass(frozen=True)
class CheckEntry:
    name: str
    operation: Operation
    validator: Validator
