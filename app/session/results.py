"""
Outcome values threaded through the answer pipeline.

Every step returns one of ``Ok``, ``Degraded`` or ``Failed`` instead of raising, so a
usable but lower-quality result (an answer saved without audio, a heuristic score) is a
value callers can inspect and test for.
"""

from dataclasses import dataclass
from typing import Generic, Tuple, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def warnings(self) -> Tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class Degraded(Generic[T]):
    value: T
    warning: str
    also: Tuple[str, ...] = ()

    @property
    def warnings(self) -> Tuple[str, ...]:
        return (self.warning,) + self.also


@dataclass(frozen=True)
class Failed:
    error: Exception

    @property
    def warnings(self) -> Tuple[str, ...]:
        return (str(self.error),)


Outcome = Union[Ok[T], Degraded[T], Failed]


def degrade(value: T, warnings: list[str]) -> "Ok[T] | Degraded[T]":
    """Wrap ``value`` as ``Ok`` when there is nothing to report, else ``Degraded``."""
    if not warnings:
        return Ok(value)
    return Degraded(value, warnings[0], tuple(warnings[1:]))
