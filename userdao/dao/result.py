"""
Tagged result type returned by the accessor's `try_*` operations.

A lookup either succeeds with a value (`Ok`) or fails with the error that
would otherwise have been raised (`Err`), so callers branch on the outcome
explicitly instead of relying on exception handling.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from userdao.errors import UserDaoError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: UserDaoError

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        """Re-raise the carried error."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default


Result = Union[Ok[T], Err]

__all__ = ["Ok", "Err", "Result"]
