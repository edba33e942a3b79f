# fasttrack/domain/result.py

"""
Tagged result type returned by the core operations.

Every use case returns either ``Ok(value)`` or ``Err(error)`` where the
error is one of the domain exceptions. Callers branch on ``is_ok`` (or
``isinstance``) and the HTTP adapter calls ``unwrap()`` to turn an
``Err`` back into a raised exception handled by the middleware.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from fasttrack.domain.exceptions import DomainException

T = TypeVar("T")
E = TypeVar("E", bound=DomainException)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    is_ok = True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    is_ok = False

    @property
    def code(self) -> str:
        return self.error.internal_code

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err[E]]
