"""
core/errors.py -- Error taxonomy and the Ok/Err result type.

Orchestration code (auth/service.py, auth/ownership.py, auth/tokens.py)
returns Result values instead of raising for expected failures. Guards that
must stop a request (FastAPI dependencies) wrap the Err in AuthError and raise.

The HTTP boundary (api/main.py) is the only place that turns an ErrorKind into
a status code -- see ERROR_STATUS.

Layer rule: no imports from api/, auth/, or documents/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"


ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_INPUT: 400,
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


class AuthError(Exception):
    """Raised by guards to abort a request with a classified failure.

    Carries the Err so the exception handler can render the same envelope a
    returned Err would produce.
    """

    def __init__(self, error: Err) -> None:
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @classmethod
    def of(cls, kind: ErrorKind, message: str) -> "AuthError":
        return cls(Err(kind, message))


def unwrap(result: Result[T]) -> T:
    """Return the Ok value or raise AuthError for an Err.

    Route handlers call this on every service result so failures reach the
    single exception handler in api/main.py.
    """
    if isinstance(result, Err):
        raise AuthError(result)
    return result.value
