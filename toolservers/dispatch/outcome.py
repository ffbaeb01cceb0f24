from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class ErrorKind(str, Enum):
    """Stable failure kinds. Formatting and the transport bridge branch on these, never on message text."""

    INVALID_PARAMS = "InvalidParams"
    NOT_FOUND = "NotFound"
    ACCESS_ERROR = "AccessError"
    EXTERNAL_SERVICE_ERROR = "ExternalServiceError"
    METHOD_NOT_FOUND = "MethodNotFound"
    INTERNAL = "Internal"


@dataclass(frozen=True, slots=True)
class Success:
    value: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Failure:
    kind: ErrorKind
    message: str

    @property
    def ok(self) -> bool:
        return False


Outcome = Union[Success, Failure]


def success(value: Any = None) -> Success:
    return Success(value=value)


def failure(kind: ErrorKind, message: str) -> Failure:
    k = ErrorKind(kind)
    return Failure(kind=k, message=str(message or k.value))


def not_found(message: str) -> Failure:
    return failure(ErrorKind.NOT_FOUND, message)


def external_error(message: str) -> Failure:
    return failure(ErrorKind.EXTERNAL_SERVICE_ERROR, message)


def access_error(message: str) -> Failure:
    return failure(ErrorKind.ACCESS_ERROR, message)


def invalid_params(message: str) -> Failure:
    return failure(ErrorKind.INVALID_PARAMS, message)
