from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    not_found = "not_found"
    conflict = "conflict"
    invalid_input = "invalid_input"
    invalid_period = "invalid_period"
    unauthorized = "unauthorized"
    forbidden = "forbidden"


class AppError(ValueError):
    """Domain failure with a machine-readable kind.

    The HTTP layer maps ``kind`` to a status code; nothing below ``main.py``
    knows about HTTP. Subclasses fix the kind; a bare ``AppError`` must be
    given one.
    """

    kind: ErrorKind

    def __init__(self, message: str, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        elif not hasattr(self, "kind"):
            raise TypeError(f"{type(self).__name__} requires an error kind")


class NotFound(AppError):
    kind = ErrorKind.not_found


class Conflict(AppError):
    kind = ErrorKind.conflict


class InvalidInput(AppError):
    kind = ErrorKind.invalid_input


class InvalidPeriod(AppError):
    kind = ErrorKind.invalid_period


class Unauthorized(AppError):
    kind = ErrorKind.unauthorized


class Forbidden(AppError):
    kind = ErrorKind.forbidden
