from __future__ import annotations

from enum import Enum

from modules.saves.domain.validation import Rejection, ValidationRule


class ErrorKind(str, Enum):
    validation = "validation"
    not_found = "not_found"
    io = "io"


class SaveStoreError(Exception):
    kind: ErrorKind = ErrorKind.io

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SaveValidationError(SaveStoreError):
    """The caller's input is unacceptable; the message is safe to show to the uploader."""

    kind = ErrorKind.validation

    def __init__(self, rule: ValidationRule, message: str) -> None:
        super().__init__(message)
        self.rule = rule

    @classmethod
    def from_rejection(cls, rejection: Rejection) -> SaveValidationError:
        return cls(rejection.rule, rejection.reason)


class SaveNotFoundError(SaveStoreError):
    kind = ErrorKind.not_found


class SaveStorageError(SaveStoreError):
    """The durable medium failed for reasons unrelated to the input."""

    kind = ErrorKind.io
