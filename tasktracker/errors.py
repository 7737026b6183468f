from __future__ import annotations

from enum import Enum

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."
TIMEOUT_ERROR_MESSAGE = "Request timed out. Please try again."


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    INVALID_IDENTIFIER = "invalid_identifier"
    REMOTE = "remote"
    NETWORK = "network"
    TIMEOUT = "timeout"
    EMPTY_RESULT = "empty_result"
    UNEXPECTED = "unexpected"


class TaskError(Exception):
    """Base class for every failure surfaced by the task layer.

    `kind` is the stable discriminant consumers switch on; `message` is the
    user-facing text.
    """

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"detail": self.message, "kind": self.kind.value}


class ValidationError(TaskError):
    """Input failed a schema rule; one message per violated field rule."""

    kind = ErrorKind.VALIDATION

    def __init__(self, messages: list[str], fields: list[str] | None = None) -> None:
        super().__init__("; ".join(messages) or "Invalid input")
        self.messages = list(messages)
        self.fields = list(fields or [])


class InvalidIdentifier(ValidationError):
    kind = ErrorKind.INVALID_IDENTIFIER


class RemoteError(TaskError):
    kind = ErrorKind.REMOTE


class NetworkError(TaskError):
    kind = ErrorKind.NETWORK

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE) -> None:
        super().__init__(message)


class RequestTimeoutError(TaskError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str = TIMEOUT_ERROR_MESSAGE) -> None:
        super().__init__(message)


class EmptyResult(TaskError):
    kind = ErrorKind.EMPTY_RESULT


class UnexpectedError(TaskError):
    kind = ErrorKind.UNEXPECTED


def normalize_store_error(message: str) -> TaskError:
    """Map a raw data store failure message onto a tagged error."""
    text = message or ""
    if "network" in text or "fetch" in text:
        return NetworkError()
    if "timeout" in text:
        return RequestTimeoutError()
    return RemoteError(text)


_BY_KIND: dict[ErrorKind, type[TaskError]] = {
    ErrorKind.REMOTE: RemoteError,
    ErrorKind.EMPTY_RESULT: EmptyResult,
    ErrorKind.UNEXPECTED: UnexpectedError,
}


def error_from_kind(kind: str | None, message: str) -> TaskError:
    """Rebuild a tagged error from its wire form (`{"detail", "kind"}`)."""
    try:
        parsed = ErrorKind(kind) if kind else ErrorKind.UNEXPECTED
    except ValueError:
        parsed = ErrorKind.UNEXPECTED
    if parsed is ErrorKind.VALIDATION:
        return ValidationError([message])
    if parsed is ErrorKind.INVALID_IDENTIFIER:
        return InvalidIdentifier([message], ["id"])
    if parsed is ErrorKind.NETWORK:
        return NetworkError(message)
    if parsed is ErrorKind.TIMEOUT:
        return RequestTimeoutError(message)
    return _BY_KIND[parsed](message)


__all__ = [
    "NETWORK_ERROR_MESSAGE",
    "TIMEOUT_ERROR_MESSAGE",
    "ErrorKind",
    "TaskError",
    "ValidationError",
    "InvalidIdentifier",
    "RemoteError",
    "NetworkError",
    "RequestTimeoutError",
    "EmptyResult",
    "UnexpectedError",
    "normalize_store_error",
    "error_from_kind",
]
