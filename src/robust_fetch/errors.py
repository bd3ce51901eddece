from __future__ import annotations
from enum import Enum
from typing import Any, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .response import Response
    from .validation import ValidationIssue


class ErrorKind(str, Enum):
    TIMEOUT_EXCEEDED = "timeout_exceeded"
    RETRIES_EXHAUSTED = "retries_exhausted"
    VALIDATION_REJECTED = "validation_rejected"
    EXTERNAL_CANCELLATION = "external_cancellation"
    TRANSPORT_FAILURE = "transport_failure"


class FetchError(Exception):
    """
    Base of the closed error taxonomy returned in ``Err``.

    Callers should branch on ``error.kind`` rather than on the concrete class.
    ``attempts`` is the number of attempts started before the failure. An
    attempt cancelled before its transport call still counts, so a call
    cancelled up front reports 1; only argument errors report 0.
    """

    kind: ErrorKind

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts

    @property
    def message(self) -> str:
        return str(self)


class TimeoutExceeded(FetchError):
    kind = ErrorKind.TIMEOUT_EXCEEDED

    def __init__(self, timeout: float, *, attempts: int = 0) -> None:
        super().__init__(f"Request timed out after {timeout:g}s", attempts=attempts)
        self.timeout = timeout


class RetriesExhausted(FetchError):
    kind = ErrorKind.RETRIES_EXHAUSTED

    def __init__(self, last_response: Optional["Response"], attempts: int) -> None:
        super().__init__(f"Request failed after {attempts} attempts", attempts=attempts)
        self.last_response = last_response


class ValidationRejected(FetchError):
    kind = ErrorKind.VALIDATION_REJECTED

    def __init__(self, issues: Sequence["ValidationIssue"], *, attempts: int = 0) -> None:
        self.issues = tuple(issues)
        details = "; ".join(f"{issue.dotted_path()}: {issue.message}" for issue in self.issues)
        super().__init__(f"Schema validation failed: {details}", attempts=attempts)


class ExternalCancellation(FetchError):
    kind = ErrorKind.EXTERNAL_CANCELLATION

    def __init__(self, reason: Any = None, *, attempts: int = 0) -> None:
        msg = "Request cancelled by caller"
        if reason is not None:
            msg = f"{msg}: {reason}"
        super().__init__(msg, attempts=attempts)
        self.reason = reason


class TransportFailure(FetchError):
    """
    Wraps any failure that is not one of ours. ``cause`` keeps the original
    exception; ``stage`` is ``"send"`` for transport errors and ``"decode"``
    when the response body could not be parsed before validation.
    """

    kind = ErrorKind.TRANSPORT_FAILURE

    def __init__(self, cause: BaseException, *, stage: str = "send", attempts: int = 0) -> None:
        super().__init__(f"{type(cause).__name__}: {cause}", attempts=attempts)
        self.cause = cause
        self.stage = stage
        self.__cause__ = cause


__all__ = [
    "ErrorKind",
    "FetchError",
    "TimeoutExceeded",
    "RetriesExhausted",
    "ValidationRejected",
    "ExternalCancellation",
    "TransportFailure",
]
