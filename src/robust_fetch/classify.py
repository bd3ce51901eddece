from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from .cancel import AttemptContext
from .response import Response


# ---- Attempt outcomes ---------------------------------------------------------


@dataclass(frozen=True)
class Success:
    response: Response


@dataclass(frozen=True)
class NonSuccessResponse:
    response: Response


@dataclass(frozen=True)
class TransportError:
    cause: BaseException


@dataclass(frozen=True)
class TimedOut:
    timeout: float


@dataclass(frozen=True)
class ExternallyCancelled:
    pass


AttemptOutcome = Union[Success, NonSuccessResponse, TransportError, TimedOut, ExternallyCancelled]


# ---- Classification -----------------------------------------------------------


def classify_response(response: Response) -> AttemptOutcome:
    if response.ok:
        return Success(response)
    return NonSuccessResponse(response)


def classify_cancelled(ctx: AttemptContext, timeout: float) -> AttemptOutcome:
    # The external handle wins even if the timer happened to fire as well.
    if ctx.externally_cancelled:
        return ExternallyCancelled()
    return TimedOut(timeout)


def classify_failure(exc: BaseException, ctx: AttemptContext, timeout: float) -> AttemptOutcome:
    """
    Map an exception raised by the transport to an outcome.

    Anything raised after the attempt's signal fired is treated as
    cancellation-shaped, whatever its type: transports commonly surface an
    aborted exchange as their own error class.
    """
    if ctx.signal.cancelled:
        return classify_cancelled(ctx, timeout)
    return TransportError(exc)


# ---- Retry-eligibility helpers ------------------------------------------------

# 408 timeout, 425 too early, 429 rate limited, 5xx gateway/server hiccups
TRANSIENT_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})


def retry_on_status(*statuses: int):
    """
    Build a ``should_retry`` predicate that only retries the given statuses
    (``TRANSIENT_STATUSES`` when none are given).
    """
    allowed = frozenset(statuses) if statuses else TRANSIENT_STATUSES

    def should_retry(response: Response, attempt: int) -> bool:
        return response.status in allowed

    return should_retry
