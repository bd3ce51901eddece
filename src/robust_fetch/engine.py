from __future__ import annotations
import inspect
import logging
from dataclasses import dataclass
from typing import Optional, Union

from .classify import (
    AttemptOutcome,
    ExternallyCancelled,
    NonSuccessResponse,
    TimedOut,
    TransportError,
)
from .errors import (
    ExternalCancellation,
    FetchError,
    RetriesExhausted,
    TimeoutExceeded,
    TransportFailure,
)
from .policy import RetryPolicy
from .response import Response
from .state import AttemptState, RequestCall

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stop:
    error: FetchError


@dataclass(frozen=True)
class Retry:
    delay: float


Decision = Union[Stop, Retry]


async def _predicate_allows(policy: RetryPolicy, response: Response, attempt: int) -> bool:
    if policy.should_retry is None:
        return True
    res = policy.should_retry(response.clone(), attempt)
    if inspect.isawaitable(res):
        res = await res
    return bool(res)


def _failure_error(outcome: AttemptOutcome, calls: int) -> FetchError:
    if isinstance(outcome, TimedOut):
        return TimeoutExceeded(outcome.timeout, attempts=calls)
    if isinstance(outcome, TransportError):
        return TransportFailure(outcome.cause, attempts=calls)
    raise TypeError(f"not a failure outcome: {outcome!r}")


async def decide(outcome: AttemptOutcome, state: AttemptState, call: RequestCall) -> Decision:
    """
    Retry or stop after a failed attempt. Updates ``state.last_response`` /
    ``state.last_error``; never sleeps, the caller awaits ``Retry.delay``.
    """
    policy = call.retry
    attempt = state.attempt
    calls = state.calls

    if isinstance(outcome, ExternallyCancelled):
        reason = call.cancellation.reason if call.cancellation is not None else None
        err: FetchError = ExternalCancellation(reason, attempts=calls)
        state.last_error = err
        return Stop(err)

    final = attempt >= policy.attempts

    if isinstance(outcome, NonSuccessResponse):
        state.last_response = outcome.response
        err = RetriesExhausted(outcome.response, calls)
        state.last_error = err
        if final:
            return Stop(err)
        if not await _predicate_allows(policy, outcome.response, attempt):
            logger.debug("should_retry vetoed status %s on attempt %d", outcome.response.status, attempt)
            return Stop(err)
        return Retry(policy.delay_for(attempt))

    err = _failure_error(outcome, calls)
    state.last_error = err
    if final:
        return Stop(err)
    prior: Optional[Response] = state.last_response
    if prior is not None and not await _predicate_allows(policy, prior, attempt):
        logger.debug("should_retry vetoed retry after %s on attempt %d", err.kind.value, attempt)
        return Stop(err)
    return Retry(policy.delay_for(attempt))
