from __future__ import annotations
import asyncio
import inspect
import logging
from typing import Any, Optional

from .cancel import AttemptContext, AttemptSignal, CancellationToken, compose_cancellation, sleep_unless_cancelled
from .classify import AttemptOutcome, Success, classify_cancelled, classify_failure, classify_response
from .engine import Stop, decide
from .errors import ExternalCancellation, FetchError, RetriesExhausted, TransportFailure
from .policy import RetryPolicy
from .response import Response
from .result import Err, FetchResult, Ok
from .state import AttemptState, RequestCall
from .types import PreAttemptFn, Transport, Validator
from .validation import validate_response

logger = logging.getLogger(__name__)


def _default_transport() -> Transport:
    # imported lazily so the core stays importable without httpx
    from .contrib.httpx_transport import HttpxTransport

    return HttpxTransport()


async def _send(call: RequestCall, signal: AttemptSignal) -> Response:
    res = call.transport(call.target, call.options, signal)
    return await res if inspect.isawaitable(res) else res


async def run_attempt(call: RequestCall, ctx: AttemptContext) -> AttemptOutcome:
    """
    One transport call under the attempt's signal, classified. Never retries.
    """
    if ctx.signal.cancelled:
        return classify_cancelled(ctx, call.timeout)

    task = asyncio.ensure_future(_send(call, ctx.signal))
    release = ctx.signal.subscribe(task.cancel)
    try:
        response = await task
    except asyncio.CancelledError:
        if not ctx.signal.cancelled:
            # the caller's own task is being cancelled; not ours to absorb
            raise
        return classify_cancelled(ctx, call.timeout)
    except Exception as exc:
        return classify_failure(exc, ctx, call.timeout)
    finally:
        release()
        if not task.done():
            task.cancel()
    return classify_response(response)


async def _attempt_loop(call: RequestCall, pre_attempt: Optional[PreAttemptFn]) -> Response:
    state = AttemptState()
    total = call.retry.attempts + 1

    for attempt in range(total):
        state.attempt = attempt
        if pre_attempt:
            await pre_attempt()

        with compose_cancellation(call.cancellation, call.timeout) as ctx:
            outcome = await run_attempt(call, ctx)
        logger.debug("%s attempt %d/%d -> %s", call.target, attempt + 1, total, type(outcome).__name__)

        if isinstance(outcome, Success):
            if call.schema is None:
                return outcome.response
            return await validate_response(outcome.response, call.schema, attempts=state.calls)

        decision = await decide(outcome, state, call)
        if isinstance(decision, Stop):
            raise decision.error

        logger.info(
            "retrying %s in %.3fs after %s (attempt %d/%d)",
            call.target,
            decision.delay,
            type(outcome).__name__,
            attempt + 1,
            total,
        )
        if not await sleep_unless_cancelled(decision.delay, call.cancellation):
            reason = call.cancellation.reason if call.cancellation is not None else None
            raise ExternalCancellation(reason, attempts=state.calls)

    raise state.last_error or RetriesExhausted(state.last_response, total)


async def robust_fetch(
    target: str,
    *,
    timeout: float,
    retry: RetryPolicy,
    schema: Optional[Validator] = None,
    cancellation: Optional[CancellationToken] = None,
    transport: Optional[Transport] = None,
    pre_attempt: Optional[PreAttemptFn] = None,
    **transport_options: Any,
) -> FetchResult:
    """
    Fetch ``target`` with a per-attempt ``timeout`` (seconds), the ``retry``
    policy and optional ``schema`` validation.

    Never raises for request failures: returns ``Ok(response)`` or
    ``Err(error)`` where ``error.kind`` is an ``ErrorKind``. Extra keyword
    arguments are passed to the transport untouched.
    """
    try:
        if retry.attempts < 0:
            raise ValueError(f"retry.attempts must be >= 0, got {retry.attempts}")
        call = RequestCall(
            target=target,
            timeout=timeout,
            retry=retry,
            transport=transport or _default_transport(),
            options=transport_options,
            schema=schema,
            cancellation=cancellation,
        )
    except Exception as exc:
        return Err(TransportFailure(exc, stage="init"))

    try:
        return Ok(await _attempt_loop(call, pre_attempt))
    except FetchError as err:
        logger.warning("fetch %s failed: %s (%s)", target, err, err.kind.value)
        return Err(err)
    except Exception as exc:
        logger.exception("unexpected failure while fetching %s", target)
        return Err(TransportFailure(exc, stage="internal"))
