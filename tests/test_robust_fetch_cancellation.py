from __future__ import annotations
import asyncio
from contextlib import contextmanager
import pytest
import robust_fetch.core as core
from robust_fetch import CancellationToken, ErrorKind, LinearRetry, Response, robust_fetch


class HangingTransport:
    """Never answers on its own; records whether it saw the cancellation."""

    def __init__(self):
        self.calls = 0
        self.cancelled = 0

    async def __call__(self, target, options, signal):
        self.calls += 1
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        return Response(200)  # pragma: no cover


@pytest.fixture
def contexts(monkeypatch):
    seen = []
    real = core.compose_cancellation

    @contextmanager
    def spy(external, timeout):
        with real(external, timeout) as ctx:
            seen.append(ctx)
            yield ctx

    monkeypatch.setattr(core, "compose_cancellation", spy)
    return seen


def assert_released(contexts, token=None):
    assert contexts, "no attempt was composed"
    assert all(ctx.timer.cancelled() for ctx in contexts)
    assert not any(ctx.subscribed for ctx in contexts)
    if token is not None:
        assert token.listener_count == 0


@pytest.mark.asyncio
async def test_cancelled_before_start_never_calls_transport(contexts):
    tok = CancellationToken()
    tok.cancel("shutting down")
    t = HangingTransport()
    res = await robust_fetch("https://example.test", timeout=5.0, retry=LinearRetry(attempts=3, delay=0.0),
                             transport=t, cancellation=tok)
    assert res.error.kind is ErrorKind.EXTERNAL_CANCELLATION
    assert res.error.reason == "shutting down"
    assert res.error.attempts == 1
    assert t.calls == 0
    assert_released(contexts, tok)


@pytest.mark.asyncio
async def test_cancel_mid_attempt_stops_without_retry(contexts):
    tok = CancellationToken()
    t = HangingTransport()
    asyncio.get_running_loop().call_later(0.02, tok.cancel)
    res = await robust_fetch("https://example.test", timeout=5.0, retry=LinearRetry(attempts=3, delay=0.0),
                             transport=t, cancellation=tok)
    assert res.error.kind is ErrorKind.EXTERNAL_CANCELLATION
    assert res.error.attempts == 1
    assert t.calls == 1
    assert t.cancelled == 1
    assert_released(contexts, tok)


@pytest.mark.asyncio
async def test_cancel_mid_delay_aborts_wait(contexts):
    tok = CancellationToken()
    calls = {"n": 0}

    async def transport(target, options, signal):
        calls["n"] += 1
        return Response(503)

    loop = asyncio.get_running_loop()
    loop.call_later(0.05, tok.cancel)
    t0 = loop.time()
    res = await robust_fetch("https://example.test", timeout=5.0, retry=LinearRetry(attempts=3, delay=10.0),
                             transport=transport, cancellation=tok)
    assert loop.time() - t0 < 5.0
    assert res.error.kind is ErrorKind.EXTERNAL_CANCELLATION
    assert calls["n"] == 1
    assert_released(contexts, tok)


@pytest.mark.asyncio
async def test_timeout_is_retried_then_reported(contexts):
    t = HangingTransport()
    res = await robust_fetch("https://example.test", timeout=0.02, retry=LinearRetry(attempts=2, delay=0.0),
                             transport=t)
    assert res.error.kind is ErrorKind.TIMEOUT_EXCEEDED
    assert res.error.timeout == 0.02
    assert res.error.attempts == 3
    assert t.calls == 3
    assert t.cancelled == 3
    assert len(contexts) == 3
    assert_released(contexts)


@pytest.mark.asyncio
async def test_timeout_then_success():
    calls = {"n": 0}

    async def transport(target, options, signal):
        calls["n"] += 1
        if calls["n"] == 1:
            await asyncio.sleep(30)
        return Response(200)

    res = await robust_fetch("https://example.test", timeout=0.02, retry=LinearRetry(attempts=1, delay=0.0),
                             transport=transport)
    assert res.is_ok
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_transport_raising_own_error_on_abort_counts_as_timeout():
    class Aborted(Exception):
        pass

    async def transport(target, options, signal):
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            raise Aborted("request aborted")

    res = await robust_fetch("https://example.test", timeout=0.02, retry=LinearRetry(attempts=0),
                             transport=transport)
    assert res.error.kind is ErrorKind.TIMEOUT_EXCEEDED


@pytest.mark.asyncio
async def test_successful_call_leaves_nothing_behind(contexts):
    tok = CancellationToken()

    async def transport(target, options, signal):
        return Response(200)

    res = await robust_fetch("https://example.test", timeout=5.0, retry=LinearRetry(attempts=2),
                             transport=transport, cancellation=tok)
    assert res.is_ok
    assert_released(contexts, tok)


@pytest.mark.asyncio
async def test_callers_own_task_cancellation_propagates(contexts):
    t = HangingTransport()
    task = asyncio.ensure_future(
        robust_fetch("https://example.test", timeout=5.0, retry=LinearRetry(attempts=3), transport=t)
    )
    await asyncio.sleep(0.02)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert t.calls == 1
    assert_released(contexts)


@pytest.mark.asyncio
async def test_concurrent_invocations_are_independent():
    tok = CancellationToken()

    async def slow_ok(target, options, signal):
        await asyncio.sleep(0.01)
        return Response(200)

    cancelled, free = (await asyncio.gather(
        robust_fetch("https://a.test", timeout=5.0, retry=LinearRetry(attempts=0),
                     transport=HangingTransport(), cancellation=tok),
        robust_fetch("https://b.test", timeout=5.0, retry=LinearRetry(attempts=0), transport=slow_ok),
        _cancel_soon(tok),
    ))[:2]
    assert cancelled.error.kind is ErrorKind.EXTERNAL_CANCELLATION
    assert free.is_ok


async def _cancel_soon(tok):
    await asyncio.sleep(0.03)
    tok.cancel()
