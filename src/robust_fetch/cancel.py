from __future__ import annotations
import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class CancelOrigin(str, Enum):
    TIMEOUT = "timeout"
    EXTERNAL = "external"


class CancellationToken:
    """
    Caller-owned cancellation handle.

    ``cancel()`` is idempotent: listeners run once, on the first call.
    Listeners are removed by calling the function returned from ``subscribe``.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Any = None
        self._listeners: Dict[int, Callable[[], None]] = {}
        self._next_id = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Any:
        return self._reason

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def cancel(self, reason: Any = None) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        listeners = list(self._listeners.values())
        self._listeners.clear()
        for cb in listeners:
            try:
                cb()
            except Exception:
                # every listener runs, even after one raises
                logger.exception("cancellation listener %r failed", cb)

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        key = self._next_id
        self._next_id += 1
        self._listeners[key] = callback

        def unsubscribe() -> None:
            self._listeners.pop(key, None)

        return unsubscribe

    async def wait(self) -> None:
        """Suspend until cancelled."""
        if self._cancelled:
            return
        fut = asyncio.get_running_loop().create_future()

        def _wake() -> None:
            if not fut.done():
                fut.set_result(None)

        unsubscribe = self.subscribe(_wake)
        try:
            await fut
        finally:
            unsubscribe()


class AttemptSignal(CancellationToken):
    """Effective signal for one attempt; remembers which source fired first."""

    def __init__(self) -> None:
        super().__init__()
        self.origin: Optional[CancelOrigin] = None

    def fire(self, origin: CancelOrigin, reason: Any = None) -> None:
        if self.cancelled:
            return
        self.origin = origin
        self.cancel(reason)


@dataclass
class AttemptContext:
    signal: AttemptSignal
    external: Optional[CancellationToken]
    timer: asyncio.TimerHandle
    subscribed: bool = False

    @property
    def externally_cancelled(self) -> bool:
        return self.external is not None and self.external.cancelled


@contextmanager
def compose_cancellation(
    external: Optional[CancellationToken], timeout: float
) -> Iterator[AttemptContext]:
    """
    Merge the caller's handle with a per-attempt timeout into one signal.

    Exactly one timer and at most one subscription are created; both are torn
    down when the block exits, whatever the outcome.
    """
    signal = AttemptSignal()
    loop = asyncio.get_running_loop()
    timer = loop.call_later(timeout, signal.fire, CancelOrigin.TIMEOUT)
    ctx = AttemptContext(signal=signal, external=external, timer=timer)
    unsubscribe: Optional[Callable[[], None]] = None
    try:
        if external is not None:
            if external.cancelled:
                signal.fire(CancelOrigin.EXTERNAL, external.reason)
            else:
                unsubscribe = external.subscribe(
                    lambda: signal.fire(CancelOrigin.EXTERNAL, external.reason)
                )
                ctx.subscribed = True
        yield ctx
    finally:
        timer.cancel()
        if unsubscribe is not None:
            unsubscribe()
            ctx.subscribed = False


async def sleep_unless_cancelled(delay: float, token: Optional[CancellationToken]) -> bool:
    """
    Sleep ``delay`` seconds. Returns False as soon as ``token`` fires instead.
    """
    if token is None:
        await asyncio.sleep(delay)
        return True
    if token.cancelled:
        return False
    loop = asyncio.get_running_loop()
    fut = loop.create_future()

    def _wake(elapsed: bool) -> None:
        if not fut.done():
            fut.set_result(elapsed)

    timer = loop.call_later(delay, _wake, True)
    unsubscribe = token.subscribe(lambda: _wake(False))
    try:
        return await fut
    finally:
        timer.cancel()
        unsubscribe()
