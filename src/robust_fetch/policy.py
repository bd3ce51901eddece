from __future__ import annotations
import random
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .types import ShouldRetryFn


def _jittered(d: float, jitter: float) -> float:
    if not jitter:
        return d
    j = d * jitter
    return d + random.uniform(-j, j)


def _check_common(attempts: int, jitter: float) -> None:
    if attempts < 0:
        raise ValueError(f"attempts must be >= 0, got {attempts}")
    if not 0.0 <= jitter <= 1.0:
        raise ValueError(f"jitter must be within [0, 1], got {jitter}")


@dataclass(frozen=True)
class LinearRetry:
    """Constant ``delay`` seconds between retries."""

    attempts: int = 3
    delay: float = 0.1
    should_retry: Optional[ShouldRetryFn] = None
    jitter: float = 0.0

    def __post_init__(self) -> None:
        _check_common(self.attempts, self.jitter)
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")

    def delay_for(self, attempt: int) -> float:
        return max(0.0, _jittered(self.delay, self.jitter))

    def backoff(self) -> Iterable[float]:
        for i in range(self.attempts):
            yield self.delay_for(i)


@dataclass(frozen=True)
class ExponentialRetry:
    """``base_delay * backoff_factor ** attempt`` seconds, capped at ``max_delay``."""

    attempts: int = 5
    base_delay: float = 0.1
    backoff_factor: float = 2.0
    max_delay: float = 1.0
    should_retry: Optional[ShouldRetryFn] = None
    jitter: float = 0.0

    def __post_init__(self) -> None:
        _check_common(self.attempts, self.jitter)
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("base_delay and max_delay must be >= 0")
        if self.backoff_factor <= 0:
            raise ValueError(f"backoff_factor must be > 0, got {self.backoff_factor}")

    def delay_for(self, attempt: int) -> float:
        if self.base_delay == 0:
            return 0.0
        try:
            d = self.base_delay * self.backoff_factor**attempt
        except OverflowError:
            d = self.max_delay
        d = min(self.max_delay, d)
        return max(0.0, min(self.max_delay, _jittered(d, self.jitter)))

    def backoff(self) -> Iterable[float]:
        for i in range(self.attempts):
            yield self.delay_for(i)


RetryPolicy = Union[LinearRetry, ExponentialRetry]


def no_retry() -> LinearRetry:
    return LinearRetry(attempts=0, delay=0.0)
