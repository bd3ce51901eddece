from __future__ import annotations
from typing import Any, Awaitable, Callable, Mapping, Protocol, Union, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .cancel import AttemptSignal
    from .response import Response


class Transport(Protocol):
    """
    Performs one HTTP exchange. Must return a ``Response`` for any status code
    and raise for network-level failures. ``signal`` is the attempt's effective
    cancellation signal; the executor also cancels the running task when it fires.
    """

    def __call__(
        self, target: str, options: Mapping[str, Any], signal: "AttemptSignal"
    ) -> Awaitable["Response"]: ...


class Schema(Protocol):
    def validate(self, value: Any) -> Any: ...


# Anything with .validate(), or a bare function value -> result (sync or async)
Validator = Union[Schema, Callable[[Any], Any]]

# (cloned response, zero-based attempt index) -> retry?; may be async
ShouldRetryFn = Callable[["Response", int], Union[bool, Awaitable[bool]]]

# Called before each attempt (e.g., tracing, per-attempt bookkeeping)
PreAttemptFn = Callable[[], Awaitable[None]]
