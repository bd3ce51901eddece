from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .cancel import CancellationToken
from .errors import FetchError
from .policy import RetryPolicy
from .response import Response
from .types import Transport, Validator


@dataclass(frozen=True)
class RequestCall:
    """Everything one invocation needs; built once, never shared."""

    target: str
    timeout: float
    retry: RetryPolicy
    transport: Transport
    options: Mapping[str, Any] = field(default_factory=dict)
    schema: Optional[Validator] = None
    cancellation: Optional[CancellationToken] = None

    def __post_init__(self) -> None:
        if self.timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout}")
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))


@dataclass
class AttemptState:
    """Loop bookkeeping, passed explicitly through each step."""

    attempt: int = 0
    last_response: Optional[Response] = None
    last_error: Optional[FetchError] = None

    @property
    def calls(self) -> int:
        return self.attempt + 1
