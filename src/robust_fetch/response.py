from __future__ import annotations
import json
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

_UNSET: Any = object()


@dataclass(frozen=True)
class Response:
    """
    Immutable HTTP response value.

    The body is held as bytes, so ``text()`` / ``json()`` can be called any
    number of times and ``clone()`` is a cheap copy. ``data`` holds an already
    decoded (validated) body when the response came out of schema validation.
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes = b""
    reason: str = ""
    url: str = ""
    encoding: str = "utf-8"
    data: Any = field(default=_UNSET, repr=False, compare=False)

    def __post_init__(self) -> None:
        # read-only copy so callers can't mutate a shared header dict
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str, default: str | None = None) -> str | None:
        lowered = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lowered:
                return v
        return default

    def clone(self) -> "Response":
        return replace(self)

    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="replace")

    def json(self) -> Any:
        if self.data is not _UNSET:
            return self.data
        return json.loads(self.content)

    def with_data(self, value: Any) -> "Response":
        """Same status/headers, body replaced with the JSON encoding of ``value``."""
        body = json.dumps(value, default=_jsonable).encode("utf-8")
        return replace(self, content=body, data=value, encoding="utf-8")


def _jsonable(obj: Any) -> Any:
    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        return dump(mode="json")
    return str(obj)
