from __future__ import annotations
from typing import Any

from pydantic import TypeAdapter, ValidationError

from ..validation import SchemaFailure, SchemaResult, SchemaSuccess, ValidationIssue


class PydanticSchema:
    """
    Validator backed by a pydantic ``TypeAdapter``: works for models,
    dataclasses and plain annotations (``list[int]``, ``dict[str, Item]``).
    Each ``ValidationError`` entry becomes an issue whose path is its ``loc``.
    """

    vendor = "pydantic"

    def __init__(self, tp: Any) -> None:
        self._adapter = TypeAdapter(tp)

    def validate(self, value: Any) -> SchemaResult:
        try:
            return SchemaSuccess(self._adapter.validate_python(value))
        except ValidationError as exc:
            return SchemaFailure(
                tuple(ValidationIssue(e["msg"], tuple(e["loc"])) for e in exc.errors())
            )
