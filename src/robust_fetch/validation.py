from __future__ import annotations
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, Tuple, TypeVar, Union

from .errors import TransportFailure, ValidationRejected
from .response import Response
from .types import Validator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PathSegment:
    key: Any


@dataclass(frozen=True)
class ValidationIssue:
    message: str
    path: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "path",
            tuple(p.key if isinstance(p, PathSegment) else p for p in (self.path or ())),
        )

    def dotted_path(self) -> str:
        return ".".join(str(p) for p in self.path) or "root"


@dataclass(frozen=True)
class SchemaSuccess(Generic[T]):
    value: T


@dataclass(frozen=True)
class SchemaFailure:
    issues: Tuple[ValidationIssue, ...]

    def __post_init__(self) -> None:
        if not self.issues:
            raise ValueError("SchemaFailure needs at least one issue")
        object.__setattr__(self, "issues", tuple(_as_issue(i) for i in self.issues))


SchemaResult = Union[SchemaSuccess[T], SchemaFailure]


def _as_issue(raw: Any) -> ValidationIssue:
    if isinstance(raw, ValidationIssue):
        return raw
    if isinstance(raw, Mapping):
        return ValidationIssue(str(raw["message"]), tuple(raw.get("path") or ()))
    return ValidationIssue(str(getattr(raw, "message")), tuple(getattr(raw, "path", None) or ()))


def normalize_result(raw: Any) -> SchemaResult:
    """
    Coerce whatever a validator returned into exactly one of
    ``SchemaSuccess`` / ``SchemaFailure``.

    Accepts our own result types and Standard-Schema style mappings or objects
    carrying ``value`` / ``issues``. When both are populated the issues win;
    when neither is, the validator broke its contract and ``TypeError`` is raised.
    """
    if isinstance(raw, (SchemaSuccess, SchemaFailure)):
        return raw
    if isinstance(raw, Mapping):
        issues, has_value, value = raw.get("issues"), "value" in raw, raw.get("value")
    else:
        issues = getattr(raw, "issues", None)
        has_value = hasattr(raw, "value")
        value = getattr(raw, "value", None)
    if issues:
        return SchemaFailure(tuple(_as_issue(i) for i in issues))
    if has_value:
        return SchemaSuccess(value)
    raise TypeError(f"validator returned neither 'value' nor 'issues': {raw!r}")


async def run_validator(schema: Validator, value: Any) -> SchemaResult:
    fn = getattr(schema, "validate", None)
    if not callable(fn):
        fn = schema
    res = fn(value)
    if inspect.isawaitable(res):
        res = await res
    return normalize_result(res)


async def validate_response(response: Response, schema: Validator, *, attempts: int = 0) -> Response:
    """
    Decode the body as JSON, validate it and return a response carrying the
    validated value. Raises ``TransportFailure`` (stage ``"decode"``) for a
    malformed body and ``ValidationRejected`` for a rejected one.
    """
    try:
        data = response.json()
    except (ValueError, UnicodeDecodeError) as exc:
        raise TransportFailure(exc, stage="decode", attempts=attempts) from exc

    result = await run_validator(schema, data)
    if isinstance(result, SchemaFailure):
        logger.debug("schema rejected %s with %d issue(s)", response.url or "response", len(result.issues))
        raise ValidationRejected(result.issues, attempts=attempts)
    return response.with_data(result.value)


class FunctionSchema:
    """Wraps a plain validate function so it looks like any other schema."""

    def __init__(self, validate: Callable[[Any], Any], *, vendor: str = "robust-fetch") -> None:
        self._validate = validate
        self.vendor = vendor

    def validate(self, value: Any) -> Any:
        return self._validate(value)

    def __repr__(self) -> str:
        return f"FunctionSchema(vendor={self.vendor!r})"


def create_schema(validate: Callable[[Any], Any], *, vendor: str = "robust-fetch") -> FunctionSchema:
    return FunctionSchema(validate, vendor=vendor)
