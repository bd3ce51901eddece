from .cancel import CancellationToken
from .classify import TRANSIENT_STATUSES, retry_on_status
from .core import robust_fetch
from .errors import (
    ErrorKind,
    ExternalCancellation,
    FetchError,
    RetriesExhausted,
    TimeoutExceeded,
    TransportFailure,
    ValidationRejected,
)
from .policy import ExponentialRetry, LinearRetry, RetryPolicy, no_retry
from .response import Response
from .result import Err, FetchResult, Ok
from .validation import (
    PathSegment,
    SchemaFailure,
    SchemaSuccess,
    ValidationIssue,
    create_schema,
)

__all__ = [
    "robust_fetch",
    "CancellationToken",
    "LinearRetry",
    "ExponentialRetry",
    "RetryPolicy",
    "no_retry",
    "Response",
    "Ok",
    "Err",
    "FetchResult",
    "ErrorKind",
    "FetchError",
    "TimeoutExceeded",
    "RetriesExhausted",
    "ValidationRejected",
    "ExternalCancellation",
    "TransportFailure",
    "ValidationIssue",
    "PathSegment",
    "SchemaSuccess",
    "SchemaFailure",
    "create_schema",
    "retry_on_status",
    "TRANSIENT_STATUSES",
]

# Optional: expose the OTEL-integrated helper if available.
try:
    from .otel_runtime import robust_fetch_traced_optional  # noqa: F401

    __all__.append("robust_fetch_traced_optional")
except Exception:  # pragma: no cover - OTEL layer broken; core stays usable
    pass

__version__ = "0.1.0"
