"""reqfabric: request/response orchestration over an asynchronous HTTP transport.

This package standardizes how outbound requests are assembled from default and
per-call headers and query parameters, how responses are classified into typed
success or error outcomes, and how timeouts, transport failures and malformed
bodies are turned into the same result type. Lifecycle hooks observe every
call and a pre-send hook can veto a request before it is sent.
"""

__version__ = "0.1.0"

from . import config, exceptions, log_config, models, pipeline, transport, types, urls
from .config import PipelineSettings
from .models import (
    EXCEPTION_STATUS_CODE,
    TIMEOUT_STATUS_CODE,
    Failure,
    FailureKind,
    HttpError,
    Outcome,
)
from .pipeline import HttpPipeline
from .transport import HttpxTransport, Transport
from .types import HttpMethod, RawResponse, Request

__all__ = [
    "__version__",
    "config",
    "exceptions",
    "log_config",
    "models",
    "pipeline",
    "transport",
    "types",
    "urls",
    "EXCEPTION_STATUS_CODE",
    "TIMEOUT_STATUS_CODE",
    "Failure",
    "FailureKind",
    "HttpError",
    "HttpMethod",
    "HttpPipeline",
    "HttpxTransport",
    "Outcome",
    "PipelineSettings",
    "RawResponse",
    "Request",
    "Transport",
]
