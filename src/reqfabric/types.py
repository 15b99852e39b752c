# reqfabric/types.py
"""Core type definitions and data structures for the reqfabric pipeline.

This module defines the request descriptor consumed by the pipeline, the raw
response produced by a transport, and the type aliases for lifecycle hooks.
"""

import json
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Failure, HttpError, Outcome

T = TypeVar("T")


class HttpMethod(Enum):
    """HTTP methods supported by the pipeline."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class Request(BaseModel, Generic[T]):
    """Describes one intended call through the pipeline.

    Instances are immutable. The pipeline merges ``headers`` and
    ``query_parameters`` with the configured defaults at dispatch time and
    calls ``converter`` with the decoded JSON payload of a successful
    response (``None`` when the response has no body).

    ``converter`` must return a non-``None`` value. A ``None`` result fails
    the call with ``ConverterError`` on the exception path, so a 204 response
    handled by an identity converter yields status -1 and ``on_failure``, not
    ``post_send``. Converters for bodiless responses return a marker such as
    ``True``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    host: str
    path: str
    method: HttpMethod
    converter: Callable[[Any], T]
    headers: Mapping[str, str] | None = None
    query_parameters: Mapping[str, Any] | None = None
    body: str | None = None

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @classmethod
    def with_json_body(
        cls,
        host: str,
        path: str,
        method: HttpMethod | str,
        converter: Callable[[Any], T],
        *,
        payload: Any,
        headers: Mapping[str, str] | None = None,
        query_parameters: Mapping[str, Any] | None = None,
    ) -> "Request[T]":
        """Build a request whose body is ``payload`` serialized as JSON."""
        return cls(
            host=host,
            path=path,
            method=method,
            converter=converter,
            headers=headers,
            query_parameters=query_parameters,
            body=json.dumps(payload),
        )


class PreparedRequest(BaseModel):
    """Merged, dispatch-ready data for a single pipeline call.

    Built from a ``Request`` and the pipeline's defaults; ``url`` is filled in
    once the query parameters have been stringified and the URI assembled.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    method: HttpMethod
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, str | list[str]] = Field(default_factory=dict)
    body: str | None = None
    url: httpx.URL | None = None


class RawResponse(BaseModel):
    """Status code and undecoded body bytes returned by a transport."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    content: bytes = b""


PreSendHook = Callable[[Request[Any]], HttpError | None]
"""Type alias for the pre-send hook.

Called with the request before anything else happens. Returning an
``HttpError`` vetoes the request: the pipeline returns that error with the
exception status code and never calls the transport. Returning ``None`` lets
the request proceed.
"""

PostSendHook = Callable[[Request[Any], Outcome[Any]], None]
"""Type alias for the post-send hook.

Called once a response (real or the synthetic timeout response) has been
classified into an ``Outcome``, whether success or HTTP error. Not called for
vetoed requests or failures that short-circuit the pipeline.
"""

TimeoutHook = Callable[[Request[Any]], None]
"""Type alias for the timeout hook, called when a dispatch exceeds the timeout."""

FailureHook = Callable[[Request[Any], Failure], None]
"""Type alias for the failure hook.

Called when a request fails with an exception before it could be classified
against the HTTP error model. The ``Failure`` tells recoverable exceptions
(``FailureKind.EXCEPTION``) apart from programming faults
(``FailureKind.FAULT``).
"""
