"""Result models for the reqfabric request pipeline.

Every call through ``HttpPipeline.execute`` produces exactly one ``Outcome``:
either converted success data or an ``HttpError``, together with the status
code that produced it. Two sentinel status codes mark outcomes that did not
come from a real HTTP exchange: ``TIMEOUT_STATUS_CODE`` for a dispatch that
exceeded the configured timeout and ``EXCEPTION_STATUS_CODE`` for vetoed
requests and failures that never yielded a classifiable response.
"""

from enum import Enum
from typing import Any, Generic, Self, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

T = TypeVar("T")

TIMEOUT_STATUS_CODE = 999
"""Status code of the synthetic response produced when a dispatch times out."""

EXCEPTION_STATUS_CODE = -1
"""Status code of outcomes that never reached (or never came back from) the transport."""

NO_MESSAGE_PLACEHOLDER = "No error message provided"
TIMEOUT_MESSAGE = "Timeout Error"


class HttpError(BaseModel):
    """A structured error carried by a failed ``Outcome``.

    Upstream error payloads are deserialized into this model; fields other
    than ``message`` are kept as extras so callers can inspect them.
    """

    model_config = ConfigDict(extra="allow")

    message: str | None = None

    @field_validator("message", mode="before")
    @classmethod
    def stringify_message(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @classmethod
    def from_payload(cls, payload: Any) -> "HttpError":
        """Build an error from a parsed JSON error body.

        Args:
            payload: The decoded JSON value of a non-2xx response body.

        Returns:
            HttpError: The error, with the placeholder message substituted when
                the payload carries no usable message.
        """
        if isinstance(payload, dict):
            error = cls.model_validate(payload)
        elif payload is None:
            error = cls()
        else:
            error = cls(message=payload)
        return error.with_placeholder()

    def with_placeholder(self) -> "HttpError":
        """Return this error, or a copy with the placeholder if the message is empty."""
        if self.message:
            return self
        return self.model_copy(update={"message": NO_MESSAGE_PLACEHOLDER})


class Outcome(BaseModel, Generic[T]):
    """The success-or-error result of one pipeline invocation.

    Exactly one of ``data`` and ``error`` is set; ``is_success`` is true only
    when ``data`` is present and ``error`` is absent.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status_code: int
    data: T | None = None
    error: HttpError | None = None

    @model_validator(mode="after")
    def check_exclusive(self) -> Self:
        if (self.data is None) == (self.error is None):
            raise ValueError("an outcome carries exactly one of 'data' or 'error'")
        if self.error is not None and not self.error.message:
            raise ValueError("a failed outcome requires a non-empty error message")
        return self

    @property
    def is_success(self) -> bool:
        return self.data is not None and self.error is None

    @classmethod
    def success(cls, data: T, status_code: int) -> "Outcome[T]":
        return cls(data=data, status_code=status_code)

    @classmethod
    def failure(
        cls, error: HttpError, status_code: int = EXCEPTION_STATUS_CODE
    ) -> "Outcome[T]":
        return cls(error=error.with_placeholder(), status_code=status_code)


class FailureKind(Enum):
    """Classification of a failure that short-circuited the pipeline."""

    EXCEPTION = "exception"
    """A recoverable runtime failure: network, decoding, parsing, conversion."""

    FAULT = "fault"
    """A programming-level failure, such as a failed assertion."""


FAULT_TYPES: tuple[type[BaseException], ...] = (
    AssertionError,
    NotImplementedError,
    RecursionError,
    MemoryError,
)


def classify_failure(exc: BaseException) -> FailureKind:
    """Tell programming faults apart from ordinary runtime exceptions."""
    if isinstance(exc, FAULT_TYPES):
        return FailureKind.FAULT
    return FailureKind.EXCEPTION


class Failure(BaseModel):
    """Describes a failure handed to the ``on_failure`` hook.

    ``message`` is the same diagnostic text placed in the failed outcome's
    error.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: FailureKind
    exception: BaseException
    message: str
