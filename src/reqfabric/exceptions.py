"""Custom exception classes for the reqfabric library.

These are raised inside the request pipeline and converted into an
``Outcome`` at its boundary; callers of ``HttpPipeline.execute`` never see
them as raised exceptions.
"""

import httpx


class ReqfabricError(Exception):
    """Base exception class for all reqfabric errors."""

    def __init__(
        self,
        message: str,
        *,
        url: httpx.URL | str | None = None,
    ):
        """Initializes the base exception.

        Args:
            message: The error message.
            url: Optional URL of the request the error relates to.
        """
        super().__init__(message)
        self.message = message
        self.url = url

    def __str__(self) -> str:
        if self.url is not None:
            return f"{self.message} (URL: {self.url})"
        return self.message


class TransportError(ReqfabricError):
    """Represents a connection-level failure reported by the transport.

    DNS resolution failures, refused connections and broken streams all end
    up here.
    """


class RequestTimeoutError(ReqfabricError):
    """Represents a timeout reported by the transport itself.

    The pipeline treats this the same way as its own timeout race elapsing.
    """


class ResponseDecodeError(ReqfabricError):
    """Raised when a response body is not valid UTF-8."""


class ResponseParseError(ReqfabricError):
    """Raised when a response body is not valid JSON."""


class ConverterError(ReqfabricError):
    """Raised when a request's converter fails or returns no data."""


class ConfigurationError(ReqfabricError):
    """Represents an error in the library's configuration."""

    def __init__(self, message: str):
        # Configuration errors are not tied to a request
        super().__init__(message, url=None)
