"""Transport layer for the reqfabric request pipeline.

The pipeline only needs a way to send one request and get back a status code
and the raw body bytes. ``Transport`` is that capability; ``HttpxTransport``
implements it on top of ``httpx.AsyncClient``.
"""

import ssl
from collections.abc import Mapping
from typing import Protocol, Self, runtime_checkable

import certifi
import httpx

from .exceptions import RequestTimeoutError, TransportError
from .log_config import logger
from .types import HttpMethod, RawResponse


@runtime_checkable
class Transport(Protocol):
    """Protocol for the capability that performs the actual network call."""

    async def dispatch(
        self,
        method: HttpMethod,
        url: httpx.URL,
        headers: Mapping[str, str],
        body: str | None = None,
    ) -> RawResponse:
        """Send one request and return its status code and raw body.

        Raises:
            RequestTimeoutError: If the transport gives up waiting for the server.
            TransportError: For connection-level failures.
        """
        ...

    async def aclose(self) -> None:
        """Release any resources held by the transport. Must be idempotent."""
        ...


class HttpxTransport:
    """Transport backed by an ``httpx.AsyncClient``.

    The client is created without a timeout of its own; the pipeline races
    each dispatch against its configured timeout instead.

    Attributes:
        _http_client: The underlying httpx.AsyncClient.
        _should_close_client: Whether this instance owns ``_http_client``.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None):
        self._should_close_client = http_client is None
        self._http_client = http_client or self._create_default_http_client()

    @staticmethod
    def _create_default_http_client() -> httpx.AsyncClient:
        try:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            verify_ssl: ssl.SSLContext | bool = ssl_context
            logger.debug("Using certifi SSL context.")
        except Exception:
            verify_ssl = True
            logger.warning(
                "certifi not found or failed to load. Using default SSL verification."
            )
        return httpx.AsyncClient(timeout=None, verify=verify_ssl)

    async def dispatch(
        self,
        method: HttpMethod,
        url: httpx.URL,
        headers: Mapping[str, str],
        body: str | None = None,
    ) -> RawResponse:
        content = body.encode("utf-8") if body is not None else None
        try:
            response = await self._http_client.request(
                method.value, url, headers=dict(headers), content=content
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Transport timed out for {method.value} {url}: {e}")
            raise RequestTimeoutError(f"Transport timed out: {e}", url=url) from e
        except httpx.RequestError as e:
            logger.error(f"Network error occurred for {method.value} {url}: {e}")
            raise TransportError(f"Network error: {e!r}", url=url) from e
        return RawResponse(status_code=response.status_code, content=response.content)

    async def aclose(self) -> None:
        if self._should_close_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            logger.debug("HttpxTransport internal HTTP client closed.")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
