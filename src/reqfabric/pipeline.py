"""Request execution pipeline for the reqfabric library.

This module provides the HttpPipeline class, which turns one ``Request``
into one ``Outcome``. A call runs through a fixed sequence of stages:

1. pre-send veto (the ``pre_send`` hook may reject the request),
2. merging of default and per-request headers and query parameters,
3. dispatch through the transport, raced against the configured timeout,
4. classification of the raw response into success data or an ``HttpError``.

Any exception raised along the way short-circuits the remaining stages and is
converted into a failed ``Outcome``; ``execute`` never raises to its caller.
"""

import asyncio
import json
from collections.abc import Callable, Mapping
from http import HTTPStatus
from typing import Any, Self, TypeVar

from .config import PipelineSettings
from .exceptions import (
    ConfigurationError,
    ConverterError,
    RequestTimeoutError,
    ResponseDecodeError,
    ResponseParseError,
)
from .log_config import logger
from .models import (
    EXCEPTION_STATUS_CODE,
    FAULT_TYPES,
    NO_MESSAGE_PLACEHOLDER,
    TIMEOUT_MESSAGE,
    TIMEOUT_STATUS_CODE,
    Failure,
    FailureKind,
    HttpError,
    Outcome,
    classify_failure,
)
from .transport import HttpxTransport, Transport
from .types import HttpMethod, PreparedRequest, RawResponse, Request
from .urls import build_uri, stringify_params

T = TypeVar("T")


def merge_headers(
    defaults: Mapping[str, str], overrides: Mapping[str, str] | None
) -> dict[str, str]:
    """Merge per-request headers over the defaults.

    Header names are compared case-insensitively; on a collision the
    per-request header replaces the default one, spelling included.
    """
    merged = dict(defaults)
    for name, value in (overrides or {}).items():
        for existing in [key for key in merged if key.lower() == name.lower()]:
            del merged[existing]
        merged[name] = value
    return merged


def merge_params(
    defaults: Mapping[str, Any], overrides: Mapping[str, Any] | None
) -> dict[str, Any]:
    """Merge per-request query parameters over the defaults (request wins)."""
    return {**defaults, **(overrides or {})}


class HttpPipeline:
    """Asynchronous request pipeline with lifecycle hooks.

    The pipeline owns a ``PipelineSettings`` instance holding the timeout,
    default headers and parameters, and the hook slots. Settings are read at
    the moment they are needed, so reassigning a field between (or during)
    calls affects every later stage that reads it.

    Example:
    ```python
    async with HttpPipeline() as pipeline:
        outcome = await pipeline.send(
            "api.example.com", "/items/1", HttpMethod.GET, lambda payload: payload
        )
        if outcome.is_success:
            print(outcome.data)
        else:
            print(outcome.error.message)
    ```

    Attributes:
        settings: The mutable configuration used by every call.
        _transport: The transport performing the network calls.
        _should_close_transport: Flag indicating if this instance owns the transport.
        _abandoned: Dispatch tasks that lost the timeout race and are still running.
    """

    def __init__(
        self,
        settings: PipelineSettings | None = None,
        transport: Transport | None = None,
    ):
        """Initialize the HttpPipeline.

        Args:
            settings: Configuration for this pipeline. A fresh
                ``PipelineSettings`` (reading the environment) is used if None.
            transport: Optional transport. If None, an ``HttpxTransport`` is
                created and closed together with the pipeline.

        Raises:
            ConfigurationError: If ``transport`` does not implement ``Transport``.
        """
        if transport is not None and not isinstance(transport, Transport):
            raise ConfigurationError(
                f"{type(transport).__name__} does not implement the Transport protocol"
            )
        self.settings = settings or PipelineSettings()
        self._should_close_transport = transport is None
        self._transport: Transport = transport or HttpxTransport()
        self._abandoned: set[asyncio.Future[RawResponse]] = set()
        logger.debug(
            f"HttpPipeline initialized with {type(self._transport).__name__}, "
            f"timeout {self.settings.timeout_seconds}s."
        )

    async def execute(self, request: Request[T]) -> Outcome[T]:
        """Run one request through the pipeline.

        Args:
            request: The request descriptor to execute.

        Returns:
            Outcome[T]: Converted data on success; otherwise an ``HttpError``
                with a non-empty message and the status code that produced it
                (``-1`` for vetoes and exceptions, ``999`` for timeouts).
        """
        prepared: PreparedRequest | None = None
        try:
            veto = self._check_pre_send(request)
            if veto is not None:
                logger.info(
                    f"Request vetoed by pre-send hook: {request.method.value} "
                    f"{request.host}{request.path}: {veto.message}"
                )
                return Outcome.failure(veto, EXCEPTION_STATUS_CODE)

            prepared = self._prepare(request)
            prepared.url = build_uri(
                request.host, request.path, prepared.params, scheme=self.settings.scheme
            )
            raw = await self._dispatch_with_timeout(request, prepared)
            outcome: Outcome[T] = self._classify(request, raw, prepared)
        except Exception as e:
            return self._handle_failure(request, prepared, e)

        self._run_hook("post_send", self.settings.post_send, request, outcome)
        return outcome

    async def send(
        self,
        host: str,
        path: str,
        method: HttpMethod | str,
        converter: Callable[[Any], T],
        *,
        query_parameters: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> Outcome[T]:
        """Build a ``Request`` from the arguments and execute it.

        Raises:
            pydantic.ValidationError: If the arguments do not form a valid
                request (e.g. an unknown method). Nothing is sent in that case.
        """
        request: Request[T] = Request(
            host=host,
            path=path,
            method=method,
            converter=converter,
            query_parameters=query_parameters,
            headers=headers,
            body=body,
        )
        return await self.execute(request)

    def _check_pre_send(self, request: Request[Any]) -> HttpError | None:
        hook = self.settings.pre_send
        if hook is None:
            return None
        veto = hook(request)
        if veto is not None and not isinstance(veto, HttpError):
            raise TypeError(
                f"pre-send hook must return HttpError or None, got {type(veto).__name__}"
            )
        return veto

    def _prepare(self, request: Request[Any]) -> PreparedRequest:
        headers = merge_headers(self.settings.default_headers, request.headers)
        params = merge_params(self.settings.default_params, request.query_parameters)
        body = request.body

        if request.method is HttpMethod.GET:
            headers = {k: v for k, v in headers.items() if k.lower() != "content-type"}
            if body is not None:
                logger.warning(
                    f"Dropping body of GET request to {request.host}{request.path}: "
                    "GET requests are sent without a body."
                )
                body = None

        return PreparedRequest(
            method=request.method,
            headers=headers,
            params=stringify_params(params),
            body=body,
        )

    async def _dispatch_with_timeout(
        self, request: Request[Any], prepared: PreparedRequest
    ) -> RawResponse:
        """Dispatch the prepared request, racing it against the timeout.

        A dispatch that loses the race is abandoned, not cancelled: it keeps
        running in the background and its result is only logged.
        """
        timeout = self.settings.timeout_seconds
        logger.debug(f"Sending request: {prepared.method.value} {prepared.url}")
        logger.trace(f"Request Headers: {prepared.headers}")
        if prepared.body is not None:
            logger.trace(f"Request Body: {prepared.body}")

        task = asyncio.ensure_future(
            self._transport.dispatch(
                prepared.method, prepared.url, prepared.headers, prepared.body
            )
        )
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task not in done:
            logger.warning(
                f"Request timed out after {timeout}s: {prepared.method.value} {prepared.url}"
            )
            self._abandon(task)
            return self._timeout_response(request)

        try:
            raw = task.result()
        except RequestTimeoutError:
            return self._timeout_response(request)

        logger.debug(f"Received response: {raw.status_code} for {prepared.url}")
        return raw

    def _timeout_response(self, request: Request[Any]) -> RawResponse:
        self._run_hook("on_timeout", self.settings.on_timeout, request)
        return RawResponse(status_code=TIMEOUT_STATUS_CODE, content=b"")

    def _abandon(self, task: asyncio.Future[RawResponse]) -> None:
        self._abandoned.add(task)
        task.add_done_callback(self._collect_abandoned)

    def _collect_abandoned(self, task: asyncio.Future[RawResponse]) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug(f"Abandoned request failed after timeout: {exc!r}")
        else:
            logger.debug(
                f"Abandoned request completed after timeout with status {task.result().status_code}"
            )

    def _classify(
        self, request: Request[T], raw: RawResponse, prepared: PreparedRequest
    ) -> Outcome[T]:
        try:
            text = raw.content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ResponseDecodeError(
                f"Response body is not valid UTF-8: {e}", url=prepared.url
            ) from e

        if HTTPStatus.OK <= raw.status_code < HTTPStatus.MULTIPLE_CHOICES:
            payload = self._parse_json(text, prepared) if text.strip() else None
            data = self._convert(request, payload, prepared)
            return Outcome.success(data, raw.status_code)

        if raw.status_code == TIMEOUT_STATUS_CODE:
            error = HttpError(message=TIMEOUT_MESSAGE)
        elif not text.strip():
            error = HttpError(message=NO_MESSAGE_PLACEHOLDER)
        else:
            error = HttpError.from_payload(self._parse_json(text, prepared))

        logger.debug(
            f"Request failed with status {raw.status_code}: {prepared.url}: {error.message}"
        )
        return Outcome.failure(error, raw.status_code)

    @staticmethod
    def _parse_json(text: str, prepared: PreparedRequest) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ResponseParseError(
                f"Response body is not valid JSON: {e}", url=prepared.url
            ) from e

    @staticmethod
    def _convert(request: Request[T], payload: Any, prepared: PreparedRequest) -> T:
        try:
            data = request.converter(payload)
        except FAULT_TYPES:
            raise
        except Exception as e:
            raise ConverterError(f"Converter failed: {e!r}", url=prepared.url) from e
        if data is None:
            raise ConverterError("Converter returned no data", url=prepared.url)
        return data

    def _handle_failure(
        self,
        request: Request[Any],
        prepared: PreparedRequest | None,
        exc: Exception,
    ) -> Outcome[Any]:
        kind = classify_failure(exc)
        message = self._describe_failure(request, prepared, exc, kind)
        logger.opt(exception=exc).error(
            f"Request {request.method.value} {request.host}{request.path} failed "
            f"with {kind.value}: {exc!r}"
        )
        self._run_hook(
            "on_failure",
            self.settings.on_failure,
            request,
            Failure(kind=kind, exception=exc, message=message),
        )
        return Outcome.failure(HttpError(message=message), EXCEPTION_STATUS_CODE)

    @staticmethod
    def _describe_failure(
        request: Request[Any],
        prepared: PreparedRequest | None,
        exc: Exception,
        kind: FailureKind,
    ) -> str:
        if prepared is not None and prepared.url is not None:
            url: Any = prepared.url
        else:
            url = f"{request.host}{request.path}"
        headers = prepared.headers if prepared is not None else request.headers
        params = prepared.params if prepared is not None else request.query_parameters
        body = prepared.body if prepared is not None else request.body
        label = "Http fault" if kind is FailureKind.FAULT else "Http exception"
        return (
            f"{label}:\n{type(exc).__name__}: {exc}\n"
            f"Request: {request.method.value} {url}\n"
            f"Headers: {headers}\n"
            f"Parameters: {params}\n"
            f"Body: {body}"
        )

    @staticmethod
    def _run_hook(name: str, hook: Callable[..., Any] | None, *args: Any) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception as e:
            logger.opt(exception=e).error(
                f"Error executing {name} hook {getattr(hook, '__name__', str(hook))}: {e}"
            )

    async def aclose(self) -> None:
        """Cancel abandoned dispatches and close the transport if this pipeline owns it."""
        abandoned = list(self._abandoned)
        for task in abandoned:
            task.cancel()
        if abandoned:
            await asyncio.gather(*abandoned, return_exceptions=True)
        if self._should_close_transport:
            await self._transport.aclose()
            logger.debug("HttpPipeline transport closed.")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
