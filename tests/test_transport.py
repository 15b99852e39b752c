"""End-to-end tests running the pipeline over HttpxTransport with a mocked httpx."""

import httpx
import pytest

from reqfabric.config import PipelineSettings
from reqfabric.exceptions import RequestTimeoutError, TransportError
from reqfabric.models import EXCEPTION_STATUS_CODE, TIMEOUT_STATUS_CODE, HttpError
from reqfabric.pipeline import HttpPipeline
from reqfabric.transport import HttpxTransport, Transport
from reqfabric.types import HttpMethod, Request


@pytest.fixture
def recorded_outcomes():
    return []


@pytest.fixture
def settings(recorded_outcomes) -> PipelineSettings:
    settings = PipelineSettings(timeout_seconds=5.0)
    settings.post_send = lambda request, outcome: recorded_outcomes.append(outcome)
    return settings


def test_httpx_transport_implements_protocol():
    assert isinstance(HttpxTransport(httpx.AsyncClient()), Transport)


@pytest.mark.asyncio
async def test_get_item_success(httpx_mock, settings, recorded_outcomes):
    """GET returning a JSON object is converted and reported to post_send."""
    httpx_mock.add_response(
        url="https://api.example.com/items/1", json={"id": 1, "name": "x"}
    )

    async with HttpPipeline(settings=settings) as pipeline:
        outcome = await pipeline.execute(
            Request(
                host="api.example.com",
                path="/items/1",
                method=HttpMethod.GET,
                converter=lambda payload: dict(payload),
            )
        )

    assert outcome.is_success
    assert outcome.data == {"id": 1, "name": "x"}
    assert outcome.status_code == 200
    assert recorded_outcomes == [outcome]

    sent = httpx_mock.get_request()
    assert sent.method == "GET"
    assert "content-type" not in sent.headers
    assert sent.headers["accept"] == "application/json"


@pytest.mark.asyncio
async def test_post_bad_input(httpx_mock, settings, recorded_outcomes):
    """A 400 with a JSON message surfaces that message."""
    httpx_mock.add_response(
        method="POST",
        url="https://api.example.com/items",
        status_code=400,
        json={"message": "bad input"},
    )

    async with HttpPipeline(settings=settings) as pipeline:
        outcome = await pipeline.execute(
            Request(
                host="api.example.com",
                path="/items",
                method=HttpMethod.POST,
                body='{"a":1}',
                converter=lambda payload: payload,
            )
        )

    assert not outcome.is_success
    assert outcome.error.message == "bad input"
    assert outcome.status_code == 400
    assert recorded_outcomes == [outcome]

    sent = httpx_mock.get_request()
    assert sent.content == b'{"a":1}'
    assert sent.headers["content-type"] == "application/json;charset=UTF-8"


@pytest.mark.asyncio
async def test_pre_send_veto_sends_nothing(httpx_mock, settings, recorded_outcomes):
    """A vetoing pre_send hook keeps every request off the network."""
    settings.pre_send = lambda request: HttpError(message="blocked")

    async with HttpPipeline(settings=settings) as pipeline:
        for method in HttpMethod:
            outcome = await pipeline.execute(
                Request(
                    host="api.example.com",
                    path="/anything",
                    method=method,
                    converter=lambda payload: payload,
                )
            )
            assert outcome.error.message == "blocked"
            assert outcome.status_code == EXCEPTION_STATUS_CODE

    assert httpx_mock.get_requests() == []
    assert recorded_outcomes == []


@pytest.mark.asyncio
async def test_connection_error_becomes_exception_outcome(httpx_mock, settings):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"))
    failures = []
    settings.on_failure = lambda request, failure: failures.append(failure)

    async with HttpPipeline(settings=settings) as pipeline:
        outcome = await pipeline.send(
            "api.example.com", "/items", HttpMethod.DELETE, lambda payload: payload
        )

    assert outcome.status_code == EXCEPTION_STATUS_CODE
    assert "connection refused" in outcome.error.message
    assert len(failures) == 1
    assert isinstance(failures[0].exception, TransportError)


@pytest.mark.asyncio
async def test_httpx_timeout_becomes_timeout_outcome(httpx_mock, settings):
    httpx_mock.add_exception(httpx.ReadTimeout("read timed out"))
    timeouts = []
    settings.on_timeout = timeouts.append

    async with HttpPipeline(settings=settings) as pipeline:
        outcome = await pipeline.send(
            "api.example.com", "/slow", HttpMethod.GET, lambda payload: payload
        )

    assert outcome.status_code == TIMEOUT_STATUS_CODE
    assert outcome.error.message == "Timeout Error"
    assert len(timeouts) == 1


@pytest.mark.asyncio
async def test_transport_dispatch_maps_httpx_errors(httpx_mock):
    httpx_mock.add_exception(httpx.ConnectTimeout("connect timed out"))
    httpx_mock.add_exception(httpx.RemoteProtocolError("server hung up"))

    async with HttpxTransport() as transport:
        url = httpx.URL("https://api.example.com/")
        with pytest.raises(RequestTimeoutError):
            await transport.dispatch(HttpMethod.GET, url, {})
        with pytest.raises(TransportError):
            await transport.dispatch(HttpMethod.GET, url, {})


@pytest.mark.asyncio
async def test_transport_returns_raw_bytes(httpx_mock):
    httpx_mock.add_response(status_code=201, content=b"\x00raw")

    async with HttpxTransport() as transport:
        raw = await transport.dispatch(
            HttpMethod.PUT, httpx.URL("https://api.example.com/x"), {}, "body"
        )

    assert raw.status_code == 201
    assert raw.content == b"\x00raw"
    assert httpx_mock.get_request().content == b"body"


@pytest.mark.asyncio
async def test_transport_leaves_injected_client_open():
    client = httpx.AsyncClient()
    transport = HttpxTransport(client)

    await transport.aclose()

    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_transport_closes_own_client():
    transport = HttpxTransport()

    await transport.aclose()

    assert transport._http_client.is_closed
