"""Shared fixtures for the reqfabric test suite."""

import pytest
import pytest_asyncio

from reqfabric.config import PipelineSettings
from reqfabric.pipeline import HttpPipeline
from tests.fakes import FakeTransport, HookRecorder


@pytest.fixture
def settings() -> PipelineSettings:
    """Fixture for isolated pipeline settings with a short timeout."""
    return PipelineSettings(timeout_seconds=1.0)


@pytest.fixture
def hooks(settings: PipelineSettings) -> HookRecorder:
    recorder = HookRecorder()
    recorder.install(settings)
    return recorder


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(200, json_body={"status": "ok"})


@pytest_asyncio.fixture
async def pipeline(settings: PipelineSettings, transport: FakeTransport):
    """Fixture for an HttpPipeline wired to the fake transport."""
    pipe = HttpPipeline(settings=settings, transport=transport)
    yield pipe
    await pipe.aclose()
