"""
Company Pipeline Backend: Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── call_log: list the spy stages append to, in execution order
    ├── make_behavior / recording_handler: spy stages writing to call_log
    ├── company_request: fresh CreateCompanyRequest with empty key/hash
    ├── default_dispatcher: Dispatcher built from the default settings
    └── test_client: HTTPX AsyncClient for API endpoint testing
"""

import os

# Override settings for testing BEFORE any app imports
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("PIPELINE_BEHAVIORS", None)

from typing import Any, List

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from company_pipeline.config import Settings
from company_pipeline.mediator import CancellationToken, PipelineBehavior, RequestHandler
from company_pipeline.pipeline import build_dispatcher
from company_pipeline.schemas.company import CreateCompanyRequest


# ══════════════════════════════════════════════════════════════════════════
# Spy stages
# ══════════════════════════════════════════════════════════════════════════


class RecordingBehavior(PipelineBehavior):
    """Appends 'before:<label>' / 'after:<label>' around its continuation."""

    def __init__(self, label: str, calls: List[str]):
        self.label = label
        self.calls = calls

    @property
    def name(self) -> str:
        return self.label

    async def handle(self, request: Any, next_step, cancellation: CancellationToken) -> Any:
        self.calls.append(f"before:{self.label}")
        response = await next_step()
        self.calls.append(f"after:{self.label}")
        return response


class RecordingHandler(RequestHandler):
    """Counts invocations and returns a snapshot of the request it saw."""

    def __init__(self, calls: List[str]):
        self.calls = calls
        self.invocations = 0

    async def handle(self, request: Any, cancellation: CancellationToken) -> Any:
        self.invocations += 1
        self.calls.append("handler")
        return request.model_copy()


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def call_log() -> List[str]:
    return []


@pytest.fixture
def make_behavior(call_log):
    """Factory for RecordingBehavior instances sharing call_log."""
    def _make(label: str) -> RecordingBehavior:
        return RecordingBehavior(label, call_log)
    return _make


@pytest.fixture
def recording_handler(call_log) -> RecordingHandler:
    return RecordingHandler(call_log)


@pytest.fixture
def company_request() -> CreateCompanyRequest:
    return CreateCompanyRequest(name="Acme Corp", address="1 Infinite Loop, Cupertino")


@pytest.fixture
def default_dispatcher():
    """Dispatcher wired exactly as the application wires it by default."""
    return build_dispatcher(Settings())


@pytest_asyncio.fixture
async def test_client():
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from company_pipeline.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
