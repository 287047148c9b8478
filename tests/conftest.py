"""Shared test fixtures for all test modules."""

from collections.abc import AsyncIterator, Callable

import httpx
import pytest

from otelarc.adapters.transport.in_memory import InMemoryTransport
from otelarc.core.config import ExporterConfig, RetrySettings
from otelarc.exporter import ArcExporter

ENDPOINT = "http://arc.test"


@pytest.fixture
def config() -> ExporterConfig:
    """Exporter config pointing at a fake endpoint, retries disabled."""
    return ExporterConfig(
        endpoint=ENDPOINT,
        auth_token="test-token",
        retry=RetrySettings(enabled=False),
    )


@pytest.fixture
def transport() -> InMemoryTransport:
    """Fixture providing an empty in-memory transport."""
    return InMemoryTransport()


@pytest.fixture
async def exporter(
    config: ExporterConfig, transport: InMemoryTransport
) -> AsyncIterator[ArcExporter]:
    """Exporter wired to the in-memory transport."""
    async with ArcExporter(config, transport=transport) as exp:
        yield exp


# === httpx Test Fixtures ===


@pytest.fixture
def mock_http_client():
    """Factory fixture for an httpx.AsyncClient backed by a MockTransport.

    Returns a callable that accepts a request handler and returns a client
    plus the list of requests the handler saw.

    Usage:
        async def test_something(mock_http_client):
            client, requests = mock_http_client(lambda r: httpx.Response(204))
    """

    def _client(
        handler: Callable[[httpx.Request], httpx.Response],
    ) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
        seen: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(_record)), seen

    return _client


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture.

    Returns a tuple of (send_func, responses_list) for recording ASGI messages.
    """

    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_otlp_asgi_app(exporter)
            async with asgi_test_client(app) as client:
                response = await client.post("/v1/traces", content=body)
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
