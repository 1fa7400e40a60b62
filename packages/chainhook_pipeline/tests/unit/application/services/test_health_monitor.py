"""Unit tests for HealthMonitor."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
from chainhook_pipeline.application.services import HealthMonitor
from chainhook_pipeline.infrastructure.persistence import InMemoryHealthStatusStore

NODE_URL = "http://localhost:20456"


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class StatusSequence:
    """Mock transport handler replaying a fixed list of status codes."""

    def __init__(self, *status_codes: int) -> None:
        self.status_codes = list(status_codes)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_codes.pop(0), json={"status": "ok"})


@pytest.mark.asyncio
class TestHealthMonitor:
    """Test cases for HealthMonitor."""

    async def test_healthy_node(self) -> None:
        """Test a successful check against the health endpoint."""
        handler = StatusSequence(200)
        monitor = HealthMonitor(client=make_client(handler))

        result = await monitor.check_health(NODE_URL)

        assert result.is_connected is True
        assert result.status_code == 200
        assert result.error is None
        assert result.response_time >= 0
        assert str(handler.requests[0].url) == f"{NODE_URL}/health"

        status = await monitor.get_health_status(NODE_URL)
        assert status is not None
        assert status.is_connected is True
        assert status.failed_attempts == 0
        assert status.connected_since is not None

    async def test_trailing_slash_and_custom_path(self) -> None:
        """Test URL building for the health endpoint."""
        monitor = HealthMonitor(client=make_client(StatusSequence()), health_path="/ping")

        assert monitor.health_url(f"{NODE_URL}/") == f"{NODE_URL}/ping"

    async def test_error_status_counts_as_failure(self) -> None:
        """Test that non-2xx responses are failures that accumulate."""
        monitor = HealthMonitor(client=make_client(StatusSequence(503, 503)))

        first = await monitor.check_health(NODE_URL)
        await monitor.check_health(NODE_URL)

        assert first.is_connected is False
        assert first.status_code == 503
        assert first.error == "HTTP 503"
        status = await monitor.get_health_status(NODE_URL)
        assert status is not None
        assert status.failed_attempts == 2
        assert status.last_error == "HTTP 503"
        assert await monitor.get_uptime(NODE_URL) == 0.0

    async def test_connection_error(self) -> None:
        """Test that transport errors are reported instead of raised."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        monitor = HealthMonitor(client=make_client(refuse))

        result = await monitor.check_health(NODE_URL)

        assert result.is_connected is False
        assert result.status_code is None
        assert result.error == "Connection refused"

    async def test_timeout(self) -> None:
        """Test that timeouts produce a descriptive error."""

        def stall(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        monitor = HealthMonitor(client=make_client(stall))

        result = await monitor.check_health(NODE_URL, timeout_ms=250)

        assert result.is_connected is False
        assert result.error == "Health check timed out after 250ms"

    async def test_recovery_resets_failures(self) -> None:
        """Test that a success after failures clears the failure count."""
        monitor = HealthMonitor(client=make_client(StatusSequence(500, 500, 200)))

        for _ in range(3):
            await monitor.check_health(NODE_URL)

        status = await monitor.get_health_status(NODE_URL)
        assert status is not None
        assert status.is_connected is True
        assert status.failed_attempts == 0
        assert status.last_error is None
        assert await monitor.get_uptime(NODE_URL) >= 0.0

    async def test_unknown_node(self) -> None:
        """Test queries for a node that was never checked."""
        monitor = HealthMonitor(client=make_client(StatusSequence()))

        assert await monitor.get_health_status(NODE_URL) is None
        assert await monitor.get_uptime(NODE_URL) == 0.0

    async def test_all_health_status(self) -> None:
        """Test listing records for several nodes."""
        store = InMemoryHealthStatusStore()
        monitor = HealthMonitor(store, client=make_client(StatusSequence(200, 503)))

        await monitor.check_health("http://node-a:20456")
        await monitor.check_health("http://node-b:20456")

        statuses = {s.node_url: s.is_connected for s in await monitor.get_all_health_status()}
        assert statuses == {"http://node-a:20456": True, "http://node-b:20456": False}

    async def test_injected_client_is_not_closed(self) -> None:
        """Test that close leaves a caller-owned client open."""
        client = make_client(StatusSequence())
        monitor = HealthMonitor(client=client)

        await monitor.close()

        assert client.is_closed is False
        await client.aclose()

    async def test_owned_client_is_closed(self) -> None:
        """Test that close shuts down a client the monitor created."""
        monitor = HealthMonitor()

        await monitor.close()

        assert monitor._client.is_closed is True
