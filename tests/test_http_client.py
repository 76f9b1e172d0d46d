"""Tests for the HTTP management client, using httpx.MockTransport."""
import json

import httpx
import pytest

from mcp_app_server.management import (
    Address,
    Batch,
    HttpManagementClient,
    ManagementTransportError,
    Operations,
    OperationException,
    ServerConfig,
    VERSION_4_0_0,
    create_client,
)

ROOT = {
    "management-major-version": 4,
    "management-minor-version": 0,
    "management-micro-version": 0,
}


def make_client(handler, **config) -> HttpManagementClient:
    config.setdefault("type", "http")
    config.setdefault("name", "test")
    return HttpManagementClient("wildfly", ServerConfig(**config), transport=httpx.MockTransport(handler))


class Recorder:
    """Mock management endpoint recording the operations it receives."""

    def __init__(self, responses=None):
        self.requests: list[dict] = []
        self.urls: list[str] = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        self.urls.append(str(request.url))
        if body["operation"] == "read-resource" and body["address"] == []:
            return httpx.Response(200, json={"outcome": "success", "result": ROOT})
        status, payload = self.responses.get(body["operation"], (200, {"outcome": "success"}))
        return httpx.Response(status, json=payload)


class TestHttpManagementClient:
    """Tests for the HTTP transport."""

    @pytest.mark.asyncio
    async def test_connect_reads_version(self):
        recorder = Recorder()
        client = make_client(recorder, host="wildfly.local", port=9990)
        async with client:
            assert client.is_connected
            assert await client.version() == VERSION_4_0_0
        assert not client.is_connected
        assert recorder.urls[0] == "http://wildfly.local:9990/management"

    @pytest.mark.asyncio
    async def test_https_url(self):
        client = make_client(Recorder(), protocol="https", port=9993)
        assert client.url == "https://localhost:9993/management"

    @pytest.mark.asyncio
    async def test_add_posts_operation_node(self):
        recorder = Recorder()
        address = Address.subsystem("infinispan").and_("cache-container", "web")
        async with make_client(recorder) as client:
            await Operations(client).write_attribute(address, "default-cache", "c1")

        assert recorder.requests[-1] == {
            "operation": "write-attribute",
            "address": [{"subsystem": "infinispan"}, {"cache-container": "web"}],
            "name": "default-cache",
            "value": "c1",
        }

    @pytest.mark.asyncio
    async def test_failed_outcome_is_a_result(self):
        """HTTP 500 with outcome=failed is an operation failure, not a transport error."""
        recorder = Recorder({
            "add": (500, {"outcome": "failed", "failure-description": "WFLYCTL0212: Duplicate resource"}),
        })
        address = Address.subsystem("infinispan").and_("cache-container", "web")
        async with make_client(recorder) as client:
            with pytest.raises(OperationException, match="Duplicate resource"):
                await Operations(client).add(address)

    @pytest.mark.asyncio
    async def test_composite_failure_names_step(self):
        recorder = Recorder({
            "composite": (500, {
                "outcome": "failed",
                "result": {
                    "step-1": {"outcome": "failed", "failure-description": "WFLYCTL0212: Duplicate resource"},
                },
                "failure-description": {"WFLYCTL0062: Composite operation failed": {}},
                "rolled-back": True,
            }),
        })
        queue = Address.subsystem("messaging-activemq").and_("server", "default").and_("jms-queue", "Q1")
        async with make_client(recorder) as client:
            with pytest.raises(OperationException) as exc:
                await Operations(client).batch(Batch().add(queue))

        assert exc.value.failed_step == 1
        assert exc.value.address == queue
        assert recorder.requests[-1]["steps"][0]["operation"] == "add"

    @pytest.mark.asyncio
    async def test_auth_failure_raises(self):
        def handler(request):
            return httpx.Response(401, text="Unauthorized")

        with pytest.raises(ManagementTransportError, match="Authentication"):
            await make_client(handler).connect()

    @pytest.mark.asyncio
    async def test_failed_connect_closes_session(self):
        def handler(request):
            return httpx.Response(401, text="Unauthorized")

        client = make_client(handler)
        with pytest.raises(ManagementTransportError):
            await client.connect()

        assert client._http is None
        assert not client.is_connected

        # A later connect opens a fresh session
        client._transport = httpx.MockTransport(Recorder())
        assert await client.connect() is True
        await client.disconnect()

    @pytest.mark.asyncio
    async def test_non_json_response_raises(self):
        def handler(request):
            return httpx.Response(200, text="<html>proxy error</html>")

        with pytest.raises(ManagementTransportError):
            await make_client(handler).connect()

    @pytest.mark.asyncio
    async def test_execute_requires_connection(self):
        client = make_client(Recorder())
        with pytest.raises(ManagementTransportError, match="Not connected"):
            await client.execute({"operation": "read-resource", "address": []})


class TestCreateClient:
    """Tests for the client factory."""

    def test_http_client(self):
        client = create_client("dev", {"type": "http", "name": "Dev", "host": "10.0.0.5"})
        assert isinstance(client, HttpManagementClient)
        assert client.url == "http://10.0.0.5:9990/management"

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown management client type"):
            create_client("dev", {"type": "telnet", "name": "Dev"})
