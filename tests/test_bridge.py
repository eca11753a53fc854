"""Tests for the HTTP bridge: routes, CORS, error mapping and port discovery."""

from __future__ import annotations

from typing import Any

import httpx
import pytest  # type: ignore[import-not-found]

from conftest import FakeHost
from pulsar_mcp.bridge import Bridge, BridgeError, is_loopback
from pulsar_mcp.catalog import tool_definitions
from pulsar_mcp.client import BridgeClient


async def _request(
    bridge: Bridge, method: str, path: str, **kwargs: Any
) -> httpx.Response:
    async with httpx.AsyncClient(base_url=bridge.url) as http:
        return await http.request(method, path, **kwargs)


# =============================================================================
# Routes
# =============================================================================


class TestRoutes:
    @pytest.mark.asyncio
    async def test_health(self, bridge: Bridge) -> None:
        first = await _request(bridge, "GET", "/health")
        second = await _request(bridge, "GET", "/health")
        for response in (first, second):
            assert response.status_code == 200
            body = response.json()
            assert body["status"] == "ok"
            assert isinstance(body["timestamp"], int)
            assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_list_tools(self, bridge: Bridge) -> None:
        response = await _request(bridge, "GET", "/tools")
        assert response.status_code == 200
        assert response.json() == {"tools": tool_definitions()}

    @pytest.mark.asyncio
    async def test_call_tool_success(self, bridge: Bridge, fake_host: FakeHost) -> None:
        response = await _request(
            bridge, "POST", "/tools/InsertText", json={"text": "hello"}
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"inserted": True},
            "error": None,
        }
        assert fake_host.text == "hello"

    @pytest.mark.asyncio
    async def test_empty_body_means_no_arguments(self, bridge: Bridge) -> None:
        response = await _request(bridge, "POST", "/tools/GetProjectPaths")
        assert response.status_code == 200
        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_validation_failure_is_400(self, bridge: Bridge) -> None:
        response = await _request(bridge, "POST", "/tools/InsertText", json={})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "text" in body["error"]

    @pytest.mark.asyncio
    async def test_unknown_tool_is_400(self, bridge: Bridge) -> None:
        response = await _request(bridge, "POST", "/tools/NoSuchTool", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Unknown tool: NoSuchTool"

    @pytest.mark.asyncio
    async def test_malformed_json_is_400(self, bridge: Bridge) -> None:
        response = await _request(
            bridge,
            "POST",
            "/tools/InsertText",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON body"

    @pytest.mark.asyncio
    async def test_host_error_is_400(self, bridge: Bridge) -> None:
        response = await _request(
            bridge, "POST", "/tools/SaveFile", json={"path": "/missing.txt"}
        )
        assert response.status_code == 400
        assert "No such file" in response.json()["error"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("GET", "/"),
            ("GET", "/nope"),
            ("POST", "/tools/lowercase"),
            ("POST", "/tools/Insert_Text"),
            ("GET", "/tools/InsertText"),
            ("POST", "/health"),
        ],
    )
    async def test_not_found(self, bridge: Bridge, method: str, path: str) -> None:
        response = await _request(bridge, method, path)
        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_preflight(self, bridge: Bridge) -> None:
        response = await _request(bridge, "OPTIONS", "/tools/InsertText")
        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in response.headers["Access-Control-Allow-Methods"]
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"

    @pytest.mark.asyncio
    async def test_internal_error_is_500(
        self, bridge: Bridge, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken(name: str, args: Any = None) -> Any:
            raise RuntimeError("registry exploded")

        monkeypatch.setattr(bridge.registry, "execute", broken)
        response = await _request(bridge, "POST", "/tools/GetPanelState")
        assert response.status_code == 500
        assert response.json() == {"error": "registry exploded"}
        assert response.headers["Access-Control-Allow-Origin"] == "*"

        # The bridge keeps serving afterwards
        health = await _request(bridge, "GET", "/health")
        assert health.status_code == 200


# =============================================================================
# Lifecycle and port discovery
# =============================================================================


class TestLifecycle:
    def test_rejects_non_loopback_host(self, fake_host: FakeHost) -> None:
        with pytest.raises(BridgeError, match="non-loopback"):
            Bridge(fake_host, host="0.0.0.0")

    def test_is_loopback(self) -> None:
        assert is_loopback("127.0.0.1")
        assert is_loopback("::1")
        assert is_loopback("localhost")
        assert not is_loopback("192.168.1.10")
        assert not is_loopback("example.com")

    @pytest.mark.asyncio
    async def test_binds_next_port_when_taken(
        self, fake_host: FakeHost, occupied_port: int
    ) -> None:
        async with Bridge(fake_host, port=occupied_port) as bridge:
            assert bridge.port is not None
            assert bridge.port > occupied_port
            assert bridge.server_env() == {
                "PULSAR_BRIDGE_HOST": "127.0.0.1",
                "PULSAR_BRIDGE_PORT": str(bridge.port),
            }
            client = BridgeClient(host="127.0.0.1", port=bridge.port)
            try:
                assert await client.is_available()
            finally:
                await client.close()

    @pytest.mark.asyncio
    async def test_gives_up_after_max_probes(
        self, fake_host: FakeHost, occupied_port: int
    ) -> None:
        bridge = Bridge(fake_host, port=occupied_port, max_probes=1)
        with pytest.raises(BridgeError, match="No free port"):
            await bridge.start()
        assert not bridge.running

        # A failed start leaves the process free to start another bridge
        async with Bridge(fake_host, port=occupied_port) as other:
            assert other.running

    @pytest.mark.asyncio
    async def test_one_bridge_per_process(
        self, bridge: Bridge, fake_host: FakeHost
    ) -> None:
        second = Bridge(fake_host, port=bridge.base_port)
        with pytest.raises(BridgeError, match="already running"):
            await second.start()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(
        self, fake_host: FakeHost, free_port: int
    ) -> None:
        bridge = Bridge(fake_host, port=free_port)
        await bridge.stop()
        await bridge.start()
        await bridge.stop()
        await bridge.stop()
        assert not bridge.running

        client = BridgeClient(host="127.0.0.1", port=free_port)
        try:
            assert not await client.is_available()
        finally:
            await client.close()

    def test_server_env_requires_start(self, fake_host: FakeHost) -> None:
        with pytest.raises(BridgeError):
            Bridge(fake_host).server_env()

    @pytest.mark.asyncio
    async def test_mcp_server_config(self, bridge: Bridge) -> None:
        config = bridge.mcp_server_config()
        assert config["args"] == ["-m", "pulsar_mcp.server"]
        assert config["env"]["PULSAR_BRIDGE_PORT"] == str(bridge.port)
