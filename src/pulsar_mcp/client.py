"""HTTP client for the Pulsar MCP bridge."""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from .registry import ExecutionResult

logger = logging.getLogger(__name__)

HOST_ENV = "PULSAR_BRIDGE_HOST"
PORT_ENV = "PULSAR_BRIDGE_PORT"
DEFAULT_BRIDGE_HOST = "127.0.0.1"
DEFAULT_BRIDGE_PORT = 3000
DEFAULT_TIMEOUT = 30.0
HEALTH_TIMEOUT = 2.0


def _port_from_env() -> int:
    raw = os.environ.get(PORT_ENV, "").strip()
    if not raw:
        return DEFAULT_BRIDGE_PORT
    try:
        port = int(raw)
    except ValueError:
        port = 0
    if not 0 < port < 65536:
        logger.warning(
            "Ignoring invalid %s=%r, using port %d", PORT_ENV, raw, DEFAULT_BRIDGE_PORT
        )
        return DEFAULT_BRIDGE_PORT
    return port


class BridgeClient:
    """HTTP client for the bridge running inside the editor.

    Host and port are resolved once, from the environment the bridge handed
    to this process, when the client is created.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            host: Bridge host. Defaults to $PULSAR_BRIDGE_HOST or 127.0.0.1.
            port: Bridge port. Defaults to $PULSAR_BRIDGE_PORT or 3000.
        """
        self.host = host or os.environ.get(HOST_ENV) or DEFAULT_BRIDGE_HOST
        if port is None:
            port = _port_from_env()
        self.port = port
        self.base_url = f"http://{self.host}:{self.port}"
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # -------------------------------------------------------------------------
    # Health & Status
    # -------------------------------------------------------------------------

    async def is_available(self) -> bool:
        """Return True if the bridge answers its health check."""
        client = await self._get_client()
        try:
            response = await client.get(
                f"{self.base_url}/health", timeout=HEALTH_TIMEOUT
            )
        except httpx.HTTPError as e:
            logger.debug("Bridge health check failed: %s", e)
            return False
        return response.is_success

    async def list_tools(self) -> list[dict[str, Any]]:
        """Fetch the tool catalog served by the bridge."""
        client = await self._get_client()
        response = await client.get(f"{self.base_url}/tools")
        response.raise_for_status()
        return response.json()["tools"]

    # -------------------------------------------------------------------------
    # Tool execution
    # -------------------------------------------------------------------------

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> ExecutionResult:
        """Execute a tool on the bridge.

        Args:
            name: Tool name, e.g. ``InsertText``.
            arguments: JSON arguments for the tool.
            timeout: Request timeout in seconds.

        Returns:
            The bridge's result envelope. Transport problems and non-2xx
            statuses are folded into a failed result.
        """
        client = await self._get_client()
        url = f"{self.base_url}/tools/{name}"

        try:
            response = await client.post(url, json=arguments or {}, timeout=timeout)
        except httpx.ConnectError as e:
            return ExecutionResult.failure(
                f"Cannot connect to bridge at {url}. Is Pulsar running? Error: {e}"
            )
        except httpx.TimeoutException:
            return ExecutionResult.failure(f"Request timed out after {timeout}s")
        except httpx.HTTPError as e:
            return ExecutionResult.failure(str(e))

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return ExecutionResult.failure(
                f"Tool call failed: {name} (HTTP {response.status_code})"
            )

        if not response.is_success or not body.get("success"):
            return ExecutionResult.failure(
                body.get("error") or f"Tool call failed: {name}"
            )
        return ExecutionResult.ok(body.get("data"))
