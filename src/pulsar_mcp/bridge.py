"""HTTP bridge running inside the editor process.

The bridge listens on loopback only and translates HTTP calls into tool
registry invocations:

    GET  /health            liveness probe
    GET  /tools             tool catalog
    POST /tools/<ToolName>  execute a tool with the JSON body as arguments
    OPTIONS *               CORS preflight

Each editor instance runs its own bridge. The configured base port is tried
first; when it is taken by another instance the next ports are probed until a
bind succeeds, and the paired stdio server is told the port actually bound
through :meth:`Bridge.server_env`.
"""

from __future__ import annotations

import argparse
import asyncio
import errno
import ipaddress
import json
import logging
import sys
import time
from typing import Any, ClassVar

from aiohttp import web

from .catalog import tool_definitions
from .client import HOST_ENV, PORT_ENV
from .host import HostCapabilities
from .log import configure_logging
from .registry import ExecutionResult
from .tools import build_registry

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_HOST = "127.0.0.1"
MAX_PORT_PROBES = 100

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Windows reports ports in an excluded range as EACCES
_PORT_TAKEN = (errno.EADDRINUSE, errno.EACCES)


class BridgeError(Exception):
    """Raised when the bridge cannot be configured or bound."""


def is_loopback(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _json_response(data: Any, status: int = 200) -> web.Response:
    return web.json_response(data, status=status)


def _error_response(message: str, status: int) -> web.Response:
    return _json_response({"error": message}, status=status)


@web.middleware
async def bridge_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Answer preflights, map routing misses to 404 and stamp CORS headers."""
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=PREFLIGHT_HEADERS)

    try:
        response = await handler(request)
    except web.HTTPException as e:
        if e.status in (404, 405):
            response = _error_response("Not found", 404)
        else:
            response = _error_response(e.reason, e.status)
    except Exception as e:
        logger.exception("Unhandled error for %s %s", request.method, request.path)
        response = _error_response(str(e) or e.__class__.__name__, 500)

    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


class Bridge:
    """Loopback HTTP server exposing one editor instance's tools.

    At most one bridge runs per process; each process binds its own port.
    """

    _running: ClassVar[Bridge | None] = None

    def __init__(
        self,
        capabilities: HostCapabilities,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        max_probes: int = MAX_PORT_PROBES,
    ) -> None:
        """Initialize the bridge.

        Args:
            capabilities: Host capability provider tools execute against.
            host: Loopback address to bind. Non-loopback hosts are rejected.
            port: Base port. Later ports are probed when it is taken.
            max_probes: Number of consecutive ports to try before giving up.
        """
        if not is_loopback(host):
            raise BridgeError(f"Refusing to bind non-loopback host {host!r}")
        if max_probes < 1:
            raise BridgeError("max_probes must be at least 1")
        self.host = host
        self.base_port = port
        self.max_probes = max_probes
        self.port: int | None = None
        self.registry = build_registry(capabilities)
        self.app = web.Application(middlewares=[bridge_middleware])
        self._setup_routes()
        self._runner: web.AppRunner | None = None

    def _setup_routes(self) -> None:
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/tools", self.handle_list_tools)
        self.app.router.add_post("/tools/{name:[A-Z][a-zA-Z]*}", self.handle_call_tool)

    @property
    def running(self) -> bool:
        return self._runner is not None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> int:
        """Bind the first free port at or above the base port and serve.

        Returns:
            The port actually bound.
        """
        if Bridge._running is not None:
            raise BridgeError(
                f"A bridge is already running in this process at {Bridge._running.url}"
            )

        runner = web.AppRunner(self.app, access_log=None)
        await runner.setup()
        try:
            self.port = await self._bind(runner)
        except BaseException:
            await runner.cleanup()
            raise

        self._runner = runner
        Bridge._running = self
        logger.info("MCP bridge listening on %s", self.url)
        return self.port

    async def _bind(self, runner: web.AppRunner) -> int:
        last = min(self.base_port + self.max_probes, 65536)
        for port in range(self.base_port, last):
            site = web.TCPSite(runner, self.host, port)
            try:
                await site.start()
            except OSError as e:
                await site.stop()
                if e.errno not in _PORT_TAKEN:
                    raise BridgeError(f"Cannot bind {self.host}:{port}: {e}") from e
                logger.debug("Port %d in use, trying next", port)
                continue
            if port != self.base_port:
                logger.info(
                    "Port %d in use, bridge using port %d", self.base_port, port
                )
            return port
        raise BridgeError(
            f"No free port on {self.host} in range {self.base_port}-{last - 1}"
        )

    async def stop(self) -> None:
        """Close the listener. Safe to call repeatedly or before start."""
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        try:
            await runner.cleanup()
        finally:
            if Bridge._running is self:
                Bridge._running = None
            logger.info("MCP bridge stopped")

    async def __aenter__(self) -> Bridge:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # -------------------------------------------------------------------------
    # Pairing with the stdio server
    # -------------------------------------------------------------------------

    def server_env(self) -> dict[str, str]:
        """Environment for the stdio server paired with this bridge."""
        if self.port is None:
            raise BridgeError("Bridge has not been started")
        return {HOST_ENV: self.host, PORT_ENV: str(self.port)}

    def mcp_server_config(self) -> dict[str, Any]:
        """MCP server entry an agent runtime uses to spawn the stdio server."""
        return {
            "command": sys.executable,
            "args": ["-m", "pulsar_mcp.server"],
            "env": self.server_env(),
        }

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    async def handle_health(self, request: web.Request) -> web.Response:
        return _json_response({"status": "ok", "timestamp": int(time.time() * 1000)})

    async def handle_list_tools(self, request: web.Request) -> web.Response:
        return _json_response({"tools": tool_definitions()})

    async def handle_call_tool(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        body = await request.read()
        if body.strip():
            try:
                args = json.loads(body)
            except ValueError:
                return _json_response(
                    ExecutionResult.failure("Invalid JSON body").to_dict(), status=400
                )
        else:
            args = {}

        logger.debug("Executing %s with %s", name, args)
        result = await self.registry.execute(name, args)
        return _json_response(result.to_dict(), status=200 if result.success else 400)


async def start_bridge(
    capabilities: HostCapabilities,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Bridge:
    """Create and start a bridge for ``capabilities``."""
    bridge = Bridge(capabilities, host=host, port=port)
    await bridge.start()
    return bridge


# =============================================================================
# Standalone entry point
# =============================================================================


async def _serve(args: argparse.Namespace) -> None:
    from .workspace import WorkspaceHost

    bridge = Bridge(
        WorkspaceHost(args.workspace),
        host=args.host,
        port=args.port,
        max_probes=args.max_probes,
    )
    await bridge.start()
    print(json.dumps({"mcpServers": {"pulsar": bridge.mcp_server_config()}}, indent=2))
    sys.stdout.flush()
    try:
        await asyncio.Event().wait()
    finally:
        await bridge.stop()


def main() -> None:
    """CLI entry point: run a bridge over an in-memory workspace."""
    parser = argparse.ArgumentParser(
        description="Pulsar MCP bridge backed by an in-memory workspace",
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="Loopback host to bind")
    parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT, help="Base port (default: 3000)"
    )
    parser.add_argument(
        "--max-probes",
        type=int,
        default=MAX_PORT_PROBES,
        help="Consecutive ports to try when the base port is taken",
    )
    parser.add_argument(
        "--workspace",
        "-w",
        action="append",
        default=[],
        help="Project root folder (repeatable)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    configure_logging(args.debug or None)
    try:
        asyncio.run(_serve(args))
    except KeyboardInterrupt:
        logger.info("Shutting down")
    except BridgeError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
