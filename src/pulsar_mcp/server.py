"""MCP stdio server for Pulsar - lets an AI agent drive a running editor.

The agent runtime launches this module as a subprocess and speaks
newline-delimited JSON-RPC 2.0 over stdin/stdout. Tool calls are forwarded
over loopback HTTP to the bridge of the editor instance named by
``PULSAR_BRIDGE_HOST``/``PULSAR_BRIDGE_PORT``.

stdout carries protocol messages only; all logging goes to stderr.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from io import TextIOWrapper
from typing import Any

import anyio
from mcp import types
from mcp.shared.exceptions import McpError
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS

from .catalog import get_tool, tool_definitions
from .client import BridgeClient
from .log import configure_logging

logger = logging.getLogger(__name__)

SERVER_NAME = "pulsar"
SERVER_VERSION = "0.1.0"


def _error(code: int, message: str) -> McpError:
    return McpError(types.ErrorData(code=code, message=message))


def error_response(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {"code": code, "message": message},
    }


class StdioServer:
    """Line-oriented JSON-RPC front end for the bridge.

    Apart from the bridge address resolved at startup, no state is kept
    between lines.
    """

    def __init__(self, client: BridgeClient | None = None) -> None:
        self.client = client or BridgeClient()
        self._write_lock: anyio.Lock | None = None

    # -------------------------------------------------------------------------
    # Methods
    # -------------------------------------------------------------------------

    async def initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        if requested in SUPPORTED_PROTOCOL_VERSIONS:
            version = requested
        else:
            version = types.LATEST_PROTOCOL_VERSION
        result = types.InitializeResult(
            protocolVersion=version,
            capabilities=types.ServerCapabilities(tools=types.ToolsCapability()),
            serverInfo=types.Implementation(name=SERVER_NAME, version=SERVER_VERSION),
        )
        return result.model_dump(by_alias=True, exclude_none=True)

    async def list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": tool_definitions()}

    async def call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        arguments = params.get("arguments") or {}

        # The editor may have started, stopped or restarted since we launched
        if not await self.client.is_available():
            raise _error(
                types.INTERNAL_ERROR,
                f"Pulsar bridge not available at {self.client.base_url}. "
                "Make sure Pulsar is running with the MCP bridge enabled.",
            )

        if not isinstance(name, str) or get_tool(name) is None:
            raise _error(types.METHOD_NOT_FOUND, f"Unknown tool: {name}")
        if not isinstance(arguments, dict):
            raise _error(types.INVALID_PARAMS, "Tool arguments must be an object")

        result = await self.client.call_tool(name, arguments)
        if not result.success:
            message = result.error or f"Tool call failed: {name}"
            raise _error(types.INTERNAL_ERROR, message)

        content = types.TextContent(type="text", text=json.dumps(result.data, indent=2))
        return {"content": [content.model_dump(by_alias=True, exclude_none=True)]}

    async def handle_request(self, method: Any, params: Any) -> dict[str, Any]:
        """Dispatch one request and return its ``result`` payload."""
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise _error(types.INVALID_PARAMS, "params must be an object")

        if method == "initialize":
            return await self.initialize(params)
        elif method == "tools/list":
            return await self.list_tools(params)
        elif method == "tools/call":
            return await self.call_tool(params)
        raise _error(types.METHOD_NOT_FOUND, f"Method not found: {method}")

    # -------------------------------------------------------------------------
    # Framing
    # -------------------------------------------------------------------------

    async def handle_line(self, line: str) -> dict[str, Any] | None:
        """Turn one input line into a response, or None when none is due."""
        line = line.strip()
        if not line:
            return None

        try:
            message = json.loads(line)
        except (ValueError, RecursionError):
            logger.warning("Discarding unparseable line")
            return error_response(None, types.PARSE_ERROR, "Parse error")

        if not isinstance(message, dict):
            return error_response(None, types.INVALID_REQUEST, "Invalid Request")

        if "id" not in message:
            logger.debug("Ignoring notification %s", message.get("method"))
            return None

        request_id = message["id"]
        method = message.get("method")
        try:
            result = await self.handle_request(method, message.get("params"))
        except McpError as e:
            logger.info("%s failed: %s", method, e.error.message)
            return error_response(request_id, e.error.code, e.error.message)
        except Exception as e:
            logger.exception("Error handling %s", method)
            code = getattr(e, "code", None)
            if not isinstance(code, int) or isinstance(code, bool):
                code = types.INTERNAL_ERROR
            return error_response(request_id, code, str(e) or e.__class__.__name__)

        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def _respond(self, line: str, stdout: Any) -> None:
        try:
            response = await self.handle_line(line)
            if response is None:
                return
            if self._write_lock is None:
                self._write_lock = anyio.Lock()
            async with self._write_lock:
                await stdout.write(json.dumps(response) + "\n")
                await stdout.flush()
        except Exception:
            # One bad line must not tear down the task group
            logger.exception("Failed to answer input line")

    async def serve(self, stdin: Any = None, stdout: Any = None) -> None:
        """Read requests until stdin closes.

        Every line is handled in its own task, so responses may be written
        out of arrival order; clients correlate them by id.
        """
        if stdin is None:
            stdin = anyio.wrap_file(
                TextIOWrapper(sys.stdin.buffer, encoding="utf-8", errors="replace")
            )
        if stdout is None:
            stdout = anyio.wrap_file(TextIOWrapper(sys.stdout.buffer, encoding="utf-8"))

        try:
            async with anyio.create_task_group() as tg:
                async for line in stdin:
                    tg.start_soon(self._respond, line, stdout)
        finally:
            await self.client.close()


async def main() -> None:
    """Run the MCP server."""
    server = StdioServer()
    logger.info("Pulsar MCP server started (bridge: %s)", server.client.base_url)
    await server.serve()


def run() -> None:
    """Entry point for the MCP server."""
    configure_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
