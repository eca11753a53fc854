"""Tests for the tool catalog and its agreement with the registry."""

from __future__ import annotations

import re

from pulsar_mcp.catalog import TOOLS, ToolName, get_tool, tool_definitions
from pulsar_mcp.tools import TOOL_SPECS

TOOL_ROUTE = re.compile(r"^[A-Z][a-zA-Z]*$")


class TestCatalog:
    def test_names_unique(self) -> None:
        names = [tool.name for tool in TOOLS]
        assert len(names) == len(set(names))

    def test_names_are_routable(self) -> None:
        for tool in TOOLS:
            assert TOOL_ROUTE.match(tool.name), tool.name

    def test_catalog_matches_registry(self) -> None:
        assert {tool.name for tool in TOOLS} == {name.value for name in TOOL_SPECS}
        assert {tool.name for tool in TOOLS} == {name.value for name in ToolName}

    def test_required_fields_are_validated(self) -> None:
        for tool in TOOLS:
            spec = TOOL_SPECS[ToolName(tool.name)]
            for field in tool.inputSchema.get("required", []):
                assert field in spec.validate, f"{tool.name}.{field}"

    def test_definitions_wire_form(self) -> None:
        definitions = tool_definitions()
        assert len(definitions) == len(TOOLS)
        for definition in definitions:
            assert {"name", "description", "inputSchema"} <= set(definition)
            assert definition["inputSchema"]["type"] == "object"

    def test_get_tool(self) -> None:
        tool = get_tool("InsertText")
        assert tool is not None
        assert tool.inputSchema["required"] == ["text"]
        assert get_tool("insertText") is None

    def test_lookup(self) -> None:
        assert ToolName.lookup("GetProjectPaths") is ToolName.GET_PROJECT_PATHS
        assert ToolName.lookup("Nope") is None
