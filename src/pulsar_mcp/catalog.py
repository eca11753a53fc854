"""Tool catalog for the Pulsar MCP bridge.

The catalog is the single list of tool definitions served both to the agent
(``tools/list`` on the stdio server) and to HTTP clients (``GET /tools`` on the
bridge). Tool names are PascalCase and surface to agents as
``mcp__pulsar__<ToolName>``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from mcp import types


class ToolName(str, Enum):
    """Identifiers of every tool the bridge can execute."""

    GET_ACTIVE_EDITOR = "GetActiveEditor"
    GET_SELECTION = "GetSelection"
    GET_SELECTIONS = "GetSelections"
    INSERT_TEXT = "InsertText"
    REPLACE_SELECTION = "ReplaceSelection"
    OPEN_FILE = "OpenFile"
    GO_TO_POSITION = "GoToPosition"
    GET_OPEN_EDITORS = "GetOpenEditors"
    GET_PROJECT_PATHS = "GetProjectPaths"
    ADD_PROJECT_PATH = "AddProjectPath"
    SAVE_FILE = "SaveFile"
    CLOSE_FILE = "CloseFile"
    SET_SELECTIONS = "SetSelections"
    FIND_TEXT = "FindText"
    REVEAL_IN_TREE_VIEW = "RevealInTreeView"
    SPLIT_PANE = "SplitPane"
    CLOSE_PANE = "ClosePane"
    GET_PANEL_STATE = "GetPanelState"

    @classmethod
    def lookup(cls, name: str) -> ToolName | None:
        """Return the member for ``name``, or None if it is not a tool."""
        try:
            return cls(name)
        except ValueError:
            return None


SPLIT_DIRECTIONS = ("left", "right", "up", "down")

_NO_ARGS: dict[str, Any] = {
    "type": "object",
    "properties": {},
    "required": [],
}

_RANGE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "startRow": {"type": "number", "description": "Start line (0-indexed)"},
        "startColumn": {"type": "number", "description": "Start column (0-indexed)"},
        "endRow": {"type": "number", "description": "End line (0-indexed)"},
        "endColumn": {"type": "number", "description": "End column (0-indexed)"},
    },
    "required": ["startRow", "startColumn", "endRow", "endColumn"],
}


# -----------------------------------------------------------------------------
# Tool Definitions
# -----------------------------------------------------------------------------

TOOLS = [
    # Editor state
    types.Tool(
        name=ToolName.GET_ACTIVE_EDITOR.value,
        description=(
            "Get the active editor state. Returns {path: string|null, content: string, "
            "cursorPosition: {row, column} (0-indexed), grammar: string, modified: boolean}, "
            "or null if no editor is open."
        ),
        inputSchema=_NO_ARGS,
    ),
    types.Tool(
        name=ToolName.GET_SELECTION.value,
        description=(
            "Get the most recent selection of the active editor. Returns {text, range: "
            "{start: {row, column}, end: {row, column}}} (0-indexed), or null if "
            "nothing is selected or no editor is open."
        ),
        inputSchema=_NO_ARGS,
    ),
    types.Tool(
        name=ToolName.GET_SELECTIONS.value,
        description=(
            "Get all selections/cursors. Returns array of {text: string, isEmpty: boolean, "
            "range: {start: {row, column}, end: {row, column}}} (0-indexed), in the order "
            "they were created. Returns null if no editor."
        ),
        inputSchema=_NO_ARGS,
    ),
    # Text editing
    types.Tool(
        name=ToolName.INSERT_TEXT.value,
        description=(
            "Insert text at cursor or replace selection. If text is selected, replaces it; "
            "otherwise inserts at cursor. Works with multi-cursor. Fails if no editor is open."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "text": {
                    "type": "string",
                    "description": "The text to insert (replaces selection if any)",
                },
            },
            "required": ["text"],
        },
    ),
    types.Tool(
        name=ToolName.REPLACE_SELECTION.value,
        description=(
            "Replace the most recent selection with text, leaving other cursors untouched. "
            "Fails if no editor is open."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "text": {
                    "type": "string",
                    "description": "Replacement text",
                },
            },
            "required": ["text"],
        },
    ),
    # Files and navigation
    types.Tool(
        name=ToolName.OPEN_FILE.value,
        description=(
            "Open a file in editor. All positions are 0-indexed. Returns true on success. "
            "Creates new file if path doesn't exist."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "File path (absolute or relative to project root)",
                },
                "row": {
                    "type": "number",
                    "description": "Row to navigate to (0-indexed, optional)",
                },
                "column": {
                    "type": "number",
                    "description": "Column to navigate to (0-indexed, optional)",
                },
            },
            "required": ["path"],
        },
    ),
    types.Tool(
        name=ToolName.GO_TO_POSITION.value,
        description=(
            "Move the cursor of the active editor and scroll it into view. "
            "Positions are 0-indexed. Fails if no editor is open."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "row": {"type": "number", "description": "Row (0-indexed)"},
                "column": {
                    "type": "number",
                    "description": "Column (0-indexed, default: 0)",
                },
            },
            "required": ["row"],
        },
    ),
    types.Tool(
        name=ToolName.GET_OPEN_EDITORS.value,
        description=(
            "List open editors. Returns array of {path: string|null, modified: boolean, "
            "active: boolean}."
        ),
        inputSchema=_NO_ARGS,
    ),
    types.Tool(
        name=ToolName.SAVE_FILE.value,
        description=(
            "Save a file. Fails if file not found or no editor. "
            "If path omitted, saves active editor."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "File path to save (optional, defaults to active editor)",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name=ToolName.CLOSE_FILE.value,
        description=(
            "Close an editor tab. Fails if file not found. If path omitted, closes active "
            "editor. Unsaved changes are discarded unless save=true."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "File path to close (optional, defaults to active editor)",
                },
                "save": {
                    "type": "boolean",
                    "description": "Save before closing if modified (default: false)",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name=ToolName.REVEAL_IN_TREE_VIEW.value,
        description="Open a file and reveal it in the tree view. Returns true on success.",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "File path to reveal"},
            },
            "required": ["path"],
        },
    ),
    # Selections and search
    types.Tool(
        name=ToolName.SET_SELECTIONS.value,
        description=(
            "Set multi-cursor selections. All positions are 0-indexed. Example: "
            "[{startRow:0, startColumn:0, endRow:0, endColumn:5}] selects first 5 chars "
            "of line 1. Fails if no editor."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "ranges": {
                    "type": "array",
                    "description": "Array of selection ranges",
                    "items": _RANGE_SCHEMA,
                },
            },
            "required": ["ranges"],
        },
    ),
    types.Tool(
        name=ToolName.FIND_TEXT.value,
        description=(
            "Find all matches in active editor. Returns {matches: [{text, range: "
            "{start: {row, column}, end: {row, column}}}], count}. All positions 0-indexed. "
            "Uses Python regular expressions. Returns null if no editor."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "pattern": {
                    "type": "string",
                    "description": "Search text or regex pattern",
                },
                "isRegex": {
                    "type": "boolean",
                    "description": "Treat pattern as regex (default: false)",
                },
                "caseSensitive": {
                    "type": "boolean",
                    "description": "Case sensitive search (default: true)",
                },
            },
            "required": ["pattern"],
        },
    ),
    # Project
    types.Tool(
        name=ToolName.GET_PROJECT_PATHS.value,
        description=(
            "Get project root folders. Returns string[] of absolute paths. "
            "Empty array if no project open."
        ),
        inputSchema=_NO_ARGS,
    ),
    types.Tool(
        name=ToolName.ADD_PROJECT_PATH.value,
        description=(
            "Add a folder to project roots without removing existing paths. "
            "Fails if path is not a directory."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Absolute folder path to add"},
            },
            "required": ["path"],
        },
    ),
    # Panes and docks
    types.Tool(
        name=ToolName.SPLIT_PANE.value,
        description=(
            "Split the active pane. Optionally open a file in the new pane. "
            "Returns {split, direction}."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "direction": {
                    "type": "string",
                    "enum": list(SPLIT_DIRECTIONS),
                    "description": "Where to place the new pane",
                },
                "path": {
                    "type": "string",
                    "description": "File to open in the new pane (optional)",
                },
            },
            "required": ["direction"],
        },
    ),
    types.Tool(
        name=ToolName.CLOSE_PANE.value,
        description=(
            "Close the active pane and its items. Unsaved changes are discarded "
            "unless saveAll=true."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "saveAll": {
                    "type": "boolean",
                    "description": "Save modified items before closing (default: false)",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name=ToolName.GET_PANEL_STATE.value,
        description=(
            "Get dock and pane layout. Returns {left, right, bottom: {visible, items}, "
            "panes: {count, activeIndex}}."
        ),
        inputSchema=_NO_ARGS,
    ),
]

_TOOLS_BY_NAME = {tool.name: tool for tool in TOOLS}


def get_tool(name: str) -> types.Tool | None:
    """Get a tool definition by name."""
    return _TOOLS_BY_NAME.get(name)


def tool_definitions() -> list[dict[str, Any]]:
    """Wire form of the catalog, shared by ``tools/list`` and ``GET /tools``."""
    return [tool.model_dump(by_alias=True, exclude_none=True) for tool in TOOLS]
