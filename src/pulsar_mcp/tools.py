"""Registry entries for every catalog tool.

``TOOL_SPECS`` is resolved once at import time and keyed by :class:`ToolName`,
so every tool the catalog advertises has exactly one spec here.
"""

from __future__ import annotations

from typing import Any

from . import registry as v
from .catalog import SPLIT_DIRECTIONS, TOOLS, ToolName
from .host import HostCapabilities
from .registry import ToolRegistry, ToolSpec

RANGE_FIELDS = ("startRow", "startColumn", "endRow", "endColumn")

NO_EDITOR = "No active editor"
FILE_NOT_FOUND = "File not found or no active editor"


def selection_ranges(value: Any, name: str) -> str | None:
    """Validate a list of ``{startRow, startColumn, endRow, endColumn}`` ranges."""
    message = v.array(value, name)
    if message:
        return message
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            return f"{name}[{index}] must be an object"
        for key in RANGE_FIELDS:
            message = v.number(item.get(key), f"{name}[{index}].{key}")
            if message:
                return message
    return None


def _int_or_none(value: Any) -> int | None:
    return None if value is None else int(value)


def _ranges(args: dict[str, Any]) -> list[dict[str, int]]:
    return [{key: int(r[key]) for key in RANGE_FIELDS} for r in args["ranges"]]


TOOL_SPECS: dict[ToolName, ToolSpec] = {
    ToolName.GET_ACTIVE_EDITOR: ToolSpec(
        execute=lambda host, args: host.get_active_editor(),
    ),
    ToolName.GET_SELECTION: ToolSpec(
        execute=lambda host, args: host.get_selection(),
    ),
    ToolName.GET_SELECTIONS: ToolSpec(
        execute=lambda host, args: host.get_all_selections(),
    ),
    ToolName.INSERT_TEXT: ToolSpec(
        execute=lambda host, args: host.insert_text(args["text"]),
        validate={"text": v.string},
        format=lambda result, args: {"inserted": result},
        failure_message=NO_EDITOR,
    ),
    ToolName.REPLACE_SELECTION: ToolSpec(
        execute=lambda host, args: host.replace_selection(args["text"]),
        validate={"text": v.string},
        format=lambda result, args: {"replaced": result},
        failure_message=NO_EDITOR,
    ),
    ToolName.OPEN_FILE: ToolSpec(
        execute=lambda host, args: host.open_file(
            args["path"],
            row=_int_or_none(args.get("row")),
            column=_int_or_none(args.get("column")),
        ),
        validate={
            "path": v.string,
            "row": v.optional(v.number),
            "column": v.optional(v.number),
        },
        format=lambda result, args: {"opened": result},
    ),
    ToolName.GO_TO_POSITION: ToolSpec(
        execute=lambda host, args: host.go_to_position(
            int(args["row"]), int(args.get("column") or 0)
        ),
        validate={"row": v.number, "column": v.optional(v.number)},
        format=lambda result, args: {"navigated": result},
        failure_message=NO_EDITOR,
    ),
    ToolName.GET_OPEN_EDITORS: ToolSpec(
        execute=lambda host, args: host.get_open_editors(),
    ),
    ToolName.GET_PROJECT_PATHS: ToolSpec(
        execute=lambda host, args: host.get_project_paths(),
    ),
    ToolName.ADD_PROJECT_PATH: ToolSpec(
        execute=lambda host, args: host.add_project_path(args["path"]),
        validate={"path": v.string},
        format=lambda result, args: {"added": result},
        failure_message="Invalid project path",
    ),
    ToolName.SAVE_FILE: ToolSpec(
        execute=lambda host, args: host.save_file(args.get("path")),
        validate={"path": v.optional(v.string)},
        format=lambda result, args: {"saved": result},
        failure_message=FILE_NOT_FOUND,
    ),
    ToolName.CLOSE_FILE: ToolSpec(
        execute=lambda host, args: host.close_file(
            args.get("path"), save=bool(args.get("save", False))
        ),
        validate={"path": v.optional(v.string), "save": v.optional(v.boolean)},
        format=lambda result, args: {"closed": result},
        failure_message=FILE_NOT_FOUND,
    ),
    ToolName.SET_SELECTIONS: ToolSpec(
        execute=lambda host, args: host.set_selections(_ranges(args)),
        validate={"ranges": selection_ranges},
        format=lambda result, args: {
            "selectionsSet": result,
            "count": len(args["ranges"]),
        },
        failure_message=NO_EDITOR,
    ),
    ToolName.FIND_TEXT: ToolSpec(
        execute=lambda host, args: host.find_text(
            args["pattern"],
            is_regex=bool(args.get("isRegex", False)),
            case_sensitive=bool(args.get("caseSensitive", True)),
        ),
        validate={
            "pattern": v.string,
            "isRegex": v.optional(v.boolean),
            "caseSensitive": v.optional(v.boolean),
        },
    ),
    ToolName.REVEAL_IN_TREE_VIEW: ToolSpec(
        execute=lambda host, args: host.reveal_in_tree_view(args["path"]),
        validate={"path": v.string},
        format=lambda result, args: {"revealed": result},
    ),
    ToolName.SPLIT_PANE: ToolSpec(
        execute=lambda host, args: host.split_pane(
            args["direction"], path=args.get("path")
        ),
        validate={
            "direction": v.enum(SPLIT_DIRECTIONS),
            "path": v.optional(v.string),
        },
        format=lambda result, args: {"split": result, "direction": args["direction"]},
        failure_message="Unable to split pane",
    ),
    ToolName.CLOSE_PANE: ToolSpec(
        execute=lambda host, args: host.close_pane(
            save_all=bool(args.get("saveAll", False))
        ),
        validate={"saveAll": v.optional(v.boolean)},
        format=lambda result, args: {"closed": result},
        failure_message="No active pane",
    ),
    ToolName.GET_PANEL_STATE: ToolSpec(
        execute=lambda host, args: host.get_panel_state(),
    ),
}

_catalog_names = {tool.name for tool in TOOLS}
_spec_names = {name.value for name in TOOL_SPECS}
if _catalog_names != _spec_names:
    raise RuntimeError(
        f"Tool catalog and registry disagree: {sorted(_catalog_names ^ _spec_names)}"
    )


def build_registry(host: HostCapabilities) -> ToolRegistry:
    """Bind every tool spec to ``host``."""
    return ToolRegistry(host, TOOL_SPECS)
