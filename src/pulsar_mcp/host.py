"""Capability interface the bridge uses to reach the live editor.

The bridge never touches editor state directly. Every tool executor goes
through a :class:`HostCapabilities` implementation handed to the registry at
construction time, so the registry and bridge can be exercised against a fake
host. Implementations may return plain values or awaitables; the registry
awaits the latter.

All rows and columns are 0-indexed.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


class ToolExecutionError(Exception):
    """Raised by a host when an operation cannot be carried out."""


@runtime_checkable
class HostCapabilities(Protocol):
    """Mutation and query surface of a running editor instance."""

    def get_active_editor(self) -> dict[str, Any] | None:
        """Return ``{path, content, cursorPosition, grammar, modified}`` or None."""
        ...

    def get_selection(self) -> dict[str, Any] | None:
        """Return the last non-empty selection as ``{text, range}`` or None."""
        ...

    def get_all_selections(self) -> list[dict[str, Any]] | None:
        """Return every selection as ``{text, isEmpty, range}``, None without an editor."""
        ...

    def insert_text(self, text: str) -> bool: ...

    def replace_selection(self, text: str) -> bool: ...

    def open_file(
        self, path: str, row: int | None = None, column: int | None = None
    ) -> bool: ...

    def go_to_position(self, row: int, column: int = 0) -> bool: ...

    def get_open_editors(self) -> list[dict[str, Any]]: ...

    def get_project_paths(self) -> list[str]: ...

    def add_project_path(self, path: str) -> bool: ...

    def save_file(self, path: str | None = None) -> bool: ...

    def close_file(self, path: str | None = None, save: bool = False) -> bool: ...

    def set_selections(self, ranges: list[dict[str, Any]]) -> bool:
        """Replace all selections with ``{startRow, startColumn, endRow, endColumn}`` ranges."""
        ...

    def find_text(
        self, pattern: str, is_regex: bool = False, case_sensitive: bool = True
    ) -> dict[str, Any] | None: ...

    def reveal_in_tree_view(self, path: str) -> bool: ...

    def split_pane(self, direction: str, path: str | None = None) -> bool: ...

    def close_pane(self, save_all: bool = False) -> bool: ...

    def get_panel_state(self) -> dict[str, Any]: ...
