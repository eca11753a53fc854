"""In-memory editor workspace implementing :class:`HostCapabilities`.

Buffers live in memory and are read from and written to the real filesystem
on open and save. Used by the standalone bridge and by the end-to-end tests.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .host import ToolExecutionError

logger = logging.getLogger(__name__)

GRAMMARS = {
    ".py": "Python",
    ".js": "JavaScript",
    ".ts": "TypeScript",
    ".json": "JSON",
    ".md": "GitHub Markdown",
    ".html": "HTML",
    ".css": "CSS",
    ".go": "Go",
    ".rs": "Rust",
    ".toml": "TOML",
    ".yaml": "YAML",
    ".yml": "YAML",
}
PLAIN_TEXT = "Plain Text"


@dataclass
class Selection:
    """Half-open character range ``[start, end)`` into a buffer."""

    start: int
    end: int

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


class TextEditor:
    """A text buffer with multi-cursor selections."""

    def __init__(self, path: str | None = None, text: str = "") -> None:
        self.path = path
        self.text = text
        self._saved_text = text
        self.selections = [Selection(0, 0)]

    @property
    def modified(self) -> bool:
        return self.text != self._saved_text

    @property
    def grammar(self) -> str:
        if not self.path:
            return PLAIN_TEXT
        return GRAMMARS.get(Path(self.path).suffix.lower(), PLAIN_TEXT)

    # Positions

    def offset_for(self, row: int, column: int) -> int:
        """Convert a 0-indexed position to an offset, clipped to the buffer."""
        lines = self.text.split("\n")
        row = max(0, min(row, len(lines) - 1))
        column = max(0, min(column, len(lines[row])))
        return sum(len(line) + 1 for line in lines[:row]) + column

    def position_for(self, offset: int) -> dict[str, int]:
        before = self.text[:offset]
        row = before.count("\n")
        return {"row": row, "column": offset - (before.rfind("\n") + 1)}

    def range_for(self, start: int, end: int) -> dict[str, dict[str, int]]:
        return {"start": self.position_for(start), "end": self.position_for(end)}

    def describe_selection(self, selection: Selection) -> dict[str, Any]:
        return {
            "text": self.text[selection.start : selection.end],
            "isEmpty": selection.is_empty,
            "range": self.range_for(selection.start, selection.end),
        }

    # Editing

    def set_cursor(self, row: int, column: int) -> None:
        offset = self.offset_for(row, column)
        self.selections = [Selection(offset, offset)]

    def set_ranges(self, ranges: list[dict[str, int]]) -> None:
        selections = []
        for r in ranges:
            a = self.offset_for(r["startRow"], r["startColumn"])
            b = self.offset_for(r["endRow"], r["endColumn"])
            selections.append(Selection(min(a, b), max(a, b)))
        self.selections = _merge(selections)

    def replace(self, targets: list[int], text: str) -> None:
        """Replace the selections at ``targets`` with ``text``.

        Replaced selections collapse to a cursor after the inserted text;
        untouched selections are shifted to follow the edit.
        """
        edits = sorted(
            (self.selections[i].start, self.selections[i].end, i) for i in targets
        )
        pieces: list[str] = []
        cursor = 0
        length = 0
        shifts: list[tuple[int, int]] = []
        placed: dict[int, int] = {}
        for start, end, index in edits:
            chunk = self.text[cursor:start]
            pieces += [chunk, text]
            length += len(chunk) + len(text)
            placed[index] = length
            shifts.append((end, length - end))
            cursor = end
        pieces.append(self.text[cursor:])
        self.text = "".join(pieces)

        def shifted(offset: int) -> int:
            delta = 0
            for end, d in shifts:
                if offset >= end:
                    delta = d
            return offset + delta

        self.selections = [
            Selection(placed[i], placed[i])
            if i in placed
            else Selection(shifted(s.start), shifted(s.end))
            for i, s in enumerate(self.selections)
        ]

    def save(self) -> None:
        if not self.path:
            raise ToolExecutionError("Cannot save an editor without a path")
        Path(self.path).write_text(self.text, encoding="utf-8")
        self._saved_text = self.text


def _merge(selections: list[Selection]) -> list[Selection]:
    """Merge overlapping or duplicate selections, keeping first-seen order."""
    merged: list[Selection] = []
    for sel in selections:
        for other in merged:
            same = (sel.start, sel.end) == (other.start, other.end)
            if same or (sel.start < other.end and other.start < sel.end):
                other.start = min(other.start, sel.start)
                other.end = max(other.end, sel.end)
                break
        else:
            merged.append(Selection(sel.start, sel.end))
    return merged


@dataclass(eq=False)
class Pane:
    items: list[TextEditor] = field(default_factory=list)
    active_item: TextEditor | None = None

    def activate(self, editor: TextEditor) -> None:
        if editor not in self.items:
            self.items.append(editor)
        self.active_item = editor

    def remove(self, editor: TextEditor) -> None:
        index = self.items.index(editor)
        self.items.remove(editor)
        if self.active_item is editor:
            self.active_item = None
            if self.items:
                self.active_item = self.items[min(index, len(self.items) - 1)]


@dataclass
class Dock:
    visible: bool = False
    items: list[str] = field(default_factory=list)

    def info(self) -> dict[str, Any]:
        return {"visible": self.visible, "items": len(self.items)}


class WorkspaceHost:
    """Editor workspace with panes, docks and project roots."""

    def __init__(self, project_paths: list[str] | None = None) -> None:
        self.project_paths: list[str] = []
        for path in project_paths or []:
            self.add_project_path(path)
        self.panes = [Pane()]
        self.active_pane = self.panes[0]
        self.docks = {
            "left": Dock(visible=True, items=["tree-view"]),
            "right": Dock(),
            "bottom": Dock(),
        }
        self.revealed_path: str | None = None

    # Lookup helpers

    def resolve(self, path: str) -> str:
        """Absolute path for ``path``, relative paths resolved against the first project root."""
        expanded = os.path.expanduser(path)
        if not os.path.isabs(expanded):
            base = self.project_paths[0] if self.project_paths else os.getcwd()
            expanded = os.path.join(base, expanded)
        return os.path.normpath(expanded)

    def editors(self) -> list[TextEditor]:
        seen: list[TextEditor] = []
        for pane in self.panes:
            seen += [item for item in pane.items if item not in seen]
        return seen

    def active_editor(self) -> TextEditor | None:
        return self.active_pane.active_item

    def find_editor(self, path: str) -> tuple[TextEditor, Pane] | None:
        target = self.resolve(path)
        for pane in self.panes:
            for item in pane.items:
                if item.path == target:
                    return item, pane
        return None

    def _target(self, path: str | None) -> tuple[TextEditor, Pane] | None:
        if path:
            return self.find_editor(path)
        editor = self.active_editor()
        if editor is None:
            return None
        return editor, self.active_pane

    def _open_in(self, pane: Pane, path: str) -> TextEditor:
        # A path open in another pane shares that pane's editor
        found = self.find_editor(path)
        if found is not None:
            editor = found[0]
        else:
            resolved = self.resolve(path)
            text = ""
            if os.path.isfile(resolved):
                text = Path(resolved).read_text(encoding="utf-8")
            editor = TextEditor(resolved, text)
            logger.debug("Opened %s", resolved)
        pane.activate(editor)
        self.active_pane = pane
        return editor

    # Editor state

    def get_active_editor(self) -> dict[str, Any] | None:
        editor = self.active_editor()
        if editor is None:
            return None
        return {
            "path": editor.path,
            "content": editor.text,
            "cursorPosition": editor.position_for(editor.selections[-1].end),
            "grammar": editor.grammar,
            "modified": editor.modified,
        }

    def get_selection(self) -> dict[str, Any] | None:
        editor = self.active_editor()
        if editor is None:
            return None
        selection = editor.selections[-1]
        if selection.is_empty:
            return None
        described = editor.describe_selection(selection)
        return {"text": described["text"], "range": described["range"]}

    def get_all_selections(self) -> list[dict[str, Any]] | None:
        editor = self.active_editor()
        if editor is None:
            return None
        return [editor.describe_selection(s) for s in editor.selections]

    # Editing

    def insert_text(self, text: str) -> bool:
        editor = self.active_editor()
        if editor is None:
            return False
        editor.replace(list(range(len(editor.selections))), text)
        return True

    def replace_selection(self, text: str) -> bool:
        editor = self.active_editor()
        if editor is None:
            return False
        editor.replace([len(editor.selections) - 1], text)
        return True

    def set_selections(self, ranges: list[dict[str, Any]]) -> bool:
        editor = self.active_editor()
        if editor is None:
            return False
        if not ranges:
            raise ToolExecutionError("At least one selection range is required")
        editor.set_ranges(ranges)
        return True

    def find_text(
        self, pattern: str, is_regex: bool = False, case_sensitive: bool = True
    ) -> dict[str, Any] | None:
        editor = self.active_editor()
        if editor is None:
            return None
        flags = re.MULTILINE if case_sensitive else re.MULTILINE | re.IGNORECASE
        try:
            regex = re.compile(pattern if is_regex else re.escape(pattern), flags)
        except re.error as e:
            raise ToolExecutionError(f"Invalid regex: {e}") from e
        matches = [
            {"text": m.group(0), "range": editor.range_for(m.start(), m.end())}
            for m in regex.finditer(editor.text)
            if m.end() > m.start()
        ]
        return {"matches": matches, "count": len(matches)}

    # Files and navigation

    def open_file(
        self, path: str, row: int | None = None, column: int | None = None
    ) -> bool:
        editor = self._open_in(self.active_pane, path)
        if row is not None:
            editor.set_cursor(row, column or 0)
        return True

    def go_to_position(self, row: int, column: int = 0) -> bool:
        editor = self.active_editor()
        if editor is None:
            return False
        editor.set_cursor(row, column)
        return True

    def get_open_editors(self) -> list[dict[str, Any]]:
        active = self.active_editor()
        return [
            {"path": e.path, "modified": e.modified, "active": e is active}
            for e in self.editors()
        ]

    def save_file(self, path: str | None = None) -> bool:
        target = self._target(path)
        if target is None:
            return False
        target[0].save()
        return True

    def close_file(self, path: str | None = None, save: bool = False) -> bool:
        target = self._target(path)
        if target is None:
            return False
        editor = target[0]
        if save and editor.modified:
            editor.save()
        for pane in self.panes:
            if editor in pane.items:
                pane.remove(editor)
        return True

    def reveal_in_tree_view(self, path: str) -> bool:
        editor = self._open_in(self.active_pane, path)
        tree_view = self.docks["left"]
        tree_view.visible = True
        self.revealed_path = editor.path
        return True

    # Project

    def get_project_paths(self) -> list[str]:
        return list(self.project_paths)

    def add_project_path(self, path: str) -> bool:
        resolved = os.path.normpath(os.path.abspath(os.path.expanduser(path)))
        if not os.path.isdir(resolved):
            return False
        if resolved not in self.project_paths:
            self.project_paths.append(resolved)
        return True

    # Panes and docks

    def split_pane(self, direction: str, path: str | None = None) -> bool:
        if direction not in ("left", "right", "up", "down"):
            return False
        index = self.panes.index(self.active_pane)
        if direction in ("right", "down"):
            index += 1
        pane = Pane()
        self.panes.insert(index, pane)
        self.active_pane = pane
        if path:
            self._open_in(pane, path)
        return True

    def close_pane(self, save_all: bool = False) -> bool:
        pane = self.active_pane
        if save_all:
            for item in pane.items:
                if item.modified and item.path:
                    item.save()
        index = self.panes.index(pane)
        self.panes.remove(pane)
        if not self.panes:
            self.panes.append(Pane())
        self.active_pane = self.panes[min(index, len(self.panes) - 1)]
        return True

    def get_panel_state(self) -> dict[str, Any]:
        return {
            "left": self.docks["left"].info(),
            "right": self.docks["right"].info(),
            "bottom": self.docks["bottom"].info(),
            "panes": {
                "count": len(self.panes),
                "activeIndex": self.panes.index(self.active_pane),
            },
        }
