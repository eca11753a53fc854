"""Shared fixtures: a recording fake host and loopback port helpers."""

from __future__ import annotations

import socket
from collections.abc import AsyncIterator, Iterator
from typing import Any

import pytest  # type: ignore[import-not-found]
import pytest_asyncio  # type: ignore[import-not-found]

from pulsar_mcp.bridge import Bridge
from pulsar_mcp.workspace import WorkspaceHost


class FakeHost:
    """Host capability provider that records calls and returns canned values."""

    def __init__(self, has_editor: bool = True) -> None:
        self.has_editor = has_editor
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.project_paths: list[str] = []
        self.text = ""

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))

    def get_active_editor(self) -> dict[str, Any] | None:
        self._record("get_active_editor")
        if not self.has_editor:
            return None
        return {
            "path": "/tmp/fake.py",
            "content": self.text,
            "cursorPosition": {"row": 0, "column": len(self.text)},
            "grammar": "Python",
            "modified": bool(self.text),
        }

    def get_selection(self) -> dict[str, Any] | None:
        self._record("get_selection")
        return None

    def get_all_selections(self) -> list[dict[str, Any]] | None:
        self._record("get_all_selections")
        return [] if self.has_editor else None

    def insert_text(self, text: str) -> bool:
        self._record("insert_text", text)
        if not self.has_editor:
            return False
        self.text += text
        return True

    def replace_selection(self, text: str) -> bool:
        self._record("replace_selection", text)
        return self.has_editor

    def open_file(
        self, path: str, row: int | None = None, column: int | None = None
    ) -> bool:
        self._record("open_file", path, row=row, column=column)
        return True

    def go_to_position(self, row: int, column: int = 0) -> bool:
        self._record("go_to_position", row, column)
        return self.has_editor

    def get_open_editors(self) -> list[dict[str, Any]]:
        self._record("get_open_editors")
        return []

    def get_project_paths(self) -> list[str]:
        self._record("get_project_paths")
        return list(self.project_paths)

    def add_project_path(self, path: str) -> bool:
        self._record("add_project_path", path)
        if not path.startswith("/"):
            return False
        self.project_paths.append(path)
        return True

    def save_file(self, path: str | None = None) -> bool:
        self._record("save_file", path)
        if path == "/missing.txt":
            raise OSError("No such file or directory: '/missing.txt'")
        return self.has_editor

    def close_file(self, path: str | None = None, save: bool = False) -> bool:
        self._record("close_file", path, save=save)
        return self.has_editor

    def set_selections(self, ranges: list[dict[str, Any]]) -> bool:
        self._record("set_selections", ranges)
        return self.has_editor

    def find_text(
        self, pattern: str, is_regex: bool = False, case_sensitive: bool = True
    ) -> dict[str, Any] | None:
        self._record(
            "find_text", pattern, is_regex=is_regex, case_sensitive=case_sensitive
        )
        return {"matches": [], "count": 0}

    def reveal_in_tree_view(self, path: str) -> bool:
        self._record("reveal_in_tree_view", path)
        return True

    def split_pane(self, direction: str, path: str | None = None) -> bool:
        self._record("split_pane", direction, path=path)
        return True

    def close_pane(self, save_all: bool = False) -> bool:
        self._record("close_pane", save_all=save_all)
        return True

    def get_panel_state(self) -> dict[str, Any]:
        self._record("get_panel_state")
        return {
            "left": {"visible": True, "items": 1},
            "right": {"visible": False, "items": 0},
            "bottom": {"visible": False, "items": 0},
            "panes": {"count": 1, "activeIndex": 0},
        }


def _unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def free_port() -> int:
    return _unused_port()


@pytest.fixture
def occupied_port() -> Iterator[int]:
    """A loopback port held by another listener for the duration of a test."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen()
        yield sock.getsockname()[1]


@pytest_asyncio.fixture
async def bridge(fake_host: FakeHost, free_port: int) -> AsyncIterator[Bridge]:
    async with Bridge(fake_host, port=free_port) as running:
        yield running


@pytest_asyncio.fixture
async def workspace_bridge(free_port: int) -> AsyncIterator[Bridge]:
    """Bridge over an empty in-memory workspace (no project, no editor)."""
    async with Bridge(WorkspaceHost(), port=free_port) as running:
        yield running
