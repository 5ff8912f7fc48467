# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Boundary to the hosting editor and an optional language service.

EditorHost is what the navigation engine needs from an editor: open files,
move the cursor, know what is visible and active, and show messages.
HeadlessEditor implements it without a UI; it records every jump so that
the tool server can report targets back to its client.

LanguageService is an optional companion that knows where methods are
declared. When it is absent or not ready, the regex locator is used.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from mapper_links.inspectors.base import read_source
from mapper_links.models import Position

logger = logging.getLogger(__name__)


class EditorHost(ABC):
    """Editor operations used by the jump executor and navigators."""

    @abstractmethod
    def visible_editor_paths(self) -> List[str]:
        """Paths of files currently shown in an editor."""
        pass

    @abstractmethod
    def open_file(self, file_path: str, beside: bool = False) -> None:
        """Open a file and make it active.

        Args:
            file_path: File to open.
            beside: Open in a new column next to the active one instead of
                the active column.
        """
        pass

    @abstractmethod
    def focus_editor(self, file_path: str) -> None:
        """Make an already-visible editor for file_path the active one."""
        pass

    @abstractmethod
    def set_selection(self, position: Position) -> None:
        """Place the cursor (empty selection) in the active editor."""
        pass

    @abstractmethod
    def reveal(self, position: Position) -> None:
        """Scroll the active editor so position is at the top."""
        pass

    @abstractmethod
    def active_file(self) -> Optional[str]:
        """Path of the active editor's file, if any."""
        pass

    @abstractmethod
    def active_cursor_line(self) -> Optional[int]:
        """Zero-based cursor line in the active editor, if any."""
        pass

    @abstractmethod
    def active_lines(self) -> List[str]:
        """Text lines of the active editor's document."""
        pass

    @abstractmethod
    def show_info(self, message: str) -> None:
        pass

    @abstractmethod
    def show_error(self, message: str) -> None:
        pass


class LanguageService(ABC):
    """Optional source of precise declaration positions."""

    @abstractmethod
    def is_ready(self) -> bool:
        """Whether queries can be answered now."""
        pass

    @abstractmethod
    def find_method_position(self, file_path: str, method_name: str) -> Optional[Position]:
        """Return where method_name is declared in file_path, or None."""
        pass


@dataclass
class JumpRecord:
    """One cursor move performed on a HeadlessEditor."""

    path: str
    position: Optional[Position] = None
    beside: bool = False
    reused: bool = False

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "position": self.position.to_dict() if self.position else None,
            "beside": self.beside,
            "reused": self.reused,
        }


@dataclass
class HeadlessEditor(EditorHost):
    """EditorHost without a UI.

    Open files are tracked as visible editors; the last opened or focused
    file is active. Documents are read from disk when their lines are
    requested.
    """

    visible: List[str] = field(default_factory=list)
    active: Optional[str] = None
    cursor_line: Optional[int] = None
    selection: Optional[Position] = None
    revealed: Optional[Position] = None
    jumps: List[JumpRecord] = field(default_factory=list)
    info_messages: List[str] = field(default_factory=list)
    error_messages: List[str] = field(default_factory=list)

    def activate(self, file_path: str, cursor_line: int = 0) -> None:
        """Simulate the user focusing file_path with the cursor on cursor_line."""
        if file_path not in self.visible:
            self.visible.append(file_path)
        self.active = file_path
        self.cursor_line = cursor_line

    def visible_editor_paths(self) -> List[str]:
        return list(self.visible)

    def open_file(self, file_path: str, beside: bool = False) -> None:
        if file_path not in self.visible:
            self.visible.append(file_path)
        self.active = file_path
        self.cursor_line = 0
        self.jumps.append(JumpRecord(file_path, beside=beside))

    def focus_editor(self, file_path: str) -> None:
        self.active = file_path
        self.jumps.append(JumpRecord(file_path, reused=True))

    def set_selection(self, position: Position) -> None:
        self.selection = position
        self.cursor_line = position.line
        if self.jumps and self.jumps[-1].path == self.active:
            self.jumps[-1].position = position

    def reveal(self, position: Position) -> None:
        self.revealed = position

    def active_file(self) -> Optional[str]:
        return self.active

    def active_cursor_line(self) -> Optional[int]:
        return self.cursor_line

    def active_lines(self) -> List[str]:
        if self.active is None:
            return []
        content = read_source(self.active)
        return content.split("\n") if content is not None else []

    def show_info(self, message: str) -> None:
        logger.info(message)
        self.info_messages.append(message)

    def show_error(self, message: str) -> None:
        logger.error(message)
        self.error_messages.append(message)

    @property
    def last_jump(self) -> Optional[JumpRecord]:
        return self.jumps[-1] if self.jumps else None
