# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Moves the editor to a resolved target.

The executor checks that the target exists, picks an editor according to
the configured window policy, places the cursor and scrolls it to the top.
Repeated jumps of the same kind inside the cooldown are dropped, which
absorbs double clicks and key repeats. Different kinds never throttle each
other.
"""

import logging
import os
import threading
import time
from typing import Callable, Dict, Optional

from mapper_links.config import ConfigurationError
from mapper_links.editor import EditorHost
from mapper_links.models import FileOpenMode, Position

logger = logging.getLogger(__name__)


class JumpThrottle:
    """Per-kind cooldown gate."""

    def __init__(self, cooldown: float, clock: Callable[[], float] = time.monotonic):
        self.cooldown = cooldown
        self._clock = clock
        self._last: Dict[str, float] = {}
        self._lock = threading.Lock()

    def allow(self, kind: str) -> bool:
        """Admit a request of this kind unless one was admitted within the cooldown."""
        with self._lock:
            now = self._clock()
            last = self._last.get(kind)
            if last is not None and now - last < self.cooldown:
                return False
            self._last[kind] = now
            return True

    def reset(self) -> None:
        with self._lock:
            self._last.clear()


class JumpExecutor:
    """Opens files and places the cursor.

    Usage:
        executor = JumpExecutor(editor, FileOpenMode.USE_EXISTING, cooldown=1.0)
        executor.jump("/p/mapper/UserMapper.xml", Position(12, 16), JumpKind.STATEMENT)
    """

    def __init__(
        self,
        editor: EditorHost,
        open_mode: str = FileOpenMode.USE_EXISTING,
        cooldown: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize JumpExecutor.

        Args:
            editor: Editor host to drive.
            open_mode: One of FileOpenMode.ALL.
            cooldown: Throttle window per jump kind, in seconds.
            clock: Monotonic time source (injectable for tests).

        Raises:
            ConfigurationError: If open_mode is not a known policy
        """
        if open_mode not in FileOpenMode.ALL:
            raise ConfigurationError(
                f"Unknown file open mode '{open_mode}', expected one of {FileOpenMode.ALL}"
            )
        self.editor = editor
        self.open_mode = open_mode
        self.throttle = JumpThrottle(cooldown, clock)

    def jump(self, file_path: str, position: Optional[Position] = None, kind: Optional[str] = None) -> bool:
        """Show file_path in an editor with the cursor at position.

        Args:
            file_path: Target file.
            position: Cursor target; the file is only shown if None.
            kind: Throttle bucket (a JumpKind value); None is never throttled.

        Returns:
            True if the editor was moved
        """
        if kind is not None and not self.throttle.allow(kind):
            logger.debug(f"Jump of kind {kind} to {file_path} throttled")
            return False

        if not os.path.isfile(file_path):
            logger.warning(f"Jump target does not exist: {file_path}")
            self.editor.show_error(f"File not found: {file_path}")
            return False

        if self.open_mode == FileOpenMode.USE_EXISTING and file_path in self.editor.visible_editor_paths():
            self.editor.focus_editor(file_path)
        else:
            self.editor.open_file(file_path, beside=self.open_mode == FileOpenMode.ALWAYS_SPLIT)

        if position is not None:
            self.editor.set_selection(position)
            self.editor.reveal(position)

        logger.debug(f"Jumped to {file_path} at {position}")
        return True
