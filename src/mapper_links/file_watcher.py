# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""File system watcher for interface and statement files.

Wraps a watchdog Observer and turns raw events into FileEvent objects:
- only .java and .xml files are reported
- files outside the project root or under excluded directories are dropped
- directory events are dropped
- a move is reported as a delete of the old path and a create of the new one

Callbacks run synchronously on the watchdog observer thread, so they must
return quickly. The invalidation controller only updates the cache and
queues work there.

Known Limitations:
- Symlinks are followed by watchdog; resolved paths are checked against the
  project root only through WorkspaceEnumerator.should_ignore()
- No automatic restart if the observer thread dies
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional

from watchdog.events import FileMovedEvent, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from mapper_links.enumerator import WorkspaceEnumerator
from mapper_links.models import INTERFACE_EXTENSION, STATEMENT_EXTENSION, FileEvent, FileEventKind

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

# Callback signature: (event: FileEvent) -> None
FileEventCallback = Callable[[FileEvent], None]


class FileWatcher:
    """Watches a project root for interface and statement file changes.

    Usage:
        watcher = FileWatcher(enumerator)
        watcher.register_callback(controller.handle_event)
        watcher.start()
        ...
        watcher.stop()
    """

    TRACKED_EXTENSIONS = (INTERFACE_EXTENSION, STATEMENT_EXTENSION)

    def __init__(self, enumerator: WorkspaceEnumerator):
        """Initialize FileWatcher.

        Args:
            enumerator: Supplies the project root and the ignore policy, so
                watched and enumerated files are the same population.
        """
        self.enumerator = enumerator
        self.project_root = enumerator.project_root
        self._callbacks: List[FileEventCallback] = []
        self._observer: Optional["BaseObserver"] = None
        self._event_handler = _FileEventHandler(self)

        logger.info(f"FileWatcher initialized for {self.project_root}")

    def is_tracked(self, file_path: str) -> bool:
        """Check if a path is an interface or statement file worth reporting."""
        if Path(file_path).suffix not in self.TRACKED_EXTENSIONS:
            return False
        return not self.enumerator.should_ignore(file_path)

    def register_callback(self, callback: FileEventCallback) -> None:
        """Register a callback for file events.

        Args:
            callback: Called with each FileEvent on the observer thread.
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)
            logger.debug(f"Registered file event callback: {callback}")

    def unregister_callback(self, callback: FileEventCallback) -> None:
        """Unregister a previously registered callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)
            logger.debug(f"Unregistered file event callback: {callback}")

    def dispatch(self, kind: str, file_path: str) -> None:
        """Deliver an event for a tracked path to every callback.

        A failing callback is logged and does not keep the others from
        running.
        """
        if not self.is_tracked(file_path):
            return
        event = FileEvent(kind, str(Path(file_path).resolve()))
        logger.debug(f"Event: {kind} - {event.path}")
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"File event callback failed for {event.path}: {e}")

    def start(self) -> None:
        """Start watching the project root.

        Raises:
            RuntimeError: If the watcher is already running
        """
        if self._observer is not None and self._observer.is_alive():
            raise RuntimeError("FileWatcher is already running")

        self._observer = Observer()
        self._observer.schedule(  # type: ignore  # watchdog types vary by version
            self._event_handler, str(self.project_root), recursive=True
        )
        self._observer.start()  # type: ignore  # watchdog types vary by version

        logger.info(f"FileWatcher started, monitoring {self.project_root}")

    def stop(self) -> None:
        """Stop watching. Blocks until the observer thread ends (with timeout)."""
        if self._observer is not None and self._observer.is_alive():
            self._observer.stop()  # type: ignore  # watchdog types vary by version
            self._observer.join(timeout=5.0)
            logger.info("FileWatcher stopped")
        self._observer = None

    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()


class _FileEventHandler(FileSystemEventHandler):
    """Internal watchdog handler, delegates to FileWatcher.dispatch()."""

    def __init__(self, watcher: FileWatcher):
        super().__init__()
        self.watcher = watcher

    def _handle(self, event: FileSystemEvent, kind: str) -> None:
        if event.is_directory:
            return
        # Convert path from Union[bytes, str] to str
        self.watcher.dispatch(kind, str(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event, FileEventKind.CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event, FileEventKind.CHANGED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle(event, FileEventKind.DELETED)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle a move or rename as delete (old path) + create (new path)."""
        if event.is_directory or not isinstance(event, FileMovedEvent):
            return
        self.watcher.dispatch(FileEventKind.DELETED, str(event.src_path))
        self.watcher.dispatch(FileEventKind.CREATED, str(event.dest_path))
