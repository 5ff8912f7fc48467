# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Cache invalidation under filesystem churn.

InvalidationController consumes FileEvents and keeps the mapping cache
consistent:
- delete: the pairing the file belongs to is removed at once
- change: the pairing of the changed file is removed at once, then a
  targeted rescan of that file is queued
- create: a rescan of the new file is queued

Queued work goes through one DebounceQueue. Work is keyed by file path and
runs trailing-edge: every new event for a path pushes its deadline back, and
only the last action runs.

Thread Safety:
- handle_event() runs on the watchdog observer thread and only touches the
  cache (locked) and the queue
- every rescan runs on the single DebounceQueue worker thread
"""

import logging
import threading
import time
from typing import Callable, Dict, Hashable, Optional, Tuple

from mapper_links.file_watcher import FileWatcher
from mapper_links.mapping_cache import BidirectionalMappingCache
from mapper_links.models import FileEvent, FileEventKind
from mapper_links.scanner import MappingScanner

logger = logging.getLogger(__name__)

Action = Callable[[], None]


class DebounceQueue:
    """Single-worker task queue that coalesces work by key.

    Usage:
        queue = DebounceQueue()
        queue.schedule("/p/UserMapper.xml", rescan, delay=0.5)
        queue.schedule("/p/UserMapper.xml", rescan, delay=0.5)  # replaces the first
        queue.wait_idle()
        queue.dispose()
    """

    def __init__(self, name: str = "mapper-links-debounce"):
        self.name = name
        self._pending: Dict[Hashable, Tuple[float, Action]] = {}
        self._condition = threading.Condition()
        self._worker: Optional[threading.Thread] = None
        self._running = False
        self._stopped = False

    def _ensure_worker(self) -> None:
        if self._worker is None or not self._worker.is_alive():
            self._worker = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._worker.start()

    def schedule(self, key: Hashable, action: Action, delay: float) -> None:
        """Run action once delay seconds have passed without another schedule for key."""
        with self._condition:
            if self._stopped:
                logger.debug(f"Debounce queue disposed, dropping work for {key}")
                return
            self._pending[key] = (time.monotonic() + delay, action)
            self._ensure_worker()
            self._condition.notify_all()

    def cancel(self, key: Hashable) -> bool:
        """Drop pending work for key. Returns True if something was pending."""
        with self._condition:
            removed = self._pending.pop(key, None) is not None
            self._condition.notify_all()
            return removed

    def cancel_all(self) -> int:
        """Drop all pending work. Returns the number of dropped actions."""
        with self._condition:
            count = len(self._pending)
            self._pending.clear()
            self._condition.notify_all()
            return count

    def pending_count(self) -> int:
        with self._condition:
            return len(self._pending)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Make all pending work due now and wait for it to finish."""
        with self._condition:
            now = time.monotonic()
            self._pending = {key: (now, action) for key, (_, action) in self._pending.items()}
            self._condition.notify_all()
        return self.wait_idle(timeout)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is pending or running.

        Returns:
            False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(
                lambda: (not self._pending and not self._running) or self._stopped, timeout
            )

    def dispose(self) -> None:
        """Drop pending work and stop the worker thread."""
        with self._condition:
            self._stopped = True
            self._pending.clear()
            self._condition.notify_all()
        if self._worker is not None and self._worker is not threading.current_thread():
            self._worker.join(timeout=5.0)
        logger.debug(f"Debounce queue {self.name} disposed")

    def _next_due(self) -> Tuple[Optional[Action], Optional[float]]:
        # Called with the condition held
        key, (deadline, action) = min(self._pending.items(), key=lambda item: item[1][0])
        remaining = deadline - time.monotonic()
        if remaining > 0:
            return None, remaining
        del self._pending[key]
        return action, None

    def _run(self) -> None:
        while True:
            with self._condition:
                if self._stopped:
                    return
                if not self._pending:
                    self._condition.wait()
                    continue
                action, remaining = self._next_due()
                if action is None:
                    self._condition.wait(remaining)
                    continue
                self._running = True

            try:
                action()
            except Exception as e:
                logger.error(f"Debounced action failed: {e}")
            finally:
                with self._condition:
                    self._running = False
                    self._condition.notify_all()


class InvalidationController:
    """Keeps the mapping cache consistent with the filesystem."""

    def __init__(
        self,
        cache: BidirectionalMappingCache,
        scanner: MappingScanner,
        queue: Optional[DebounceQueue] = None,
        change_delay: float = 0.5,
        create_delay: float = 1.0,
    ):
        """Initialize InvalidationController.

        Args:
            cache: Cache to keep consistent.
            scanner: Performs targeted and full rescans.
            queue: Debounce queue; a private one is created if omitted.
            change_delay: Debounce window for change and delete follow-ups, in seconds.
            create_delay: Debounce window for created files, in seconds.
        """
        self.cache = cache
        self.scanner = scanner
        self.queue = queue or DebounceQueue()
        self.change_delay = change_delay
        self.create_delay = create_delay
        self._watcher: Optional[FileWatcher] = None

    def attach(self, watcher: FileWatcher) -> None:
        """Subscribe to a watcher's events."""
        self._watcher = watcher
        watcher.register_callback(self.handle_event)

    def _schedule_rescan(self, file_path: str, delay: float) -> None:
        self.queue.schedule(file_path, lambda: self.scanner.rescan_file(file_path), delay)

    def handle_event(self, event: FileEvent) -> None:
        """Apply one filesystem event to the cache.

        Args:
            event: Event for an interface or statement file inside the workspace
        """
        if event.kind == FileEventKind.DELETED:
            self.queue.cancel(event.path)
            removed = self.cache.remove(event.path)
            if removed is not None:
                # The surviving side may pair with another file now
                partner = (
                    removed.statement_path
                    if removed.interface_path == event.path
                    else removed.interface_path
                )
                self._schedule_rescan(partner, self.change_delay)
            logger.debug(f"Invalidated mapping for deleted file {event.path}")
        elif event.kind == FileEventKind.CHANGED:
            self.cache.remove(event.path)
            self._schedule_rescan(event.path, self.change_delay)
        elif event.kind == FileEventKind.CREATED:
            self._schedule_rescan(event.path, self.create_delay)
        else:
            logger.warning(f"Ignoring unknown file event kind: {event.kind}")

    def full_rescan(self, should_continue: Optional[Callable[[], bool]] = None) -> int:
        """Clear the cache and rebuild it from the whole workspace.

        Returns:
            Number of mappings established
        """
        dropped = self.queue.cancel_all()
        if dropped:
            logger.debug(f"Dropped {dropped} pending rescans before full rescan")
        self.cache.clear()
        return self.scanner.scan_all(should_continue)

    def dispose(self) -> None:
        """Cancel pending work and stop the attached watcher."""
        self.queue.dispose()
        if self._watcher is not None:
            self._watcher.unregister_callback(self.handle_event)
            self._watcher.stop()
            self._watcher = None
        logger.info("Invalidation controller disposed")
