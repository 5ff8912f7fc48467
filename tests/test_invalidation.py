# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for DebounceQueue and InvalidationController."""

import threading
from unittest.mock import Mock

import pytest

from mapper_links.invalidation import DebounceQueue, InvalidationController
from mapper_links.mapping_cache import BidirectionalMappingCache
from mapper_links.models import FileEvent, FileEventKind, MappingEntry

INTERFACE = "/p/src/main/java/com/x/UserMapper.java"
STATEMENT = "/p/src/main/resources/mapper/UserMapper.xml"


@pytest.fixture
def queue():
    q = DebounceQueue(name="test-debounce")
    yield q
    q.dispose()


class TestDebounceQueue:
    """Tests for keyed trailing-edge debouncing."""

    def test_only_last_action_runs(self, queue):
        ran = []
        for n in range(3):
            queue.schedule("key", lambda n=n: ran.append(n), delay=0.2)

        assert queue.wait_idle(timeout=5.0)
        assert ran == [2]

    def test_keys_are_independent(self, queue):
        ran = []
        queue.schedule("a", lambda: ran.append("a"), delay=0.01)
        queue.schedule("b", lambda: ran.append("b"), delay=0.01)

        assert queue.wait_idle(timeout=5.0)
        assert sorted(ran) == ["a", "b"]

    def test_cancel(self, queue):
        ran = []
        queue.schedule("key", lambda: ran.append(1), delay=60.0)

        assert queue.cancel("key") is True
        assert queue.cancel("key") is False
        assert queue.wait_idle(timeout=5.0)
        assert ran == []

    def test_cancel_all(self, queue):
        queue.schedule("a", lambda: None, delay=60.0)
        queue.schedule("b", lambda: None, delay=60.0)

        assert queue.pending_count() == 2
        assert queue.cancel_all() == 2
        assert queue.pending_count() == 0

    def test_flush_runs_pending_work_now(self, queue):
        ran = threading.Event()
        queue.schedule("key", ran.set, delay=60.0)

        assert queue.flush(timeout=5.0)
        assert ran.is_set()

    def test_failing_action_does_not_stop_worker(self, queue):
        ran = []

        def fail():
            raise RuntimeError("boom")

        queue.schedule("bad", fail, delay=0.0)
        assert queue.wait_idle(timeout=5.0)
        queue.schedule("good", lambda: ran.append("good"), delay=0.0)

        assert queue.wait_idle(timeout=5.0)
        assert ran == ["good"]

    def test_schedule_after_dispose_is_dropped(self):
        q = DebounceQueue()
        q.dispose()

        q.schedule("key", lambda: None, delay=0.0)

        assert q.pending_count() == 0


class TestInvalidationController:
    """Tests for applying filesystem events to the cache."""

    def _controller(self, queue, create_delay=0.01, change_delay=0.01):
        cache = BidirectionalMappingCache()
        cache.put(MappingEntry(INTERFACE, STATEMENT))
        scanner = Mock()
        controller = InvalidationController(
            cache, scanner, queue=queue, change_delay=change_delay, create_delay=create_delay
        )
        return controller, cache, scanner

    def test_delete_removes_pair_and_rescans_partner(self, queue):
        controller, cache, scanner = self._controller(queue)

        controller.handle_event(FileEvent(FileEventKind.DELETED, STATEMENT))

        # Both directions are gone before any queued work runs
        assert cache.get(INTERFACE) is None
        assert cache.get_reverse(STATEMENT) is None
        assert queue.flush(timeout=5.0)
        scanner.rescan_file.assert_called_once_with(INTERFACE)

    def test_delete_cancels_pending_rescan_of_same_file(self, queue):
        controller, cache, scanner = self._controller(queue)
        queue.schedule(STATEMENT, lambda: scanner.rescan_file(STATEMENT), delay=60.0)

        controller.handle_event(FileEvent(FileEventKind.DELETED, STATEMENT))

        assert queue.flush(timeout=5.0)
        assert [c.args for c in scanner.rescan_file.call_args_list] == [(INTERFACE,)]

    def test_delete_of_unmapped_file(self, queue):
        controller, cache, scanner = self._controller(queue)

        controller.handle_event(FileEvent(FileEventKind.DELETED, "/p/Other.xml"))

        assert queue.flush(timeout=5.0)
        assert len(cache) == 1
        scanner.rescan_file.assert_not_called()

    def test_change_invalidates_immediately_and_rescans_once(self, queue):
        controller, cache, scanner = self._controller(queue, change_delay=0.2)

        for _ in range(5):
            controller.handle_event(FileEvent(FileEventKind.CHANGED, INTERFACE))
        assert cache.get(INTERFACE) is None

        assert queue.wait_idle(timeout=5.0)
        scanner.rescan_file.assert_called_once_with(INTERFACE)

    def test_create_uses_its_own_delay(self, queue):
        controller, cache, scanner = self._controller(queue, create_delay=60.0)

        controller.handle_event(FileEvent(FileEventKind.CREATED, "/p/OrderMapper.java"))

        assert queue.pending_count() == 1
        scanner.rescan_file.assert_not_called()
        assert queue.flush(timeout=5.0)
        scanner.rescan_file.assert_called_once_with("/p/OrderMapper.java")

    def test_full_rescan_drops_pending_work(self, queue):
        controller, cache, scanner = self._controller(queue, create_delay=60.0)
        scanner.scan_all.return_value = 7
        controller.handle_event(FileEvent(FileEventKind.CREATED, "/p/OrderMapper.java"))

        assert controller.full_rescan() == 7
        assert queue.pending_count() == 0
        assert len(cache) == 0
        scanner.scan_all.assert_called_once_with(None)

    def test_attach_and_dispose(self, queue):
        controller, _, _ = self._controller(queue)
        watcher = Mock()

        controller.attach(watcher)
        watcher.register_callback.assert_called_once_with(controller.handle_event)

        controller.dispose()
        watcher.unregister_callback.assert_called_once_with(controller.handle_event)
        watcher.stop.assert_called_once()
