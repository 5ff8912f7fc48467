# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for FileWatcher."""

import time
from unittest.mock import Mock

import pytest
from conftest import write_file
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileMovedEvent

from mapper_links.enumerator import WorkspaceEnumerator
from mapper_links.file_watcher import FileWatcher
from mapper_links.models import FileEvent, FileEventKind


@pytest.fixture
def watcher(project):
    w = FileWatcher(WorkspaceEnumerator(str(project), exclude_directories=["target"]))
    yield w
    w.stop()


class TestFileWatcher:
    """Tests for event filtering and dispatch."""

    def test_initialization(self, project, watcher):
        assert watcher.project_root == project
        assert not watcher.is_running()

    def test_is_tracked(self, project, watcher):
        assert watcher.is_tracked(str(project / "src/main/java/com/x/UserMapper.java"))
        assert watcher.is_tracked(str(project / "src/main/resources/mapper/UserMapper.xml"))
        assert not watcher.is_tracked(str(project / "README.md"))
        assert not watcher.is_tracked(str(project / "target/classes/UserMapper.xml"))
        assert not watcher.is_tracked("/elsewhere/UserMapper.xml")

    def test_dispatch_to_callbacks(self, project, watcher):
        callback = Mock()
        watcher.register_callback(callback)
        path = str(project / "src/main/resources/mapper/UserMapper.xml")

        watcher.dispatch(FileEventKind.CHANGED, path)

        callback.assert_called_once_with(FileEvent(FileEventKind.CHANGED, path))

    def test_untracked_events_dropped(self, project, watcher):
        callback = Mock()
        watcher.register_callback(callback)

        watcher.dispatch(FileEventKind.CREATED, str(project / "notes.txt"))

        callback.assert_not_called()

    def test_failing_callback_does_not_block_others(self, project, watcher):
        failing = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        watcher.register_callback(failing)
        watcher.register_callback(healthy)

        watcher.dispatch(FileEventKind.DELETED, str(project / "src/main/java/com/x/UserMapper.java"))

        failing.assert_called_once()
        healthy.assert_called_once()

    def test_register_twice_and_unregister(self, project, watcher):
        callback = Mock()
        watcher.register_callback(callback)
        watcher.register_callback(callback)

        watcher.dispatch(FileEventKind.CHANGED, str(project / "src/main/java/com/x/UserMapper.java"))
        assert callback.call_count == 1

        watcher.unregister_callback(callback)
        watcher.dispatch(FileEventKind.CHANGED, str(project / "src/main/java/com/x/UserMapper.java"))
        assert callback.call_count == 1


class TestFileEventHandler:
    """Tests for the translation of watchdog events."""

    def test_move_becomes_delete_and_create(self, project, watcher):
        events = []
        watcher.register_callback(events.append)
        old = str(project / "src/main/resources/mapper/UserMapper.xml")
        new = str(project / "src/main/resources/mapper/AccountMapper.xml")

        watcher._event_handler.on_moved(FileMovedEvent(old, new))

        assert events == [
            FileEvent(FileEventKind.DELETED, old),
            FileEvent(FileEventKind.CREATED, new),
        ]

    def test_directory_events_ignored(self, project, watcher):
        callback = Mock()
        watcher.register_callback(callback)

        watcher._event_handler.on_created(DirCreatedEvent(str(project / "src/main/resources/new.xml")))

        callback.assert_not_called()

    def test_created_file(self, project, watcher):
        callback = Mock()
        watcher.register_callback(callback)
        path = str(project / "src/main/java/com/x/OrderMapper.java")

        watcher._event_handler.on_created(FileCreatedEvent(path))

        callback.assert_called_once_with(FileEvent(FileEventKind.CREATED, path))


@pytest.mark.integration
class TestFileWatcherObserver:
    """Tests against a real watchdog observer."""

    def test_start_stop(self, watcher):
        watcher.start()
        assert watcher.is_running()

        with pytest.raises(RuntimeError):
            watcher.start()

        watcher.stop()
        assert not watcher.is_running()

    def test_reports_new_statement_file(self, project, watcher):
        events = []
        watcher.register_callback(events.append)
        watcher.start()
        time.sleep(0.2)

        path = write_file(project / "src/main/resources/mapper/OrderMapper.xml", "<mapper/>\n")

        deadline = time.time() + 5.0
        while time.time() < deadline and not any(e.path == str(path) for e in events):
            time.sleep(0.05)

        assert any(e.path == str(path) for e in events)
