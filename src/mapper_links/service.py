# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""MapperNavigationService - owner of every navigation component.

The service constructs the components once, wires them together and exposes
the operations hosts call. Nothing here is a module-level singleton: two
services over two workspaces share no state.

Owned Components:
- WorkspaceEnumerator: lists candidate files
- Inspectors: classifier, declaration and statement inspectors
- ResolutionEngine: forward and reverse resolution cascade
- BidirectionalMappingCache: resolved pairings
- FileWatcher + InvalidationController: keeps the cache fresh
- Navigators + JumpExecutor: turn a request into a cursor move

Every constructor argument except the configuration has a default, so
tests replace only what they need.
"""

import concurrent.futures
import logging
import os
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

from mapper_links.config import Config
from mapper_links.editor import EditorHost, HeadlessEditor, LanguageService
from mapper_links.enumerator import WorkspaceEnumerator
from mapper_links.file_watcher import FileWatcher
from mapper_links.inspectors import (
    DeclarationInspector,
    InterfaceClassifier,
    RegexDeclarationInspector,
    StatementInspector,
)
from mapper_links.invalidation import DebounceQueue, InvalidationController
from mapper_links.jump_executor import JumpExecutor
from mapper_links.location_resolver import MapperLocationResolver
from mapper_links.mapping_cache import BidirectionalMappingCache
from mapper_links.matching import NameMatcher, PathPriorityRanker
from mapper_links.models import (
    INTERFACE_EXTENSION,
    STATEMENT_EXTENSION,
    JumpKind,
    MethodParameter,
    NavigationResult,
    NavigationState,
)
from mapper_links.navigation import (
    InterfaceToStatementNavigator,
    StatementToInterfaceNavigator,
    extract_identifier,
)
from mapper_links.resolver import ResolutionEngine
from mapper_links.scanner import MappingScanner

logger = logging.getLogger(__name__)

NAVIGATION_WORKERS = 4


class MapperNavigationService:
    """Navigation engine for one workspace.

    Usage:
        service = MapperNavigationService(Config(), project_root="/path/to/project")
        service.refresh_all_mappings()
        service.start_file_watcher()
        result = service.jump_to("/path/to/UserMapper.java", "findById")
        service.shutdown()
    """

    def __init__(
        self,
        config: Config,
        project_root: Optional[str] = None,
        editor: Optional[EditorHost] = None,
        language_service: Optional[LanguageService] = None,
        cache: Optional[BidirectionalMappingCache] = None,
        enumerator: Optional[WorkspaceEnumerator] = None,
        declaration_inspector: Optional[DeclarationInspector] = None,
        statement_inspector: Optional[StatementInspector] = None,
        classifier: Optional[InterfaceClassifier] = None,
        file_watcher: Optional[FileWatcher] = None,
        debounce_queue: Optional[DebounceQueue] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the service with its dependencies.

        Args:
            config: Validated configuration.
            project_root: Workspace root. Defaults to the current directory.
            editor: Editor host. Defaults to a HeadlessEditor.
            language_service: Optional precise method locator.
            cache: Mapping cache. Defaults to a new, empty cache.
            enumerator: Candidate file source. Built from config if omitted.
            declaration_inspector: Interface source inspector.
            statement_inspector: Statement file inspector.
            classifier: Mapper interface classifier.
            file_watcher: Filesystem watcher. Built over the enumerator if omitted.
            debounce_queue: Queue for debounced rescans.
            clock: Monotonic time source for the jump throttle.
        """
        self.config = config
        self.project_root = str(Path(project_root or os.getcwd()).resolve())

        self.editor = editor or HeadlessEditor()
        self.enumerator = enumerator or WorkspaceEnumerator(
            self.project_root,
            exclude_directories=config.exclude_directories,
            include_test_directories=config.include_test_directories,
        )
        self.declaration_inspector = declaration_inspector or RegexDeclarationInspector()
        self.statement_inspector = statement_inspector or StatementInspector()
        self.classifier = classifier or InterfaceClassifier()
        self.cache = cache if cache is not None else BidirectionalMappingCache()

        self.location_resolver = MapperLocationResolver(self.enumerator)
        self._discovered_directories: Optional[List[str]] = None

        self.engine = ResolutionEngine(
            self.declaration_inspector,
            self.statement_inspector,
            matcher=NameMatcher(config.name_matching_rules, config.ignored_suffixes),
            ranker=PathPriorityRanker(config.path_priority),
            enumerator=self.enumerator,
            custom_directories=self.custom_statement_directories,
        )

        self.scanner = MappingScanner(
            self.enumerator,
            self.classifier,
            self.engine,
            self.cache,
            batch_size=config.scan_batch_size,
        )
        self.invalidation = InvalidationController(
            self.cache,
            self.scanner,
            queue=debounce_queue,
            change_delay=config.debounce_interval_seconds,
            create_delay=config.create_debounce_seconds,
        )
        self._file_watcher = file_watcher or FileWatcher(self.enumerator)
        self.invalidation.attach(self._file_watcher)
        self._watcher_running = False

        self._pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=NAVIGATION_WORKERS, thread_name_prefix="mapper-links-nav"
        )
        navigator_args = dict(
            engine=self.engine,
            cache=self.cache,
            enumerator=self.enumerator,
            pool=self._pool,
            timeout=config.navigation_timeout_seconds,
            batch_size=config.scan_batch_size,
        )
        self.statement_navigator = InterfaceToStatementNavigator(**navigator_args)
        self.interface_navigator = StatementToInterfaceNavigator(
            language_service=language_service, **navigator_args
        )
        self.jump_executor = JumpExecutor(
            self.editor,
            open_mode=config.file_open_mode,
            cooldown=config.jump_throttle_seconds,
            clock=clock,
        )

        logger.info(f"MapperNavigationService initialized for {self.project_root}")

    def custom_statement_directories(self) -> List[str]:
        """Configured plus discovered statement directories, as absolute paths."""
        directories: List[str] = []
        for directory in self.config.custom_statement_directories:
            path = directory if os.path.isabs(directory) else os.path.join(self.project_root, directory)
            directories.append(os.path.normpath(path))

        if self.config.discover_mapper_locations:
            if self._discovered_directories is None:
                self._discovered_directories = self.location_resolver.resolve_directories()
            for directory in self._discovered_directories:
                if directory not in directories:
                    directories.append(directory)
        return directories

    # Navigation

    def _finish(self, result: NavigationResult, kind: str) -> NavigationResult:
        if result.resolved:
            assert result.target_path is not None
            result.jumped = self.jump_executor.jump(result.target_path, result.position, kind)
            if not result.jumped:
                logger.info(f"Resolved {result.target_path} but did not jump")
        else:
            self.editor.show_info(result.reason or "No corresponding file found")
        return result

    def _failed(self, reason: str) -> NavigationResult:
        result = NavigationResult(
            NavigationState.FAILED, reason=reason, trace=[NavigationState.FAILED]
        )
        self.editor.show_info(reason)
        return result

    def jump_to_statement_file(self) -> NavigationResult:
        """Jump from the active interface file to the statement for the method at the cursor."""
        active = self.editor.active_file()
        if active is None or not active.endswith(INTERFACE_EXTENSION):
            return self._failed("The active editor is not an interface file")

        cursor = self.editor.active_cursor_line() or 0
        method_name = extract_identifier(self.editor.active_lines(), cursor, statement_file=False)
        result = self.statement_navigator.navigate(
            active, method_name, should_continue=lambda: self.editor.active_file() == active
        )
        return self._finish(result, JumpKind.STATEMENT)

    def jump_to_interface_file(self) -> NavigationResult:
        """Jump from the active statement file to the method for the statement at the cursor."""
        active = self.editor.active_file()
        if active is None or not active.endswith(STATEMENT_EXTENSION):
            return self._failed("The active editor is not a statement file")

        cursor = self.editor.active_cursor_line() or 0
        statement_id = extract_identifier(self.editor.active_lines(), cursor, statement_file=True)
        result = self.interface_navigator.navigate(
            active, statement_id, should_continue=lambda: self.editor.active_file() == active
        )
        return self._finish(result, JumpKind.INTERFACE)

    def jump_to(self, file_path: str, identifier: Optional[str] = None) -> NavigationResult:
        """Jump from a known file to its counterpart.

        Args:
            file_path: Interface or statement file the request starts from.
            identifier: Method name or statement id to place the cursor on.

        Returns:
            NavigationResult describing the target
        """
        file_path = str(Path(file_path).resolve())
        if file_path.endswith(INTERFACE_EXTENSION):
            result = self.statement_navigator.navigate(file_path, identifier)
            return self._finish(result, JumpKind.STATEMENT)
        if file_path.endswith(STATEMENT_EXTENSION):
            result = self.interface_navigator.navigate(file_path, identifier)
            return self._finish(result, JumpKind.INTERFACE)
        return self._failed(f"Not an interface or statement file: {file_path}")

    def resolve_statement_file(self, interface_path: str) -> Optional[str]:
        """Resolve (and cache) the statement file of an interface file without jumping."""
        result = self.statement_navigator.navigate(str(Path(interface_path).resolve()))
        return result.target_path if result.resolved else None

    def resolve_interface_file(self, statement_path: str) -> Optional[str]:
        """Resolve (and cache) the interface file of a statement file without jumping."""
        result = self.interface_navigator.navigate(str(Path(statement_path).resolve()))
        return result.target_path if result.resolved else None

    # Mappings

    def refresh_all_mappings(self) -> int:
        """Clear the cache and rescan the whole workspace.

        Returns:
            Number of mappings established
        """
        self._discovered_directories = None
        return self.invalidation.full_rescan()

    def get_mappings(self) -> Dict[str, str]:
        """Copy of the interface -> statement mappings."""
        return self.cache.snapshot()

    def get_reverse_mappings(self) -> Dict[str, str]:
        """Copy of the statement -> interface mappings."""
        return self.cache.reverse_snapshot()

    def get_possible_statement_paths(self, interface_path: str) -> List[str]:
        return self.engine.get_possible_statement_paths(interface_path)

    def find_interface_by_class_name(self, class_name: str) -> Optional[str]:
        return self.engine.find_interface_by_class_name(class_name)

    # Inspection

    def parse_statement_namespace(self, statement_path: str) -> Optional[str]:
        """Namespace declared by a statement file, or None."""
        return self.statement_inspector.parse_namespace(statement_path)

    def list_statement_ids(self, statement_path: str) -> List[str]:
        """Statement ids declared by a statement file, in document order."""
        return self.statement_inspector.list_statement_ids(statement_path)

    def extract_parameters(self, namespace: str, method_name: str) -> Optional[List[MethodParameter]]:
        """Parameters of a mapper method, with one level of field names.

        Args:
            namespace: Fully-qualified (or simple) interface name
            method_name: Method to inspect

        Returns:
            Parameters in declaration order, or None if the interface or
            method cannot be found
        """
        class_files = self.enumerator.list_interface_files()
        interface_path = self.engine.find_interface_by_class_name(namespace, class_files)
        if interface_path is None:
            logger.debug(f"No interface file declares {namespace}")
            return None
        return self.declaration_inspector.extract_parameters(
            interface_path,
            method_name,
            class_locator=lambda name: self.engine.find_interface_by_class_name(name, class_files),
        )

    # Lifecycle

    def start_file_watcher(self) -> None:
        """Start watching the workspace for interface and statement file changes."""
        if not self._watcher_running:
            self._file_watcher.start()
            self._watcher_running = True

    def stop_file_watcher(self) -> None:
        if self._watcher_running:
            self._file_watcher.stop()
            self._watcher_running = False

    def shutdown(self) -> None:
        """Stop the watcher, drop pending rescans and release worker threads."""
        logger.info("MapperNavigationService shutting down...")
        self.stop_file_watcher()
        self.invalidation.dispose()
        self._pool.shutdown(wait=False, cancel_futures=True)
        logger.info("MapperNavigationService shutdown complete")
