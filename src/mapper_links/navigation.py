# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Navigation between interface methods and statements.

Each navigation request walks a small state machine and records the states
it visited in NavigationResult.trace:

    cache_lookup -> quick_path_lookup -> full_scan_lookup
        -> [external_service_lookup] -> resolved | failed

Resolution (everything up to knowing the target file) runs on a worker
thread under a deadline. On expiry the request fails and whatever the
worker later produces is discarded. Failures are returned, never raised.

Cache entries whose target has disappeared are evicted on sight and
resolution continues as if the cache had missed.
"""

import concurrent.futures
import logging
import os
import re
import threading
from typing import Callable, Iterator, List, Optional

from mapper_links.enumerator import WorkspaceEnumerator
from mapper_links.editor import LanguageService
from mapper_links.inspectors.declaration import (
    METHOD_DECLARATION_PATTERN,
    NON_DECLARATION_WORDS,
    is_comment_or_blank,
)
from mapper_links.inspectors.statement import STATEMENT_TAGS
from mapper_links.mapping_cache import BidirectionalMappingCache
from mapper_links.models import MappingEntry, NavigationResult, NavigationState, Position
from mapper_links.resolver import ResolutionEngine

logger = logging.getLogger(__name__)

# How far above the cursor an enclosing method or statement is searched for
MAX_IDENTIFIER_SCAN_LINES = 50

STATEMENT_OPEN_TAG_PATTERN = re.compile(r"<" + STATEMENT_TAGS + r"\b[^>]*?\bid\s*=\s*[\"']([^\"']+)[\"']")

LivenessCheck = Callable[[], bool]


def extract_identifier(lines: List[str], cursor_line: int, statement_file: bool) -> Optional[str]:
    """Find the method name or statement id the cursor is in.

    Scans from the cursor line upwards, at most MAX_IDENTIFIER_SCAN_LINES
    lines. In interface files blank and comment lines are skipped.

    Args:
        lines: Document lines
        cursor_line: Zero-based cursor line
        statement_file: True for statement files, False for interface files

    Returns:
        Statement id or method name, or None if nothing was found
    """
    if not lines:
        return None
    start = min(max(cursor_line, 0), len(lines) - 1)
    stop = max(start - MAX_IDENTIFIER_SCAN_LINES, -1)

    for line_number in range(start, stop, -1):
        line = lines[line_number]
        if statement_file:
            match = STATEMENT_OPEN_TAG_PATTERN.search(line)
            if match:
                return match.group(1)
            continue
        if is_comment_or_blank(line):
            continue
        match = METHOD_DECLARATION_PATTERN.search(line)
        if match and match.group("rtype").strip() not in NON_DECLARATION_WORDS:
            return match.group("name")
    return None


class _Navigator:
    """Shared deadline and cache handling for both directions."""

    def __init__(
        self,
        engine: ResolutionEngine,
        cache: BidirectionalMappingCache,
        enumerator: WorkspaceEnumerator,
        pool: concurrent.futures.ThreadPoolExecutor,
        timeout: float = 5.0,
        batch_size: int = 100,
    ):
        self.engine = engine
        self.cache = cache
        self.enumerator = enumerator
        self.pool = pool
        self.timeout = timeout
        self.batch_size = batch_size

    def _batched(self, paths: Iterator[str], should_continue: Optional[LivenessCheck]) -> List[str]:
        """Materialize enumerated paths, checking liveness between batches."""
        collected: List[str] = []
        for path in paths:
            if collected and len(collected) % self.batch_size == 0 and should_continue is not None:
                if not should_continue():
                    logger.debug(f"Enumeration stopped after {len(collected)} files")
                    break
            collected.append(path)
        return collected

    def _commit(self, entry: MappingEntry) -> None:
        # Runs on the caller thread once the deadline was met; re-checks after the I/O
        if os.path.isfile(entry.interface_path) and os.path.isfile(entry.statement_path):
            self.cache.put(entry)

    def _evict_if_stale(self, source_path: str, target_path: str) -> bool:
        if os.path.isfile(target_path):
            return False
        logger.info(f"Evicting stale mapping {source_path} -> {target_path}")
        self.cache.remove(source_path)
        return True

    def _run_with_deadline(
        self,
        resolve: Callable[[List[str], LivenessCheck], Optional[str]],
        trace: List[str],
        description: str,
        should_continue: Optional[LivenessCheck] = None,
    ) -> NavigationResult:
        """Run resolve(trace, still_wanted) on the pool and turn its outcome into a result.

        still_wanted turns False once the deadline has passed, so a scan
        still running on the worker stops at its next batch boundary.

        Returns:
            A RESOLVED result with target_path set, or a FAILED one
        """
        abandoned = threading.Event()

        def still_wanted() -> bool:
            if abandoned.is_set():
                return False
            return should_continue is None or should_continue()

        worker_trace: List[str] = []
        future = self.pool.submit(resolve, worker_trace, still_wanted)
        try:
            target = future.result(timeout=self.timeout)
        except concurrent.futures.TimeoutError:
            abandoned.set()
            future.cancel()
            trace.extend(worker_trace)
            trace.append(NavigationState.FAILED)
            logger.warning(f"Navigation timed out after {self.timeout}s: {description}")
            return NavigationResult(
                NavigationState.FAILED,
                reason=f"Navigation timed out after {self.timeout:g} seconds",
                trace=trace,
            )
        except Exception as e:
            trace.extend(worker_trace)
            trace.append(NavigationState.FAILED)
            logger.error(f"Navigation failed unexpectedly for {description}: {e}")
            return NavigationResult(NavigationState.FAILED, reason=str(e), trace=trace)

        trace.extend(worker_trace)
        if target is None:
            trace.append(NavigationState.FAILED)
            return NavigationResult(NavigationState.FAILED, trace=trace)
        return NavigationResult(NavigationState.RESOLVED, target_path=target, trace=trace)


class InterfaceToStatementNavigator(_Navigator):
    """Finds the statement file, and statement, for an interface method."""

    def _resolve(self, interface_path: str, trace: List[str], should_continue: LivenessCheck) -> Optional[str]:
        trace.append(NavigationState.CACHE_LOOKUP)
        if not os.path.isfile(interface_path):
            self.cache.remove(interface_path)
            return None
        cached = self.cache.get(interface_path)
        if cached is not None and not self._evict_if_stale(interface_path, cached):
            return cached

        trace.append(NavigationState.QUICK_PATH_LOOKUP)
        statement_path = self.engine.resolve_quick(interface_path)

        if statement_path is None:
            trace.append(NavigationState.FULL_SCAN_LOOKUP)
            statement_path = self.engine.resolve(
                interface_path,
                lambda: self._batched(self.enumerator.iter_statement_files(), should_continue),
                should_continue=should_continue,
                batch_size=self.batch_size,
                skip_quick_path=True,
            )
        return statement_path

    def navigate(
        self,
        interface_path: str,
        method_name: Optional[str] = None,
        should_continue: Optional[LivenessCheck] = None,
    ) -> NavigationResult:
        """Resolve the statement file for interface_path and the statement for method_name.

        Args:
            interface_path: Interface file the request starts from.
            method_name: Statement id to place the cursor on; None targets the file.
            should_continue: Liveness check consulted between scan batches.

        Returns:
            NavigationResult; position is None when only the file is known
        """
        trace: List[str] = []
        result = self._run_with_deadline(
            lambda worker_trace, still_wanted: self._resolve(interface_path, worker_trace, still_wanted),
            trace,
            interface_path,
            should_continue,
        )
        if not result.resolved:
            if result.reason is None:
                result.reason = f"No statement file found for {os.path.basename(interface_path)}"
            return result
        self._commit(MappingEntry(interface_path, result.target_path))

        if method_name:
            position = self.engine.statement_inspector.find_statement_position(
                result.target_path, method_name
            )
            if position is None:
                logger.debug(f"Statement {method_name} not in {result.target_path}, targeting file")
            result.position = position
        trace.append(NavigationState.RESOLVED)
        return result


class StatementToInterfaceNavigator(_Navigator):
    """Finds the interface file, and method, for a statement."""

    def __init__(self, *args, language_service: Optional[LanguageService] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.language_service = language_service

    def _resolve(self, statement_path: str, trace: List[str], should_continue: LivenessCheck) -> Optional[str]:
        trace.append(NavigationState.CACHE_LOOKUP)
        if not os.path.isfile(statement_path):
            self.cache.remove(statement_path)
            return None
        cached = self.cache.get_reverse(statement_path)
        if cached is not None and not self._evict_if_stale(statement_path, cached):
            return cached

        namespace = self.engine.statement_inspector.parse_namespace(statement_path)
        if not namespace:
            logger.debug(f"No namespace in {statement_path}")
            return None

        trace.append(NavigationState.QUICK_PATH_LOOKUP)
        interface_path = None
        if "." in namespace:
            for path in self.engine.quick_interface_paths(statement_path, namespace):
                if os.path.isfile(path):
                    interface_path = path
                    break

        if interface_path is None:
            trace.append(NavigationState.FULL_SCAN_LOOKUP)
            interface_path = self.engine.find_interface_by_class_name(
                namespace,
                lambda: self._batched(self.enumerator.iter_interface_files(), should_continue),
            )
        return interface_path

    def _external_position(self, interface_path: str, method_name: str) -> Optional[Position]:
        service = self.language_service
        if service is None:
            return None
        try:
            if not service.is_ready():
                return None
            return service.find_method_position(interface_path, method_name)
        except Exception as e:
            logger.warning(f"Language service lookup failed for {method_name}: {e}")
            return None

    def navigate(
        self,
        statement_path: str,
        statement_id: Optional[str] = None,
        should_continue: Optional[LivenessCheck] = None,
    ) -> NavigationResult:
        """Resolve the interface file for statement_path and the method for statement_id.

        When statement_id names no method, the last method of the interface
        is targeted instead.
        """
        trace: List[str] = []
        result = self._run_with_deadline(
            lambda worker_trace, still_wanted: self._resolve(statement_path, worker_trace, still_wanted),
            trace,
            statement_path,
            should_continue,
        )
        if not result.resolved:
            if result.reason is None:
                result.reason = f"No interface file found for {os.path.basename(statement_path)}"
            return result
        self._commit(MappingEntry(result.target_path, statement_path))

        if statement_id:
            if self.language_service is not None:
                trace.append(NavigationState.EXTERNAL_SERVICE_LOOKUP)
                position = self._external_position(result.target_path, statement_id)
                if position is not None:
                    result.position = position
                    trace.append(NavigationState.RESOLVED)
                    return result

            inspector = self.engine.declaration_inspector
            position = inspector.find_method_position(result.target_path, statement_id)
            if position is None:
                logger.debug(f"Method {statement_id} not in {result.target_path}, using last method")
                position = inspector.find_last_method_position(result.target_path)
            result.position = position
        trace.append(NavigationState.RESOLVED)
        return result
