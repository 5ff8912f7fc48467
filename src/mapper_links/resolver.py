# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Resolution of statement files for interface files, and back.

Forward resolution is an ordered cascade of strategies. Each strategy
returns a path or None, and the first path wins:
1. QuickPathStrategy: conventional locations checked for existence only
2. CustomDirectoryStrategy: configured and discovered statement directories
3. PriorityDirectoryStrategy: candidates under conventional directories
4. PackagePathStrategy: candidates whose path mirrors the package
5. RemainingFileStrategy: every candidate not covered above

Steps 3 to 5 pair names through the NameMatcher and then verify the
statement file's namespace: a present namespace must equal the interface's
fully-qualified name, an absent one is accepted.

Candidates are supplied lazily. Steps 1 and 2 never touch them, so a quick
hit costs no directory scan.

Reverse resolution reads the statement file's namespace and looks for the
interface whose package and simple name produce it.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

from mapper_links.enumerator import WorkspaceEnumerator
from mapper_links.inspectors.base import DeclarationInspector
from mapper_links.inspectors.statement import StatementInspector
from mapper_links.matching import (
    NameMatcher,
    PathPriorityRanker,
    contains_directory,
    normalize_path,
    simple_name,
)
from mapper_links.models import INTERFACE_EXTENSION, STATEMENT_EXTENSION

logger = logging.getLogger(__name__)

CandidateSource = Union[Iterable[str], Callable[[], Iterable[str]]]

# Directory fragments that conventionally hold statement files
PRIORITY_FRAGMENTS = ("mapper", "mappers", "xml", "dao", "mybatis")

# First substitution that applies wins
RESOURCE_SUBSTITUTIONS = (
    ("src/main/java", "src/main/resources"),
    ("main/java", "main/resources"),
    ("src/java", "src/resources"),
    ("java", "resources"),
)

PROJECT_ROOT_MARKERS = ("pom.xml", "build.gradle", "build.gradle.kts", "package.json", ".git")


def find_project_root(start_dir: str, stop_at: Optional[str] = None) -> Optional[str]:
    """Walk up from start_dir to the nearest directory holding a build marker.

    Args:
        start_dir: Directory to start from
        stop_at: Directory above which the walk does not continue

    Returns:
        The project directory, or None if no marker is found
    """
    current = os.path.abspath(start_dir)
    boundary = os.path.abspath(stop_at) if stop_at else None
    while True:
        if any(os.path.exists(os.path.join(current, m)) for m in PROJECT_ROOT_MARKERS):
            return current
        if boundary is not None and current == boundary:
            return None
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def resources_directories(directory: str) -> Optional[Tuple[str, str]]:
    """Map a source directory to its resources counterparts.

    Returns:
        (resources root, resources directory mirroring the package), or None
        when the directory is not under a recognised source root
    """
    path = normalize_path(directory)
    for source, target in RESOURCE_SUBSTITUTIONS:
        match = re.search(r"(?:^|/)(" + re.escape(source) + r")(?=/|$)", path)
        if match:
            root = path[: match.start(1)] + target
            mirrored = root + path[match.end(1):]
            return os.path.normpath(root), os.path.normpath(mirrored)
    return None


class ResolutionContext:
    """State shared by the strategies of one forward resolution."""

    def __init__(
        self,
        interface_path: str,
        namespace: Optional[str],
        package: Optional[str],
        candidates: Optional[CandidateSource] = None,
        should_continue: Optional[Callable[[], bool]] = None,
        batch_size: int = 100,
    ):
        self.interface_path = interface_path
        self.simple_name = simple_name(interface_path)
        self.namespace = namespace
        self.package = package
        self._source = candidates
        self._candidates: Optional[List[str]] = None
        self.should_continue = should_continue
        self.batch_size = batch_size
        self.cancelled = False
        # Candidates already examined by an earlier filename strategy
        self.claimed: Set[str] = set()

    def candidates(self) -> List[str]:
        """Materialize the candidate list on first use."""
        if self._candidates is None:
            source = self._source
            if source is None:
                self._candidates = []
            elif callable(source):
                self._candidates = list(source())
            else:
                self._candidates = list(source)
        return self._candidates

    def in_batches(self, paths: Sequence[str]) -> Iterator[str]:
        """Yield paths, consulting the liveness check between batches."""
        for index, path in enumerate(paths):
            if index and index % self.batch_size == 0 and self.should_continue is not None:
                if not self.should_continue():
                    logger.debug(f"Resolution for {self.interface_path} cancelled after {index} candidates")
                    self.cancelled = True
                    return
            yield path


class ResolutionStrategy(ABC):
    """One step of the forward cascade."""

    name = "strategy"

    @abstractmethod
    def resolve(self, context: ResolutionContext) -> Optional[str]:
        """Return the statement file for context.interface_path, or None."""
        pass


class QuickPathStrategy(ResolutionStrategy):
    """Checks conventional locations for ``<SimpleName>.xml``."""

    name = "quick_path"

    def __init__(self, workspace_root: Optional[str] = None):
        self.workspace_root = workspace_root

    def possible_paths(self, interface_path: str) -> List[str]:
        """Conventional statement file locations, most likely first."""
        directory = os.path.dirname(os.path.abspath(interface_path))
        file_name = simple_name(interface_path) + STATEMENT_EXTENSION
        parent = os.path.dirname(directory)

        directories = [directory, os.path.join(directory, "mapper")]
        resources = resources_directories(directory)
        if resources is not None:
            resources_root, mirrored = resources
            directories.extend(
                [
                    os.path.join(resources_root, "mapper"),
                    resources_root,
                    os.path.join(resources_root, "xml"),
                    mirrored,
                ]
            )
        directories.extend(
            [
                os.path.join(parent, "resources", "mapper"),
                os.path.join(parent, "resources"),
                os.path.join(parent, "resources", "xml"),
                os.path.join(parent, "xml"),
            ]
        )
        project_root = find_project_root(directory, self.workspace_root)
        if project_root:
            directories.extend(
                [os.path.join(project_root, "xml"), os.path.join(project_root, "resources", "xml")]
            )

        paths: List[str] = []
        for candidate_dir in directories:
            path = os.path.join(os.path.normpath(candidate_dir), file_name)
            if path not in paths:
                paths.append(path)
        return paths

    def resolve(self, context: ResolutionContext) -> Optional[str]:
        for path in self.possible_paths(context.interface_path):
            if os.path.isfile(path):
                logger.debug(f"Quick path hit for {context.interface_path}: {path}")
                return path
        return None


class CustomDirectoryStrategy(ResolutionStrategy):
    """Looks for ``<SimpleName>.xml`` in configured and discovered directories."""

    name = "custom_directory"

    def __init__(
        self,
        statement_inspector: StatementInspector,
        directories: Callable[[], Sequence[str]],
        is_excluded: Optional[Callable[[str], bool]] = None,
    ):
        """Initialize CustomDirectoryStrategy.

        Args:
            statement_inspector: Reads namespaces of found files.
            directories: Returns absolute directories to search, in order.
            is_excluded: Directory-name check; matching subdirectories are
                not searched.
        """
        self.statement_inspector = statement_inspector
        self.directories = directories
        self.is_excluded = is_excluded

    def _find_in(self, directory: str, file_name: str) -> Iterator[str]:
        """Yield <directory>/<file_name> first, then matches in subdirectories."""
        direct = os.path.join(directory, file_name)
        if os.path.isfile(direct):
            yield direct
        for dirpath, dirnames, filenames in os.walk(directory):
            dirnames[:] = sorted(d for d in dirnames if not (self.is_excluded and self.is_excluded(d)))
            if dirpath != directory and file_name in filenames:
                yield os.path.join(dirpath, file_name)

    def resolve(self, context: ResolutionContext) -> Optional[str]:
        file_name = context.simple_name + STATEMENT_EXTENSION
        for directory in self.directories():
            if not os.path.isdir(directory):
                continue
            for path in self._find_in(directory, file_name):
                namespace = self.statement_inspector.parse_namespace(path)
                if namespace is None or namespace == context.namespace:
                    logger.debug(f"Custom directory hit for {context.interface_path}: {path}")
                    return path
                logger.debug(f"Rejected {path}: namespace {namespace} != {context.namespace}")
        return None


class FilenameMatchStrategy(ResolutionStrategy):
    """Shared name and namespace check for the candidate-based steps."""

    def __init__(
        self,
        matcher: NameMatcher,
        statement_inspector: StatementInspector,
        ranker: Optional[PathPriorityRanker] = None,
    ):
        self.matcher = matcher
        self.statement_inspector = statement_inspector
        self.ranker = ranker or PathPriorityRanker()

    @abstractmethod
    def select(self, context: ResolutionContext, candidates: Sequence[str]) -> List[str]:
        """Pick the candidates this step is responsible for."""
        pass

    def accepts(self, context: ResolutionContext, path: str) -> bool:
        namespace = self.statement_inspector.parse_namespace(path)
        if namespace is None:
            return True
        if namespace == context.namespace:
            return True
        logger.debug(f"Rejected {path}: namespace {namespace} != {context.namespace}")
        return False

    def resolve(self, context: ResolutionContext) -> Optional[str]:
        selected = [p for p in self.select(context, context.candidates()) if p not in context.claimed]
        context.claimed.update(selected)

        matches: List[str] = []
        for path in context.in_batches(self.ranker.rank(selected)):
            if not self.matcher.matches(context.simple_name, simple_name(path)):
                continue
            if self.accepts(context, path):
                matches.append(path)
        if context.cancelled or not matches:
            return None

        if len(matches) > 1:
            logger.warning(
                f"Ambiguous statement files for {context.interface_path}: using {matches[0]}, "
                f"also matched {', '.join(matches[1:])}"
            )
        return matches[0]


class PriorityDirectoryStrategy(FilenameMatchStrategy):
    """Candidates under mapper/, xml/, dao/ style directories.

    Configured priority directories only order candidates; they never
    widen this step.
    """

    name = "priority_directory"

    def select(self, context: ResolutionContext, candidates: Sequence[str]) -> List[str]:
        return [p for p in candidates if any(contains_directory(p, f) for f in PRIORITY_FRAGMENTS)]


class PackagePathStrategy(FilenameMatchStrategy):
    """Candidates whose path contains the interface package as directories."""

    name = "package_path"

    def select(self, context: ResolutionContext, candidates: Sequence[str]) -> List[str]:
        if not context.package:
            return []
        fragment = context.package.replace(".", "/")
        return [p for p in candidates if contains_directory(p, fragment)]


class RemainingFileStrategy(FilenameMatchStrategy):
    """Every candidate not claimed by an earlier step."""

    name = "remaining"

    def select(self, context: ResolutionContext, candidates: Sequence[str]) -> List[str]:
        return list(candidates)


class ResolutionEngine:
    """Resolves statement files for interface files and interface files for statement files.

    Usage:
        engine = ResolutionEngine(inspector, statement_inspector, matcher, ranker)
        statement = engine.resolve("/p/src/main/java/com/x/UserMapper.java", candidates)
    """

    def __init__(
        self,
        declaration_inspector: DeclarationInspector,
        statement_inspector: StatementInspector,
        matcher: Optional[NameMatcher] = None,
        ranker: Optional[PathPriorityRanker] = None,
        enumerator: Optional[WorkspaceEnumerator] = None,
        custom_directories: Optional[Callable[[], Sequence[str]]] = None,
        strategies: Optional[List[ResolutionStrategy]] = None,
    ):
        """Initialize ResolutionEngine.

        Args:
            declaration_inspector: Reads packages and namespaces of interface files.
            statement_inspector: Reads namespaces of statement files.
            matcher: Name pairing; defaults to plain suffix stripping.
            ranker: Candidate ordering; defaults to no priority.
            enumerator: Default candidate source when a call passes none.
            custom_directories: Returns absolute custom statement directories.
            strategies: Replaces the default cascade (mostly for tests).
        """
        self.declaration_inspector = declaration_inspector
        self.statement_inspector = statement_inspector
        self.matcher = matcher or NameMatcher(ignored_suffixes=["Mapper", "Dao", "Repository", "Service"])
        self.ranker = ranker or PathPriorityRanker()
        self.enumerator = enumerator

        workspace_root = str(enumerator.project_root) if enumerator else None
        self.quick_path = QuickPathStrategy(workspace_root)
        if strategies is None:
            strategies = [
                self.quick_path,
                CustomDirectoryStrategy(
                    statement_inspector,
                    custom_directories or (lambda: []),
                    enumerator.is_excluded_dir_name if enumerator else None,
                ),
                PriorityDirectoryStrategy(self.matcher, statement_inspector, self.ranker),
                PackagePathStrategy(self.matcher, statement_inspector, self.ranker),
                RemainingFileStrategy(self.matcher, statement_inspector, self.ranker),
            ]
        self.strategies = strategies

    def _default_statement_candidates(self) -> List[str]:
        if self.enumerator is None:
            return []
        return self.enumerator.list_statement_files()

    def _default_interface_candidates(self) -> List[str]:
        if self.enumerator is None:
            return []
        return self.enumerator.list_interface_files()

    def _context(
        self,
        interface_path: str,
        candidates: Optional[CandidateSource],
        should_continue: Optional[Callable[[], bool]],
        batch_size: int,
    ) -> ResolutionContext:
        return ResolutionContext(
            interface_path,
            namespace=self.declaration_inspector.parse_namespace(interface_path),
            package=self.declaration_inspector.parse_package(interface_path),
            candidates=candidates if candidates is not None else self._default_statement_candidates,
            should_continue=should_continue,
            batch_size=batch_size,
        )

    def get_possible_statement_paths(self, interface_path: str) -> List[str]:
        """Conventional statement file locations tried by the quick path."""
        return self.quick_path.possible_paths(interface_path)

    def resolve_quick(self, interface_path: str) -> Optional[str]:
        """Run the quick-path step only."""
        context = ResolutionContext(interface_path, namespace=None, package=None)
        return self.quick_path.resolve(context)

    def resolve(
        self,
        interface_path: str,
        candidates: Optional[CandidateSource] = None,
        should_continue: Optional[Callable[[], bool]] = None,
        batch_size: int = 100,
        skip_quick_path: bool = False,
    ) -> Optional[str]:
        """Find the statement file for an interface file.

        Args:
            interface_path: Interface file to resolve.
            candidates: Statement file paths, or a callable returning them.
                Only materialized if a candidate-based step runs.
            should_continue: Liveness check consulted between batches.
            batch_size: Candidates processed between liveness checks.
            skip_quick_path: Start at the custom-directory step.

        Returns:
            Statement file path, or None when no statement file is associated
        """
        context = self._context(interface_path, candidates, should_continue, batch_size)
        for strategy in self.strategies:
            if skip_quick_path and strategy is self.quick_path:
                continue
            result = strategy.resolve(context)
            if result is not None:
                logger.debug(f"Resolved {interface_path} -> {result} via {strategy.name}")
                return result
            if context.cancelled:
                return None
        logger.debug(f"No statement file associated with {interface_path}")
        return None

    def quick_interface_paths(self, statement_path: str, namespace: str) -> List[str]:
        """Conventional interface locations for a namespace.

        The namespace is mirrored under the source roots of the module
        holding the statement file.
        """
        relative = os.path.join(*namespace.split(".")) + INTERFACE_EXTENSION
        directory = os.path.dirname(os.path.abspath(statement_path))
        workspace_root = str(self.enumerator.project_root) if self.enumerator else None
        module_root = find_project_root(directory, workspace_root)
        paths: List[str] = []
        if module_root:
            for source_root in ("src/main/java", "src/java", "java", "src"):
                paths.append(os.path.join(module_root, source_root, relative))
        return paths

    def resolve_interface(
        self,
        statement_path: str,
        interface_candidates: Optional[CandidateSource] = None,
    ) -> Optional[str]:
        """Find the interface file a statement file belongs to.

        Args:
            statement_path: Statement file to resolve.
            interface_candidates: Interface file paths, or a callable
                returning them.

        Returns:
            Interface file path, or None if the namespace is missing or no
            interface declares it
        """
        namespace = self.statement_inspector.parse_namespace(statement_path)
        if not namespace:
            logger.debug(f"No namespace in {statement_path}")
            return None

        if "." in namespace:
            for path in self.quick_interface_paths(statement_path, namespace):
                if os.path.isfile(path):
                    return path

        if interface_candidates is None:
            interface_candidates = self._default_interface_candidates
        return self.find_interface_by_class_name(namespace, interface_candidates)

    def find_interface_by_class_name(
        self,
        class_name: str,
        candidates: Optional[CandidateSource] = None,
    ) -> Optional[str]:
        """Find the file declaring a simple or fully-qualified class name.

        A simple name matches by file name alone; a qualified name must also
        match the declared package.
        """
        if candidates is None:
            candidates = self._default_interface_candidates
        paths = candidates() if callable(candidates) else candidates
        simple = class_name.rsplit(".", 1)[-1]

        for path in paths:
            if simple_name(path) != simple:
                continue
            if "." not in class_name:
                return path
            if self.declaration_inspector.parse_namespace(path) == class_name:
                return path
        return None
