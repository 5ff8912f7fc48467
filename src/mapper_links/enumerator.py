# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Workspace enumeration of candidate interface and statement files.

The enumerator walks the project root once per call and yields paths lazily,
pruning excluded directories before descending into them. Two disjoint
populations are produced, selected by extension:
- interface files (.java)
- statement files (.xml)

Callers that run on a user action (quick checks) pass a limit; full rescans
pass none. Enumeration never writes anything.
"""

import fnmatch
import logging
import os
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Set

from mapper_links.models import INTERFACE_EXTENSION, STATEMENT_EXTENSION

logger = logging.getLogger(__name__)


class WorkspaceEnumerator:
    """Lists candidate files under a project root.

    Usage:
        enumerator = WorkspaceEnumerator("/path/to/project")
        for path in enumerator.iter_statement_files(limit=100):
            ...
    """

    # Always skipped, whatever the configuration says
    ALWAYS_IGNORED = {
        ".git",
        ".svn",
        ".hg",
        ".idea",
        ".vscode",
        "node_modules",
    }

    TEST_DIRECTORIES = {"test", "tests"}

    def __init__(
        self,
        project_root: str,
        exclude_directories: Optional[Iterable[str]] = None,
        include_test_directories: bool = False,
    ):
        """Initialize WorkspaceEnumerator.

        Args:
            project_root: Root directory to enumerate.
            exclude_directories: Directory names or glob patterns to skip
                (e.g. "target", "build", "*.egg-info").
            include_test_directories: Whether test/ and tests/ are enumerated.
        """
        self.project_root = Path(project_root).resolve()
        self.exclude_directories: Set[str] = set(self.ALWAYS_IGNORED)
        if exclude_directories:
            self.exclude_directories.update(exclude_directories)
        self.include_test_directories = include_test_directories

    def is_excluded_dir_name(self, name: str) -> bool:
        """Check a single directory name against the exclusion rules."""
        if not self.include_test_directories and name in self.TEST_DIRECTORIES:
            return True
        for pattern in self.exclude_directories:
            if "*" in pattern or "?" in pattern:
                if fnmatch.fnmatch(name, pattern):
                    return True
            elif name == pattern:
                return True
        return False

    def is_in_workspace(self, file_path: str) -> bool:
        """Check if a path lies inside the project root."""
        try:
            Path(file_path).resolve().relative_to(self.project_root)
            return True
        except ValueError:
            return False

    def should_ignore(self, file_path: str) -> bool:
        """Check if a path is outside the root or inside an excluded directory.

        Args:
            file_path: Absolute or root-relative file path

        Returns:
            True if the file must not be tracked
        """
        path = Path(file_path)
        if not path.is_absolute():
            path = self.project_root / path
        try:
            rel_parts = path.resolve().relative_to(self.project_root).parts
        except ValueError:
            return True

        # Every directory component counts, the file name does not
        return any(self.is_excluded_dir_name(part) for part in rel_parts[:-1])

    def _walk(self, accept: Callable[[str], bool], limit: Optional[int]) -> Iterator[str]:
        yielded = 0
        for dirpath, dirnames, filenames in os.walk(self.project_root):
            # Prune in place so os.walk never descends into excluded trees
            dirnames[:] = sorted(d for d in dirnames if not self.is_excluded_dir_name(d))
            for filename in sorted(filenames):
                if not accept(filename):
                    continue
                if limit is not None and yielded >= limit:
                    return
                yielded += 1
                yield os.path.join(dirpath, filename)

    def iter_interface_files(self, limit: Optional[int] = None) -> Iterator[str]:
        """Lazily yield candidate interface files.

        Args:
            limit: Maximum number of paths to yield; None means unbounded.
        """
        return self._walk(lambda name: name.endswith(INTERFACE_EXTENSION), limit)

    def iter_statement_files(self, limit: Optional[int] = None) -> Iterator[str]:
        """Lazily yield candidate statement files.

        Args:
            limit: Maximum number of paths to yield; None means unbounded.
        """
        return self._walk(lambda name: name.endswith(STATEMENT_EXTENSION), limit)

    def iter_matching_files(self, patterns: Iterable[str], limit: Optional[int] = None) -> Iterator[str]:
        """Lazily yield files whose name matches any of the glob patterns.

        Used to find build and framework settings files such as
        ``application-*.yml``.
        """
        patterns = list(patterns)
        return self._walk(lambda name: any(fnmatch.fnmatch(name, p) for p in patterns), limit)

    def list_statement_files(self, limit: Optional[int] = None) -> List[str]:
        """Materialize iter_statement_files()."""
        files = list(self.iter_statement_files(limit))
        logger.debug(f"Enumerated {len(files)} statement files under {self.project_root}")
        return files

    def list_interface_files(self, limit: Optional[int] = None) -> List[str]:
        """Materialize iter_interface_files()."""
        files = list(self.iter_interface_files(limit))
        logger.debug(f"Enumerated {len(files)} interface files under {self.project_root}")
        return files
