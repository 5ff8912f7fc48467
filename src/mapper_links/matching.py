# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Name matching and candidate ranking for statement files.

NameMatcher decides whether an interface name and a statement file name
belong together. User rules are tried first, in order; the default
comparison strips one ignored suffix from each name and compares what is
left.

PathPriorityRanker orders candidate statement files. It never removes a
candidate: excluded directories only push a path to the back.
"""

import logging
import os
import re
from typing import Iterable, List, Optional, Pattern, Sequence, Set, Tuple

from mapper_links.models import NameMatchingRule, PathPriorityConfig

logger = logging.getLogger(__name__)

JAVA_NAME_PLACEHOLDER = "${javaName}"

# Reason reported when the default comparison paired two names
SUFFIX_MATCH = "suffix"


def glob_to_regex(glob: str) -> str:
    """Translate a file-name glob into an anchored regular expression.

    ``*`` matches any run of characters and ``?`` a single character;
    everything else is literal.
    """
    parts = ["^"]
    for char in glob:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    parts.append("$")
    return "".join(parts)


def simple_name(file_path: str) -> str:
    """File name without directory and extension."""
    return os.path.splitext(os.path.basename(file_path))[0]


def normalize_path(file_path: str) -> str:
    return file_path.replace("\\", "/")


def contains_directory(file_path: str, directory: str) -> bool:
    """Check whether a directory (one or more path segments) occurs in a path."""
    fragment = normalize_path(directory).strip("/")
    if not fragment:
        return False
    return f"/{fragment}/" in f"/{normalize_path(file_path)}"


class NameMatcher:
    """Pairs interface and statement file names."""

    def __init__(
        self,
        rules: Optional[Sequence[NameMatchingRule]] = None,
        ignored_suffixes: Optional[Sequence[str]] = None,
    ):
        """Initialize NameMatcher.

        Args:
            rules: Ordered name matching rules; disabled rules are ignored.
            ignored_suffixes: Suffixes stripped before the default comparison.
        """
        self.rules: List[NameMatchingRule] = [r for r in (rules or []) if r.enabled]
        self.ignored_suffixes: List[str] = list(ignored_suffixes or [])
        self._warned_rules: Set[str] = set()
        self._compiled: List[Tuple[NameMatchingRule, Pattern[str]]] = []
        for rule in self.rules:
            pattern = self._compile(rule, rule.interface_pattern)
            if pattern is not None:
                self._compiled.append((rule, pattern))

    def _compile(self, rule: NameMatchingRule, glob: str) -> Optional[Pattern[str]]:
        try:
            return re.compile(glob_to_regex(glob))
        except re.error as e:
            if rule.name not in self._warned_rules:
                self._warned_rules.add(rule.name)
                logger.warning(f"Skipping name matching rule '{rule.name}': {e}")
            return None

    def _statement_pattern(
        self, rule: NameMatchingRule, interface_name: str
    ) -> Optional[Pattern[str]]:
        glob = rule.statement_pattern.replace(JAVA_NAME_PLACEHOLDER, interface_name)
        return self._compile(rule, glob)

    def match_rule(self, interface_name: str, statement_name: str) -> Optional[NameMatchingRule]:
        """Return the first enabled rule pairing the two names, if any."""
        for rule, interface_pattern in self._compiled:
            if not interface_pattern.match(interface_name):
                continue
            statement_pattern = self._statement_pattern(rule, interface_name)
            if statement_pattern is not None and statement_pattern.match(statement_name):
                return rule
        return None

    def strip_suffix(self, name: str) -> str:
        """Remove the first ignored suffix the name ends with.

        A name that consists only of a suffix is returned unchanged.
        """
        for suffix in self.ignored_suffixes:
            if suffix and name.endswith(suffix) and len(name) > len(suffix):
                return name[: -len(suffix)]
        return name

    def match(self, interface_name: str, statement_name: str) -> Optional[str]:
        """Check whether two simple names belong together.

        Args:
            interface_name: Interface file name without extension
            statement_name: Statement file name without extension

        Returns:
            Name of the rule that matched, SUFFIX_MATCH for the default
            comparison, or None when the names do not pair
        """
        rule = self.match_rule(interface_name, statement_name)
        if rule is not None:
            return rule.name
        if interface_name == statement_name:
            return SUFFIX_MATCH
        if self.strip_suffix(interface_name) == self.strip_suffix(statement_name):
            return SUFFIX_MATCH
        return None

    def matches(self, interface_name: str, statement_name: str) -> bool:
        return self.match(interface_name, statement_name) is not None


class PathPriorityRanker:
    """Orders candidate paths by configured directory priority.

    Sort key, ascending:
    1. number of priority directories found in the path, more first
    2. paths under an excluded directory last
    3. shallower paths first
    4. the path itself, so equal ranks are stable across runs
    """

    def __init__(self, config: Optional[PathPriorityConfig] = None):
        self.config = config or PathPriorityConfig(enabled=False)

    def sort_key(self, file_path: str) -> Tuple[int, int, int, str]:
        path = normalize_path(file_path)
        depth = path.count("/")
        if not self.config.enabled:
            return (0, 0, depth, path)
        priority = sum(
            1 for d in self.config.priority_directories if contains_directory(path, d)
        )
        excluded = any(
            contains_directory(path, d) for d in self.config.exclude_directories
        )
        return (-priority, 1 if excluded else 0, depth, path)

    def rank(self, paths: Iterable[str]) -> List[str]:
        """Return the paths sorted by priority. Nothing is dropped."""
        return sorted(paths, key=self.sort_key)
