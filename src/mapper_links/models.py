# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for mapper navigation.

This module defines the data structures shared by every component:
- MappingEntry: One resolved interface file / statement file pairing
- Position: Zero-based cursor target inside a file
- MethodParameter: A parsed interface method parameter
- NameMatchingRule: User rule pairing interface and statement file names
- PathPriorityConfig: Sort policy for candidate statement files
- FileEvent / FileEventKind: Filesystem notifications consumed by invalidation
- NavigationResult / NavigationState: Outcome of a navigation request

Enum-like classes use string constants so values read from YAML can be
compared directly.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

INTERFACE_EXTENSION = ".java"
STATEMENT_EXTENSION = ".xml"


class FileOpenMode:
    """Window policies for the jump executor."""

    USE_EXISTING = "useExisting"  # reuse an already-open editor for the file
    NO_SPLIT = "noSplit"  # open in the current column
    ALWAYS_SPLIT = "alwaysSplit"  # open beside the current column

    ALL = (USE_EXISTING, NO_SPLIT, ALWAYS_SPLIT)


class FileEventKind:
    """Kinds of filesystem notifications."""

    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


class JumpKind:
    """Throttle buckets for jumps."""

    STATEMENT = "statement"  # jump to statement file
    INTERFACE = "interface"  # jump to interface file


class NavigationState:
    """States a navigation request passes through."""

    CACHE_LOOKUP = "cache_lookup"
    QUICK_PATH_LOOKUP = "quick_path_lookup"
    FULL_SCAN_LOOKUP = "full_scan_lookup"
    EXTERNAL_SERVICE_LOOKUP = "external_service_lookup"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class MappingEntry:
    """A resolved pairing between an interface file and its statement file."""

    interface_path: str
    statement_path: str

    def to_dict(self) -> Dict[str, str]:
        """Serialize to JSON-compatible dict."""
        return {"interface_path": self.interface_path, "statement_path": self.statement_path}


@dataclass(frozen=True)
class Position:
    """Zero-based (line, column) where a declaration or statement id begins."""

    line: int
    column: int

    def to_dict(self) -> Dict[str, int]:
        """Serialize to JSON-compatible dict."""
        return {"line": self.line, "column": self.column}


@dataclass
class MethodParameter:
    """A formal parameter of an interface method.

    fields holds the field names of the parameter's own type (one level deep)
    so that completion can offer dotted paths such as ``user.name``.
    """

    name: str
    type: str
    fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {"name": self.name, "type": self.type, "fields": list(self.fields)}


@dataclass
class NameMatchingRule:
    """User-defined rule pairing interface and statement file names.

    Patterns are globs over simple file names (no extension). The statement
    pattern may contain ``${javaName}``, replaced with the interface file's
    simple name before matching.
    """

    name: str
    interface_pattern: str
    statement_pattern: str
    enabled: bool = True
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["NameMatchingRule"]:
        """Build a rule from configuration.

        Accepts both ``interfacePattern``/``statementPattern`` and the
        ``javaPattern``/``xmlPattern`` spellings. Returns None when either
        pattern is missing or not a string.
        """
        interface_pattern = _first_present(
            data, ("interface_pattern", "interfacePattern", "javaPattern")
        )
        statement_pattern = _first_present(
            data, ("statement_pattern", "statementPattern", "xmlPattern")
        )

        if not isinstance(interface_pattern, str) or not isinstance(statement_pattern, str):
            return None
        if not interface_pattern or not statement_pattern:
            return None

        enabled = data.get("enabled", True)
        return cls(
            name=str(data.get("name", f"{interface_pattern} -> {statement_pattern}")),
            interface_pattern=interface_pattern,
            statement_pattern=statement_pattern,
            enabled=bool(enabled),
            description=data.get("description"),
        )


def _first_present(data: Dict[str, Any], keys: tuple) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass
class PathPriorityConfig:
    """Sort policy for candidate statement files (never a hard filter)."""

    enabled: bool = True
    priority_directories: List[str] = field(default_factory=list)
    exclude_directories: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FileEvent:
    """A filesystem notification for a tracked file."""

    kind: str  # FileEventKind value
    path: str


@dataclass
class NavigationResult:
    """Outcome of a navigation request.

    trace lists the states visited, in order, ending with RESOLVED or FAILED.
    """

    state: str
    target_path: Optional[str] = None
    position: Optional[Position] = None
    reason: Optional[str] = None
    trace: List[str] = field(default_factory=list)
    # Set once an editor jump to target_path actually happened
    jumped: bool = False

    @property
    def resolved(self) -> bool:
        return self.state == NavigationState.RESOLVED

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "state": self.state,
            "target_path": self.target_path,
            "position": self.position.to_dict() if self.position else None,
            "reason": self.reason,
            "trace": list(self.trace),
            "jumped": self.jumped,
        }
