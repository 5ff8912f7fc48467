# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Mapper Links: navigation between mapper interfaces and statement files."""

from .config import Config, ConfigurationError
from .editor import EditorHost, HeadlessEditor, LanguageService
from .mapping_cache import BidirectionalMappingCache
from .models import (
    FileEvent,
    FileEventKind,
    FileOpenMode,
    JumpKind,
    MappingEntry,
    MethodParameter,
    NameMatchingRule,
    NavigationResult,
    NavigationState,
    PathPriorityConfig,
    Position,
)
from .resolver import ResolutionEngine
from .service import MapperNavigationService

__version__ = "0.1.0"

__all__ = [
    "BidirectionalMappingCache",
    "Config",
    "ConfigurationError",
    "EditorHost",
    "FileEvent",
    "FileEventKind",
    "FileOpenMode",
    "HeadlessEditor",
    "JumpKind",
    "LanguageService",
    "MapperNavigationService",
    "MappingEntry",
    "MethodParameter",
    "NameMatchingRule",
    "NavigationResult",
    "NavigationState",
    "PathPriorityConfig",
    "Position",
    "ResolutionEngine",
]

# Conditional import for MCP server (requires the mcp package)
try:
    from .mcp_server import MapperLinksMCPServer

    __all__.append("MapperLinksMCPServer")
except ImportError:
    # MCP package not available
    pass
