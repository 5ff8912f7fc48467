# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Inspector interfaces and shared file reading.

DeclarationInspector is the narrow seam between the resolution engine and
whatever understands interface source. The shipped implementation is
regex-based (RegexDeclarationInspector); a parser- or language-server-backed
implementation can replace it without touching the resolver.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from mapper_links.models import MethodParameter, Position

logger = logging.getLogger(__name__)

# Resolves a simple or fully-qualified class name to its declaring file
ClassLocator = Callable[[str], Optional[str]]


def read_source(file_path: str) -> Optional[str]:
    """Read a text file, returning None on any read or decode failure.

    A failure here means "no match from this inspector", never an error for
    the caller, so it is logged and swallowed.
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        logger.debug(f"File not found while inspecting: {file_path}")
    except UnicodeDecodeError as e:
        logger.warning(f"Failed to decode {file_path}: {e}")
    except OSError as e:
        logger.warning(f"Failed to read {file_path}: {e}")
    return None


class DeclarationInspector(ABC):
    """Extracts structural facts from interface source files."""

    @abstractmethod
    def parse_package(self, file_path: str) -> Optional[str]:
        """Return the declared package, or None if absent or unreadable."""
        pass

    @abstractmethod
    def parse_namespace(self, file_path: str) -> Optional[str]:
        """Return ``<package>.<SimpleName>`` (or just the simple name)."""
        pass

    @abstractmethod
    def extract_parameters(
        self,
        file_path: str,
        method_name: str,
        class_locator: Optional[ClassLocator] = None,
    ) -> Optional[List[MethodParameter]]:
        """Return the method's parameters, or None if the method is not found.

        Args:
            file_path: Interface file to inspect.
            method_name: Method whose signature is parsed.
            class_locator: Resolves parameter types to their declaring files
                so that one level of field names can be attached.
        """
        pass

    @abstractmethod
    def find_method_position(self, file_path: str, method_name: str) -> Optional[Position]:
        """Return the position where the method name is declared."""
        pass

    @abstractmethod
    def find_last_method_position(self, file_path: str) -> Optional[Position]:
        """Return the position of the last method declaration in the file."""
        pass

    @abstractmethod
    def list_fields(self, file_path: str) -> List[str]:
        """Return field names declared in a class file."""
        pass
