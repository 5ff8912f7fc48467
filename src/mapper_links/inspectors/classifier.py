# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Decides whether an interface-population file is a mapper worth pairing.

This is a textual heuristic, not a compiler check: a file qualifies when it
declares an interface and either carries a MyBatis annotation or imports a
MyBatis package. Comments and string literals are not stripped first, so an
interface that only mentions ``@Mapper`` in a comment is still accepted.
"""

import logging
import re

from mapper_links.inspectors.base import read_source

logger = logging.getLogger(__name__)

INTERFACE_PATTERN = re.compile(r"\binterface\s+\w+")
ANNOTATION_PATTERN = re.compile(r"@(?:Mapper|Select|Insert|Update|Delete)\b")
IMPORT_PATTERN = re.compile(r"import\s+(?:static\s+)?org\.(?:apache\.ibatis|mybatis)\b")


class InterfaceClassifier:
    """Classifies interface files as mapper contracts."""

    def is_mapper_interface(self, file_path: str) -> bool:
        """Check whether a file is a mapper interface.

        Reads the file once. Unreadable files are not mappers.

        Args:
            file_path: Path to a .java file

        Returns:
            True if the file declares an interface and has a MyBatis
            annotation or import
        """
        content = read_source(file_path)
        if not content:
            return False
        return self.is_mapper_source(content)

    @staticmethod
    def is_mapper_source(content: str) -> bool:
        """Apply the classification to already-loaded source text."""
        if not INTERFACE_PATTERN.search(content):
            return False
        return bool(ANNOTATION_PATTERN.search(content) or IMPORT_PATTERN.search(content))
