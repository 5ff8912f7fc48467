# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Statement file inspection.

Statement files are read as plain text; they are never validated. Only two
facts are extracted:
- the namespace attribute of the root element
- the position of a statement element by its id attribute
"""

import logging
import re
from typing import List, Optional

from mapper_links.inspectors.base import read_source
from mapper_links.models import Position

logger = logging.getLogger(__name__)

NAMESPACE_PATTERN = re.compile(r"namespace\s*=\s*[\"']([^\"']+)[\"']")
# Tag names match in any case; ids are case-sensitive
STATEMENT_TAGS = r"(?i:select|update|insert|delete|selectKey)"
STATEMENT_ID_PATTERN = re.compile(r"<" + STATEMENT_TAGS + r"\b[^>]*?\bid\s*=\s*([\"'])([^\"']+)\1")


class StatementInspector:
    """Reads namespaces and statement positions from statement files."""

    def parse_namespace(self, file_path: str) -> Optional[str]:
        """Return the namespace declared by a statement file.

        Args:
            file_path: Path to a .xml file

        Returns:
            Namespace string, or None when absent or unreadable
        """
        content = read_source(file_path)
        if content is None:
            return None
        return self.namespace_from_source(content)

    @staticmethod
    def namespace_from_source(content: str) -> Optional[str]:
        match = NAMESPACE_PATTERN.search(content)
        return match.group(1).strip() if match else None

    def find_statement_position(self, file_path: str, statement_id: str) -> Optional[Position]:
        """Locate the statement whose id attribute equals statement_id.

        Single- and double-quoted values are accepted, and the opening tag may
        span several lines. Ids compare case-sensitively. The returned column
        is where the id value starts.
        """
        content = read_source(file_path)
        if content is None:
            return None

        pattern = re.compile(
            r"<" + STATEMENT_TAGS + r"\b[^>]*?\bid\s*=\s*([\"'])"
            + r"(?P<id>" + re.escape(statement_id) + r")\1"
        )
        match = pattern.search(content)
        if match is None:
            logger.debug(f"Statement {statement_id} not found in {file_path}")
            return None

        id_offset = match.start("id")
        line = content.count("\n", 0, id_offset)
        line_start = content.rfind("\n", 0, id_offset) + 1
        return Position(line, id_offset - line_start)

    def list_statement_ids(self, file_path: str) -> List[str]:
        """Return every statement id declared in a statement file, in order."""
        content = read_source(file_path)
        if content is None:
            return []
        return [match.group(2) for match in STATEMENT_ID_PATTERN.finditer(content)]
