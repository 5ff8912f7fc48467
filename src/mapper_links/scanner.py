# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Workspace scans that populate the mapping cache.

scan_all() pairs every mapper interface in the workspace with its statement
file. rescan_file() re-resolves a single file after it changed. Both only
write to the cache once both sides of a pairing are known.
"""

import logging
import os
import time
from typing import Callable, List, Optional

from mapper_links.enumerator import WorkspaceEnumerator
from mapper_links.inspectors.classifier import InterfaceClassifier
from mapper_links.mapping_cache import BidirectionalMappingCache
from mapper_links.models import INTERFACE_EXTENSION, STATEMENT_EXTENSION, MappingEntry
from mapper_links.resolver import ResolutionEngine

logger = logging.getLogger(__name__)


class MappingScanner:
    """Fills a BidirectionalMappingCache from the workspace."""

    def __init__(
        self,
        enumerator: WorkspaceEnumerator,
        classifier: InterfaceClassifier,
        engine: ResolutionEngine,
        cache: BidirectionalMappingCache,
        batch_size: int = 100,
    ):
        self.enumerator = enumerator
        self.classifier = classifier
        self.engine = engine
        self.cache = cache
        self.batch_size = batch_size

    def scan_all(self, should_continue: Optional[Callable[[], bool]] = None) -> int:
        """Resolve every mapper interface and record the pairings.

        Interface files are processed in batches; should_continue is checked
        between batches and a False answer stops the scan early.

        Returns:
            Number of mappings established by this scan
        """
        start = time.time()
        statement_files: Optional[List[str]] = None

        def statements() -> List[str]:
            nonlocal statement_files
            if statement_files is None:
                statement_files = self.enumerator.list_statement_files()
            return statement_files

        established = 0
        scanned = 0
        for index, interface_path in enumerate(self.enumerator.iter_interface_files()):
            if index and index % self.batch_size == 0 and should_continue is not None:
                if not should_continue():
                    logger.info(f"Scan stopped after {index} interface files")
                    break
            scanned += 1
            if not self.classifier.is_mapper_interface(interface_path):
                continue
            statement_path = self.engine.resolve(interface_path, statements)
            if statement_path is None:
                continue
            self.cache.put(MappingEntry(interface_path, statement_path))
            established += 1

        elapsed_ms = (time.time() - start) * 1000
        logger.info(
            f"Scan complete: {established} mappings from {scanned} interface files "
            f"in {elapsed_ms:.0f}ms",
            extra={"extra_fields": {"mappings": established, "scanned": scanned, "elapsed_ms": round(elapsed_ms)}},
        )
        return established

    def rescan_file(self, file_path: str) -> Optional[MappingEntry]:
        """Re-resolve the pairing of one interface or statement file.

        Returns:
            The pairing now in the cache for the file, or None
        """
        if not os.path.isfile(file_path):
            self.cache.remove(file_path)
            return None

        if file_path.endswith(INTERFACE_EXTENSION):
            if not self.classifier.is_mapper_interface(file_path):
                self.cache.remove(file_path)
                return None
            statement_path = self.engine.resolve(file_path)
            if statement_path is None:
                self.cache.remove(file_path)
                return None
            entry = MappingEntry(file_path, statement_path)
        elif file_path.endswith(STATEMENT_EXTENSION):
            interface_path = self.engine.resolve_interface(file_path)
            if interface_path is None:
                self.cache.remove(file_path)
                return None
            entry = MappingEntry(interface_path, file_path)
        else:
            return None

        self.cache.put(entry)
        logger.debug(f"Rescanned {file_path}: {entry.interface_path} -> {entry.statement_path}")
        return entry
