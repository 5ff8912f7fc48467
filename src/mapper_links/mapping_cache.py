# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Bidirectional mapping cache between interface and statement files.

Two dictionaries hold the same pairings, one per direction. They are only
ever mutated together under one lock, so at every point:

    forward[interface] == statement  <=>  reverse[statement] == interface

put() replaces any pairing either path was part of before adding the new
one, and remove() accepts a path from either side and drops both
directions.

Thread Safety:
- Single _lock protects _forward and _reverse
- Snapshots are copies, callers never see the internal dicts
- A get() followed by put() is not atomic; callers re-check after any I/O
"""

import logging
from threading import Lock
from typing import Dict, Optional

from mapper_links.models import MappingEntry

logger = logging.getLogger(__name__)


class BidirectionalMappingCache:
    """Process-lifetime cache of resolved interface/statement pairings.

    Usage:
        cache = BidirectionalMappingCache()
        cache.put(MappingEntry("/p/UserMapper.java", "/p/mapper/UserMapper.xml"))
        cache.get("/p/UserMapper.java")
        cache.remove("/p/mapper/UserMapper.xml")  # drops both directions
    """

    def __init__(self) -> None:
        self._forward: Dict[str, str] = {}
        self._reverse: Dict[str, str] = {}
        self._lock = Lock()

    def get(self, interface_path: str) -> Optional[str]:
        """Return the statement file paired with an interface file."""
        with self._lock:
            return self._forward.get(interface_path)

    def get_reverse(self, statement_path: str) -> Optional[str]:
        """Return the interface file paired with a statement file."""
        with self._lock:
            return self._reverse.get(statement_path)

    def put(self, entry: MappingEntry) -> None:
        """Store a pairing, dropping stale pairings of either path."""
        with self._lock:
            old_statement = self._forward.pop(entry.interface_path, None)
            if old_statement is not None:
                self._reverse.pop(old_statement, None)
            old_interface = self._reverse.pop(entry.statement_path, None)
            if old_interface is not None:
                self._forward.pop(old_interface, None)

            self._forward[entry.interface_path] = entry.statement_path
            self._reverse[entry.statement_path] = entry.interface_path

        if old_statement not in (None, entry.statement_path):
            logger.debug(f"Replaced mapping {entry.interface_path} -> {old_statement}")
        if old_interface not in (None, entry.interface_path):
            logger.debug(f"Replaced mapping {old_interface} -> {entry.statement_path}")

    def remove(self, file_path: str) -> Optional[MappingEntry]:
        """Remove the pairing a path belongs to, from either side.

        Args:
            file_path: Interface or statement file path

        Returns:
            The removed entry, or None if the path was not mapped
        """
        with self._lock:
            statement = self._forward.pop(file_path, None)
            if statement is not None:
                self._reverse.pop(statement, None)
                entry = MappingEntry(file_path, statement)
            else:
                interface = self._reverse.pop(file_path, None)
                if interface is None:
                    return None
                self._forward.pop(interface, None)
                entry = MappingEntry(interface, file_path)

        logger.debug(f"Removed mapping {entry.interface_path} -> {entry.statement_path}")
        return entry

    def clear(self) -> None:
        """Drop every pairing. Only a full rescan does this."""
        with self._lock:
            count = len(self._forward)
            self._forward.clear()
            self._reverse.clear()
        logger.info(f"Mapping cache cleared ({count} entries)")

    def snapshot(self) -> Dict[str, str]:
        """Copy of the interface -> statement mappings."""
        with self._lock:
            return dict(self._forward)

    def reverse_snapshot(self) -> Dict[str, str]:
        """Copy of the statement -> interface mappings."""
        with self._lock:
            return dict(self._reverse)

    def __len__(self) -> int:
        with self._lock:
            return len(self._forward)

    def __contains__(self, file_path: object) -> bool:
        with self._lock:
            return file_path in self._forward or file_path in self._reverse
