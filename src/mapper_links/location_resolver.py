# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Discovery of statement file directories from project settings.

Projects often tell the framework where their statement files live. Two
sources are read:
- mybatis-config.xml: ``<mappers>`` children (``resource``, ``class`` and
  ``<package name>`` entries)
- Spring Boot application settings: ``mybatis.mapper-locations`` in
  application*.yml/yaml (PyYAML) and application*.properties

Every location is classpath-relative. It is reduced to its static directory
prefix (``classpath*:mapper/**/*.xml`` becomes ``mapper``) and joined to the
resources root that holds the settings file, and to ``src/main/resources``.
Only directories that exist are returned; they feed the custom-directory
resolution strategy.
"""

import logging
import os
import re
from typing import Any, Iterable, List, Optional, Tuple

import yaml

from mapper_links.enumerator import WorkspaceEnumerator
from mapper_links.inspectors.base import read_source

logger = logging.getLogger(__name__)

MYBATIS_CONFIG_PATTERNS = ("mybatis-config.xml",)
YAML_SETTINGS_PATTERNS = ("application.yml", "application-*.yml", "application.yaml", "application-*.yaml")
PROPERTIES_SETTINGS_PATTERNS = ("application.properties", "application-*.properties")

# Maximum settings files read per kind
MAX_SETTINGS_FILES = 5

DEFAULT_RESOURCES_ROOT = os.path.join("src", "main", "resources")

MAPPERS_BLOCK_PATTERN = re.compile(r"<mappers\b[^>]*>(.*?)</mappers>", re.DOTALL)
MAPPER_RESOURCE_PATTERN = re.compile(r"<mapper\b[^>]*?\bresource\s*=\s*[\"']([^\"']+)[\"']")
MAPPER_CLASS_PATTERN = re.compile(r"<mapper\b[^>]*?\bclass\s*=\s*[\"']([^\"']+)[\"']")
MAPPER_PACKAGE_PATTERN = re.compile(r"<package\b[^>]*?\bname\s*=\s*[\"']([^\"']+)[\"']")
CLASSPATH_PREFIX_PATTERN = re.compile(r"^classpath\*?:")
GLOB_CHARS = set("*?[{")

LOCATION_KEYS = ("mapper-locations", "mapperLocations", "mapper_locations")


def parse_mybatis_config(content: str) -> List[str]:
    """Extract classpath locations from a mybatis-config.xml document.

    ``class`` and ``<package>`` entries name Java packages; they are turned
    into slash-separated directories since statement files usually sit in
    the mirrored resources directory.
    """
    locations: List[str] = []
    for block in MAPPERS_BLOCK_PATTERN.findall(content):
        locations.extend(MAPPER_RESOURCE_PATTERN.findall(block))
        for class_name in MAPPER_CLASS_PATTERN.findall(block):
            package = class_name.rsplit(".", 1)[0] if "." in class_name else ""
            if package:
                locations.append(package.replace(".", "/") + "/")
        for package in MAPPER_PACKAGE_PATTERN.findall(block):
            locations.append(package.replace(".", "/") + "/")
    return locations


def _split_locations(value: Any) -> List[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list):
        locations: List[str] = []
        for item in value:
            locations.extend(_split_locations(item))
        return locations
    return []


def parse_yaml_locations(content: str) -> List[str]:
    """Extract ``mybatis.mapper-locations`` from a YAML settings document.

    Multi-document files (profiles separated by ``---``) are all read. Both
    the nested form and the flat ``mybatis.mapper-locations`` key are
    accepted.
    """
    locations: List[str] = []
    try:
        documents = list(yaml.safe_load_all(content))
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse settings YAML: {e}")
        return locations

    for document in documents:
        if not isinstance(document, dict):
            continue
        section = document.get("mybatis")
        if isinstance(section, dict):
            for key in LOCATION_KEYS:
                locations.extend(_split_locations(section.get(key)))
        for key in LOCATION_KEYS:
            locations.extend(_split_locations(document.get(f"mybatis.{key}")))
    return locations


def parse_properties_locations(content: str) -> List[str]:
    """Extract ``mybatis.mapper-locations`` from a .properties document."""
    locations: List[str] = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped[0] in "#!":
            continue
        match = re.match(r"([^=:\s]+)\s*[=:]\s*(.*)$", stripped)
        if not match:
            continue
        key, value = match.groups()
        if key in tuple(f"mybatis.{k}" for k in LOCATION_KEYS):
            locations.extend(_split_locations(value))
    return locations


def location_to_relative_dir(location: str) -> Optional[str]:
    """Reduce a classpath location to its static directory prefix.

    Returns:
        Slash-separated relative directory ("" for the classpath root), or
        None for locations that are not classpath-relative (file: and URL
        locations)
    """
    location = CLASSPATH_PREFIX_PATTERN.sub("", location.strip())
    if re.match(r"^[a-zA-Z][\w+.-]*:", location):
        return None

    parts = [p for p in location.replace("\\", "/").split("/") if p]
    static: List[str] = []
    for index, part in enumerate(parts):
        if any(c in GLOB_CHARS for c in part):
            break
        if index == len(parts) - 1 and part.endswith(".xml"):
            break
        static.append(part)
    return "/".join(static)


class MapperLocationResolver:
    """Finds statement file directories declared in project settings."""

    def __init__(self, enumerator: WorkspaceEnumerator):
        self.enumerator = enumerator

    def _settings_files(self, patterns: Iterable[str]) -> List[str]:
        return list(self.enumerator.iter_matching_files(patterns, limit=MAX_SETTINGS_FILES))

    def _collect(self) -> List[Tuple[str, str]]:
        found: List[Tuple[str, str]] = []
        readers = (
            (MYBATIS_CONFIG_PATTERNS, parse_mybatis_config),
            (YAML_SETTINGS_PATTERNS, parse_yaml_locations),
            (PROPERTIES_SETTINGS_PATTERNS, parse_properties_locations),
        )
        seen = set()
        for patterns, parse in readers:
            for settings_file in self._settings_files(patterns):
                content = read_source(settings_file)
                if content is None:
                    continue
                locations = parse(content)
                if locations:
                    logger.debug(f"Found {len(locations)} mapper locations in {settings_file}")
                for location in locations:
                    key = (location, os.path.dirname(settings_file))
                    if key in seen:
                        continue
                    seen.add(key)
                    found.append(key)
        return found

    def resolve_directories(self) -> List[str]:
        """Return existing absolute directories holding statement files.

        Returns:
            Directories in discovery order, without duplicates
        """
        project_root = str(self.enumerator.project_root)
        default_root = os.path.join(project_root, DEFAULT_RESOURCES_ROOT)
        directories: List[str] = []

        for location, settings_dir in self._collect():
            relative = location_to_relative_dir(location)
            if relative is None:
                logger.debug(f"Ignoring non-classpath mapper location {location}")
                continue
            for base in (settings_dir, default_root):
                candidate = os.path.normpath(os.path.join(base, relative))
                if candidate in directories or not os.path.isdir(candidate):
                    continue
                if not self.enumerator.is_in_workspace(candidate):
                    continue
                directories.append(candidate)

        if directories:
            logger.info(f"Discovered {len(directories)} mapper location directories")
        return directories
