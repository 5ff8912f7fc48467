# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Regex-based declaration inspector for mapper interface files.

Extracts, without a Java parser:
- the package declaration and the derived namespace (package.SimpleName)
- a method's formal parameters, with names taken from @Param annotations or
  javadoc @param tags when present (generated sources often carry arg0/arg1)
- one level of field names for structured parameter types
- the position of a method declaration, or of the last declaration

Known Limitations:
- Annotations whose arguments contain a closing parenthesis inside a string
  literal can confuse signature detection.
- Nested or anonymous classes are not distinguished from the top-level type.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from mapper_links.inspectors.base import ClassLocator, DeclarationInspector, read_source
from mapper_links.models import MethodParameter, Position

logger = logging.getLogger(__name__)

PACKAGE_PATTERN = re.compile(r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE)
IMPORT_PATTERN = re.compile(r"^\s*import\s+([\w.]+)\s*;", re.MULTILINE)
JAVADOC_PARAM_PATTERN = re.compile(r"@param\s+(\w+)")
PARAM_ANNOTATION_PATTERN = re.compile(r"@Param\s*\(\s*(?:value\s*=\s*)?\"([^\"]+)\"\s*\)")
ANNOTATION_PATTERN = re.compile(r"@[\w.]+(?:\s*\((?:[^()]|\([^()]*\))*\))?")
FIELD_PATTERN = re.compile(
    r"(?:@\w+(?:\([^)]*\))?\s*)*"
    r"(?:(?:public|private|protected|static|final|transient|volatile)\s+)+"
    r"[\w<>,.?\[\]\s]+?\s+(\w+)\s*[=;]"
)
# Text allowed between a javadoc block and the declaration it documents
DOC_GAP_PATTERN = re.compile(
    r"^(?:\s|@[\w.]+(?:\s*\((?:[^()]|\([^()]*\))*\))?"
    r"|public|private|protected|default|static|final|abstract|synchronized)*$"
)

MODIFIERS = r"(?:(?:public|private|protected|default|static|final|abstract|synchronized)\s+)*"
RETURN_TYPE = r"(?:<[^>]*>\s*)?[\w.$]+(?:\s*<.*>)?(?:\s*\[\s*\])*"
LINE_ANNOTATIONS = r"(?:@[\w.]+(?:\([^)]*\))?\s+)*"
METHOD_DECLARATION_PATTERN = re.compile(
    r"^\s*" + LINE_ANNOTATIONS + MODIFIERS + r"(?P<rtype>" + RETURN_TYPE + r")\s+(?P<name>\w+)\s*\("
)

NON_DECLARATION_WORDS = {
    "return",
    "new",
    "throw",
    "else",
    "if",
    "for",
    "while",
    "switch",
    "catch",
    "synchronized",
}

# Types with no inspectable fields
SCALAR_TYPES = {
    "byte",
    "short",
    "int",
    "long",
    "float",
    "double",
    "boolean",
    "char",
    "void",
    "Byte",
    "Short",
    "Integer",
    "Long",
    "Float",
    "Double",
    "Boolean",
    "Character",
    "String",
    "Object",
    "Number",
    "BigDecimal",
    "BigInteger",
    "Date",
    "LocalDate",
    "LocalDateTime",
    "LocalTime",
    "Instant",
    "Timestamp",
    "UUID",
}


def is_comment_or_blank(line: str) -> bool:
    """Check whether a source line is blank or starts a comment."""
    stripped = line.strip()
    return (
        not stripped
        or stripped.startswith("//")
        or stripped.startswith("/*")
        or stripped.startswith("*")
    )


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split on a separator that is not nested in <>, () or []."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for char in text:
        if char in "<([":
            depth += 1
        elif char in ">)]":
            depth = max(0, depth - 1)
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    tail = "".join(current)
    if tail.strip():
        parts.append(tail)
    return parts


def element_type(type_name: str) -> str:
    """Unwrap arrays, varargs and generic wrappers to the type worth inspecting.

    ``List<User>`` -> ``User``, ``User[]`` -> ``User``,
    ``Map<String, User>`` -> ``String`` (first type argument).
    """
    current = type_name.strip()
    while True:
        if current.endswith("..."):
            current = current[:-3].strip()
            continue
        if current.endswith("[]"):
            current = current[:-2].strip()
            continue
        if "<" in current and current.endswith(">"):
            inner = current[current.index("<") + 1 : -1]
            args = split_top_level(inner)
            if not args:
                return current[: current.index("<")].strip()
            current = args[0].strip()
            if current.startswith("?"):
                # ? extends Foo / ? super Foo
                current = current.split()[-1] if len(current.split()) > 1 else "Object"
            continue
        return current


class RegexDeclarationInspector(DeclarationInspector):
    """DeclarationInspector built on regular expressions."""

    def parse_package(self, file_path: str) -> Optional[str]:
        content = read_source(file_path)
        if content is None:
            return None
        match = PACKAGE_PATTERN.search(content)
        return match.group(1) if match else None

    def parse_namespace(self, file_path: str) -> Optional[str]:
        """Return the fully qualified name declared by an interface file.

        Returns None only when the file cannot be read; a file without a
        package yields its simple name.
        """
        content = read_source(file_path)
        if content is None:
            return None
        simple_name = Path(file_path).stem
        match = PACKAGE_PATTERN.search(content)
        if match:
            return f"{match.group(1)}.{simple_name}"
        return simple_name

    def _find_signature(self, content: str, method_name: str) -> Optional[Tuple[int, int, str]]:
        """Locate a method declaration.

        Returns:
            (declaration start, name start, raw parameter text) or None
        """
        pattern = re.compile(
            r"(?<![\w.$])(?P<rtype>" + RETURN_TYPE + r")\s+(?P<name>"
            + re.escape(method_name)
            + r")\s*\("
        )
        for match in pattern.finditer(content):
            rtype = match.group("rtype").strip()
            if rtype in NON_DECLARATION_WORDS:
                continue
            line_start = content.rfind("\n", 0, match.start()) + 1
            line_end = content.find("\n", match.start())
            line = content[line_start : line_end if line_end != -1 else len(content)]
            if is_comment_or_blank(line):
                continue

            # Balance parentheses to capture the full parameter list
            open_index = match.end() - 1
            depth = 0
            close_index = -1
            for index in range(open_index, len(content)):
                char = content[index]
                if char == "(":
                    depth += 1
                elif char == ")":
                    depth -= 1
                    if depth == 0:
                        close_index = index
                        break
            if close_index == -1:
                continue

            # A declaration ends with ';' or '{' (after an optional throws clause)
            tail = content[close_index + 1 :].lstrip()
            tail = re.sub(r"^throws\s+[\w.,\s]+", "", tail).lstrip()
            if not tail or tail[0] not in ";{":
                continue

            return match.start(), match.start("name"), content[open_index + 1 : close_index]
        return None

    @staticmethod
    def _javadoc_before(content: str, declaration_start: int) -> Optional[str]:
        """Return the javadoc block documenting the declaration, if any."""
        before = content[:declaration_start]
        doc_end = before.rfind("*/")
        if doc_end == -1:
            return None
        doc_start = before.rfind("/*", 0, doc_end)
        if doc_start == -1 or not before.startswith("/**", doc_start):
            return None
        # Only annotations and modifiers may sit between the doc and the declaration
        if not DOC_GAP_PATTERN.match(before[doc_end + 2 :]):
            return None
        return before[doc_start : doc_end + 2]

    def _parse_parameter(self, raw: str) -> Optional[Tuple[str, str, Optional[str]]]:
        """Split one raw parameter into (type, identifier, @Param name)."""
        binding_match = PARAM_ANNOTATION_PATTERN.search(raw)
        binding = binding_match.group(1) if binding_match else None
        cleaned = ANNOTATION_PATTERN.sub(" ", raw)
        cleaned = re.sub(r"\bfinal\b", " ", cleaned).strip()
        match = re.match(r"^(?P<type>.+?)\s*(?P<name>\b\w+)\s*$", cleaned, re.DOTALL)
        if not match:
            return None
        type_name = re.sub(r"\s+", " ", match.group("type")).strip()
        type_name = re.sub(r"\s*([<>,\[\]])\s*", r"\1", type_name).replace(",", ", ")
        if not type_name:
            return None
        return type_name, match.group("name"), binding

    def extract_parameters(
        self,
        file_path: str,
        method_name: str,
        class_locator: Optional[ClassLocator] = None,
    ) -> Optional[List[MethodParameter]]:
        content = read_source(file_path)
        if content is None:
            return None

        try:
            signature = self._find_signature(content, method_name)
        except re.error as e:
            logger.warning(f"Pattern error while locating {method_name} in {file_path}: {e}")
            return None
        if signature is None:
            logger.debug(f"Method {method_name} not found in {file_path}")
            return None

        declaration_start, _, params_text = signature
        if not params_text.strip():
            return []

        doc_names: List[str] = []
        javadoc = self._javadoc_before(content, declaration_start)
        if javadoc:
            doc_names = JAVADOC_PARAM_PATTERN.findall(javadoc)

        imports = self._imports_by_simple_name(content)
        package_match = PACKAGE_PATTERN.search(content)
        package = package_match.group(1) if package_match else None

        parameters: List[MethodParameter] = []
        for index, raw in enumerate(split_top_level(params_text)):
            parsed = self._parse_parameter(raw)
            if parsed is None:
                logger.debug(f"Could not parse parameter '{raw.strip()}' of {method_name}")
                continue
            type_name, identifier, binding = parsed
            if binding:
                name = binding
            elif index < len(doc_names):
                name = doc_names[index]
            else:
                name = identifier

            fields: List[str] = []
            if class_locator is not None:
                fields = self._fields_for_type(type_name, imports, package, class_locator)
            parameters.append(MethodParameter(name=name, type=type_name, fields=fields))

        return parameters

    @staticmethod
    def _imports_by_simple_name(content: str) -> Dict[str, str]:
        imports: Dict[str, str] = {}
        for qualified in IMPORT_PATTERN.findall(content):
            imports[qualified.rsplit(".", 1)[-1]] = qualified
        return imports

    def _fields_for_type(
        self,
        type_name: str,
        imports: Dict[str, str],
        package: Optional[str],
        class_locator: ClassLocator,
    ) -> List[str]:
        inner = element_type(type_name)
        simple = inner.rsplit(".", 1)[-1]
        if simple in SCALAR_TYPES or not simple or not simple[0].isupper():
            return []

        candidates: List[str] = []
        if "." in inner:
            candidates.append(inner)
        elif simple in imports:
            candidates.append(imports[simple])
        elif package:
            candidates.append(f"{package}.{simple}")
        candidates.append(simple)

        for candidate in candidates:
            declaring_file = class_locator(candidate)
            if declaring_file:
                return self.list_fields(declaring_file)
        logger.debug(f"No declaring file found for parameter type {type_name}")
        return []

    def list_fields(self, file_path: str) -> List[str]:
        content = read_source(file_path)
        if content is None:
            return []
        fields: List[str] = []
        for name in FIELD_PATTERN.findall(content):
            if name == "serialVersionUID" or name in fields:
                continue
            fields.append(name)
        return fields

    def find_method_position(self, file_path: str, method_name: str) -> Optional[Position]:
        """Locate a method declaration, strict pattern first, then loose.

        Blank and comment lines are skipped by both passes. The strict pass
        ignores statements such as ``return findById(id);``.
        """
        content = read_source(file_path)
        if content is None:
            return None
        lines = content.split("\n")

        escaped = re.escape(method_name)
        strict = re.compile(
            r"^\s*" + LINE_ANNOTATIONS + MODIFIERS + r"(?P<rtype>" + RETURN_TYPE + r")"
            + r"\s+(?P<name>" + escaped + r")\s*\("
        )
        loose = re.compile(r"(?<![\w$])(?P<name>" + escaped + r")\s*\(")

        for pattern in (strict, loose):
            for line_number, line in enumerate(lines):
                if is_comment_or_blank(line):
                    continue
                match = pattern.search(line)
                if match and pattern is strict and match.group("rtype").strip() in NON_DECLARATION_WORDS:
                    continue
                if match:
                    logger.debug(
                        f"Found method {method_name} at line {line_number}, "
                        f"column {match.start('name')} in {file_path}"
                    )
                    return Position(line_number, match.start("name"))

        logger.debug(f"Method {method_name} not found in {file_path}")
        return None

    def find_last_method_position(self, file_path: str) -> Optional[Position]:
        content = read_source(file_path)
        if content is None:
            return None
        last: Optional[Position] = None
        for line_number, line in enumerate(content.split("\n")):
            if is_comment_or_blank(line):
                continue
            match = METHOD_DECLARATION_PATTERN.search(line)
            if match and match.group("rtype").strip() not in NON_DECLARATION_WORDS:
                last = Position(line_number, match.start("name"))
        return last
