"""Nested type expansion into dot-path columns.

Two input shapes describe the same nesting:

1. A structured schema tree: an object whose ``properties`` (or ``fields``)
   is either a map of name -> property, or a list of property objects that
   carry their own ``name``/``id``. Arrays of objects put that container
   under ``items``.
2. An inline textual grammar embedded in a type string, for example
   ``STRUCT<id: INT, address: STRUCT<city: STRING>>`` or
   ``ARRAY<STRUCT<sku: STRING, qty: INT>>``.

Every expansion emits the parent summary column first, immediately
followed by its flattened children. Object children are named
``parent.child``; array element children are named ``parent.[].child``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterator, Optional

from contract_loader.importer.base import Column, ParserError
from contract_loader.importer.type_normalizer import normalize_data_type, normalize_legacy_type

if TYPE_CHECKING:
    from contract_loader.importer.field_parser import FieldParser

logger = logging.getLogger(__name__)

ARRAY_MARKER = "[]"
STRUCT_SUMMARY = "STRUCT<...>"
ARRAY_STRUCT_SUMMARY = "ARRAY<STRUCT<...>>"
ARRAY_OBJECT = "ARRAY<OBJECT>"


def child_path(parent: str, child: str, in_array: bool = False) -> str:
    if in_array:
        return f"{parent}.{ARRAY_MARKER}.{child}"
    return f"{parent}.{child}"


# ---------------------------------------------------------------------------
# Textual STRUCT grammar
# ---------------------------------------------------------------------------

def collapse_whitespace(type_str: str) -> str:
    """Join a multi-line type string into one line with single spaces."""
    return " ".join(type_str.split())


def split_struct_fields(fields_str: str) -> list[str]:
    """Split ``a: INT, b: STRUCT<c: INT, d: STRING>`` into top-level field definitions.

    Commas nested inside ``<...>`` or inside single/double quoted literals
    do not split.
    """
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: Optional[str] = None

    for char in fields_str:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue

        if char in ("'", '"'):
            quote = char
            current.append(char)
        elif char == "<":
            depth += 1
            current.append(char)
        elif char == ">":
            depth = max(depth - 1, 0)
            current.append(char)
        elif char == "," and depth == 0:
            part = "".join(current).strip()
            if part:
                parts.append(part)
            current = []
        else:
            current.append(char)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def parse_field_definition(field_def: str) -> Optional[tuple[str, str]]:
    """Split ``name: TYPE`` at the first colon. None if either side is empty."""
    name, sep, type_part = field_def.partition(":")
    if not sep:
        return None
    name = name.strip()
    type_part = type_part.strip()
    if not name or not type_part:
        return None
    return name, type_part


def extract_struct_body(type_str: str) -> Optional[str]:
    """Return the text between ``STRUCT<`` and its matching ``>``.

    An unclosed STRUCT yields everything after ``STRUCT<`` with trailing
    ``>`` characters stripped. None when the string has no STRUCT at all.
    """
    collapsed = collapse_whitespace(type_str)
    start = collapsed.upper().find("STRUCT<")
    if start == -1:
        return None

    body_start = start + len("STRUCT<")
    depth = 1
    quote: Optional[str] = None
    for i in range(body_start, len(collapsed)):
        char = collapsed[i]
        if quote:
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
            if depth == 0:
                return collapsed[body_start:i]

    return collapsed[body_start:].rstrip().rstrip(">").strip()


def is_struct_type(type_str: str) -> bool:
    upper = type_str.strip().upper()
    return upper.startswith("STRUCT<") or upper.startswith("ARRAY<STRUCT<")


def struct_summary_type(type_str: str) -> str:
    if type_str.strip().upper().startswith("ARRAY<"):
        return ARRAY_STRUCT_SUMMARY
    return STRUCT_SUMMARY


def has_nested_properties(container: Any) -> bool:
    if not isinstance(container, dict):
        return False
    properties = container.get("properties")
    fields = container.get("fields")
    return isinstance(properties, (dict, list)) or isinstance(fields, dict)


class NestedTypeExpander:
    """Flattens nested schemas into columns.

    Children of structured trees are handed back to the owning FieldParser so
    they receive the same metadata handling as top-level fields.
    """

    def __init__(self, field_parser: FieldParser):
        self.field_parser = field_parser

    @property
    def max_depth(self) -> int:
        return self.field_parser.config.max_nesting_depth

    # -- textual grammar ---------------------------------------------------

    def expand_struct_string(
        self, field_name: str, type_str: str, nullable: bool = True, depth: int = 0
    ) -> list[Column]:
        """Expand the children of a ``STRUCT<...>``/``ARRAY<STRUCT<...>>`` string.

        Returns only the children; the caller emits the summary column for
        ``field_name`` itself. Nested structs inside emit their own summary
        column before their children.
        """
        body = extract_struct_body(type_str)
        if body is None:
            return []
        if depth >= self.max_depth:
            logger.warning(
                f"Type of '{field_name}' nests deeper than {self.max_depth} levels, not expanded"
            )
            return []

        in_array = collapse_whitespace(type_str).upper().startswith("ARRAY<")
        columns: list[Column] = []

        for field_def in split_struct_fields(body):
            parsed = parse_field_definition(field_def)
            if parsed is None:
                logger.debug(f"Skipping malformed struct field in '{field_name}': {field_def}")
                continue
            nested_name, nested_type = parsed
            column_name = child_path(field_name, nested_name, in_array)

            if is_struct_type(nested_type):
                children = self.expand_struct_string(column_name, nested_type, nullable, depth + 1)
                if children:
                    columns.append(Column(
                        name=column_name,
                        data_type=struct_summary_type(nested_type),
                        nullable=nullable,
                    ))
                    columns.extend(children)
                    continue
                columns.append(Column(name=column_name, data_type=nested_type, nullable=nullable))
                continue

            columns.append(Column(
                name=column_name,
                data_type=normalize_data_type(nested_type),
                nullable=nullable,
            ))

        return columns

    # -- structured trees --------------------------------------------------

    @staticmethod
    def iter_properties(
        container: dict[str, Any],
        required_names: Optional[list[str]] = None,
        errors: Optional[list[ParserError]] = None,
        path: str = "",
    ) -> Iterator[tuple[str, dict[str, Any], bool]]:
        """Yield ``(name, property, required)`` for each child of a container.

        Map form reads required-ness from a ``required`` name list on the
        container (or a boolean on the child). List form reads it from each
        child's ``required`` boolean.
        """
        properties = container.get("properties")
        if not isinstance(properties, (dict, list)):
            properties = container.get("fields")

        if required_names is None:
            raw_required = container.get("required")
            required_names = [r for r in raw_required if isinstance(r, str)] \
                if isinstance(raw_required, list) else []

        if isinstance(properties, dict):
            for name, prop in properties.items():
                if not isinstance(prop, dict):
                    if errors is not None:
                        errors.append(ParserError(
                            error_type="validation_error",
                            field=child_path(path, str(name)) if path else str(name),
                            message=f"Nested property '{name}' must be an object",
                        ))
                    continue
                required = name in required_names or prop.get("required") is True
                yield str(name), prop, required

        elif isinstance(properties, list):
            for idx, prop in enumerate(properties):
                if not isinstance(prop, dict):
                    if errors is not None:
                        errors.append(ParserError(
                            error_type="validation_error",
                            field=f"{path}[{idx}]",
                            message=f"Nested property[{idx}] must be an object",
                        ))
                    continue
                name = prop.get("name") or prop.get("id")
                if not isinstance(name, str) or not name:
                    if errors is not None:
                        errors.append(ParserError(
                            error_type="validation_error",
                            field=f"{path}[{idx}]",
                            message=f"Nested property[{idx}] missing required 'name' or 'id' field",
                        ))
                    continue
                yield name, prop, prop.get("required") is True

    def expand_children(
        self,
        parent_name: str,
        container: dict[str, Any],
        root: Any,
        parent_nullable: bool,
        in_array: bool,
        depth: int,
        visited: frozenset,
        errors: list[ParserError],
        required_names: Optional[list[str]] = None,
    ) -> list[Column]:
        """Parse each child of ``container`` as a field under ``parent_name``."""
        columns: list[Column] = []
        for name, prop, required in self.iter_properties(
            container, required_names, errors, parent_name
        ):
            columns.extend(self.field_parser.parse_field(
                child_path(parent_name, name, in_array),
                prop,
                root,
                errors,
                parent_nullable=parent_nullable,
                required=required,
                depth=depth + 1,
                visited=visited,
            ))
        return columns

    def array_items_kind(self, items: Any) -> str:
        """Classify ``items`` as ``object``, ``ref``, a scalar family, or ``unknown``."""
        if isinstance(items, str):
            return normalize_legacy_type(items)
        if not isinstance(items, dict):
            return "unknown"
        if isinstance(items.get("$ref"), str):
            return "ref"
        if has_nested_properties(items):
            return "object"
        raw = items.get("logicalType") or items.get("type")
        if isinstance(raw, str):
            return normalize_legacy_type(raw)
        return "unknown"

    @staticmethod
    def scalar_array_type(items: Any) -> str:
        """``ARRAY<T>`` for primitive items. Missing item types default to STRING."""
        if isinstance(items, str) and items:
            return f"ARRAY<{normalize_data_type(items)}>"
        if isinstance(items, dict):
            raw = items.get("logicalType") or items.get("type")
            if isinstance(raw, str) and raw:
                return f"ARRAY<{normalize_data_type(raw)}>"
        return "ARRAY<STRING>"
