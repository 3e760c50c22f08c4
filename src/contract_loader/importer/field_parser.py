"""Shared field parser for the contract dialects.

Turns one property/field definition into one or more canonical columns:
resolves ``$ref`` against the root document, expands nested objects, arrays
and inline STRUCT strings, and copies every column-level metadata field.
The root document is passed explicitly on every call.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

from contract_loader.config import ImporterConfig, get_config
from contract_loader.importer.base import Column, ForeignKey, ParserError, Relationship
from contract_loader.importer.metadata import column_custom_properties, extract_field_quality
from contract_loader.importer.nested import (
    ARRAY_OBJECT,
    NestedTypeExpander,
    has_nested_properties,
    is_struct_type,
    struct_summary_type,
)
from contract_loader.importer.references import (
    parse_relationships,
    ref_to_relationships,
    resolve_ref,
)
from contract_loader.importer.tags import parse_tags
from contract_loader.importer.type_normalizer import normalize_data_type, normalize_legacy_type

logger = logging.getLogger(__name__)

# Keys of a referenced definition that never fill gaps on the referencing field
_DEFINITION_SKIP_KEYS = {"quality", "description", "required", "name", "id", "$ref"}

# Errors a malformed field can raise while being walked
FIELD_ERRORS = (ValueError, TypeError, KeyError, AttributeError)


def str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _column_id(path: str, field_data: dict[str, Any]) -> Optional[str]:
    """Stable id of a property. An id equal to the property name only stood in for the name."""
    value = str_or_none(field_data.get("id"))
    if value is None or value == path.rsplit(".", 1)[-1]:
        return None
    return value


def _bool(value: Any) -> bool:
    return value is True


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def parse_foreign_key(raw: Any) -> Optional[ForeignKey]:
    """Legacy ``{table|table_id, column|column_name}`` pointer."""
    if not isinstance(raw, dict):
        return None
    table = raw.get("table") if "table" in raw else raw.get("table_id")
    column = raw.get("column") if "column" in raw else raw.get("column_name")
    return ForeignKey(
        table_id=table if isinstance(table, str) else "",
        column_name=column if isinstance(column, str) else "",
    )


def field_type_string(field_data: dict[str, Any], default: str = "STRING") -> str:
    """``logicalType`` (current dialect) or ``type`` (legacy), else ``default``."""
    for key in ("logicalType", "type"):
        value = field_data.get(key)
        if isinstance(value, str) and value:
            return value
    return default


class FieldParser:
    """Parses property/field definitions into canonical columns."""

    def __init__(self, config: Optional[ImporterConfig] = None):
        self.config = config or get_config()
        self.expander = NestedTypeExpander(self)

    def parse_field(
        self,
        name: str,
        field_data: dict[str, Any],
        root: Any,
        errors: list[ParserError],
        parent_nullable: bool = False,
        required: Optional[bool] = None,
        depth: int = 0,
        visited: frozenset = frozenset(),
    ) -> list[Column]:
        """Parse one field into its columns (one, or a parent plus flattened children).

        ``required`` overrides the field's own ``required`` flag when the
        enclosing object lists required children by name. A child of a
        nullable parent is always nullable.
        """
        if required is None:
            required = _bool(field_data.get("required"))
        nullable = parent_nullable or not required

        if depth > self.config.max_nesting_depth:
            return [self._depth_exceeded_column(name)]

        description = str_or_none(field_data.get("description")) or ""
        quality = extract_field_quality(field_data)
        explicit_relationships = parse_relationships(field_data.get("relationships"))

        ref = field_data.get("$ref")
        if isinstance(ref, str) and ref:
            return self._parse_ref_field(
                name, field_data, ref, root, errors, nullable, description, quality,
                explicit_relationships, depth, visited,
            )

        return self._parse_typed_field(
            name, field_data, root, errors, nullable, description, quality,
            explicit_relationships, depth, visited,
        )

    # -- $ref ----------------------------------------------------------------

    def _parse_ref_field(
        self,
        name: str,
        field_data: dict[str, Any],
        ref: str,
        root: Any,
        errors: list[ParserError],
        nullable: bool,
        description: str,
        quality: list[dict[str, Any]],
        explicit_relationships: list[Relationship],
        depth: int,
        visited: frozenset,
    ) -> list[Column]:
        relationships = explicit_relationships or ref_to_relationships(ref)

        if ref in visited:
            logger.warning(f"Field '{name}' closes a $ref cycle through {ref}")
            return [self._placeholder_column(
                name, field_data, description, quality, relationships,
                f"Field '{name}' references {ref} recursively",
            )]

        definition = resolve_ref(ref, root)
        if definition is None:
            logger.warning(f"Field '{name}' references undefined definition: {ref}")
            return [self._placeholder_column(
                name, field_data, description, quality, relationships,
                f"Field '{name}' references undefined definition: {ref}",
            )]

        # Local values win; the definition only fills gaps
        effective = {k: copy.deepcopy(v) for k, v in definition.items()
                     if k not in _DEFINITION_SKIP_KEYS}
        effective.update({k: v for k, v in field_data.items() if k != "$ref"})
        if not description:
            description = str_or_none(definition.get("description")) or ""
        if not _str_list(field_data.get("enum")) and _str_list(definition.get("enum")):
            effective["enum"] = list(definition["enum"])

        quality = quality + extract_field_quality(definition)

        def_required = definition.get("required")
        required_names = _str_list(def_required) if isinstance(def_required, list) else None

        return self._parse_typed_field(
            name, effective, root, errors, nullable, description, quality,
            relationships, depth, visited | {ref}, required_names,
        )

    # -- typed fields ----------------------------------------------------------

    def _parse_typed_field(
        self,
        name: str,
        field_data: dict[str, Any],
        root: Any,
        errors: list[ParserError],
        nullable: bool,
        description: str,
        quality: list[dict[str, Any]],
        relationships: list[Relationship],
        depth: int,
        visited: frozenset,
        required_names: Optional[list[str]] = None,
    ) -> list[Column]:
        type_str = field_type_string(field_data)

        if is_struct_type(type_str):
            children = self.expander.expand_struct_string(name, type_str, nullable, depth)
            if children:
                parent = self.build_column(
                    name, struct_summary_type(type_str), field_data, nullable,
                    description, quality, relationships,
                )
                return [parent, *children]
            # Unexpandable STRUCT text stays as an opaque scalar
            return [self.build_column(
                name, type_str, field_data, nullable, description, quality, relationships,
            )]

        field_type = normalize_data_type(type_str)

        if field_type == "ARRAY":
            return self._parse_array_field(
                name, field_data, root, errors, nullable, description, quality,
                relationships, depth, visited,
            )

        is_object = field_type in ("OBJECT", "STRUCT") \
            or normalize_legacy_type(type_str) == "object"
        if has_nested_properties(field_data) and (is_object or "logicalType" not in field_data
                                                  and "type" not in field_data):
            parent = self.build_column(
                name, "OBJECT", field_data, nullable, description, quality, relationships,
            )
            children = self.expander.expand_children(
                name, field_data, root, nullable, False, depth, visited, errors, required_names,
            )
            return [parent, *children]

        if is_object:
            field_type = "OBJECT"

        return [self.build_column(
            name, field_type, field_data, nullable, description, quality, relationships,
        )]

    def _parse_array_field(
        self,
        name: str,
        field_data: dict[str, Any],
        root: Any,
        errors: list[ParserError],
        nullable: bool,
        description: str,
        quality: list[dict[str, Any]],
        relationships: list[Relationship],
        depth: int,
        visited: frozenset,
    ) -> list[Column]:
        items = field_data.get("items")
        kind = self.expander.array_items_kind(items)

        if kind == "ref":
            item_ref = items["$ref"]
            item_definition = None if item_ref in visited else resolve_ref(item_ref, root)
            if not relationships:
                relationships = ref_to_relationships(item_ref)
            if item_definition is not None and has_nested_properties(item_definition):
                parent = self.build_column(
                    name, ARRAY_OBJECT, field_data, nullable, description, quality, relationships,
                )
                children = self.expander.expand_children(
                    name, item_definition, root, nullable, True, depth, visited | {item_ref},
                    errors,
                )
                return [parent, *children]
            if item_definition is None:
                logger.warning(f"Items of '{name}' reference undefined definition: {item_ref}")
                column = self.build_column(
                    name, ARRAY_OBJECT, field_data, nullable, description, quality, relationships,
                )
                column.errors.append({
                    "type": "validation_error",
                    "field": "data_type",
                    "message": f"Field '{name}' items reference undefined definition: {item_ref}",
                })
                return [column]
            return [self.build_column(
                name, self.expander.scalar_array_type(item_definition), field_data, nullable,
                description, quality, relationships,
            )]

        if kind == "object":
            parent = self.build_column(
                name, ARRAY_OBJECT, field_data, nullable, description, quality, relationships,
            )
            children = self.expander.expand_children(
                name, items, root, nullable, True, depth, visited, errors,
            )
            return [parent, *children]

        # Object items without declared properties
        if isinstance(items, dict) and normalize_legacy_type(field_type_string(items, "")) == "object":
            return [self.build_column(
                name, ARRAY_OBJECT, field_data, nullable, description, quality, relationships,
            )]

        return [self.build_column(
            name, self.expander.scalar_array_type(items), field_data, nullable,
            description, quality, relationships,
        )]

    # -- column construction -------------------------------------------------

    def build_column(
        self,
        name: str,
        data_type: str,
        field_data: dict[str, Any],
        nullable: bool,
        description: str,
        quality: list[dict[str, Any]],
        relationships: list[Relationship],
    ) -> Column:
        """Build one column, copying every supported metadata key from ``field_data``."""
        logical_type_options = field_data.get("logicalTypeOptions")
        authoritative = field_data.get("authoritativeDefinitions")
        examples = field_data.get("examples")

        return Column(
            name=name,
            data_type=data_type,
            description=description,
            id=_column_id(name, field_data),
            business_name=str_or_none(field_data.get("businessName")),
            physical_type=str_or_none(field_data.get("physicalType")),
            physical_name=str_or_none(field_data.get("physicalName")),
            logical_type_options=copy.deepcopy(logical_type_options)
            if isinstance(logical_type_options, dict) else {},
            nullable=nullable,
            primary_key=_bool(field_data.get("primaryKey")),
            primary_key_position=_int_or_none(field_data.get("primaryKeyPosition")),
            unique=_bool(field_data.get("unique")),
            partitioned=_bool(field_data.get("partitioned")),
            partition_key_position=_int_or_none(field_data.get("partitionKeyPosition")),
            clustered=_bool(field_data.get("clustered")),
            classification=str_or_none(field_data.get("classification")),
            critical_data_element=_bool(field_data.get("criticalDataElement")),
            encrypted_name=str_or_none(field_data.get("encryptedName")),
            transform_source_objects=_str_list(field_data.get("transformSourceObjects")),
            transform_logic=str_or_none(field_data.get("transformLogic")),
            transform_description=str_or_none(field_data.get("transformDescription")),
            examples=copy.deepcopy(examples) if isinstance(examples, list) else [],
            default_value=copy.deepcopy(field_data.get("default")),
            business_key=_bool(field_data.get("businessKey")),
            constraints=_str_list(field_data.get("constraints")),
            relationships=list(relationships),
            foreign_key=parse_foreign_key(field_data.get("foreignKey")),
            authoritative_definitions=[copy.deepcopy(a) for a in authoritative
                                       if isinstance(a, dict)]
            if isinstance(authoritative, list) else [],
            quality=list(quality),
            enum_values=_str_list(field_data.get("enum")),
            tags=parse_tags(field_data.get("tags")),
            custom_properties=column_custom_properties(field_data),
        )

    def _placeholder_column(
        self,
        name: str,
        field_data: dict[str, Any],
        description: str,
        quality: list[dict[str, Any]],
        relationships: list[Relationship],
        message: str,
    ) -> Column:
        """OBJECT column standing in for a field whose $ref cannot be followed."""
        column = self.build_column(
            name, "OBJECT", field_data, True, description, quality, relationships,
        )
        column.errors.append({"type": "validation_error", "field": "data_type", "message": message})
        return column

    def _depth_exceeded_column(self, name: str) -> Column:
        limit = self.config.max_nesting_depth
        logger.warning(f"Field '{name}' nests deeper than {limit} levels, not expanded")
        return Column(
            name=name,
            data_type="OBJECT",
            nullable=True,
            errors=[{
                "type": "validation_error",
                "field": "data_type",
                "message": f"Field '{name}' exceeds maximum nesting depth of {limit}",
            }],
        )
