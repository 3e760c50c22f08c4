"""Parser for the current tabular contract standard (v3.0.x and v3.1.0).

Accepts two shapes for a schema object's ``properties``:
1. v3.0.x: a map of field name -> property object
2. v3.1.0: a list of property objects, each carrying its own ``name`` (or ``id``)

Both shapes produce identical columns.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from contract_loader.config import ImporterConfig
from contract_loader.importer.base import (
    BaseParser,
    Column,
    ContractParseError,
    DocumentFormat,
    ParserError,
    ParseResult,
    Table,
)
from contract_loader.importer.field_parser import FIELD_ERRORS, FieldParser
from contract_loader.importer.identity import resolve_table_id
from contract_loader.importer.metadata import (
    check_pattern_exclusivity,
    contract_metadata,
    database_type_from_servers,
    extract_table_metadata,
    extract_table_quality,
    merge_table_custom_properties,
)
from contract_loader.importer.tags import merge_tags, parse_tags

logger = logging.getLogger(__name__)

METADATA_KEYS = ["apiVersion", "kind", "id", "version", "status"]


def is_schema_v3(data: dict[str, Any]) -> bool:
    return (
        "apiVersion" in data
        and data.get("kind") == "DataContract"
        and "id" in data
        and "version" in data
    )


def first_schema_name(data: dict[str, Any]) -> Optional[str]:
    schema = data.get("schema")
    if isinstance(schema, list) and schema and isinstance(schema[0], dict):
        name = schema[0].get("name")
        if isinstance(name, str) and name:
            return name
    return None


class SchemaV3Parser(BaseParser):
    """Parses v3.x data contracts. One call produces the table of one schema object."""

    format = DocumentFormat.SCHEMA_V3

    def __init__(self, config: Optional[ImporterConfig] = None):
        self.field_parser = FieldParser(config)

    @property
    def config(self) -> ImporterConfig:
        return self.field_parser.config

    def can_parse(self, data: dict[str, Any]) -> bool:
        return is_schema_v3(data)

    def parse(self, data: dict[str, Any], **kwargs) -> ParseResult:
        """Parse the table of ``schema[schema_index]`` (default: the first).

        The table name is the top-level ``name``, falling back to the schema
        object's own name. A missing, invalid or empty ``schema`` yields an
        empty table plus a diagnostic.
        """
        schema_index = kwargs.get("schema_index", 0)
        errors: list[ParserError] = []

        top_name = data.get("name")
        table_name = top_name if isinstance(top_name, str) and top_name else first_schema_name(data)
        if not table_name:
            raise ContractParseError(
                "Contract is missing a 'name' field and has no named schema objects"
            )

        schema = data.get("schema")
        if not isinstance(schema, list):
            errors.append(ParserError(
                error_type="validation_error",
                field="schema",
                message="Contract is missing a 'schema' array",
            ))
            return self._finish(data, table_name, None, [], errors)

        if not schema:
            errors.append(ParserError(
                error_type="validation_error",
                field="schema",
                message="Contract schema array is empty",
            ))
            return self._finish(data, table_name, None, [], errors)

        if schema_index >= len(schema) or not isinstance(schema[schema_index], dict):
            errors.append(ParserError(
                error_type="validation_error",
                field=f"schema[{schema_index}]",
                message=f"Schema object {schema_index} must be a dictionary",
            ))
            return self._finish(data, table_name, None, [], errors)

        schema_object = schema[schema_index]
        columns = self.parse_properties(schema_object, data, table_name, errors)
        return self._finish(data, table_name, schema_object, columns, errors)

    def parse_properties(
        self,
        schema_object: dict[str, Any],
        root: dict[str, Any],
        table_name: str,
        errors: list[ParserError],
    ) -> list[Column]:
        """Parse every property of a schema object, in declaration order."""
        object_name = schema_object.get("name") or table_name
        properties = schema_object.get("properties")
        columns: list[Column] = []

        if isinstance(properties, dict):
            for prop_name, prop in properties.items():
                if not isinstance(prop, dict):
                    errors.append(ParserError(
                        error_type="validation_error",
                        field=f"Property '{prop_name}'",
                        message=f"Property '{prop_name}' must be an object",
                    ))
                    continue
                columns.extend(self._parse_property(
                    str(prop_name), prop, root, errors, f"Property '{prop_name}'",
                ))

        elif isinstance(properties, list):
            for idx, prop in enumerate(properties):
                if not isinstance(prop, dict):
                    errors.append(ParserError(
                        error_type="validation_error",
                        field=f"Property[{idx}]",
                        message=f"Property[{idx}] must be an object",
                    ))
                    continue
                prop_name = prop.get("name") or prop.get("id")
                if not isinstance(prop_name, str) or not prop_name:
                    errors.append(ParserError(
                        error_type="validation_error",
                        field=f"Property[{idx}]",
                        message=f"Property[{idx}] missing required 'name' or 'id' field",
                    ))
                    continue
                columns.extend(self._parse_property(
                    prop_name, prop, root, errors, f"Property[{idx}] '{prop_name}'",
                ))

        else:
            errors.append(ParserError(
                error_type="validation_error",
                field=f"Object '{object_name}'",
                message=f"Object '{object_name}' missing 'properties' field or properties is invalid",
            ))

        return columns

    def _parse_property(
        self,
        name: str,
        prop: dict[str, Any],
        root: dict[str, Any],
        errors: list[ParserError],
        label: str,
    ) -> list[Column]:
        try:
            return self.field_parser.parse_field(name, prop, root, errors)
        except FIELD_ERRORS as exc:
            errors.append(ParserError(
                error_type="property_parse_error",
                field=label,
                message=str(exc),
            ))
            return []

    def _finish(
        self,
        data: dict[str, Any],
        table_name: str,
        schema_object: Optional[dict[str, Any]],
        columns: list[Column],
        errors: list[ParserError],
    ) -> ParseResult:
        custom_properties = merge_table_custom_properties(data, schema_object)
        meta = extract_table_metadata(custom_properties, data)
        check_pattern_exclusivity(meta.scd_pattern, meta.data_vault_classification, errors)
        if schema_object is not None:
            meta.tags = merge_tags(meta.tags, parse_tags(schema_object.get("tags")))

        quality = extract_table_quality(data)
        if schema_object is not None:
            quality.extend(extract_table_quality(
                {"quality": schema_object.get("quality")}
            ))

        metadata = contract_metadata(data, METADATA_KEYS)
        if meta.shared_domains:
            metadata["sharedDomains"] = list(meta.shared_domains)

        table = Table(
            id=resolve_table_id(data, table_name, self.config),
            name=table_name,
            columns=columns,
            database_type=database_type_from_servers(data),
            catalog_name=meta.catalog_name,
            schema_name=meta.schema_name,
            medallion_layers=meta.medallion_layers,
            scd_pattern=meta.scd_pattern,
            data_vault_classification=meta.data_vault_classification,
            tags=meta.tags,
            metadata=metadata,
            quality=quality,
            custom_properties=custom_properties,
            errors=[e.to_dict() for e in errors],
        )

        logger.info(f"Parsed v3 contract table: {table.name} with {len(errors)} warnings/errors")
        return table, errors
