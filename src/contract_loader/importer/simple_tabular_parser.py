"""Legacy simple tabular format: a ``name`` plus a flat ``columns`` list.

    name: users
    database_type: postgres
    medallion_layers: [silver]
    columns:
      - name: id
        data_type: INT
        primary_key: true
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

from contract_loader.config import ImporterConfig, get_config
from contract_loader.importer.base import (
    BaseParser,
    Column,
    ContractParseError,
    DocumentFormat,
    ParserError,
    ParseResult,
    Table,
)
from contract_loader.importer.enums import (
    DatabaseType,
    DataVaultClassification,
    MedallionLayer,
    SCDPattern,
)
from contract_loader.importer.field_parser import parse_foreign_key
from contract_loader.importer.identity import resolve_table_id
from contract_loader.importer.metadata import (
    check_pattern_exclusivity,
    extract_field_quality,
    extract_table_quality,
)
from contract_loader.importer.tags import parse_tags
from contract_loader.importer.type_normalizer import normalize_data_type

logger = logging.getLogger(__name__)


def _parse_optional(enum_cls, value: Any):
    if not isinstance(value, str):
        return None
    try:
        return enum_cls.parse(value)
    except ValueError:
        logger.debug(f"Ignoring unknown {enum_cls.__name__}: {value}")
        return None


class SimpleTabularParser(BaseParser):
    """Parses the legacy ``name``/``columns`` table format."""

    format = DocumentFormat.SIMPLE_TABULAR

    def __init__(self, config: Optional[ImporterConfig] = None):
        self.config = config or get_config()

    def can_parse(self, data: dict[str, Any]) -> bool:
        return isinstance(data.get("name"), str) and isinstance(data.get("columns"), list)

    def parse(self, data: dict[str, Any], **kwargs) -> ParseResult:
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ContractParseError("Table document is missing required 'name' field")
        columns_data = data.get("columns")
        if not isinstance(columns_data, list):
            raise ContractParseError("Table document is missing required 'columns' field")

        errors: list[ParserError] = []
        columns: list[Column] = []
        for idx, col_data in enumerate(columns_data):
            try:
                columns.append(self.parse_column(col_data))
            except ValueError as exc:
                errors.append(ParserError(
                    error_type="column_parse_error",
                    field=f"columns[{idx}]",
                    message=str(exc),
                ))

        scd_pattern = _parse_optional(SCDPattern, data.get("scd_pattern"))
        data_vault_classification = _parse_optional(
            DataVaultClassification, data.get("data_vault_classification")
        )
        check_pattern_exclusivity(scd_pattern, data_vault_classification, errors)

        odcl_metadata = data.get("odcl_metadata")
        metadata = copy.deepcopy(odcl_metadata) if isinstance(odcl_metadata, dict) else {}

        table = Table(
            id=resolve_table_id(data, name, self.config),
            name=name,
            columns=columns,
            database_type=_parse_optional(DatabaseType, data.get("database_type")),
            catalog_name=data.get("catalog_name") if isinstance(data.get("catalog_name"), str) else None,
            schema_name=data.get("schema_name") if isinstance(data.get("schema_name"), str) else None,
            medallion_layers=self.extract_medallion_layers(data),
            scd_pattern=scd_pattern,
            data_vault_classification=data_vault_classification,
            tags=parse_tags(data.get("tags")),
            metadata=metadata,
            quality=extract_table_quality(data),
            errors=[e.to_dict() for e in errors],
        )

        logger.info(f"Parsed simple table: {table.name} with {len(errors)} warnings/errors")
        return table, errors

    def parse_column(self, col_data: Any) -> Column:
        """Parse one column entry. Raises ValueError when it cannot become a column."""
        if not isinstance(col_data, dict):
            raise ValueError("Column must be an object")

        name = col_data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError("Column missing 'name' field")
        data_type = col_data.get("data_type")
        if not isinstance(data_type, str) or not data_type:
            raise ValueError(f"Column '{name}' missing 'data_type' field")

        nullable = col_data.get("nullable")
        constraints = col_data.get("constraints")
        description = col_data.get("description")

        return Column(
            name=name,
            data_type=normalize_data_type(data_type),
            description=description if isinstance(description, str) else "",
            nullable=nullable if isinstance(nullable, bool) else True,
            primary_key=col_data.get("primary_key") is True,
            unique=col_data.get("unique") is True,
            foreign_key=parse_foreign_key(col_data.get("foreign_key")),
            constraints=[c for c in constraints if isinstance(c, str)]
            if isinstance(constraints, list) else [],
            quality=extract_field_quality(col_data),
        )

    @staticmethod
    def extract_medallion_layers(data: dict[str, Any]) -> list[MedallionLayer]:
        """Plural ``medallion_layers`` list, else the singular ``medallion_layer``."""
        raw = data.get("medallion_layers")
        if isinstance(raw, list):
            layers = [_parse_optional(MedallionLayer, item) for item in raw]
            return [layer for layer in layers if layer is not None]

        single = _parse_optional(MedallionLayer, data.get("medallion_layer"))
        return [single] if single is not None else []
