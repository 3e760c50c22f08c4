"""Parser for the legacy Data Contract Specification dialect.

Only the first entry of ``models`` is parsed. Callers that need every model
invoke the parser once per model (see ContractImporter.parse_all).
"""

from __future__ import annotations

import copy
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

logger = logging.getLogger(__name__)

METADATA_KEYS = ["dataContractSpecification", "id"]


def is_data_contract_spec(data: dict[str, Any]) -> bool:
    return "dataContractSpecification" in data and isinstance(data.get("models"), dict)


class DataContractParser(BaseParser):
    """Parses the first model of a Data Contract Specification document."""

    format = DocumentFormat.DATA_CONTRACT_SPEC

    def __init__(self, config: Optional[ImporterConfig] = None):
        self.field_parser = FieldParser(config)

    @property
    def config(self) -> ImporterConfig:
        return self.field_parser.config

    def can_parse(self, data: dict[str, Any]) -> bool:
        return is_data_contract_spec(data)

    def parse(self, data: dict[str, Any], **kwargs) -> ParseResult:
        models = data.get("models")
        if not isinstance(models, dict):
            raise ContractParseError("Data contract is missing a 'models' mapping")
        if not models:
            raise ContractParseError("Data contract 'models' mapping is empty")

        model_name, model = next(iter(models.items()))
        model_name = str(model_name)
        if not isinstance(model, dict):
            raise ContractParseError(f"Model '{model_name}' must be an object")

        errors: list[ParserError] = []
        fields = model.get("fields")
        if not isinstance(fields, dict):
            errors.append(ParserError(
                error_type="validation_error",
                field=f"Model '{model_name}'",
                message=f"Model '{model_name}' missing 'fields' field",
            ))
            return self._finish(data, model_name, model, [], errors)

        columns = self.parse_fields(fields, data, errors)
        return self._finish(data, model_name, model, columns, errors)

    def parse_fields(
        self, fields: dict[str, Any], root: dict[str, Any], errors: list[ParserError]
    ) -> list[Column]:
        columns: list[Column] = []
        for field_name, field_data in fields.items():
            if not isinstance(field_data, dict):
                errors.append(ParserError(
                    error_type="validation_error",
                    field=f"Field '{field_name}'",
                    message=f"Field '{field_name}' must be an object",
                ))
                continue
            try:
                columns.extend(self.field_parser.parse_field(
                    str(field_name), field_data, root, errors,
                ))
            except FIELD_ERRORS as exc:
                errors.append(ParserError(
                    error_type="field_parse_error",
                    field=f"Field '{field_name}'",
                    message=str(exc),
                ))
        return columns

    def _finish(
        self,
        data: dict[str, Any],
        model_name: str,
        model: dict[str, Any],
        columns: list[Column],
        errors: list[ParserError],
    ) -> ParseResult:
        custom_properties = merge_table_custom_properties(data, model)
        meta = extract_table_metadata(custom_properties, data)
        check_pattern_exclusivity(meta.scd_pattern, meta.data_vault_classification, errors)

        quality = extract_table_quality(data)
        quality.extend(extract_table_quality({"quality": model.get("quality")}))

        metadata = contract_metadata(data, METADATA_KEYS)
        if "info" in data:
            metadata["info"] = copy.deepcopy(data["info"])
        if meta.shared_domains:
            metadata["sharedDomains"] = list(meta.shared_domains)

        table = Table(
            id=resolve_table_id(data, model_name, self.config),
            name=model_name,
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

        logger.info(f"Parsed data contract table: {model_name} with {len(errors)} warnings/errors")
        return table, errors
