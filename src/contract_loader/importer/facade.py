"""Import facade: text in, canonical tables out.

Orchestrates loading (JSON or YAML), dialect detection and the selected
dialect parser. ``import_`` adapts the result to a flat, dict-based shape for
callers that do not want the dataclass model.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from contract_loader.config import ImporterConfig, get_config
from contract_loader.importer.base import (
    BaseParser,
    ContractParseError,
    DocumentFormat,
    ParseResult,
    Table,
)
from contract_loader.importer.data_contract_parser import DataContractParser
from contract_loader.importer.detector import FormatDetector
from contract_loader.importer.liquibase_parser import LiquibaseParser
from contract_loader.importer.schema_v3_parser import SchemaV3Parser
from contract_loader.importer.simple_tabular_parser import SimpleTabularParser

logger = logging.getLogger(__name__)


def load_document(content: str) -> dict[str, Any]:
    """Load JSON or YAML text into a mapping.

    Raises ContractParseError for malformed text, an empty document, or a
    document whose root is not a mapping.
    """
    stripped = content.strip()
    if not stripped:
        raise ContractParseError("Empty document")

    if stripped.startswith("{"):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as json_exc:
            # YAML flow mappings also start with a brace
            try:
                data = yaml.safe_load(stripped)
            except yaml.YAMLError as exc:
                raise ContractParseError(
                    f"Failed to parse JSON or YAML: {json_exc}"
                ) from exc
    else:
        try:
            data = yaml.safe_load(stripped)
        except yaml.YAMLError as exc:
            raise ContractParseError(f"Failed to parse YAML: {exc}") from exc

    if data is None:
        raise ContractParseError("Empty document")
    if not isinstance(data, dict):
        raise ContractParseError(
            f"Document root must be a mapping, got {type(data).__name__}"
        )
    return data


@dataclass
class TableData:
    """Flat view of one imported table."""

    table_index: int
    name: str
    id: str
    columns: list[dict[str, Any]] = field(default_factory=list)
    quality: list[dict[str, Any]] = field(default_factory=list)
    custom_properties: list[dict[str, Any]] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_table(cls, table: Table, table_index: int = 0) -> TableData:
        return cls(
            table_index=table_index,
            name=table.name,
            id=str(table.id),
            columns=[c.to_dict() for c in table.columns],
            quality=list(table.quality),
            custom_properties=list(table.custom_properties),
            tags=[str(t) for t in table.tags],
            metadata=dict(table.metadata),
        )


@dataclass
class ImportResult:
    """Tables plus the soft diagnostics raised while parsing them."""

    tables: list[TableData] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _drop_table_uuid(custom_properties: Any) -> Any:
    if not isinstance(custom_properties, list):
        return custom_properties
    return [
        p for p in custom_properties
        if not (isinstance(p, dict) and p.get("property") == "tableUuid")
    ]


def _table_view(data: dict[str, Any], table_obj: dict[str, Any]) -> dict[str, Any]:
    """Copy of the contract whose identity comes from one table, not the contract.

    The contract ``id`` and any contract-scope ``tableUuid`` would otherwise
    give every table of a multi-table document the same id.
    """
    view = dict(data)
    view["customProperties"] = _drop_table_uuid(data.get("customProperties"))
    table_id = table_obj.get("id")
    if isinstance(table_id, str) and table_id:
        view["id"] = table_id
    else:
        view.pop("id", None)
    return view


class ContractImporter:
    """Single entry point for importing contract documents.

    Stateless between calls; one instance may be shared.
    """

    def __init__(self, config: Optional[ImporterConfig] = None):
        self.config = config or get_config()
        self.parsers: dict[DocumentFormat, BaseParser] = {
            DocumentFormat.LIQUIBASE: LiquibaseParser(self.config),
            DocumentFormat.SCHEMA_V3: SchemaV3Parser(self.config),
            DocumentFormat.DATA_CONTRACT_SPEC: DataContractParser(self.config),
            DocumentFormat.SIMPLE_TABULAR: SimpleTabularParser(self.config),
        }

    def parser_for(self, data: dict[str, Any]) -> BaseParser:
        return self.parsers[FormatDetector.detect(data)]

    def parse_document(self, data: dict[str, Any]) -> ParseResult:
        """Parse an already-loaded document into one table."""
        return self.parser_for(data).parse(data)

    def parse_table(self, content: str) -> ParseResult:
        """Parse JSON/YAML text into one table plus soft diagnostics."""
        return self.parse_document(load_document(content))

    def parse_all(self, content: str) -> list[ParseResult]:
        """Parse every table of a multi-table document.

        One result per v3 schema object or per Data Contract Specification
        model. Other dialects carry a single table.
        """
        data = load_document(content)
        fmt = FormatDetector.detect(data)
        parser = self.parsers[fmt]

        if fmt == DocumentFormat.SCHEMA_V3:
            schema = data.get("schema")
            if not isinstance(schema, list) or len(schema) <= 1:
                return [parser.parse(data)]
            results = []
            for obj in schema:
                if not isinstance(obj, dict):
                    continue
                view = _table_view(data, obj)
                view["schema"] = [obj]
                if isinstance(obj.get("name"), str) and obj["name"]:
                    view["name"] = obj["name"]
                results.append(parser.parse(view))
            return results

        if fmt == DocumentFormat.DATA_CONTRACT_SPEC:
            models = data["models"]
            if len(models) <= 1:
                return [parser.parse(data)]
            results = []
            for model_name, model in models.items():
                view = _table_view(data, model if isinstance(model, dict) else {})
                view["models"] = {model_name: model}
                results.append(parser.parse(view))
            return results

        return [parser.parse(data)]

    def import_(self, content: str) -> ImportResult:
        """Parse one table and adapt it to the flat ImportResult shape."""
        table, errors = self.parse_table(content)
        return ImportResult(
            tables=[TableData.from_table(table)],
            errors=[e.message for e in errors],
        )
