"""Liquibase YAML changelog parser.

Extracts the first ``createTable`` change from a changelog:

    databaseChangeLog:
      - changeSet:
          - createTable:
              tableName: my_table
              columns:
                - column:
                    name: id
                    type: int
                    constraints:
                      primaryKey: true
                      nullable: false

``changeSet`` may also be a mapping holding a ``changes`` list.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

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
from contract_loader.importer.field_parser import str_or_none
from contract_loader.importer.identity import resolve_table_id
from contract_loader.importer.type_normalizer import normalize_data_type

logger = logging.getLogger(__name__)


def is_liquibase(data: dict[str, Any]) -> bool:
    if "databaseChangeLog" in data:
        return True
    return _mentions_change_set(data)


def _mentions_change_set(node: Any) -> bool:
    """True when any key or string value anywhere in ``node`` contains ``changeSet``."""
    if isinstance(node, dict):
        return any(
            "changeSet" in str(key) or _mentions_change_set(value)
            for key, value in node.items()
        )
    if isinstance(node, list):
        return any(_mentions_change_set(item) for item in node)
    if isinstance(node, str):
        return "changeSet" in node
    return False


def iter_changes(changelog: list[Any]) -> Iterator[dict[str, Any]]:
    """Yield every change mapping in changelog order."""
    for entry in changelog:
        if not isinstance(entry, dict):
            continue
        change_set = entry.get("changeSet")
        if isinstance(change_set, dict):
            changes = change_set.get("changes")
            changes = changes if isinstance(changes, list) else []
        elif isinstance(change_set, list):
            changes = change_set
        else:
            continue
        for change in changes:
            if isinstance(change, dict):
                yield change


def find_create_table(changelog: list[Any]) -> Optional[dict[str, Any]]:
    for change in iter_changes(changelog):
        create = change.get("createTable") or change.get("create_table")
        if isinstance(create, dict):
            return create
    return None


class LiquibaseParser(BaseParser):
    """Parses the first createTable of a Liquibase changelog."""

    format = DocumentFormat.LIQUIBASE

    def __init__(self, config: Optional[ImporterConfig] = None):
        self.config = config or get_config()

    def can_parse(self, data: dict[str, Any]) -> bool:
        return is_liquibase(data)

    def parse(self, data: dict[str, Any], **kwargs) -> ParseResult:
        changelog = data.get("databaseChangeLog")
        if not isinstance(changelog, list):
            raise ContractParseError("Liquibase changelog is missing a databaseChangeLog array")

        create = find_create_table(changelog)
        if create is None:
            raise ContractParseError("Liquibase changelog did not contain a createTable")

        table_name = create.get("tableName") or create.get("table_name")
        if not isinstance(table_name, str) or not table_name:
            raise ContractParseError("Liquibase createTable is missing a tableName")

        errors: list[ParserError] = []
        columns: list[Column] = []
        raw_columns = create.get("columns")
        if isinstance(raw_columns, list):
            for idx, entry in enumerate(raw_columns):
                column = self.parse_column(entry, idx, errors)
                if column is not None:
                    columns.append(column)

        table = Table(
            id=resolve_table_id({}, table_name, self.config),
            name=table_name,
            columns=columns,
            catalog_name=str_or_none(create.get("catalogName")),
            schema_name=str_or_none(create.get("schemaName")),
            errors=[e.to_dict() for e in errors],
        )
        remarks = create.get("remarks")
        if isinstance(remarks, str):
            table.metadata["description"] = remarks

        logger.info(f"Parsed Liquibase table: {table.name} with {len(errors)} warnings/errors")
        return table, errors

    def parse_column(
        self, entry: Any, idx: int, errors: list[ParserError]
    ) -> Optional[Column]:
        """One ``column`` entry. A missing name is a soft error and the column is skipped."""
        col = entry.get("column", entry) if isinstance(entry, dict) else None
        name = col.get("name") if isinstance(col, dict) else None
        if not isinstance(name, str) or not name:
            errors.append(ParserError(
                error_type="validation_error",
                field=f"columns[{idx}].name",
                message="Liquibase createTable column missing name",
            ))
            return None

        raw_type = col.get("type")
        column = Column(
            name=name,
            data_type=normalize_data_type(raw_type) if isinstance(raw_type, str) else "",
            physical_type=raw_type if isinstance(raw_type, str) else None,
            description=str_or_none(col.get("remarks")) or "",
            default_value=col.get("defaultValue"),
        )

        constraints = col.get("constraints")
        if isinstance(constraints, dict):
            if isinstance(constraints.get("primaryKey"), bool):
                column.primary_key = constraints["primaryKey"]
            if isinstance(constraints.get("nullable"), bool):
                column.nullable = constraints["nullable"]
            if isinstance(constraints.get("unique"), bool):
                column.unique = constraints["unique"]
        return column
