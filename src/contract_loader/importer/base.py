"""Base types and abstract parser for the contract importer.

Every dialect parser converts a loaded contract document into the same
canonical Table/Column model, returning soft diagnostics alongside the
table and raising ContractParseError only when no table can be produced.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from contract_loader.importer.enums import (
    DatabaseType,
    DataVaultClassification,
    MedallionLayer,
    SCDPattern,
)
from contract_loader.importer.tags import Tag


class DocumentFormat(str, Enum):
    """Detected contract dialect for auto-routing."""

    LIQUIBASE = "liquibase"
    SCHEMA_V3 = "schema_v3"
    DATA_CONTRACT_SPEC = "data_contract_spec"
    SIMPLE_TABULAR = "simple_tabular"


class ContractParseError(ValueError):
    """Raised when a document cannot produce a table at all."""


@dataclass
class ParserError:
    """A soft diagnostic. Parsing continues after one is recorded."""

    error_type: str
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"error_type": self.error_type, "field": self.field, "message": self.message}


@dataclass
class Relationship:
    """A directed edge from a column to another schema element."""

    type: str
    to: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, "to": self.to}


@dataclass
class ForeignKey:
    """Legacy table/column foreign key pointer."""

    table_id: str
    column_name: str


@dataclass
class Column:
    """A column in the canonical model.

    Flattened nested fields use dot paths (``address.city``) and a literal
    ``[]`` segment for array elements (``items.[].sku``).
    """

    name: str
    data_type: str
    description: str = ""
    id: Optional[str] = None
    business_name: Optional[str] = None
    physical_type: Optional[str] = None
    physical_name: Optional[str] = None
    logical_type_options: dict[str, Any] = field(default_factory=dict)
    nullable: bool = True
    primary_key: bool = False
    primary_key_position: Optional[int] = None
    unique: bool = False
    partitioned: bool = False
    partition_key_position: Optional[int] = None
    clustered: bool = False
    classification: Optional[str] = None
    critical_data_element: bool = False
    encrypted_name: Optional[str] = None
    transform_source_objects: list[str] = field(default_factory=list)
    transform_logic: Optional[str] = None
    transform_description: Optional[str] = None
    examples: list[Any] = field(default_factory=list)
    default_value: Any = None
    business_key: bool = False
    constraints: list[str] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    foreign_key: Optional[ForeignKey] = None
    authoritative_definitions: list[dict[str, Any]] = field(default_factory=list)
    quality: list[dict[str, Any]] = field(default_factory=list)
    enum_values: list[str] = field(default_factory=list)
    tags: list[Tag] = field(default_factory=list)
    custom_properties: dict[str, Any] = field(default_factory=dict)
    errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional values."""
        out: dict[str, Any] = {
            "name": self.name,
            "dataType": self.data_type,
            "nullable": self.nullable,
            "primaryKey": self.primary_key,
            "unique": self.unique,
        }
        optional = {
            "id": self.id,
            "businessName": self.business_name,
            "description": self.description or None,
            "physicalType": self.physical_type,
            "physicalName": self.physical_name,
            "logicalTypeOptions": self.logical_type_options or None,
            "primaryKeyPosition": self.primary_key_position,
            "partitioned": self.partitioned or None,
            "partitionKeyPosition": self.partition_key_position,
            "clustered": self.clustered or None,
            "classification": self.classification,
            "criticalDataElement": self.critical_data_element or None,
            "encryptedName": self.encrypted_name,
            "transformSourceObjects": self.transform_source_objects or None,
            "transformLogic": self.transform_logic,
            "transformDescription": self.transform_description,
            "examples": self.examples or None,
            "defaultValue": self.default_value,
            "businessKey": self.business_key or None,
            "constraints": self.constraints or None,
            "relationships": [r.to_dict() for r in self.relationships] or None,
            "foreignKey": (
                {"table": self.foreign_key.table_id, "column": self.foreign_key.column_name}
                if self.foreign_key else None
            ),
            "authoritativeDefinitions": self.authoritative_definitions or None,
            "quality": self.quality or None,
            "enumValues": self.enum_values or None,
            "tags": [str(t) for t in self.tags] or None,
            "customProperties": self.custom_properties or None,
            "errors": self.errors or None,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        return out


@dataclass
class Table:
    """One table in the canonical model, produced by a single parse call."""

    id: uuid.UUID
    name: str
    columns: list[Column] = field(default_factory=list)
    database_type: Optional[DatabaseType] = None
    catalog_name: Optional[str] = None
    schema_name: Optional[str] = None
    medallion_layers: list[MedallionLayer] = field(default_factory=list)
    scd_pattern: Optional[SCDPattern] = None
    data_vault_classification: Optional[DataVaultClassification] = None
    tags: list[Tag] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    quality: list[dict[str, Any]] = field(default_factory=list)
    custom_properties: list[dict[str, Any]] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)

    def column(self, name: str) -> Optional[Column]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "databaseType": self.database_type.value if self.database_type else None,
            "catalogName": self.catalog_name,
            "schemaName": self.schema_name,
            "medallionLayers": [m.value for m in self.medallion_layers],
            "scdPattern": self.scd_pattern.value if self.scd_pattern else None,
            "dataVaultClassification": (
                self.data_vault_classification.value if self.data_vault_classification else None
            ),
            "tags": [str(t) for t in self.tags],
            "metadata": self.metadata,
            "quality": self.quality,
            "customProperties": self.custom_properties,
            "errors": self.errors,
        }


ParseResult = tuple[Table, list[ParserError]]


class BaseParser(ABC):
    """Abstract base class for contract dialect parsers.

    Parsers are stateless: the root document is passed to every call that
    needs it, so one instance may be shared across threads.
    """

    format: DocumentFormat

    @abstractmethod
    def parse(self, data: dict[str, Any], **kwargs) -> ParseResult:
        """Parse a loaded document into a Table plus soft diagnostics."""
        ...

    @abstractmethod
    def can_parse(self, data: dict[str, Any]) -> bool:
        """Return True if this parser recognizes the document shape."""
        ...
