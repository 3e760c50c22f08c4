"""Contract importer: parse any supported contract dialect into canonical tables."""

from contract_loader.importer.base import (
    BaseParser,
    Column,
    ContractParseError,
    DocumentFormat,
    ForeignKey,
    ParserError,
    Relationship,
    Table,
)
from contract_loader.importer.data_contract_parser import DataContractParser
from contract_loader.importer.detector import FormatDetector
from contract_loader.importer.enums import (
    DatabaseType,
    DataVaultClassification,
    MedallionLayer,
    SCDPattern,
)
from contract_loader.importer.facade import (
    ContractImporter,
    ImportResult,
    TableData,
    load_document,
)
from contract_loader.importer.field_parser import FieldParser
from contract_loader.importer.liquibase_parser import LiquibaseParser
from contract_loader.importer.nested import NestedTypeExpander, split_struct_fields
from contract_loader.importer.references import ref_to_relationship, resolve_ref
from contract_loader.importer.schema_v3_parser import SchemaV3Parser
from contract_loader.importer.simple_tabular_parser import SimpleTabularParser
from contract_loader.importer.tags import Tag, TagKind
from contract_loader.importer.type_normalizer import normalize_data_type
