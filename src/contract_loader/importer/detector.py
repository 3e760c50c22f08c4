"""Auto-detection of the contract dialect of a loaded document."""

from __future__ import annotations

import logging
from typing import Any, Callable

from contract_loader.importer.base import DocumentFormat
from contract_loader.importer.data_contract_parser import is_data_contract_spec
from contract_loader.importer.liquibase_parser import is_liquibase
from contract_loader.importer.schema_v3_parser import is_schema_v3

logger = logging.getLogger(__name__)


class FormatDetector:
    """Selects the dialect of a document.

    Priority:
    1. Liquibase changelog (``databaseChangeLog`` key or a ``changeSet`` anywhere)
    2. v3 contract (``apiVersion``, ``kind: DataContract``, ``id`` and ``version``)
    3. Data Contract Specification (``dataContractSpecification`` and a ``models`` mapping)
    4. Simple tabular format, the fallback
    """

    PREDICATES: list[tuple[DocumentFormat, Callable[[dict[str, Any]], bool]]] = [
        (DocumentFormat.LIQUIBASE, is_liquibase),
        (DocumentFormat.SCHEMA_V3, is_schema_v3),
        (DocumentFormat.DATA_CONTRACT_SPEC, is_data_contract_spec),
    ]

    @classmethod
    def detect(cls, data: Any) -> DocumentFormat:
        if isinstance(data, dict):
            for fmt, predicate in cls.PREDICATES:
                if predicate(data):
                    logger.debug(f"Detected document format: {fmt.value}")
                    return fmt
        logger.debug(f"Detected document format: {DocumentFormat.SIMPLE_TABULAR.value}")
        return DocumentFormat.SIMPLE_TABULAR
