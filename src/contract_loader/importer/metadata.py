"""Metadata merging across contract, schema and column scope.

Precedence:
- Table custom properties: contract-scope list followed by the table's own
  schema-scope list, in declaration order. Nothing is de-duplicated.
- Column custom properties: folded into a dict, last write wins.
- Quality rules: concatenated in source order, never de-duplicated and never
  synthesized from ``required``/``nullable``.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from contract_loader.importer.base import ParserError
from contract_loader.importer.enums import (
    DatabaseType,
    DataVaultClassification,
    MedallionLayer,
    SCDPattern,
)
from contract_loader.importer.tags import Tag, merge_tags, parse_tags

logger = logging.getLogger(__name__)

# Contract-level keys carried into Table.metadata untouched
CONTRACT_PASSTHROUGH_KEYS = [
    "servicelevels",
    "links",
    "domain",
    "dataProduct",
    "tenant",
    "description",
    "pricing",
    "team",
    "roles",
    "terms",
    "servers",
    "infrastructure",
]


# ---------------------------------------------------------------------------
# Quality rules
# ---------------------------------------------------------------------------

def _rules_from(value: Any, allow_string: bool = False) -> list[dict[str, Any]]:
    if isinstance(value, list):
        return [copy.deepcopy(item) for item in value if isinstance(item, dict)]
    if isinstance(value, dict):
        return [copy.deepcopy(value)]
    if allow_string and isinstance(value, str):
        return [{"value": value}]
    return []


def extract_field_quality(obj: dict[str, Any]) -> list[dict[str, Any]]:
    """Quality rules declared directly on a field or definition."""
    return _rules_from(obj.get("quality"))


def extract_table_quality(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Table quality from ``quality``, legacy ``metadata.quality`` and ``tblproperties``."""
    rules = _rules_from(data.get("quality"), allow_string=True)

    legacy_metadata = data.get("metadata")
    if isinstance(legacy_metadata, dict):
        rules.extend(_rules_from(legacy_metadata.get("quality"), allow_string=True))

    tblproperties = data.get("tblproperties")
    if isinstance(tblproperties, dict):
        for key, value in tblproperties.items():
            rules.append({"property": key, "value": copy.deepcopy(value)})

    return rules


# ---------------------------------------------------------------------------
# Custom properties
# ---------------------------------------------------------------------------

def custom_property_list(obj: Any) -> list[dict[str, Any]]:
    """The ``customProperties`` entries of a mapping that have a ``property`` key."""
    if not isinstance(obj, dict):
        return []
    raw = obj.get("customProperties")
    if not isinstance(raw, list):
        return []
    return [copy.deepcopy(p) for p in raw if isinstance(p, dict) and "property" in p]


def merge_table_custom_properties(
    contract: dict[str, Any], schema_object: Optional[dict[str, Any]] = None
) -> list[dict[str, Any]]:
    """Contract-scope entries followed by this table's schema-scope entries."""
    merged = custom_property_list(contract)
    if schema_object is not None and schema_object is not contract:
        merged.extend(custom_property_list(schema_object))
    return merged


def column_custom_properties(field_data: dict[str, Any]) -> dict[str, Any]:
    """Fold column custom properties into a dict. Later keys overwrite earlier ones.

    Accepts the list form (``[{property, value}]``) and a plain mapping.
    """
    raw = field_data.get("customProperties")
    props: dict[str, Any] = {}
    if isinstance(raw, list):
        for entry in raw:
            if isinstance(entry, dict) and isinstance(entry.get("property"), str):
                props[entry["property"]] = copy.deepcopy(entry.get("value"))
    elif isinstance(raw, dict):
        for key, value in raw.items():
            props[str(key)] = copy.deepcopy(value)
    return props


@dataclass
class TableMetadata:
    """Table attributes promoted out of custom properties."""

    medallion_layers: list[MedallionLayer] = field(default_factory=list)
    scd_pattern: Optional[SCDPattern] = None
    data_vault_classification: Optional[DataVaultClassification] = None
    tags: list[Tag] = field(default_factory=list)
    shared_domains: list[str] = field(default_factory=list)
    catalog_name: Optional[str] = None
    schema_name: Optional[str] = None


def _parse_medallion_layers(value: Any) -> list[MedallionLayer]:
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    elif isinstance(value, list):
        items = [item for item in value if isinstance(item, str)]
    else:
        return []

    layers = []
    for item in items:
        try:
            layers.append(MedallionLayer.parse(item))
        except ValueError:
            logger.debug(f"Ignoring unknown medallion layer: {item}")
    return layers


def extract_table_metadata(
    custom_properties: list[dict[str, Any]], data: Optional[dict[str, Any]] = None
) -> TableMetadata:
    """Promote known custom properties to table attributes.

    Top-level ``tags`` and ``catalog_name``/``schema_name`` fields on ``data``
    are merged in after the custom properties.
    """
    meta = TableMetadata()

    for prop in custom_properties:
        key = prop.get("property")
        value = prop.get("value")

        if key in ("medallionLayers", "medallion_layers"):
            meta.medallion_layers.extend(_parse_medallion_layers(value))
        elif key in ("scdPattern", "scd_pattern"):
            if isinstance(value, str):
                try:
                    meta.scd_pattern = SCDPattern.parse(value)
                except ValueError:
                    logger.debug(f"Ignoring unknown SCD pattern: {value}")
        elif key in ("dataVaultClassification", "data_vault_classification"):
            if isinstance(value, str):
                try:
                    meta.data_vault_classification = DataVaultClassification.parse(value)
                except ValueError:
                    logger.debug(f"Ignoring unknown Data Vault classification: {value}")
        elif key == "tags":
            meta.tags.extend(parse_tags(value))
        elif key in ("sharedDomains", "shared_domains"):
            if isinstance(value, list):
                meta.shared_domains.extend(v for v in value if isinstance(v, str))
        elif key in ("catalogName", "catalog_name"):
            if isinstance(value, str):
                meta.catalog_name = value
        elif key in ("schemaName", "schema_name"):
            if isinstance(value, str):
                meta.schema_name = value

    if data is not None:
        meta.tags = merge_tags(meta.tags, parse_tags(data.get("tags")))
        if meta.catalog_name is None and isinstance(data.get("catalog_name"), str):
            meta.catalog_name = data["catalog_name"]
        if meta.schema_name is None and isinstance(data.get("schema_name"), str):
            meta.schema_name = data["schema_name"]

    return meta


# ---------------------------------------------------------------------------
# Contract metadata
# ---------------------------------------------------------------------------

def contract_metadata(data: dict[str, Any], leading_keys: list[str]) -> dict[str, Any]:
    """Copy contract-level fields into a metadata dict.

    ``leading_keys`` are always present (None when absent); the passthrough
    keys are copied only when the document carries them.
    """
    metadata: dict[str, Any] = {key: copy.deepcopy(data.get(key)) for key in leading_keys}
    for key in CONTRACT_PASSTHROUGH_KEYS:
        if key in data:
            metadata[key] = copy.deepcopy(data[key])
    return metadata


def database_type_from_servers(data: dict[str, Any]) -> Optional[DatabaseType]:
    """Database type of the first server. ``servers`` may be a list or a mapping."""
    servers = data.get("servers")
    first: Any = None
    if isinstance(servers, list) and servers:
        first = servers[0]
    elif isinstance(servers, dict) and servers:
        first = next(iter(servers.values()))

    if not isinstance(first, dict) or not isinstance(first.get("type"), str):
        return None
    try:
        return DatabaseType.parse(first["type"])
    except ValueError:
        return None


def check_pattern_exclusivity(
    scd_pattern: Optional[SCDPattern],
    data_vault_classification: Optional[DataVaultClassification],
    errors: list[ParserError],
) -> None:
    """Record a diagnostic when both modeling patterns are set. Neither is dropped."""
    if scd_pattern is not None and data_vault_classification is not None:
        errors.append(ParserError(
            error_type="validation_error",
            field="patterns",
            message="SCD pattern and Data Vault classification are mutually exclusive",
        ))
