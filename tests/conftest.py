"""Shared fixtures: a minimal v3.1.0 contract writer used for round-trip tests."""

from typing import Any

import pytest
import yaml

from contract_loader.config import ImporterConfig, set_config
from contract_loader.importer.base import Column, Table
from contract_loader.importer.nested import ARRAY_MARKER


def _logical_type(column: Column) -> dict[str, Any]:
    upper = column.data_type.upper()
    if upper in ("OBJECT",) or upper.startswith("STRUCT<"):
        return {"logicalType": "object"}
    if upper in ("ARRAY<OBJECT>",) or upper.startswith("ARRAY<STRUCT<"):
        return {"logicalType": "array", "items": {"logicalType": "object"}}
    if upper.startswith("ARRAY<") and upper.endswith(">"):
        return {"logicalType": "array", "items": {"logicalType": column.data_type[6:-1]}}
    return {"logicalType": column.data_type}


def _property(column: Column, leaf: str) -> dict[str, Any]:
    prop: dict[str, Any] = {"name": leaf, **_logical_type(column)}
    if not column.nullable:
        prop["required"] = True
    if column.primary_key:
        prop["primaryKey"] = True
    if column.description:
        prop["description"] = column.description
    if column.physical_type:
        prop["physicalType"] = column.physical_type
    if column.relationships:
        prop["relationships"] = [r.to_dict() for r in column.relationships]
    if column.quality:
        prop["quality"] = list(column.quality)
    return prop


def export_v31(table: Table) -> str:
    """Write a table as a v3.1.0 contract, rebuilding nesting from column paths."""
    top: list[dict[str, Any]] = []
    by_path: dict[str, dict[str, Any]] = {}

    for column in table.columns:
        segments = column.name.split(".")
        prop = _property(column, segments[-1])
        by_path[column.name] = prop

        parent_segments = segments[:-1]
        if not parent_segments:
            top.append(prop)
            continue
        if parent_segments[-1] == ARRAY_MARKER:
            parent = by_path[".".join(parent_segments[:-1])]
            parent.setdefault("items", {"logicalType": "object"}).setdefault("properties", []).append(prop)
        else:
            parent = by_path[".".join(parent_segments)]
            parent.setdefault("properties", []).append(prop)

    doc = {
        "apiVersion": "v3.1.0",
        "kind": "DataContract",
        "id": str(table.id),
        "version": "1.0.0",
        "name": table.name,
        "schema": [{"name": table.name, "properties": top}],
    }
    if table.custom_properties:
        doc["customProperties"] = table.custom_properties
    return yaml.safe_dump(doc, sort_keys=False)


@pytest.fixture
def exporter():
    return export_v31


@pytest.fixture(autouse=True)
def default_config():
    """Each test starts from the default configuration."""
    set_config(ImporterConfig())
    yield
    set_config(None)
