"""Tests for the import facade, multi-table helper and round-trip fidelity."""

import json
import uuid

import pytest
import yaml

from contract_loader.config import ImporterConfig
from contract_loader.importer.base import ContractParseError
from contract_loader.importer.facade import ContractImporter, ImportResult, load_document

TABLE_UUID = "5c4b3a29-1807-4f6e-8d5c-4b3a29180706"

SCENARIO_A = "name: users\ncolumns:\n  - name: id\n    data_type: INT\n    primary_key: true"

SCENARIO_B = f"""\
apiVersion: v3.1.0
kind: DataContract
id: {TABLE_UUID}
version: 1.0.0
name: orders
schema:
  - name: orders
    properties:
      - name: order_ref
        $ref: '#/definitions/order_id'
definitions:
  order_id:
    logicalType: string
"""

SCENARIO_C = """\
dataContractSpecification: 0.9.3
models:
  events:
    fields:
      field:
        type: "ARRAY<STRUCT<ID: STRING, NAME: STRING>>"
"""

MULTI_TABLE_V3 = f"""\
apiVersion: v3.1.0
kind: DataContract
id: {TABLE_UUID}
version: 1.0.0
name: sales
customProperties:
  - property: owner
    value: sales-team
  - property: tableUuid
    value: {TABLE_UUID}
schema:
  - name: orders
    customProperties:
      - property: retention
        value: 30d
    properties:
      - name: order_id
        logicalType: string
  - name: refunds
    id: 9e8d7c6b-5a49-4837-a615-0f1e2d3c4b5a
    customProperties:
      - property: retention
        value: 90d
    properties:
      - name: refund_id
        logicalType: string
      - name: order_id
        logicalType: string
"""

ROUND_TRIP = f"""\
apiVersion: v3.1.0
kind: DataContract
id: {TABLE_UUID}
version: 1.0.0
name: orders
customProperties:
  - property: owner
    value: sales
schema:
  - name: orders
    properties:
      order_id:
        logicalType: integer
        primaryKey: true
        required: true
      customer:
        $ref: '#/definitions/customer_id'
      broken:
        $ref: '#/definitions/missing'
      shipping:
        logicalType: object
        properties:
          city:
            logicalType: string
          geo:
            logicalType: object
            properties:
              lat:
                logicalType: number
      lines:
        logicalType: array
        items:
          logicalType: object
          properties:
            sku:
              logicalType: string
      labels:
        logicalType: array
        items:
          logicalType: string
      payload:
        logicalType: "STRUCT<kind: STRING, body: STRUCT<size: INT>>"
definitions:
  customer_id:
    logicalType: string
    description: Customer key
"""


# ---------------------------------------------------------------------------
# load_document
# ---------------------------------------------------------------------------

class TestLoadDocument:

    def test_yaml(self):
        assert load_document("name: t\ncolumns: []") == {"name": "t", "columns": []}

    def test_json(self):
        assert load_document(json.dumps({"name": "t", "columns": []})) == {"name": "t", "columns": []}

    def test_empty(self):
        with pytest.raises(ContractParseError, match="Empty"):
            load_document("   \n")

    def test_null_document(self):
        with pytest.raises(ContractParseError, match="Empty"):
            load_document("~")

    def test_malformed_yaml(self):
        with pytest.raises(ContractParseError) as exc_info:
            load_document("name: [unclosed")
        assert isinstance(exc_info.value.__cause__, yaml.YAMLError)

    def test_malformed_json(self):
        with pytest.raises(ContractParseError, match="JSON"):
            load_document('{"name": ')

    def test_yaml_flow_mapping(self):
        data = load_document("{name: users, columns: [{name: id, data_type: INT}]}")
        assert data == {"name": "users", "columns": [{"name": "id", "data_type": "INT"}]}

    def test_non_mapping_root(self):
        with pytest.raises(ContractParseError, match="mapping"):
            load_document("- a\n- b")


# ---------------------------------------------------------------------------
# ContractImporter
# ---------------------------------------------------------------------------

class TestContractImporter:

    def test_scenario_simple_table(self):
        table, errors = ContractImporter().parse_table(SCENARIO_A)
        assert table.name == "users"
        assert [(c.name, c.data_type, c.primary_key, c.nullable) for c in table.columns] == [
            ("id", "INT", True, True),
        ]
        assert errors == []

    def test_scenario_ref_relationship(self):
        table, errors = ContractImporter().parse_table(SCENARIO_B)
        assert [r.to_dict() for r in table.column("order_ref").relationships] == [
            {"type": "foreignKey", "to": "definitions/order_id"},
        ]
        assert errors == []

    def test_scenario_array_of_struct(self):
        table, _ = ContractImporter().parse_table(SCENARIO_C)
        assert [(c.name, c.data_type) for c in table.columns] == [
            ("field", "ARRAY<STRUCT<...>>"),
            ("field.[].ID", "STRING"),
            ("field.[].NAME", "STRING"),
        ]

    def test_same_id_same_uuid(self):
        first, _ = ContractImporter().parse_table(SCENARIO_B)
        second, _ = ContractImporter().parse_table(SCENARIO_B.replace("name: orders\nschema", "name: other\nschema"))
        assert first.id == second.id == uuid.UUID(TABLE_UUID)

    def test_date_keyed_metadata(self):
        table, errors = ContractImporter().parse_table(
            "name: users\ncolumns:\n  - name: id\n    data_type: INT\nodcl_metadata:\n  2024-01-01: initial\n"
        )
        assert table.column_names == ["id"]
        assert errors == []

    def test_liquibase_routed(self):
        text = "databaseChangeLog:\n  - changeSet:\n      - createTable:\n          tableName: t\n          columns: []\n"
        table, _ = ContractImporter().parse_table(text)
        assert table.name == "t"

    def test_hard_failure_propagates(self):
        with pytest.raises(ContractParseError):
            ContractImporter().parse_table("description: nothing to import")

    def test_explicit_config(self):
        importer = ContractImporter(ImporterConfig(max_nesting_depth=0))
        table, _ = importer.parse_table(SCENARIO_B.replace(
            "$ref: '#/definitions/order_id'",
            "logicalType: object\n        properties:\n          - name: inner\n            logicalType: string",
        ))
        assert table.column_names == ["order_ref", "order_ref.inner"]
        assert table.column("order_ref.inner").errors

    def test_import_adapter(self):
        result = ContractImporter().import_(ROUND_TRIP)
        assert isinstance(result, ImportResult)
        assert len(result.tables) == 1
        data = result.tables[0]
        assert data.name == "orders"
        assert data.id == TABLE_UUID
        assert data.columns[0] == {
            "name": "order_id",
            "dataType": "INTEGER",
            "nullable": False,
            "primaryKey": True,
            "unique": False,
        }
        assert data.custom_properties == [{"property": "owner", "value": "sales"}]
        assert result.errors == []


# ---------------------------------------------------------------------------
# parse_all
# ---------------------------------------------------------------------------

class TestParseAll:

    def test_one_result_per_schema_object(self):
        results = ContractImporter().parse_all(MULTI_TABLE_V3)
        assert [t.name for t, _ in results] == ["orders", "refunds"]
        assert [t.column_names for t, _ in results] == [["order_id"], ["refund_id", "order_id"]]

    def test_schema_scope_properties_do_not_leak(self):
        (orders, _), (refunds, _) = ContractImporter().parse_all(MULTI_TABLE_V3)
        assert orders.custom_properties == [
            {"property": "owner", "value": "sales-team"},
            {"property": "retention", "value": "30d"},
        ]
        assert refunds.custom_properties == [
            {"property": "owner", "value": "sales-team"},
            {"property": "retention", "value": "90d"},
        ]

    def test_tables_get_distinct_ids(self):
        (orders, _), (refunds, _) = ContractImporter().parse_all(MULTI_TABLE_V3)
        assert refunds.id == uuid.UUID("9e8d7c6b-5a49-4837-a615-0f1e2d3c4b5a")
        assert orders.id != refunds.id

    def test_data_contract_models(self):
        text = SCENARIO_C + "  audits:\n    fields:\n      at:\n        type: timestamp\n"
        results = ContractImporter().parse_all(text)
        assert [t.name for t, _ in results] == ["events", "audits"]
        assert results[1][0].column("at").data_type == "TIMESTAMP"

    def test_single_table_dialect(self):
        results = ContractImporter().parse_all(SCENARIO_A)
        assert len(results) == 1


# ---------------------------------------------------------------------------
# Round trip through a v3.1.0 writer
# ---------------------------------------------------------------------------

class TestRoundTrip:

    def test_structure_preserved(self, exporter):
        importer = ContractImporter()
        table, _ = importer.parse_table(ROUND_TRIP)
        table2, _ = importer.parse_table(exporter(table))

        assert len(table2.columns) == len(table.columns) == 14
        assert table2.column_names == table.column_names
        for name in ("customer", "broken"):
            assert table2.column(name).relationships == table.column(name).relationships
        assert table2.id == table.id
        assert table2.custom_properties == table.custom_properties

    def test_expected_columns(self):
        table, errors = ContractImporter().parse_table(ROUND_TRIP)
        assert table.column_names == [
            "order_id", "customer", "broken",
            "shipping", "shipping.city", "shipping.geo", "shipping.geo.lat",
            "lines", "lines.[].sku",
            "labels",
            "payload", "payload.kind", "payload.body", "payload.body.size",
        ]
        assert table.column("broken").data_type == "OBJECT"
        assert table.column("broken").errors
        assert table.column("labels").data_type == "ARRAY<STRING>"
        assert errors == []
