"""Modeling taxonomies attached to a table as metadata.

Each enum parses case-insensitively from the spellings found in contract
documents and raises ValueError for anything it does not recognize.
"""

from __future__ import annotations

from enum import Enum


class MedallionLayer(str, Enum):
    """Lakehouse refinement layer."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    OPERATIONAL = "operational"

    @classmethod
    def parse(cls, value: str) -> MedallionLayer:
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown medallion layer: {value}") from None


class SCDPattern(str, Enum):
    """Slowly changing dimension pattern."""

    TYPE_1 = "TYPE_1"
    TYPE_2 = "TYPE_2"

    @classmethod
    def parse(cls, value: str) -> SCDPattern:
        aliases = {
            "TYPE_1": cls.TYPE_1,
            "TYPE1": cls.TYPE_1,
            "TYPE_2": cls.TYPE_2,
            "TYPE2": cls.TYPE_2,
        }
        found = aliases.get(value.strip().upper())
        if found is None:
            raise ValueError(f"Unknown SCD pattern: {value}")
        return found


class DataVaultClassification(str, Enum):
    """Data Vault entity classification."""

    HUB = "Hub"
    LINK = "Link"
    SATELLITE = "Satellite"

    @classmethod
    def parse(cls, value: str) -> DataVaultClassification:
        aliases = {
            "HUB": cls.HUB,
            "LINK": cls.LINK,
            "SATELLITE": cls.SATELLITE,
            "SAT": cls.SATELLITE,
        }
        found = aliases.get(value.strip().upper())
        if found is None:
            raise ValueError(f"Unknown Data Vault classification: {value}")
        return found


class DatabaseType(str, Enum):
    """Target database platform of a table."""

    DATABRICKS_DELTA = "DatabricksDelta"
    POSTGRES = "Postgres"
    MYSQL = "Mysql"
    SQL_SERVER = "SqlServer"
    AWS_GLUE = "AwsGlue"

    @classmethod
    def parse(cls, value: str) -> DatabaseType:
        aliases = {
            "databricks": cls.DATABRICKS_DELTA,
            "databricks_delta": cls.DATABRICKS_DELTA,
            "postgres": cls.POSTGRES,
            "postgresql": cls.POSTGRES,
            "mysql": cls.MYSQL,
            "sql_server": cls.SQL_SERVER,
            "sqlserver": cls.SQL_SERVER,
            "aws_glue": cls.AWS_GLUE,
            "glue": cls.AWS_GLUE,
        }
        found = aliases.get(value.strip().lower())
        if found is None:
            raise ValueError(f"Unknown database type: {value}")
        return found
