"""Central configuration for the contract importer."""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from typing import Optional


@dataclass
class ImporterConfig:
    """Configuration for the contract importer.

    Reads from environment variables with CONTRACT_LOADER_ prefix, or accepts
    explicit values.
    """

    # Nested expansion and $ref chains
    max_nesting_depth: int = 32

    # Namespace for deterministic table ids derived from the table name
    table_id_namespace: str = str(uuid.NAMESPACE_URL)

    @property
    def namespace_uuid(self) -> uuid.UUID:
        return uuid.UUID(self.table_id_namespace)

    @classmethod
    def from_env(cls) -> ImporterConfig:
        """Load configuration from environment variables."""
        return cls(
            max_nesting_depth=int(os.getenv("CONTRACT_LOADER_MAX_NESTING_DEPTH", "32")),
            table_id_namespace=os.getenv(
                "CONTRACT_LOADER_TABLE_ID_NAMESPACE", str(uuid.NAMESPACE_URL)
            ),
        )


_config: Optional[ImporterConfig] = None


def get_config() -> ImporterConfig:
    """Get or create the singleton configuration."""
    global _config
    if _config is None:
        _config = ImporterConfig.from_env()
    return _config


def set_config(config: Optional[ImporterConfig]) -> None:
    """Override the global configuration. Passing None resets it."""
    global _config
    _config = config
