"""Table identity resolution.

Order matters: a document re-imported after export with an explicit ``id``
must come back with the same table UUID, so the top-level ``id`` always
wins over the legacy locations.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from contract_loader.config import ImporterConfig, get_config

logger = logging.getLogger(__name__)


def _parse_uuid(value: Any) -> Optional[uuid.UUID]:
    if not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def derive_table_id(name: str, config: Optional[ImporterConfig] = None) -> uuid.UUID:
    """Deterministic uuid5 for a table name."""
    config = config or get_config()
    return uuid.uuid5(config.namespace_uuid, name)


def resolve_table_id(
    data: dict[str, Any],
    table_name: Optional[str] = None,
    config: Optional[ImporterConfig] = None,
) -> uuid.UUID:
    """Extract a table UUID from a document, or derive one from the table name."""
    raw_id = data.get("id")
    if isinstance(raw_id, str):
        found = _parse_uuid(raw_id)
        if found is not None:
            logger.debug(f"Table id from top-level 'id': {found}")
            return found
        logger.warning(f"Found 'id' field but it is not a UUID: {raw_id}")

    custom_props = data.get("customProperties")
    if isinstance(custom_props, list):
        for prop in custom_props:
            if isinstance(prop, dict) and prop.get("property") == "tableUuid":
                found = _parse_uuid(prop.get("value"))
                if found is not None:
                    logger.debug(f"Table id from customProperties.tableUuid: {found}")
                    return found

    odcl_metadata = data.get("odcl_metadata")
    if isinstance(odcl_metadata, dict):
        found = _parse_uuid(odcl_metadata.get("tableUuid"))
        if found is not None:
            logger.debug(f"Table id from odcl_metadata.tableUuid: {found}")
            return found

    name = table_name or data.get("name") or "unknown"
    if not isinstance(name, str):
        name = str(name)
    derived = derive_table_id(name, config)
    logger.warning(
        f"No UUID found for table '{name}', derived deterministic id {derived}. "
        f"Relationships from other documents that reference this table may become orphaned."
    )
    return derived
