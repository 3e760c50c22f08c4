"""Local ``$ref`` resolution and conversion to relationship edges."""

from __future__ import annotations

from typing import Any, Optional

from contract_loader.importer.base import Relationship

FOREIGN_KEY = "foreignKey"


def resolve_ref(ref: str, root: Any) -> Optional[dict[str, Any]]:
    """Resolve a local JSON pointer such as ``#/definitions/orderId``.

    Returns None for non-local refs, a missing segment, or a target that is
    not a mapping.
    """
    if not ref.startswith("#/"):
        return None

    node = root
    for segment in ref[2:].split("/"):
        if not isinstance(node, dict) or segment not in node:
            return None
        node = node[segment]

    return node if isinstance(node, dict) else None


def ref_to_target(ref: str) -> str:
    """``#/definitions/X`` -> ``definitions/X``; other local refs lose ``#/``."""
    if ref.startswith("#/definitions/"):
        return "definitions/" + ref[len("#/definitions/"):]
    if ref.startswith("#/"):
        return ref[2:]
    return ref


def ref_to_relationship(ref: str) -> Relationship:
    return Relationship(type=FOREIGN_KEY, to=ref_to_target(ref))


def ref_to_relationships(ref: Optional[str]) -> list[Relationship]:
    if not ref:
        return []
    return [ref_to_relationship(ref)]


def parse_relationships(raw: Any) -> list[Relationship]:
    """Parse an explicit ``relationships`` array of ``{type, to}`` objects.

    Entries without a ``to`` target are skipped; ``type`` defaults to
    foreignKey.
    """
    if not isinstance(raw, list):
        return []

    relationships = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        target = entry.get("to")
        if not isinstance(target, str) or not target:
            continue
        rel_type = entry.get("type")
        relationships.append(Relationship(
            type=rel_type if isinstance(rel_type, str) and rel_type else FOREIGN_KEY,
            to=target,
        ))
    return relationships
