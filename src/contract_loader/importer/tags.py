"""Tag values attached to tables and columns.

Three textual forms are recognized:
- Simple: ``finance``
- Pair: ``Environment:Dev``
- List: ``Domains:[Sales, Marketing]``

A string with more than one colon and no brackets is kept as a Simple tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class TagKind(str, Enum):
    SIMPLE = "simple"
    PAIR = "pair"
    LIST = "list"


@dataclass(frozen=True)
class Tag:
    """A parsed tag. Equality is structural so tags de-duplicate by value."""

    kind: TagKind
    key: str
    values: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def parse(cls, text: str) -> Tag:
        s = text.strip()

        colon = s.find(":")
        if colon >= 0:
            key = s[:colon].strip()
            rest = s[colon + 1:].strip()

            if rest.startswith("[") and rest.endswith("]"):
                values = tuple(v.strip() for v in rest[1:-1].split(",") if v.strip())
                if key and values:
                    return cls(TagKind.LIST, key, values)
            elif ":" in rest:
                return cls(TagKind.SIMPLE, s)
            elif key and rest:
                return cls(TagKind.PAIR, key, (rest,))

        if not s:
            raise ValueError("Tag must not be empty")
        return cls(TagKind.SIMPLE, s)

    @property
    def value(self) -> Optional[str]:
        if self.kind == TagKind.PAIR:
            return self.values[0]
        return None

    def __str__(self) -> str:
        if self.kind == TagKind.PAIR:
            return f"{self.key}:{self.values[0]}"
        if self.kind == TagKind.LIST:
            return f"{self.key}:[{', '.join(self.values)}]"
        return self.key


def parse_tags(raw: Any) -> list[Tag]:
    """Parse a list of tag strings or one comma-separated string.

    Empty entries and non-string items are skipped.
    """
    if isinstance(raw, str):
        items = [part.strip() for part in raw.split(",")]
    elif isinstance(raw, list):
        items = [item for item in raw if isinstance(item, str)]
    else:
        return []

    tags: list[Tag] = []
    for item in items:
        try:
            tags.append(Tag.parse(item))
        except ValueError:
            continue
    return tags


def merge_tags(existing: list[Tag], extra: list[Tag]) -> list[Tag]:
    """Append tags from ``extra`` not already present, keeping order."""
    merged = list(existing)
    for tag in extra:
        if tag not in merged:
            merged.append(tag)
    return merged
