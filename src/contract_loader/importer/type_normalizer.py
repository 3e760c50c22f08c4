"""Canonicalization of logical type names.

Scalar types are uppercased. Container types (STRUCT, ARRAY, MAP) keep their
bracketed inner text verbatim; nested content is only normalized when the
nested expander walks it.
"""

from __future__ import annotations

CONTAINER_KEYWORDS = ("STRUCT", "ARRAY", "MAP")

# Loose item/property type spellings used by structured nested schemas
LEGACY_TYPE_NORMALIZATION = {
    "object": "object",
    "struct": "object",
    "array": "array",
    "string": "string",
    "varchar": "string",
    "char": "string",
    "text": "string",
    "integer": "integer",
    "int": "integer",
    "bigint": "integer",
    "smallint": "integer",
    "tinyint": "integer",
    "number": "number",
    "decimal": "number",
    "double": "number",
    "float": "number",
    "numeric": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "date": "date",
    "timestamp": "timestamp",
    "datetime": "timestamp",
    "time": "time",
}


def normalize_data_type(data_type: str) -> str:
    """Normalize a type string.

    >>> normalize_data_type("struct<a: int>")
    'STRUCT<a: int>'
    >>> normalize_data_type("varchar(10)")
    'VARCHAR(10)'
    """
    if not data_type:
        return data_type

    upper = data_type.upper()
    for keyword in CONTAINER_KEYWORDS:
        # Only a bracketed container; "mapping" or "structure" are plain scalars
        if not upper.startswith(keyword) or not data_type[len(keyword):].lstrip().startswith("<"):
            continue
        start = data_type.find("<")
        end = data_type.rfind(">")
        if end > start:
            return f"{keyword}<{data_type[start + 1:end]}>"
        return f"{keyword}{data_type[len(keyword):]}"

    return upper


def normalize_legacy_type(type_name: str) -> str:
    """Map loose type spellings (``int``, ``varchar``) onto the logical family.

    Unknown names pass through lowercased.
    """
    lowered = type_name.strip().lower()
    return LEGACY_TYPE_NORMALIZATION.get(lowered, lowered)
