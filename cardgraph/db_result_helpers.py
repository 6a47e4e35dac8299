"""Neo4j record → plain dict conversion helpers.

Every query result passes through here right after the session returns it,
before anything is cached or transformed, so the rest of the code only sees
lists, dicts and native Python scalars.

Usage:
    rows = records_to_dicts(result)        # replaces [dict(r) for r in result]
    row  = first_row(rows)                 # None if empty
    val  = row_value(rows, "points", 0)    # default if empty, missing or null
"""

from __future__ import annotations

# Top-level columns holding card identifiers. Imported data sometimes stores
# these as floats (7.0) or digit strings ("7").
ID_COLUMNS = ("id", "kategori_id", "k.kategori_id")


def to_native_int(value):
    """Coerce an identifier to ``int``; leave anything non-numeric as is."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return value


def _unwrap_value(val):
    """Convert graph entities and containers into plain Python values.

    Node and Relationship objects are duck-typed (``.items()`` plus
    ``.labels`` / ``.type``) so helpers stay usable with fake records in
    tests.
    """
    if val is None:
        return None
    if hasattr(val, "labels") and hasattr(val, "items"):
        return {"_labels": sorted(val.labels), **{k: _unwrap_value(v) for k, v in val.items()}}
    if hasattr(val, "type") and hasattr(val, "items") and hasattr(val, "start_node"):
        return {"_type": val.type, **{k: _unwrap_value(v) for k, v in val.items()}}
    if isinstance(val, dict):
        return {k: _unwrap_value(v) for k, v in val.items()}
    if isinstance(val, (list, tuple)):
        return [_unwrap_value(v) for v in val]
    return val


def normalize_row(row: dict) -> dict:
    """Unwrap nested values and turn identifier columns into ``int``."""
    out = {}
    for key, value in row.items():
        value = _unwrap_value(value)
        if key in ID_COLUMNS:
            value = to_native_int(value)
        out[key] = value
    return out


def records_to_dicts(result) -> list[dict]:
    """Convert an iterable of neo4j ``Record`` objects to ``list[dict]``.

    Must be called while the owning session is still open: the result is
    consumed here.
    """
    if result is None:
        return []
    rows = []
    for record in result:
        data = record.data() if hasattr(record, "data") else dict(record)
        rows.append(normalize_row(data))
    return rows


def first_row(rows: list[dict]) -> dict | None:
    return rows[0] if rows else None


def row_value(rows: list[dict], key: str, default=None):
    """Value of ``key`` in the first row, or ``default`` if empty or null."""
    row = first_row(rows)
    if row is None:
        return default
    value = row.get(key)
    return default if value is None else value
