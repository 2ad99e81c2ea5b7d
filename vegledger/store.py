from __future__ import annotations

import json
import sqlite3
from typing import Any, Optional

from vegledger.db import q, x
from vegledger.errors import NotFoundError, ValidationError

COLLECTIONS = ("vendors", "purchases", "bills", "sales", "expenses", "inventory", "vegetables")

# Columns holding JSON documents rather than scalars
JSON_FIELDS = {
    "vendors": {"crate_codes"},
}


def _check_collection(collection: str) -> str:
    if collection not in COLLECTIONS:
        raise ValidationError(f"Unknown collection '{collection}'.")
    return collection


def _fields(conn: sqlite3.Connection, collection: str) -> set[str]:
    rows = q(conn, f"PRAGMA table_info({_check_collection(collection)});")
    return {r["name"] for r in rows}


def _check_field(conn: sqlite3.Connection, collection: str, field: str) -> str:
    if field not in _fields(conn, collection):
        raise ValidationError(f"Unknown field '{field}' for {collection}.")
    return field


def _encode(collection: str, record: dict) -> dict:
    json_fields = JSON_FIELDS.get(collection, set())
    out = {}
    for k, v in record.items():
        if k in json_fields and v is not None:
            v = json.dumps(list(v))
        out[k] = v
    return out


def _decode(collection: str, row: sqlite3.Row) -> dict:
    doc = dict(row)
    for k in JSON_FIELDS.get(collection, set()):
        if k in doc:
            doc[k] = json.loads(doc[k]) if doc[k] else []
    return doc


def _order_clause(conn, collection: str, order_by: Optional[str], descending: bool) -> str:
    if not order_by:
        return " ORDER BY id"
    direction = "DESC" if descending else "ASC"
    field = _check_field(conn, collection, order_by)
    return f" ORDER BY {field} {direction}, id {direction}"


def create(conn: sqlite3.Connection, collection: str, record: dict, *, commit: bool = True) -> int:
    if not record:
        raise ValidationError("Cannot create an empty record.")
    for field in record:
        _check_field(conn, collection, field)
    doc = _encode(collection, record)
    cols = list(doc.keys())
    placeholders = ", ".join("?" for _ in cols)
    return x(
        conn,
        f"INSERT INTO {collection} ({', '.join(cols)}) VALUES ({placeholders})",
        [doc[c] for c in cols],
        commit=commit,
    )


def get_all(
    conn: sqlite3.Connection,
    collection: str,
    order_by: Optional[str] = None,
    descending: bool = False,
) -> list[dict]:
    collection = _check_collection(collection)
    order = _order_clause(conn, collection, order_by, descending)
    rows = q(conn, f"SELECT * FROM {collection}{order}")
    return [_decode(collection, r) for r in rows]


def get_by_id(conn: sqlite3.Connection, collection: str, record_id: int) -> Optional[dict]:
    rows = q(conn, f"SELECT * FROM {_check_collection(collection)} WHERE id=?", (int(record_id),))
    return _decode(collection, rows[0]) if rows else None


def get_where_equals(
    conn: sqlite3.Connection,
    collection: str,
    field: str,
    value: Any,
    order_by: Optional[str] = None,
    descending: bool = False,
) -> list[dict]:
    field = _check_field(conn, collection, field)
    order = _order_clause(conn, collection, order_by, descending)
    if value is None:
        rows = q(conn, f"SELECT * FROM {collection} WHERE {field} IS NULL{order}")
    else:
        rows = q(conn, f"SELECT * FROM {collection} WHERE {field}=?{order}", (value,))
    return [_decode(collection, r) for r in rows]


def get_where_range(
    conn: sqlite3.Connection,
    collection: str,
    field: str,
    start: Any,
    end: Any,
    order_by: Optional[str] = None,
    descending: bool = False,
) -> list[dict]:
    """Inclusive on both ends. ISO date strings compare correctly as text."""
    field = _check_field(conn, collection, field)
    order = _order_clause(conn, collection, order_by, descending)
    rows = q(
        conn,
        f"SELECT * FROM {collection} WHERE {field} >= ? AND {field} <= ?{order}",
        (start, end),
    )
    return [_decode(collection, r) for r in rows]


def update(
    conn: sqlite3.Connection,
    collection: str,
    record_id: int,
    partial: dict,
    *,
    commit: bool = True,
) -> None:
    if not partial:
        return
    if "id" in partial:
        raise ValidationError("The id of a record cannot be changed.")
    for field in partial:
        _check_field(conn, collection, field)
    if get_by_id(conn, collection, record_id) is None:
        raise NotFoundError(f"{collection} record {record_id} not found.")

    doc = _encode(collection, partial)
    assignments = ", ".join(f"{c}=?" for c in doc)
    x(
        conn,
        f"UPDATE {collection} SET {assignments} WHERE id=?",
        [*doc.values(), int(record_id)],
        commit=commit,
    )


def delete_all(conn: sqlite3.Connection, collection: str, *, commit: bool = True) -> None:
    x(conn, f"DELETE FROM {_check_collection(collection)};", commit=commit)
