from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

import streamlit as st

from vegledger.schema import SCHEMA_SQL


def _connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@st.cache_resource
def get_conn(db_path: Path) -> sqlite3.Connection:
    return _connect(db_path)


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table});").fetchall()
    cols = [r["name"] for r in rows]
    return column in cols


def ensure_schema(conn: sqlite3.Connection) -> None:
    # Create base schema (for new installs)
    conn.executescript(SCHEMA_SQL)

    # ---- migrations for existing installs ----
    # Vendors created before multi-code support carry a single prefix
    if not _column_exists(conn, "vendors", "crate_code_prefix"):
        conn.execute("ALTER TABLE vendors ADD COLUMN crate_code_prefix TEXT;")

    # Expenses imported from the old app may reference a receipt
    if not _column_exists(conn, "expenses", "receipt_url"):
        conn.execute("ALTER TABLE expenses ADD COLUMN receipt_url TEXT;")

    conn.commit()


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def x(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = (), *, commit: bool = True) -> int:
    cur = conn.execute(sql, tuple(params))
    if commit:
        conn.commit()
    last = cur.lastrowid
    cur.close()
    return int(last) if last is not None else 0


@contextmanager
def atomic(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Groups writes made with commit=False into one transaction.
    Commits when the block finishes, rolls everything back if it raises.
    """
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()
