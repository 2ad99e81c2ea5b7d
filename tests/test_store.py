from __future__ import annotations

import pytest

from vegledger import store
from vegledger.errors import NotFoundError, ValidationError


def _expense(amount, d):
    return {"category": "rent", "description": "", "amount": amount, "expense_date": d, "created_at": "x"}


def test_create_and_get_by_id(conn):
    new_id = store.create(conn, "expenses", _expense(100.0, "2024-01-02"))
    doc = store.get_by_id(conn, "expenses", new_id)
    assert doc["id"] == new_id
    assert doc["amount"] == 100.0
    assert doc["receipt_url"] is None


def test_get_all_ordering(conn):
    for amount, d in [(1.0, "2024-01-03"), (2.0, "2024-01-01"), (3.0, "2024-01-02")]:
        store.create(conn, "expenses", _expense(amount, d))

    asc = [e["expense_date"] for e in store.get_all(conn, "expenses", order_by="expense_date")]
    desc = [e["expense_date"] for e in store.get_all(conn, "expenses", order_by="expense_date", descending=True)]
    assert asc == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert desc == list(reversed(asc))


def test_where_equals_and_range_inclusive(conn):
    for d in ["2023-12-31", "2024-01-01", "2024-01-15", "2024-01-31", "2024-02-01"]:
        store.create(conn, "expenses", _expense(10.0, d))

    in_jan = store.get_where_range(conn, "expenses", "expense_date", "2024-01-01", "2024-01-31")
    assert sorted(e["expense_date"] for e in in_jan) == ["2024-01-01", "2024-01-15", "2024-01-31"]
    assert len(store.get_where_equals(conn, "expenses", "expense_date", "2024-01-15")) == 1


def test_update_partial(conn):
    new_id = store.create(conn, "expenses", _expense(100.0, "2024-01-02"))
    store.update(conn, "expenses", new_id, {"amount": 150.0})
    doc = store.get_by_id(conn, "expenses", new_id)
    assert doc["amount"] == 150.0
    assert doc["expense_date"] == "2024-01-02"


def test_update_missing_record(conn):
    with pytest.raises(NotFoundError):
        store.update(conn, "expenses", 999, {"amount": 1.0})


def test_unknown_collection_and_field_rejected(conn):
    with pytest.raises(ValidationError):
        store.get_all(conn, "customers")
    with pytest.raises(ValidationError):
        store.get_all(conn, "customers", order_by="id")
    with pytest.raises(ValidationError):
        store.get_where_equals(conn, "expenses", "amount; DROP TABLE expenses", 1)
    with pytest.raises(ValidationError):
        store.create(conn, "expenses", {"nope": 1})


def test_json_fields_round_trip(conn):
    vid = store.create(conn, "vendors", {"name": "A", "crate_codes": ["X1", "X2"], "created_at": "t"})
    assert store.get_by_id(conn, "vendors", vid)["crate_codes"] == ["X1", "X2"]
    store.update(conn, "vendors", vid, {"crate_codes": ["Y"]})
    assert store.get_all(conn, "vendors")[0]["crate_codes"] == ["Y"]
