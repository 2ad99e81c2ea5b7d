from __future__ import annotations

import pytest

from vegledger import store
from vegledger.errors import NotFoundError, ValidationError
from vegledger.services.crates import (
    crate_purchases,
    crate_totals,
    crates_by_vendor,
    derive_crate_status,
    filter_crate_purchases,
    remaining_crates,
    return_crates,
)
from vegledger.services.purchases import get_purchase
from vegledger.services.vendors import add_vendor


def test_partial_then_full_return(conn, make_purchase):
    pid = make_purchase(crates_count=10, crate_code="SW")

    p = return_crates(conn, pid, return_date="2024-01-03", count=4)
    assert p["returned_crates"] == 4
    assert p["crate_status"] == "partial"
    assert p["last_return_date"] == "2024-01-03"
    assert remaining_crates(p) == 6

    p = return_crates(conn, pid, return_date="2024-01-05", count=6)
    assert p["returned_crates"] == 10
    assert p["crate_status"] == "returned"
    assert p["last_return_date"] == "2024-01-05"
    assert remaining_crates(p) == 0


def test_over_return_rejected(conn, make_purchase):
    pid = make_purchase(crates_count=10, crate_code="SW")
    return_crates(conn, pid, return_date="2024-01-03", count=7)

    with pytest.raises(ValidationError, match="Only 3"):
        return_crates(conn, pid, return_date="2024-01-04", count=4)

    p = get_purchase(conn, pid)
    assert p["returned_crates"] == 7
    assert p["last_return_date"] == "2024-01-03"


@pytest.mark.parametrize("count", [0, -2, 2.5, "two", float("nan"), float("inf")])
def test_bad_return_count_rejected(conn, make_purchase, count):
    pid = make_purchase(crates_count=5, crate_code="SW")
    with pytest.raises(ValidationError):
        return_crates(conn, pid, return_date="2024-01-03", count=count)
    assert get_purchase(conn, pid)["returned_crates"] == 0


def test_return_on_purchase_without_crates(conn, make_purchase):
    pid = make_purchase()
    with pytest.raises(ValidationError):
        return_crates(conn, pid, return_date="2024-01-03", count=1)


def test_return_unknown_purchase(conn):
    with pytest.raises(NotFoundError):
        return_crates(conn, 999, return_date="2024-01-03", count=1)


def test_status_always_matches_counts(conn, make_purchase):
    ids = [make_purchase(vegetable=f"Item{i}", crates_count=6, crate_code="SW") for i in range(3)]
    return_crates(conn, ids[1], return_date="2024-01-02", count=2)
    return_crates(conn, ids[2], return_date="2024-01-02", count=6)

    for p in crate_purchases(conn):
        assert 0 <= p["returned_crates"] <= p["crates_count"]
        assert p["crate_status"] == derive_crate_status(p).value


@pytest.mark.parametrize("returned", range(11))
def test_crate_status_over_full_return_range(conn, make_purchase, returned):
    pid = make_purchase(crates_count=10, crate_code="SW")
    p = get_purchase(conn, pid)
    if returned:
        p = return_crates(conn, pid, return_date="2024-01-03", count=returned)

    if returned == 0:
        expected = "pending"
    elif returned < 10:
        expected = "partial"
    else:
        expected = "returned"
    assert p["crate_status"] == expected
    assert derive_crate_status({"crates_count": 10, "returned_crates": returned}).value == expected
    assert remaining_crates(p) == 10 - returned


def test_crate_purchases_skips_crateless(conn, make_purchase):
    make_purchase(vegetable="Tomato")
    make_purchase(vegetable="Onion", crates_count=2, crate_code="SW")
    assert [p["vegetable"] for p in crate_purchases(conn)] == ["Onion"]


def test_filter_and_totals(conn, vendor_id, make_purchase):
    other = add_vendor(conn, name="Fresh Fruit Co.", crate_codes=["FFC"])
    make_purchase(vegetable="Tomato", crates_count=4, crate_code="SW", purchase_date="2024-01-01")
    pid = make_purchase(vegetable="Mango", crates_count=6, crate_code="FFC", vendor_id=other, purchase_date="2024-01-02")
    return_crates(conn, pid, return_date="2024-01-03", count=2)

    rows = crate_purchases(conn)
    assert [p["vegetable"] for p in filter_crate_purchases(rows, search="fresh")] == ["Mango"]
    assert [p["vegetable"] for p in filter_crate_purchases(rows, search="TOM")] == ["Tomato"]
    assert [p["vegetable"] for p in filter_crate_purchases(rows, vendor_id=vendor_id)] == ["Tomato"]
    assert [p["vegetable"] for p in filter_crate_purchases(rows, purchase_date="2024-01-02")] == ["Mango"]

    assert crate_totals(rows) == {"issued": 10, "returned": 2, "pending": 8}

    groups = crates_by_vendor(store.get_all(conn, "purchases"))
    assert [g["vendor_name"] for g in groups] == ["Fresh Fruit Co.", "Sharma Wholesale"]
    assert groups[0]["pending"] == 4
