from __future__ import annotations

from vegledger import store
from vegledger.db import x
from vegledger.services.inventory import expected_stock, rebuild_inventory, recount_vendor_purchases
from vegledger.services.purchases import verify_weight
from vegledger.services.sales import add_sale
from vegledger.services.vendors import get_vendor


def _stock_map(conn):
    return {i["vegetable"]: i["total_stock"] for i in store.get_all(conn, "inventory")}


def test_stock_equals_received_minus_sold(conn, make_purchase, stock):
    stock("Tomato", 40)
    verify_weight(conn, make_purchase(vegetable="Tomato", ordered_weight=20), 18)
    make_purchase(vegetable="Tomato", ordered_weight=99)
    stock("Onion", 10)
    add_sale(conn, vegetable="Tomato", quantity_sold=25, selling_price_per_kg=30, sale_date="2024-01-02")

    expected = expected_stock(store.get_all(conn, "purchases"), store.get_all(conn, "sales"))
    assert expected == {"Tomato": 33.0, "Onion": 10.0}
    assert _stock_map(conn) == expected


def test_rebuild_corrects_drift(conn, stock):
    stock("Tomato", 40)
    stock("Onion", 10)
    x(conn, "UPDATE inventory SET total_stock=? WHERE vegetable=?", (7.0, "Tomato"))
    x(conn, "DELETE FROM inventory WHERE vegetable=?", ("Onion",))

    changed = rebuild_inventory(conn)

    assert {c["vegetable"]: (c["old_stock"], c["new_stock"]) for c in changed} == {
        "Tomato": (7.0, 40.0),
        "Onion": (None, 10.0),
    }
    assert _stock_map(conn) == {"Tomato": 40.0, "Onion": 10.0}
    assert rebuild_inventory(conn) == []


def test_rebuild_zeroes_orphan_rows(conn):
    store.create(conn, "inventory", {"vegetable": "Ghost", "total_stock": 3.0, "last_updated": "2024-01-01"})
    changed = rebuild_inventory(conn)
    assert changed == [{"vegetable": "Ghost", "old_stock": 3.0, "new_stock": 0.0}]


def test_recount_vendor_purchases(conn, vendor_id, make_purchase):
    make_purchase()
    make_purchase(vegetable="Onion")
    x(conn, "UPDATE vendors SET total_purchases=? WHERE id=?", (9, vendor_id))

    assert recount_vendor_purchases(conn) == [{"vendor_id": vendor_id, "old_count": 9, "new_count": 2}]
    assert get_vendor(conn, vendor_id)["total_purchases"] == 2
    assert recount_vendor_purchases(conn) == []
