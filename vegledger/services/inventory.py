from __future__ import annotations

from typing import Optional

from vegledger import store
from vegledger.db import atomic
from vegledger.enums import VerificationStatus
from vegledger.errors import ValidationError
from vegledger.logger import get_logger
from vegledger.utils import iso_today

logger = get_logger(__name__)

# Float noise from repeated kg arithmetic; anything smaller is treated as equal.
STOCK_EPSILON = 1e-6


def get_inventory_item(conn, vegetable: str) -> Optional[dict]:
    rows = store.get_where_equals(conn, "inventory", "vegetable", vegetable)
    return rows[0] if rows else None


def list_inventory(conn) -> list[dict]:
    return store.get_all(conn, "inventory", order_by="vegetable")


def available_stock(conn, vegetable: str) -> float:
    item = get_inventory_item(conn, vegetable)
    return float(item["total_stock"]) if item else 0.0


def add_stock(conn, vegetable: str, kg: float, *, commit: bool = True) -> float:
    """Credits kg to an item, creating its row on first receipt. Returns the new stock."""
    item = get_inventory_item(conn, vegetable)
    if item is None:
        store.create(
            conn,
            "inventory",
            {"vegetable": vegetable, "total_stock": float(kg), "last_updated": iso_today()},
            commit=commit,
        )
        return float(kg)

    new_stock = float(item["total_stock"]) + float(kg)
    store.update(
        conn,
        "inventory",
        item["id"],
        {"total_stock": new_stock, "last_updated": iso_today()},
        commit=commit,
    )
    return new_stock


def remove_stock(conn, vegetable: str, kg: float, *, commit: bool = True) -> float:
    item = get_inventory_item(conn, vegetable)
    on_hand = float(item["total_stock"]) if item else 0.0
    if item is None or float(kg) > on_hand + STOCK_EPSILON:
        raise ValidationError(f"Cannot remove {kg} kg of {vegetable}. Only {on_hand} kg available in inventory.")

    new_stock = max(on_hand - float(kg), 0.0)
    store.update(
        conn,
        "inventory",
        item["id"],
        {"total_stock": new_stock, "last_updated": iso_today()},
        commit=commit,
    )
    return new_stock


def expected_stock(purchases: list[dict], sales: list[dict]) -> dict[str, float]:
    """Stock per item recomputed from the source records: received kg minus sold kg."""
    stock: dict[str, float] = {}
    for p in purchases:
        if VerificationStatus.parse(p["verification_status"]) is VerificationStatus.PENDING:
            continue
        if p.get("received_weight") is None:
            continue
        stock[p["vegetable"]] = stock.get(p["vegetable"], 0.0) + float(p["received_weight"])
    for s in sales:
        stock[s["vegetable"]] = stock.get(s["vegetable"], 0.0) - float(s["quantity_sold"])
    return stock


def rebuild_inventory(conn) -> list[dict]:
    """
    Reconciliation job: rewrites the inventory projection from purchases and sales.

    Idempotent. Returns one row per item whose stored stock changed, with the old
    and new values.
    """
    expected = expected_stock(store.get_all(conn, "purchases"), store.get_all(conn, "sales"))
    current = {i["vegetable"]: i for i in list_inventory(conn)}

    changed = []
    with atomic(conn):
        for vegetable in sorted(set(expected) | set(current)):
            new_stock = expected.get(vegetable, 0.0)
            item = current.get(vegetable)
            old_stock = float(item["total_stock"]) if item else None
            if old_stock is not None and abs(old_stock - new_stock) <= STOCK_EPSILON:
                continue

            if item is None:
                store.create(
                    conn,
                    "inventory",
                    {"vegetable": vegetable, "total_stock": new_stock, "last_updated": iso_today()},
                    commit=False,
                )
            else:
                store.update(
                    conn,
                    "inventory",
                    item["id"],
                    {"total_stock": new_stock, "last_updated": iso_today()},
                    commit=False,
                )
            changed.append({"vegetable": vegetable, "old_stock": old_stock, "new_stock": new_stock})

    if changed:
        logger.warning("Inventory rebuilt, %d item(s) corrected: %s", len(changed), changed)
    else:
        logger.info("Inventory rebuild found no drift.")
    return changed


def recount_vendor_purchases(conn) -> list[dict]:
    """Reconciliation job: resets each vendor's purchase counter from the purchases collection."""
    counts: dict[int, int] = {}
    for p in store.get_all(conn, "purchases"):
        counts[p["vendor_id"]] = counts.get(p["vendor_id"], 0) + 1

    changed = []
    with atomic(conn):
        for vendor in store.get_all(conn, "vendors"):
            expected = counts.get(vendor["id"], 0)
            if int(vendor["total_purchases"] or 0) == expected:
                continue
            store.update(conn, "vendors", vendor["id"], {"total_purchases": expected}, commit=False)
            changed.append(
                {"vendor_id": vendor["id"], "old_count": vendor["total_purchases"], "new_count": expected}
            )

    if changed:
        logger.warning("Vendor purchase counters corrected: %s", changed)
    return changed
