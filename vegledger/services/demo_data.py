from __future__ import annotations

import random
from datetime import date, timedelta

from vegledger import store
from vegledger.db import ensure_schema, x
from vegledger.enums import ExpenseCategory, PaymentMethod
from vegledger.services.crates import return_crates
from vegledger.services.expenses import add_expense
from vegledger.services.inventory import available_stock
from vegledger.services.purchases import PurchaseItemInput, record_purchases, verify_weight
from vegledger.services.sales import add_sale
from vegledger.services.vendors import add_vendor
from vegledger.utils import iso_now


DEFAULT_CATALOG = [
    ("Tomato", "vegetable"),
    ("Onion", "vegetable"),
    ("Potato", "vegetable"),
    ("Cauliflower", "vegetable"),
    ("Spinach", "vegetable"),
    ("Banana", "fruit"),
    ("Apple", "fruit"),
    ("Mango", "fruit"),
]

DEMO_VENDORS = [
    ("Sharma Wholesale", "98100 11111", "Azadpur Mandi", ["SW", "SWX"]),
    ("Green Valley Traders", "98100 22222", "Okhla Mandi", ["GVT"]),
    ("Fresh Fruit Co.", "98100 33333", "Azadpur Mandi", []),
]

# Rough buy price per kg; sale price is marked up from it
DEMO_PRICES = {
    "Tomato": 22.0,
    "Onion": 28.0,
    "Potato": 18.0,
    "Cauliflower": 30.0,
    "Spinach": 25.0,
    "Banana": 35.0,
    "Apple": 110.0,
    "Mango": 80.0,
}

WIPE_ORDER = ["bills", "sales", "expenses", "inventory", "purchases", "vendors", "vegetables"]


def upsert_reference_data(conn) -> None:
    ensure_schema(conn)

    for name, category in DEFAULT_CATALOG:
        x(
            conn,
            "INSERT OR IGNORE INTO vegetables(name, category, created_at) VALUES (?, ?, ?)",
            (name, category, iso_now()),
        )


def wipe_all(conn) -> None:
    # Keep schema, delete data (order matters for FKs).
    for t in WIPE_ORDER:
        store.delete_all(conn, t, commit=False)
    conn.commit()


def load_demo_data(conn, *, seed: int = 7, days: int = 10) -> None:
    rng = random.Random(seed)
    upsert_reference_data(conn)

    vendor_ids = []
    for name, contact, location, codes in DEMO_VENDORS:
        vendor_ids.append((add_vendor(conn, name=name, contact=contact, location=location, crate_codes=codes), codes))

    base_date = date.today() - timedelta(days=days)
    items = list(DEMO_PRICES)

    for i in range(days):
        d = (base_date + timedelta(days=i)).isoformat()
        vendor_id, codes = rng.choice(vendor_ids)

        lines = []
        for veg in rng.sample(items, 3):
            crates = rng.randint(2, 8) if codes else 0
            lines.append(
                PurchaseItemInput(
                    vegetable=veg,
                    ordered_weight=float(rng.choice([25, 40, 50, 75, 100])),
                    price_per_kg=DEMO_PRICES[veg],
                    crates_count=crates,
                    crate_code=rng.choice(codes) if crates else None,
                )
            )
        purchase_ids = record_purchases(conn, vendor_id=vendor_id, purchase_date=d, items=lines)

        # Leave the most recent day pending so the verification screen has work.
        if i == days - 1:
            continue

        for pid in purchase_ids:
            p = store.get_by_id(conn, "purchases", pid)
            received = round(p["ordered_weight"] * rng.uniform(0.93, 1.02), 1)
            verify_weight(conn, pid, received)

            if p["crates_count"] and rng.random() < 0.6:
                return_crates(conn, pid, return_date=d, count=rng.randint(1, p["crates_count"]))

        for veg in {ln.vegetable for ln in lines}:
            stock = available_stock(conn, veg)
            if stock <= 1:
                continue
            add_sale(
                conn,
                vegetable=veg,
                quantity_sold=round(stock * rng.uniform(0.3, 0.8), 1),
                selling_price_per_kg=round(DEMO_PRICES[veg] * rng.uniform(1.25, 1.6), 0),
                sale_date=d,
                payment_method=rng.choice(list(PaymentMethod)),
                customer_name=rng.choice([None, "Walk-in", "Hotel Annapurna"]),
            )

        if i % 3 == 0:
            add_expense(
                conn,
                category=rng.choice(list(ExpenseCategory)),
                description="Demo expense",
                amount=float(rng.choice([150, 300, 500, 1200])),
                expense_date=d,
            )
