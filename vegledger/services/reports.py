from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Optional

from vegledger import store
from vegledger.enums import EXPENSE_CATEGORY_LABELS, ExpenseCategory, ItemCategory, VerificationStatus
from vegledger.errors import ValidationError
from vegledger.utils import iso_date, safe_div

UNCATEGORIZED = "uncategorized"
DATE_RANGE_PRESETS = ("today", "week", "month", "custom")


@dataclass
class FinancialMetrics:
    total_sales: float
    total_expenses: float
    total_purchases: float
    gross_profit: float
    net_profit: float
    profit_margin: float

    def as_dict(self) -> dict:
        return asdict(self)


def effective_cost(purchase: dict) -> float:
    """
    What a purchase actually cost. Once the delivery is weighed and differs from the
    order, the received weight is what was paid for; otherwise the quoted total stands.
    """
    received = purchase.get("received_weight")
    if received is not None and float(received) != float(purchase["ordered_weight"]):
        return float(received) * float(purchase["price_per_kg"])
    return float(purchase["total_amount"])


def compute_metrics(sales: list[dict], expenses: list[dict], purchases: list[dict]) -> FinancialMetrics:
    total_sales = sum(float(s["total_sale_amount"]) for s in sales)
    total_expenses = sum(float(e["amount"]) for e in expenses)
    total_purchases = sum(effective_cost(p) for p in purchases)
    gross_profit = total_sales - total_purchases
    net_profit = gross_profit - total_expenses
    return FinancialMetrics(
        total_sales=total_sales,
        total_expenses=total_expenses,
        total_purchases=total_purchases,
        gross_profit=gross_profit,
        net_profit=net_profit,
        profit_margin=safe_div(net_profit, total_sales) * 100.0,
    )


def _bucket(records: list[dict], date_field: str, amount) -> dict[str, float]:
    out: dict[str, float] = {}
    for r in records:
        d = r[date_field]
        out[d] = out.get(d, 0.0) + amount(r)
    return out


def daily_series(sales: list[dict], expenses: list[dict], purchases: list[dict]) -> list[dict]:
    sales_by_date = _bucket(sales, "sale_date", lambda s: float(s["total_sale_amount"]))
    expenses_by_date = _bucket(expenses, "expense_date", lambda e: float(e["amount"]))
    purchases_by_date = _bucket(purchases, "purchase_date", effective_cost)

    all_dates = set(sales_by_date) | set(expenses_by_date) | set(purchases_by_date)

    series = []
    for d in sorted(all_dates):
        s = sales_by_date.get(d, 0.0)
        e = expenses_by_date.get(d, 0.0)
        p = purchases_by_date.get(d, 0.0)
        series.append({"date": d, "sales": s, "expenses": e, "purchases": p, "profit": s - p - e})
    return series


def vendor_profitability(vendors: list[dict], purchases: list[dict], sales: list[dict]) -> list[dict]:
    """
    Per-vendor cost against an ESTIMATE of the sales it enabled.

    Sales are not linked to purchase lots, so every sale of an item the vendor supplied
    in the period is attributed to that vendor. Two vendors supplying the same item both
    get credit for its sales; treat the figures as indicative, not as costing.
    """
    rows = []
    for vendor in vendors:
        vendor_purchases = [p for p in purchases if p["vendor_id"] == vendor["id"]]
        total_cost = sum(effective_cost(p) for p in vendor_purchases)
        if total_cost <= 0:
            continue

        items = {p["vegetable"] for p in vendor_purchases}
        estimated_sales = sum(float(s["total_sale_amount"]) for s in sales if s["vegetable"] in items)
        profit = estimated_sales - total_cost
        margin = safe_div(profit, estimated_sales) * 100.0

        rows.append(
            {
                "vendor_id": vendor["id"],
                "vendor_name": vendor["name"],
                "total_cost": total_cost,
                "estimated_sales": estimated_sales,
                "profit": profit,
                "margin": round(margin, 2),
            }
        )

    return sorted(rows, key=lambda r: r["profit"], reverse=True)


def expense_breakdown(expenses: list[dict]) -> list[dict]:
    total = sum(float(e["amount"]) for e in expenses)

    by_category: dict[ExpenseCategory, float] = {}
    for e in expenses:
        cat = ExpenseCategory.parse(e["category"])
        by_category[cat] = by_category.get(cat, 0.0) + float(e["amount"])

    return [
        {
            "category": cat.value,
            "label": EXPENSE_CATEGORY_LABELS[cat],
            "amount": amount,
            "percentage": round(safe_div(amount, total) * 100.0),
        }
        for cat, amount in by_category.items()
    ]


def category_breakdown(sales: list[dict], purchases: list[dict], catalog: list[dict]) -> list[dict]:
    """Sales and purchase value per catalog category (vegetable / fruit)."""
    categories = {v["name"]: ItemCategory.parse(v["category"]).value for v in catalog}
    keys = [c.value for c in ItemCategory] + [UNCATEGORIZED]
    out = {k: {"category": k, "sales": 0.0, "purchases": 0.0} for k in keys}

    for s in sales:
        out[categories.get(s["vegetable"], UNCATEGORIZED)]["sales"] += float(s["total_sale_amount"])
    for p in purchases:
        out[categories.get(p["vegetable"], UNCATEGORIZED)]["purchases"] += effective_cost(p)

    return [row for row in out.values() if row["sales"] or row["purchases"] or row["category"] != UNCATEGORIZED]


def gst_summary(total_sales: float, rate: float = 0.0) -> dict:
    # Fresh produce is GST-exempt; the rate is here for the odd taxable line.
    gst_amount = float(total_sales) * (float(rate) / 100.0)
    return {
        "taxable_sales": float(total_sales),
        "gst_rate": float(rate),
        "gst_amount": gst_amount,
        "total_with_gst": float(total_sales) + gst_amount,
    }


def date_range(
    preset: str,
    *,
    today: Optional[date] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> tuple[str, str]:
    today = today or date.today()

    if preset == "today":
        return today.isoformat(), today.isoformat()
    if preset == "week":
        # Weeks run Sunday to Saturday.
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        return week_start.isoformat(), (week_start + timedelta(days=6)).isoformat()
    if preset == "month":
        month_start = today.replace(day=1)
        next_month = (month_start + timedelta(days=32)).replace(day=1)
        return month_start.isoformat(), (next_month - timedelta(days=1)).isoformat()
    if preset == "custom":
        if start is None or end is None:
            raise ValidationError("Custom range needs a start and an end date.")
        s, e = iso_date(start, "Start date"), iso_date(end, "End date")
        if s > e:
            raise ValidationError("Start date must be on or before end date.")
        return s, e

    raise ValidationError(f"Unknown date range '{preset}'. Use one of: {', '.join(DATE_RANGE_PRESETS)}.")


def load_financial_slice(conn, start: str, end: str) -> dict[str, list[dict]]:
    """Snapshot of everything the reports need for one date range."""
    return {
        "sales": store.get_where_range(conn, "sales", "sale_date", start, end, order_by="sale_date", descending=True),
        "expenses": store.get_where_range(
            conn, "expenses", "expense_date", start, end, order_by="expense_date", descending=True
        ),
        "purchases": store.get_where_range(
            conn, "purchases", "purchase_date", start, end, order_by="purchase_date", descending=True
        ),
    }


def dashboard_summary(purchases: list[dict], inventory: list[dict]) -> dict:
    statuses = [VerificationStatus.parse(p["verification_status"]) for p in purchases]
    return {
        "purchase_count": len(purchases),
        "pending_verifications": sum(1 for s in statuses if s is VerificationStatus.PENDING),
        "discrepancies": sum(1 for s in statuses if s is VerificationStatus.DISCREPANCY),
        "inventory_items": len(inventory),
        "inventory_kg": sum(float(i["total_stock"]) for i in inventory),
    }
