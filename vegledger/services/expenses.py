from __future__ import annotations

from typing import Optional

from vegledger import store
from vegledger.enums import ExpenseCategory
from vegledger.logger import get_logger
from vegledger.utils import clean_text, iso_date, iso_now, positive_float

logger = get_logger(__name__)


def add_expense(
    conn,
    *,
    category,
    description: str,
    amount: float,
    expense_date,
    receipt_url: Optional[str] = None,
) -> int:
    category = ExpenseCategory.parse(category)
    amount = positive_float(amount, "Amount")
    expense_date = iso_date(expense_date, "Expense date")

    expense_id = store.create(
        conn,
        "expenses",
        {
            "category": category.value,
            "description": clean_text(description) or "",
            "amount": amount,
            "expense_date": expense_date,
            "receipt_url": clean_text(receipt_url),
            "created_at": iso_now(),
        },
    )
    logger.info("Expense %s recorded: %s %.2f on %s", expense_id, category.value, amount, expense_date)
    return expense_id


def list_expenses(conn) -> list[dict]:
    return store.get_all(conn, "expenses", order_by="expense_date", descending=True)


def expenses_in_range(conn, start, end) -> list[dict]:
    s, e = iso_date(start, "Start date"), iso_date(end, "End date")
    return store.get_where_range(conn, "expenses", "expense_date", s, e, order_by="expense_date", descending=True)


def filter_expenses(expenses: list[dict], *, category=None, search: str = "") -> list[dict]:
    wanted = ExpenseCategory.parse(category) if category else None
    term = (search or "").strip().lower()
    out = []
    for e in expenses:
        if wanted is not None and ExpenseCategory.parse(e["category"]) is not wanted:
            continue
        if term and term not in (e["description"] or "").lower():
            continue
        out.append(e)
    return out
