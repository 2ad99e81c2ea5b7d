from __future__ import annotations

from typing import Optional

from vegledger import store
from vegledger.db import atomic
from vegledger.enums import PaymentMethod
from vegledger.errors import ValidationError
from vegledger.logger import get_logger
from vegledger.services.inventory import STOCK_EPSILON, available_stock, remove_stock
from vegledger.utils import clean_text, iso_date, iso_now, positive_float

logger = get_logger(__name__)


def add_sale(
    conn,
    *,
    vegetable: str,
    quantity_sold: float,
    selling_price_per_kg: float,
    sale_date,
    payment_method=PaymentMethod.CASH,
    customer_name: Optional[str] = None,
) -> int:
    """
    Records a retail sale and takes the kg out of inventory.
    Selling more than is in stock is rejected before anything is written.
    """
    vegetable = clean_text(vegetable)
    if not vegetable:
        raise ValidationError("Item name is required.")
    quantity_sold = positive_float(quantity_sold, "Quantity sold")
    selling_price_per_kg = positive_float(selling_price_per_kg, "Selling price per kg")
    sale_date = iso_date(sale_date, "Sale date")
    payment_method = PaymentMethod.parse(payment_method)

    on_hand = available_stock(conn, vegetable)
    if quantity_sold > on_hand + STOCK_EPSILON:
        logger.warning("Sale of %.3f kg %s rejected: %.3f kg in stock.", quantity_sold, vegetable, on_hand)
        raise ValidationError(f"Cannot sell {quantity_sold:g} kg. Only {on_hand:g} kg available in inventory.")

    with atomic(conn):
        sale_id = store.create(
            conn,
            "sales",
            {
                "vegetable": vegetable,
                "quantity_sold": quantity_sold,
                "selling_price_per_kg": selling_price_per_kg,
                "total_sale_amount": quantity_sold * selling_price_per_kg,
                "sale_date": sale_date,
                "customer_name": clean_text(customer_name),
                "payment_method": payment_method.value,
                "created_at": iso_now(),
            },
            commit=False,
        )
        remove_stock(conn, vegetable, quantity_sold, commit=False)

    logger.info("Sale %s recorded: %s %.3f kg @ %.2f (%s)", sale_id, vegetable, quantity_sold,
                selling_price_per_kg, payment_method.value)
    return sale_id


def list_sales(conn) -> list[dict]:
    return store.get_all(conn, "sales", order_by="sale_date", descending=True)


def sales_in_range(conn, start, end) -> list[dict]:
    s, e = iso_date(start, "Start date"), iso_date(end, "End date")
    return store.get_where_range(conn, "sales", "sale_date", s, e, order_by="sale_date", descending=True)
