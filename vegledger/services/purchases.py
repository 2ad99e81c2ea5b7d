from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from vegledger import store
from vegledger.db import atomic
from vegledger.enums import CrateStatus, VerificationStatus
from vegledger.errors import NotFoundError, ValidationError
from vegledger.logger import get_logger
from vegledger.services.inventory import add_stock
from vegledger.services.reports import effective_cost
from vegledger.services.vendors import get_vendor, increment_total_purchases, vendor_crate_codes
from vegledger.utils import clean_text, iso_date, iso_now, non_negative_float, positive_float

logger = get_logger(__name__)


@dataclass
class PurchaseItemInput:
    vegetable: str
    ordered_weight: float
    price_per_kg: float
    crates_count: int = 0
    crate_code: Optional[str] = None


def _validate_crates(vendor: dict, crates_count, crate_code: Optional[str]) -> tuple[int, Optional[str]]:
    try:
        n = int(crates_count or 0)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Crates count must be a whole number.")
    if n < 0:
        raise ValidationError("Crates count cannot be negative.")
    if n == 0:
        return 0, None

    code = (clean_text(crate_code) or "").upper()
    if not code:
        raise ValidationError("Select a crate code when crates are included.")
    registered = vendor_crate_codes(vendor)
    if code not in registered:
        raise ValidationError(
            f"Crate code '{code}' is not registered for {vendor['name']}. "
            f"Registered: {', '.join(registered) or 'none'}."
        )
    return n, code


def record_purchase(
    conn,
    *,
    vendor_id: int,
    vegetable: str,
    ordered_weight: float,
    price_per_kg: float,
    purchase_date,
    crates_count: int = 0,
    crate_code: Optional[str] = None,
) -> int:
    vegetable = clean_text(vegetable)
    if not vegetable:
        raise ValidationError("Item name is required.")
    ordered_weight = positive_float(ordered_weight, "Ordered weight")
    price_per_kg = positive_float(price_per_kg, "Price per kg")
    purchase_date = iso_date(purchase_date, "Purchase date")

    vendor = get_vendor(conn, vendor_id)
    crates_count, crate_code = _validate_crates(vendor, crates_count, crate_code)

    record = {
        "vendor_id": int(vendor["id"]),
        "vendor_name": vendor["name"],
        "vegetable": vegetable,
        "ordered_weight": ordered_weight,
        "received_weight": None,
        "price_per_kg": price_per_kg,
        "total_amount": ordered_weight * price_per_kg,
        "purchase_date": purchase_date,
        "verification_status": VerificationStatus.PENDING.value,
        "discrepancy_amount": None,
        "crates_count": crates_count,
        "vendor_crate_code": crate_code,
        "returned_crates": 0,
        "crate_status": CrateStatus.PENDING.value if crates_count > 0 else None,
        "created_at": iso_now(),
    }

    with atomic(conn):
        purchase_id = store.create(conn, "purchases", record, commit=False)
        increment_total_purchases(conn, vendor["id"], commit=False)

    logger.info(
        "Purchase %s recorded: %s %.3f kg @ %.2f from vendor %s",
        purchase_id, vegetable, ordered_weight, price_per_kg, vendor["id"],
    )
    return purchase_id


def _blank(value) -> bool:
    # data_editor leaves cleared cells as None, NaN or an empty string
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def items_from_rows(rows: list[dict]) -> list[PurchaseItemInput]:
    """
    Turns batch-entry grid rows (keys named like PurchaseItemInput fields) into inputs.
    Untouched rows are skipped. A row that was started but has no item or no kg is
    reported instead of dropped, before anything is written.
    """
    items = []
    for n, r in enumerate(rows, start=1):
        vegetable = r.get("vegetable")
        kg = r.get("ordered_weight")
        price = r.get("price_per_kg")
        crates = r.get("crates_count")
        code = r.get("crate_code")

        if _blank(vegetable):
            if any(not _blank(v) and v != 0 for v in (kg, price, crates, code)):
                raise ValidationError(f"Row {n}: choose an item.")
            continue
        label = f"Row {n} ({vegetable})"
        if _blank(kg) or kg == 0:
            raise ValidationError(f"{label}: enter the kg ordered.")

        items.append(
            PurchaseItemInput(
                vegetable=str(vegetable),
                ordered_weight=positive_float(kg, f"{label} kg ordered"),
                price_per_kg=positive_float(0 if _blank(price) else price, f"{label} price per kg"),
                crates_count=0 if _blank(crates) else crates,
                crate_code=None if _blank(code) else str(code),
            )
        )
    return items


def record_purchases(conn, *, vendor_id: int, purchase_date, items: list[PurchaseItemInput]) -> list[int]:
    """
    Several items bought from one vendor on one day. Each item is its own purchase and
    is committed on its own: if item k fails, items before it stay recorded.
    """
    if not items:
        raise ValidationError("Add at least one item.")

    created_ids: list[int] = []
    for item in items:
        try:
            created_ids.append(
                record_purchase(
                    conn,
                    vendor_id=vendor_id,
                    vegetable=item.vegetable,
                    ordered_weight=item.ordered_weight,
                    price_per_kg=item.price_per_kg,
                    purchase_date=purchase_date,
                    crates_count=item.crates_count,
                    crate_code=item.crate_code,
                )
            )
        except Exception:
            logger.warning(
                "Batch purchase entry stopped at '%s' after %d recorded item(s).", item.vegetable, len(created_ids)
            )
            raise
    return created_ids


def get_purchase(conn, purchase_id: int) -> dict:
    p = store.get_by_id(conn, "purchases", purchase_id)
    if p is None:
        raise NotFoundError("Purchase not found.")
    return p


def verify_weight(conn, purchase_id: int, received_weight: float) -> dict:
    """
    Records the weighed delivery and credits the received kg to inventory.

    Shortfall marks the purchase as a discrepancy; meeting or exceeding the order
    marks it verified. Only pending purchases can be verified.
    """
    received_weight = non_negative_float(received_weight, "Received weight")
    purchase = get_purchase(conn, purchase_id)

    status = VerificationStatus.parse(purchase["verification_status"])
    if status is not VerificationStatus.PENDING:
        logger.warning("Re-verification of purchase %s rejected (status %s).", purchase_id, status.value)
        raise ValidationError(f"Purchase already {status.value}; weight can only be verified once.")

    discrepancy = float(purchase["ordered_weight"]) - received_weight
    if discrepancy > 0:
        changes = {
            "received_weight": received_weight,
            "verification_status": VerificationStatus.DISCREPANCY.value,
            "discrepancy_amount": discrepancy,
        }
    else:
        changes = {
            "received_weight": received_weight,
            "verification_status": VerificationStatus.VERIFIED.value,
            "discrepancy_amount": None,
        }

    with atomic(conn):
        store.update(conn, "purchases", purchase["id"], changes, commit=False)
        add_stock(conn, purchase["vegetable"], received_weight, commit=False)

    logger.info(
        "Purchase %s verified: ordered %.3f kg, received %.3f kg, status %s",
        purchase_id, float(purchase["ordered_weight"]), received_weight, changes["verification_status"],
    )
    return get_purchase(conn, purchase_id)


# -------------------------
# Queries
# -------------------------

def _newest_first(purchases: list[dict]) -> list[dict]:
    return sorted(purchases, key=lambda p: (p["purchase_date"], p["created_at"], p["id"]), reverse=True)


def list_purchases(conn) -> list[dict]:
    return _newest_first(store.get_all(conn, "purchases"))


def purchases_by_vendor(conn, vendor_id: int) -> list[dict]:
    return _newest_first(store.get_where_equals(conn, "purchases", "vendor_id", int(vendor_id)))


def purchases_by_date(conn, purchase_date) -> list[dict]:
    d = iso_date(purchase_date, "Purchase date")
    return _newest_first(store.get_where_equals(conn, "purchases", "purchase_date", d))


def purchases_in_range(conn, start, end) -> list[dict]:
    s, e = iso_date(start, "Start date"), iso_date(end, "End date")
    return _newest_first(store.get_where_range(conn, "purchases", "purchase_date", s, e))


def pending_verifications(conn) -> list[dict]:
    return _newest_first(
        store.get_where_equals(conn, "purchases", "verification_status", VerificationStatus.PENDING.value)
    )


def filter_purchases(
    purchases: list[dict],
    *,
    search: str = "",
    vendor_id: Optional[int] = None,
    status=None,
    purchase_date: Optional[str] = None,
) -> list[dict]:
    term = (search or "").strip().lower()
    wanted = VerificationStatus.parse(status) if status else None
    out = []
    for p in purchases:
        if term and term not in p["vegetable"].lower() and term not in p["vendor_name"].lower():
            continue
        if vendor_id is not None and p["vendor_id"] != vendor_id:
            continue
        if wanted is not None and VerificationStatus.parse(p["verification_status"]) is not wanted:
            continue
        if purchase_date and p["purchase_date"] != purchase_date:
            continue
        out.append(p)
    return out


def pending_by_date(purchases: list[dict]) -> list[dict]:
    """Pending purchases grouped per day, most recent day first."""
    groups: dict[str, list[dict]] = {}
    for p in purchases:
        if VerificationStatus.parse(p["verification_status"]) is VerificationStatus.PENDING:
            groups.setdefault(p["purchase_date"], []).append(p)

    return [
        {
            "purchase_date": d,
            "purchases": groups[d],
            "count": len(groups[d]),
            "ordered_kg": sum(float(p["ordered_weight"]) for p in groups[d]),
            "amount": sum(float(p["total_amount"]) for p in groups[d]),
        }
        for d in sorted(groups, reverse=True)
    ]


def verification_summary(purchases: list[dict]) -> dict:
    counts = {s.value: 0 for s in VerificationStatus}
    shortfall_kg = 0.0
    shortfall_value = 0.0
    for p in purchases:
        status = VerificationStatus.parse(p["verification_status"])
        counts[status.value] += 1
        if status is VerificationStatus.DISCREPANCY:
            shortfall_kg += float(p["discrepancy_amount"] or 0)
            shortfall_value += float(p["total_amount"]) - effective_cost(p)
    return {**counts, "shortfall_kg": shortfall_kg, "shortfall_value": shortfall_value}
