from __future__ import annotations

from typing import Optional

from vegledger import store
from vegledger.enums import CrateStatus
from vegledger.errors import NotFoundError, ValidationError
from vegledger.logger import get_logger
from vegledger.utils import iso_date

logger = get_logger(__name__)


def _issued(purchase: dict) -> int:
    return int(purchase.get("crates_count") or 0)


def _returned(purchase: dict) -> int:
    return int(purchase.get("returned_crates") or 0)


def derive_crate_status(purchase: dict) -> CrateStatus:
    returned = _returned(purchase)
    if returned == 0:
        return CrateStatus.PENDING
    if returned < _issued(purchase):
        return CrateStatus.PARTIAL
    return CrateStatus.RETURNED


def remaining_crates(purchase: dict) -> int:
    return max(_issued(purchase) - _returned(purchase), 0)


def return_crates(conn, purchase_id: int, *, return_date, count: int) -> dict:
    """
    Books crates handed back to the vendor. Returns accumulate and cannot be undone;
    at most the crates still out can be returned.
    """
    purchase = store.get_by_id(conn, "purchases", purchase_id)
    if purchase is None:
        raise NotFoundError("Purchase not found.")
    if _issued(purchase) <= 0:
        raise ValidationError("This purchase has no crates.")

    try:
        n = int(count)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Crates to return must be a whole number.")
    if n != count:
        raise ValidationError("Crates to return must be a whole number.")

    remaining = remaining_crates(purchase)
    if n <= 0:
        raise ValidationError("Crates to return must be at least 1.")
    if n > remaining:
        logger.warning("Over-return on purchase %s rejected: %d requested, %d remaining.", purchase_id, n, remaining)
        raise ValidationError(f"Cannot return {n} crates. Only {remaining} crate(s) remaining.")

    return_date = iso_date(return_date, "Return date")
    new_total = _returned(purchase) + n
    status = derive_crate_status({**purchase, "returned_crates": new_total})

    store.update(
        conn,
        "purchases",
        purchase["id"],
        {"returned_crates": new_total, "last_return_date": return_date, "crate_status": status.value},
    )
    logger.info(
        "Purchase %s: %d crate(s) returned on %s (%d/%d, %s)",
        purchase_id, n, return_date, new_total, _issued(purchase), status.value,
    )
    return store.get_by_id(conn, "purchases", purchase["id"])


def crate_purchases(conn) -> list[dict]:
    rows = store.get_where_range(conn, "purchases", "crates_count", 1, 2**31, order_by="purchase_date", descending=True)
    return rows


def filter_crate_purchases(
    purchases: list[dict],
    *,
    search: str = "",
    vendor_id: Optional[int] = None,
    purchase_date: Optional[str] = None,
) -> list[dict]:
    term = (search or "").strip().lower()
    out = []
    for p in purchases:
        if _issued(p) <= 0:
            continue
        if term and term not in p["vegetable"].lower() and term not in p["vendor_name"].lower():
            continue
        if vendor_id is not None and p["vendor_id"] != vendor_id:
            continue
        if purchase_date and p["purchase_date"] != purchase_date:
            continue
        out.append(p)
    return out


def crate_totals(purchases: list[dict]) -> dict:
    issued = sum(_issued(p) for p in purchases)
    returned = sum(_returned(p) for p in purchases)
    return {"issued": issued, "returned": returned, "pending": issued - returned}


def crates_by_vendor(purchases: list[dict]) -> list[dict]:
    groups: dict[int, dict] = {}
    for p in purchases:
        if _issued(p) <= 0:
            continue
        g = groups.setdefault(p["vendor_id"], {"vendor_id": p["vendor_id"], "vendor_name": p["vendor_name"], "purchases": []})
        g["purchases"].append(p)

    out = []
    for g in groups.values():
        out.append({**g, **crate_totals(g["purchases"])})
    return sorted(out, key=lambda g: g["vendor_name"].lower())
