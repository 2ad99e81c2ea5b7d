from __future__ import annotations

from typing import Iterable, Optional

from vegledger import store
from vegledger.db import x
from vegledger.errors import NotFoundError, ValidationError
from vegledger.logger import get_logger
from vegledger.services.reports import effective_cost
from vegledger.utils import clean_text, iso_now

logger = get_logger(__name__)

EDITABLE_FIELDS = {"name", "contact", "location", "crate_codes"}


def normalize_crate_codes(codes: Optional[Iterable[str]]) -> list[str]:
    """Strip, upper-case and de-duplicate, keeping the order the user typed them in."""
    out: list[str] = []
    for c in codes or []:
        s = str(c).strip().upper()
        if s and s not in out:
            out.append(s)
    return out


def add_vendor(
    conn,
    *,
    name: str,
    contact: Optional[str] = None,
    location: Optional[str] = None,
    crate_codes: Optional[Iterable[str]] = None,
) -> int:
    name = clean_text(name)
    if not name:
        raise ValidationError("Vendor name is required.")

    vendor_id = store.create(
        conn,
        "vendors",
        {
            "name": name,
            "contact": clean_text(contact),
            "location": clean_text(location),
            "crate_codes": normalize_crate_codes(crate_codes),
            "total_purchases": 0,
            "created_at": iso_now(),
        },
    )
    logger.info("Vendor %s created: %s", vendor_id, name)
    return vendor_id


def get_vendor(conn, vendor_id: int) -> dict:
    v = store.get_by_id(conn, "vendors", vendor_id)
    if v is None:
        raise NotFoundError("Vendor not found.")
    return v


def list_vendors(conn) -> list[dict]:
    return store.get_all(conn, "vendors", order_by="name")


def update_vendor(conn, vendor_id: int, **updates) -> dict:
    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot edit vendor field(s): {', '.join(sorted(unknown))}.")

    changes = {}
    for k, v in updates.items():
        if k == "crate_codes":
            changes[k] = normalize_crate_codes(v)
        elif k == "name":
            name = clean_text(v)
            if not name:
                raise ValidationError("Vendor name is required.")
            changes[k] = name
        else:
            changes[k] = clean_text(v)

    get_vendor(conn, vendor_id)
    store.update(conn, "vendors", vendor_id, changes)
    logger.info("Vendor %s updated: %s", vendor_id, sorted(changes))
    return get_vendor(conn, vendor_id)


def vendor_label(vendor: dict) -> str:
    # Names are not unique; the location tells same-named vendors apart in pickers.
    return f"{vendor['name']} ({vendor['location']})" if vendor.get("location") else vendor["name"]


def vendor_crate_codes(vendor: dict) -> list[str]:
    codes = list(vendor.get("crate_codes") or [])
    if codes:
        return codes
    # Vendors registered before multi-code support only carry a prefix.
    legacy = clean_text(vendor.get("crate_code_prefix"))
    return [legacy.upper()] if legacy else []


def increment_total_purchases(conn, vendor_id: int, *, by: int = 1, commit: bool = True) -> None:
    x(
        conn,
        "UPDATE vendors SET total_purchases = COALESCE(total_purchases, 0) + ? WHERE id=?",
        (int(by), int(vendor_id)),
        commit=commit,
    )


def vendor_purchase_summary(conn, vendor_id: int) -> dict:
    """Headline numbers for the vendor details view."""
    purchases = store.get_where_equals(
        conn, "purchases", "vendor_id", int(vendor_id), order_by="purchase_date", descending=True
    )

    by_date: dict[str, dict] = {}
    for p in purchases:
        d = by_date.setdefault(p["purchase_date"], {"purchase_date": p["purchase_date"], "items": 0, "amount": 0.0})
        d["items"] += 1
        d["amount"] += effective_cost(p)

    return {
        "purchase_count": len(purchases),
        "ordered_kg": sum(float(p["ordered_weight"]) for p in purchases),
        "total_spend": sum(effective_cost(p) for p in purchases),
        "by_date": sorted(by_date.values(), key=lambda d: d["purchase_date"], reverse=True),
    }
