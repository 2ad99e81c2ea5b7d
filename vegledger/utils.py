from __future__ import annotations

import math
from datetime import datetime, date, timezone
from typing import Optional

from vegledger.errors import ValidationError


def iso_today() -> str:
    return date.today().isoformat()


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def safe_div(n: float, d: float) -> float:
    return float(n) / float(d) if d else 0.0


def iso_date(value, field: str = "date") -> str:
    """Accepts a date or a YYYY-MM-DD string and returns the zero-padded ISO form."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date.")


def positive_float(value, field: str) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number.")
    if not math.isfinite(v):
        raise ValidationError(f"{field} must be a finite number.")
    if v <= 0:
        raise ValidationError(f"{field} must be > 0.")
    return v


def clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s if s else None


def non_negative_float(value, field: str) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number.")
    if not math.isfinite(v):
        raise ValidationError(f"{field} must be a finite number.")
    if not v >= 0:
        raise ValidationError(f"{field} cannot be negative.")
    return v
