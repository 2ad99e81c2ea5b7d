from __future__ import annotations

import base64
import binascii
import io
from pathlib import PurePath
from typing import Optional

from PIL import Image, UnidentifiedImageError

from vegledger import store
from vegledger.config import DEFAULT_MAX_BILL_BYTES, DEFAULT_MAX_UPLOAD_BYTES
from vegledger.enums import BillType
from vegledger.errors import NotFoundError, ValidationError
from vegledger.logger import get_logger
from vegledger.services.reports import effective_cost
from vegledger.services.vendors import get_vendor
from vegledger.utils import clean_text, iso_date, iso_now

logger = get_logger(__name__)

ALLOWED_TYPES = ("image/jpeg", "image/jpg", "image/png", "application/pdf")

# Oversized photos are shrunk to this bounding box and re-encoded as JPEG.
MAX_IMAGE_DIMENSION = 1200
JPEG_QUALITY_STEPS = (80, 70, 60, 50, 40, 30, 20, 10)


def encode_bill(file_bytes: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64," + base64.b64encode(file_bytes).decode("ascii")


def decode_bill(bill: dict) -> tuple[bytes, str]:
    """Returns (raw bytes, mime type) for a stored bill, ready for a download button."""
    data = bill["file_data"]
    header, _, payload = data.partition(",")
    if not header.startswith("data:") or ";base64" not in header:
        raise ValidationError("Stored bill is not a base64 data URL.")
    mime = header[len("data:"):].split(";", 1)[0] or bill.get("file_type") or "application/octet-stream"
    try:
        return base64.b64decode(payload, validate=True), mime
    except (binascii.Error, ValueError):
        raise ValidationError("Stored bill data is corrupt.")


def compress_image(file_bytes: bytes, max_encoded_bytes: int) -> Optional[bytes]:
    """
    Shrinks a photo to fit the bill cap: downscale to MAX_IMAGE_DIMENSION, then save as
    JPEG at falling quality until the data URL fits. Returns the smallest attempt, or
    None when the bytes are not a readable image.
    """
    try:
        img = Image.open(io.BytesIO(file_bytes))
        img.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError):
        return None

    if img.mode != "RGB":
        img = img.convert("RGB")
    img.thumbnail((MAX_IMAGE_DIMENSION, MAX_IMAGE_DIMENSION))

    out = b""
    for quality in JPEG_QUALITY_STEPS:
        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=quality)
        out = buf.getvalue()
        if len(encode_bill(out, "image/jpeg")) <= max_encoded_bytes:
            break
    return out


def upload_bill(
    conn,
    *,
    vendor_id: int,
    purchase_date,
    file_name: str,
    file_bytes: bytes,
    mime_type: str,
    bill_type=BillType.PARENT,
    purchase_id: Optional[int] = None,
    total_amount: Optional[float] = None,
    max_bill_bytes: int = DEFAULT_MAX_BILL_BYTES,
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> int:
    bill_type = BillType.parse(bill_type)
    purchase_date = iso_date(purchase_date, "Purchase date")
    file_name = clean_text(file_name)
    if not file_name:
        raise ValidationError("File name is required.")
    mime_type = (mime_type or "").strip().lower()
    if mime_type not in ALLOWED_TYPES:
        raise ValidationError("Only JPG, PNG and PDF bills are supported.")
    if not file_bytes:
        raise ValidationError("The selected file is empty.")
    if len(file_bytes) > max_upload_bytes:
        raise ValidationError(f"File size must be less than {max_upload_bytes // (1024 * 1024)}MB.")

    file_data = encode_bill(file_bytes, mime_type)
    if len(file_data) > max_bill_bytes and mime_type.startswith("image/"):
        compressed = compress_image(file_bytes, max_bill_bytes)
        if compressed is None:
            logger.warning("Bill %s could not be read as an image; keeping the original bytes.", file_name)
        else:
            logger.info("Bill %s recompressed: %d -> %d bytes", file_name, len(file_bytes), len(compressed))
            file_bytes, mime_type = compressed, "image/jpeg"
            file_name = str(PurePath(file_name).with_suffix(".jpg"))
            file_data = encode_bill(file_bytes, mime_type)
    if len(file_data) > max_bill_bytes:
        raise ValidationError(
            f"File is too large after encoding ({len(file_data) // 1024} KB, limit {max_bill_bytes // 1024} KB). "
            "Upload a smaller or more compressed copy."
        )

    vendor = get_vendor(conn, vendor_id)
    vegetable = None

    if bill_type is BillType.PARENT:
        if purchase_id is not None:
            raise ValidationError("A bill for the whole day cannot point at a single purchase.")
        if parent_bill_for_date(conn, vendor["id"], purchase_date) is not None:
            logger.warning("Duplicate bill for vendor %s on %s rejected.", vendor["id"], purchase_date)
            raise ValidationError(f"A bill for {vendor['name']} on {purchase_date} is already uploaded.")
        if total_amount is None:
            day = [
                p for p in store.get_where_equals(conn, "purchases", "vendor_id", vendor["id"])
                if p["purchase_date"] == purchase_date
            ]
            total_amount = sum(effective_cost(p) for p in day)
    elif bill_type is BillType.CHILD:
        if purchase_id is None:
            raise ValidationError("An item bill must reference a purchase.")
        purchase = store.get_by_id(conn, "purchases", purchase_id)
        if purchase is None:
            raise NotFoundError("Purchase not found.")
        if purchase["vendor_id"] != vendor["id"]:
            raise ValidationError("That purchase belongs to a different vendor.")
        purchase_date = purchase["purchase_date"]
        vegetable = purchase["vegetable"]
        if total_amount is None:
            total_amount = effective_cost(purchase)

    bill_id = store.create(
        conn,
        "bills",
        {
            "vendor_id": vendor["id"],
            "vendor_name": vendor["name"],
            "purchase_date": purchase_date,
            "file_name": file_name,
            "file_type": mime_type,
            "file_size": len(file_bytes),
            "file_data": file_data,
            "total_amount": float(total_amount or 0),
            "bill_type": bill_type.value,
            "purchase_id": purchase_id,
            "vegetable": vegetable,
            "uploaded_at": iso_now(),
        },
    )
    logger.info("Bill %s uploaded (%s) for vendor %s on %s: %s, %d bytes",
                bill_id, bill_type.value, vendor["id"], purchase_date, file_name, len(file_bytes))
    return bill_id


def bills_by_vendor(conn, vendor_id: int) -> list[dict]:
    return store.get_where_equals(
        conn, "bills", "vendor_id", int(vendor_id), order_by="purchase_date", descending=True
    )


def bills_by_date(conn, vendor_id: int, purchase_date) -> list[dict]:
    d = iso_date(purchase_date, "Purchase date")
    return [b for b in bills_by_vendor(conn, vendor_id) if b["purchase_date"] == d]


def parent_bill_for_date(conn, vendor_id: int, purchase_date) -> Optional[dict]:
    for b in bills_by_date(conn, vendor_id, purchase_date):
        if BillType.parse(b["bill_type"]) is BillType.PARENT:
            return b
    return None


def child_bills_for_purchase(conn, purchase_id: int) -> list[dict]:
    return [
        b for b in store.get_where_equals(conn, "bills", "purchase_id", int(purchase_id))
        if BillType.parse(b["bill_type"]) is BillType.CHILD
    ]
