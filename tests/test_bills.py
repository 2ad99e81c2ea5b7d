from __future__ import annotations

import io
import random

import pytest
from PIL import Image

from vegledger.config import DEFAULT_MAX_BILL_BYTES
from vegledger.errors import NotFoundError, ValidationError
from vegledger.services.bills import (
    bills_by_date,
    bills_by_vendor,
    child_bills_for_purchase,
    compress_image,
    decode_bill,
    encode_bill,
    parent_bill_for_date,
    upload_bill,
)
from vegledger.services.purchases import verify_weight
from vegledger.services.vendors import add_vendor

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _upload(conn, vendor_id, **kw):
    args = {
        "vendor_id": vendor_id,
        "purchase_date": "2024-01-01",
        "file_name": "bill.png",
        "file_bytes": PNG,
        "mime_type": "image/png",
    }
    args.update(kw)
    return upload_bill(conn, **args)


def test_parent_bill_total_defaults_to_day_cost(conn, vendor_id, make_purchase):
    verify_weight(conn, make_purchase(ordered_weight=50, price_per_kg=20), 45)
    make_purchase(vegetable="Onion", ordered_weight=10, price_per_kg=30)
    make_purchase(vegetable="Potato", purchase_date="2024-01-02")

    _upload(conn, vendor_id)

    bill = parent_bill_for_date(conn, vendor_id, "2024-01-01")
    assert bill["total_amount"] == 1200.0
    assert bill["bill_type"] == "parent"
    assert bill["vendor_name"] == "Sharma Wholesale"
    assert bill["file_size"] == len(PNG)
    assert bill["file_data"].startswith("data:image/png;base64,")
    assert decode_bill(bill) == (PNG, "image/png")


def test_one_parent_bill_per_vendor_and_day(conn, vendor_id):
    _upload(conn, vendor_id)
    with pytest.raises(ValidationError, match="already uploaded"):
        _upload(conn, vendor_id, file_name="again.png")
    _upload(conn, vendor_id, purchase_date="2024-01-02")
    assert len(bills_by_vendor(conn, vendor_id)) == 2


def test_child_bill_takes_purchase_details(conn, vendor_id, make_purchase):
    pid = make_purchase(vegetable="Onion", ordered_weight=10, price_per_kg=30, purchase_date="2024-01-05")
    _upload(conn, vendor_id, bill_type="child", purchase_id=pid, purchase_date="2024-01-01", total_amount=280)

    [bill] = child_bills_for_purchase(conn, pid)
    assert bill["purchase_date"] == "2024-01-05"
    assert bill["vegetable"] == "Onion"
    assert bill["total_amount"] == 280.0
    assert bills_by_date(conn, vendor_id, "2024-01-05") == [bill]
    assert parent_bill_for_date(conn, vendor_id, "2024-01-05") is None


def test_child_bill_requires_own_purchase(conn, vendor_id, make_purchase):
    other = add_vendor(conn, name="Green Valley Traders")
    pid = make_purchase()
    with pytest.raises(ValidationError):
        _upload(conn, other, bill_type="child", purchase_id=pid)
    with pytest.raises(ValidationError):
        _upload(conn, vendor_id, bill_type="child")
    with pytest.raises(NotFoundError):
        _upload(conn, vendor_id, bill_type="child", purchase_id=999)


def test_parent_bill_cannot_reference_purchase(conn, vendor_id, make_purchase):
    with pytest.raises(ValidationError):
        _upload(conn, vendor_id, purchase_id=make_purchase())


@pytest.mark.parametrize(
    "kw",
    [
        {"mime_type": "image/gif"},
        {"file_bytes": b""},
        {"file_name": "   "},
        {"file_bytes": b"x" * 2048, "max_upload_bytes": 1024},
        {"file_bytes": b"x" * 2048, "max_bill_bytes": 2048},
    ],
)
def test_upload_rejects(conn, vendor_id, kw):
    with pytest.raises(ValidationError):
        _upload(conn, vendor_id, **kw)
    assert bills_by_vendor(conn, vendor_id) == []


def test_decode_rejects_corrupt_data():
    with pytest.raises(ValidationError):
        decode_bill({"file_data": "not a data url", "file_type": "image/png"})
    with pytest.raises(ValidationError):
        decode_bill({"file_data": "data:image/png;base64,@@@", "file_type": "image/png"})


def _noise_png(width, height, seed=1):
    rng = random.Random(seed)
    img = Image.frombytes("RGB", (width, height), rng.randbytes(width * height * 3))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def test_oversized_photo_is_recompressed_to_fit(conn, vendor_id):
    photo = _noise_png(1600, 700)
    assert len(encode_bill(photo, "image/png")) > DEFAULT_MAX_BILL_BYTES

    _upload(conn, vendor_id, file_name="bill.png", file_bytes=photo)

    bill = parent_bill_for_date(conn, vendor_id, "2024-01-01")
    assert bill["file_type"] == "image/jpeg"
    assert bill["file_name"] == "bill.jpg"
    assert bill["file_data"].startswith("data:image/jpeg;base64,")
    assert len(bill["file_data"]) <= DEFAULT_MAX_BILL_BYTES

    data, mime = decode_bill(bill)
    assert mime == "image/jpeg"
    assert bill["file_size"] == len(data)
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "JPEG"
        assert img.size == (1200, 525)


def test_small_photo_is_stored_as_uploaded(conn, vendor_id):
    photo = _noise_png(40, 30)
    _upload(conn, vendor_id, file_bytes=photo)
    bill = parent_bill_for_date(conn, vendor_id, "2024-01-01")
    assert decode_bill(bill) == (photo, "image/png")


def test_oversized_pdf_is_rejected(conn, vendor_id):
    pdf = b"%PDF-1.4\n" + b"0" * 4096
    with pytest.raises(ValidationError, match="too large"):
        _upload(conn, vendor_id, file_name="bill.pdf", file_bytes=pdf, mime_type="application/pdf",
                max_bill_bytes=2048)
    assert bills_by_vendor(conn, vendor_id) == []


def test_compress_image_ignores_unreadable_bytes():
    assert compress_image(b"not an image", 1024) is None
