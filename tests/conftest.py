from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Keep service loggers out of the working tree while tests run.
os.environ.setdefault("VEG_LEDGER_LOG_DIR", str(Path(tempfile.gettempdir()) / "veg_ledger_test_logs"))

import pytest  # noqa: E402

from vegledger.db import _connect, ensure_schema  # noqa: E402
from vegledger.services.purchases import record_purchase, verify_weight  # noqa: E402
from vegledger.services.vendors import add_vendor  # noqa: E402


@pytest.fixture
def conn(tmp_path):
    c = _connect(tmp_path / "test.db")
    ensure_schema(c)
    yield c
    c.close()


@pytest.fixture
def vendor_id(conn):
    return add_vendor(conn, name="Sharma Wholesale", contact="98100 11111", location="Azadpur", crate_codes=["SW", "swx"])


@pytest.fixture
def make_purchase(conn, vendor_id):
    def _make(vegetable="Tomato", ordered_weight=50.0, price_per_kg=20.0, purchase_date="2024-01-01", **kw):
        return record_purchase(
            conn,
            vendor_id=kw.pop("vendor_id", vendor_id),
            vegetable=vegetable,
            ordered_weight=ordered_weight,
            price_per_kg=price_per_kg,
            purchase_date=purchase_date,
            **kw,
        )

    return _make


@pytest.fixture
def stock(conn, make_purchase):
    """Brings kg of an item into inventory through a verified purchase."""

    def _stock(vegetable, kg, purchase_date="2024-01-01"):
        pid = make_purchase(vegetable=vegetable, ordered_weight=kg, purchase_date=purchase_date)
        verify_weight(conn, pid, kg)
        return pid

    return _stock
