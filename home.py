from __future__ import annotations

import pandas as pd
import streamlit as st

from vegledger.config import get_settings
from vegledger.db import get_conn, ensure_schema
from vegledger.services.demo_data import upsert_reference_data
from vegledger.services.inventory import list_inventory
from vegledger.services.purchases import list_purchases, pending_by_date
from vegledger.services.reports import dashboard_summary, effective_cost
from vegledger.utils import iso_today

st.set_page_config(page_title="Veg Ledger", page_icon="🥬", layout="wide")

st.title("🥬 Veg Ledger")
st.caption("Wholesale purchase → weight check → inventory → retail sale → expenses and profit.")

settings = get_settings()
conn = get_conn(settings.db_path)
ensure_schema(conn)
upsert_reference_data(conn)

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Database:** `{settings.db_path.name}`")

purchases = list_purchases(conn)
inventory = list_inventory(conn)
today = iso_today()
todays = [p for p in purchases if p["purchase_date"] == today]
summary = dashboard_summary(purchases, inventory)

c1, c2, c3, c4 = st.columns(4)
c1.metric("Today's purchases", f"{len(todays)}")
c2.metric("Today's spend", f"{settings.currency} {sum(effective_cost(p) for p in todays):,.2f}")
c3.metric("Pending verifications", f"{summary['pending_verifications']}")
c4.metric("Stock on hand", f"{summary['inventory_kg']:,.1f} kg")

if summary["discrepancies"]:
    st.warning(f"{summary['discrepancies']} purchase(s) were short-delivered. See Weight Verification.")

st.subheader("Recent purchases")
if purchases:
    cols = ["purchase_date", "vendor_name", "vegetable", "ordered_weight", "received_weight",
            "price_per_kg", "total_amount", "verification_status"]
    st.dataframe(pd.DataFrame(purchases[:5])[cols], use_container_width=True, hide_index=True)
else:
    st.info(
        "No purchases yet. Start with **🧪 Data Management** to load demo data, or add a vendor and record a purchase.",
        icon="ℹ️",
    )

groups = pending_by_date(purchases)
if groups:
    st.subheader("Awaiting weight verification")
    for g in groups:
        with st.expander(f"{g['purchase_date']}: {g['count']} pending • {g['ordered_kg']:.1f} kg • "
                         f"{settings.currency} {g['amount']:,.2f}"):
            st.dataframe(
                pd.DataFrame(g["purchases"])[["vendor_name", "vegetable", "ordered_weight", "crates_count"]],
                use_container_width=True,
                hide_index=True,
            )
