from __future__ import annotations

import streamlit as st

st.set_page_config(page_title="Veg Ledger", page_icon="🥬", layout="wide")

pages = [
    st.Page("home.py", title="Dashboard", icon="🏠"),
    st.Page("pages/1_🧾_Purchases.py", title="Purchases", icon="🧾"),
    st.Page("pages/2_⚖️_Weight_Verification.py", title="Weight Verification", icon="⚖️"),
    st.Page("pages/3_📦_Crates.py", title="Crates", icon="📦"),
    st.Page("pages/4_🥕_Inventory.py", title="Inventory & Catalog", icon="🥕"),
    st.Page("pages/5_🏪_Vendors.py", title="Vendors & Bills", icon="🏪"),
    st.Page("pages/6_🛒_Sales_&_Expenses.py", title="Sales & Expenses", icon="🛒"),
    st.Page("pages/7_📊_Reports.py", title="Financial Reports", icon="📊"),
    st.Page("pages/8_🧪_Data_Management.py", title="Data Management", icon="🧪"),
]

st.navigation(pages).run()
