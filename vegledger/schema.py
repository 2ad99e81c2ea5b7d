SCHEMA_SQL = r"""
-- Wholesale vendors
CREATE TABLE IF NOT EXISTS vendors (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  contact TEXT,
  location TEXT,
  crate_codes TEXT NOT NULL DEFAULT '[]', -- JSON list of registered crate codes
  total_purchases INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL
);

-- Vegetable / fruit catalog
CREATE TABLE IF NOT EXISTS vegetables (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL UNIQUE,
  category TEXT NOT NULL,                 -- vegetable / fruit
  created_at TEXT NOT NULL
);

-- Purchases (one row per item bought from a vendor on a date)
CREATE TABLE IF NOT EXISTS purchases (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  vendor_id INTEGER NOT NULL,
  vendor_name TEXT NOT NULL,
  vegetable TEXT NOT NULL,
  ordered_weight REAL NOT NULL,
  received_weight REAL,                   -- set only after verification
  price_per_kg REAL NOT NULL,
  total_amount REAL NOT NULL,             -- ordered_weight * price_per_kg, frozen at order time
  purchase_date TEXT NOT NULL,            -- ISO date
  verification_status TEXT NOT NULL DEFAULT 'pending',
  discrepancy_amount REAL,

  crates_count INTEGER NOT NULL DEFAULT 0,
  vendor_crate_code TEXT,
  returned_crates INTEGER NOT NULL DEFAULT 0,
  last_return_date TEXT,
  crate_status TEXT,                      -- pending / partial / returned (only when crates_count > 0)

  created_at TEXT NOT NULL,
  FOREIGN KEY (vendor_id) REFERENCES vendors(id)
);

-- Bill attachments (parent = whole vendor/date, child = one purchase)
CREATE TABLE IF NOT EXISTS bills (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  vendor_id INTEGER NOT NULL,
  vendor_name TEXT NOT NULL,
  purchase_date TEXT NOT NULL,
  file_name TEXT NOT NULL,
  file_type TEXT NOT NULL,
  file_size INTEGER NOT NULL,
  file_data TEXT NOT NULL,                -- base64 data URL
  total_amount REAL NOT NULL DEFAULT 0,
  bill_type TEXT NOT NULL,
  purchase_id INTEGER,
  vegetable TEXT,
  uploaded_at TEXT NOT NULL,
  FOREIGN KEY (vendor_id) REFERENCES vendors(id),
  FOREIGN KEY (purchase_id) REFERENCES purchases(id)
);

-- Retail sales
CREATE TABLE IF NOT EXISTS sales (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  vegetable TEXT NOT NULL,
  quantity_sold REAL NOT NULL,
  selling_price_per_kg REAL NOT NULL,
  total_sale_amount REAL NOT NULL,
  sale_date TEXT NOT NULL,
  customer_name TEXT,
  payment_method TEXT NOT NULL,           -- cash / upi / card / credit
  created_at TEXT NOT NULL
);

-- Operating expenses
CREATE TABLE IF NOT EXISTS expenses (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  category TEXT NOT NULL,
  description TEXT NOT NULL DEFAULT '',
  amount REAL NOT NULL,
  expense_date TEXT NOT NULL,
  receipt_url TEXT,
  created_at TEXT NOT NULL
);

-- Stock projection (one row per item)
CREATE TABLE IF NOT EXISTS inventory (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  vegetable TEXT NOT NULL UNIQUE,
  total_stock REAL NOT NULL DEFAULT 0,
  last_updated TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_purchases_vendor ON purchases(vendor_id);
CREATE INDEX IF NOT EXISTS idx_purchases_date ON purchases(purchase_date);
CREATE INDEX IF NOT EXISTS idx_sales_date ON sales(sale_date);
CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(expense_date);
CREATE INDEX IF NOT EXISTS idx_bills_vendor_date ON bills(vendor_id, purchase_date);
"""
