# shop_ledger/constants.py
APP_NAME = "Shop Ledger"

DATA_DIR = "data"
DB_FILE_NAME = "shop_ledger.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

# ---- Payments ----
PAYMENT_METHODS = ("cash", "card", "bank_transfer", "check", "other")
DEFAULT_PAYMENT_METHOD = "cash"
CHECK_METHOD = "check"

# account settlement / advance / store credit (customers) or deposit (vendors)
PAYMENT_TYPES = ("account_payment", "advance_payment", "store_credit", "deposit")

DEFAULT_CURRENCY = "NIS"

# Transaction kinds map 1:1 to store collections
KIND_SALE = "sale"
KIND_PURCHASE = "purchase"
COLLECTION_BY_KIND = {KIND_SALE: "sales", KIND_PURCHASE: "purchases"}

# Float tolerance for money comparisons
MONEY_EPSILON = 1e-9

# ---- Check register ----
CHECK_STATES = ("pending", "cleared", "bounced", "cancelled")
