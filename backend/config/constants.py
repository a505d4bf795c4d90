# backend/config/constants.py

# -----------------------------
# LISTINGS
# -----------------------------

LISTING_UNITS = {"kg", "lb", "ton", "bag", "crate", "bunch", "dozen", "unit"}
DEFAULT_UNIT = "kg"

MARKETPLACE_PAGE_LIMIT = 50

# precision accepted for quantities and prices
AMOUNT_MAX_DIGITS = 12
QUANTITY_DECIMAL_PLACES = 3
PRICE_DECIMAL_PLACES = 2

# -----------------------------
# UPLOADS
# -----------------------------

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024     # 5MB

# -----------------------------
# MESSAGING
# -----------------------------

MAX_MESSAGE_LENGTH = 2000
THREAD_PAGE_LIMIT = 200

# -----------------------------
# DASHBOARDS
# -----------------------------

RECENT_ITEMS_LIMIT = 5
