import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",")
]

# Upper bound on how long a reservation waits for calendar row locks
LOCK_TIMEOUT_MS = int(os.getenv("LOCK_TIMEOUT_MS", "5000"))

REFERENCE_PREFIX = os.getenv("REFERENCE_PREFIX", "BKG-")
REFERENCE_LENGTH = int(os.getenv("REFERENCE_LENGTH", "6"))
REFERENCE_MAX_ATTEMPTS = int(os.getenv("REFERENCE_MAX_ATTEMPTS", "5"))

# "inline": payment recorded inside the reservation transaction.
# "deferred": reservation commits first, payment settled in a second transaction.
PAYMENT_MODE = os.getenv("PAYMENT_MODE", "inline").lower()
if PAYMENT_MODE not in ("inline", "deferred"):
    raise ValueError("PAYMENT_MODE must be 'inline' or 'deferred'")

DEFAULT_PAYMENT_PROVIDER = os.getenv("DEFAULT_PAYMENT_PROVIDER", "stripe")

TAX_RATE = Decimal(os.getenv("TAX_RATE", "0"))
SERVICE_CHARGE_RATE = Decimal(os.getenv("SERVICE_CHARGE_RATE", "0"))
