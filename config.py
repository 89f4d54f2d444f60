import os
import sys

from dotenv import load_dotenv

from enums.currency import Currency
from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test scripts to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)

# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    _runtime_env_str = os.environ.get("RUNTIME_ENVIRONMENT")
    if not _runtime_env_str:
        raise ValueError("RUNTIME_ENVIRONMENT environment variable is not set")
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(_runtime_env_str)
except ValueError as e:
    valid_values = [env.value for env in RuntimeEnvironment]
    print(f"\n ERROR: Invalid RUNTIME_ENVIRONMENT configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_values)}", file=sys.stderr)
    print(f"Current value: {os.environ.get('RUNTIME_ENVIRONMENT', '(not set)')}", file=sys.stderr)
    print(f"\nAdd to .env: RUNTIME_ENVIRONMENT={valid_values[0]}\n", file=sys.stderr)
    sys.exit(1)

WEBAPP_HOST = os.environ.get("WEBAPP_HOST", "0.0.0.0")
WEBAPP_PORT = int(os.environ.get("WEBAPP_PORT")) if os.environ.get("WEBAPP_PORT") else 8000

# Database
DB_NAME = os.environ.get("DB_NAME", "booking.db")
# Full SQLAlchemy URL override (tests use sqlite+aiosqlite:///:memory:)
DB_URL = os.environ.get("DB_URL") or f"sqlite+aiosqlite:///data/{DB_NAME}"

# Parse CURRENCY with error handling
try:
    CURRENCY = Currency(os.environ.get("CURRENCY", "INR"))
except ValueError as e:
    valid_currencies = [c.value for c in Currency]
    print(f"\n ERROR: Invalid CURRENCY configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Valid values: {', '.join(valid_currencies)}", file=sys.stderr)
    print(f"Current value: {os.environ.get('CURRENCY', '(not set)')}", file=sys.stderr)
    print(f"\nAdd to .env: CURRENCY={valid_currencies[0]}\n", file=sys.stderr)
    sys.exit(1)


def parse_coupon_codes(raw: str) -> dict[str, int]:
    """
    Parse coupon configuration of the form "CODE:amount,CODE2:amount".

    Codes are normalized to upper case, amounts are flat discounts in
    integer currency units.

    Raises:
        ValueError: If an entry is malformed or an amount is not a positive integer
    """
    coupons: dict[str, int] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        code, sep, amount = entry.partition(":")
        if not sep or not code.strip():
            raise ValueError(f"Malformed coupon entry '{entry}'")
        value = int(amount)
        if value <= 0:
            raise ValueError(f"Coupon {code.strip()} must have a positive amount (got: {value})")
        coupons[code.strip().upper()] = value
    return coupons


# Coupons (flat discount per code)
try:
    COUPON_CODES = parse_coupon_codes(os.environ.get("COUPON_CODES", "HEALTH100:100"))
except ValueError as e:
    print(f"\n ERROR: Invalid COUPON_CODES configuration\n", file=sys.stderr)
    print(f"Reason: {e}", file=sys.stderr)
    print(f"Expected format: comma-separated CODE:amount pairs", file=sys.stderr)
    print(f"Example: COUPON_CODES=HEALTH100:100,WELCOME50:50", file=sys.stderr)
    print(f"Current value: {os.environ.get('COUPON_CODES', '(not set)')}\n", file=sys.stderr)
    sys.exit(1)

# Payment confirmation webhook (validated per request, empty disables the endpoint)
PAYMENT_WEBHOOK_SECRET = os.environ.get("PAYMENT_WEBHOOK_SECRET", "")

# Online payments not confirmed within this window are dropped from the waiting registry
PAYMENT_CONFIRMATION_TIMEOUT_MINUTES = int(os.environ.get("PAYMENT_CONFIRMATION_TIMEOUT_MINUTES", "30"))

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask sensitive data in logs

# Log Retention: Environment-specific defaults
# Dev: keep a month for debugging
# Prod: Use 5 days default to save disk space
if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "30"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))
