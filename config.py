import os
import sys

from dotenv import load_dotenv

from enums.currency import Currency
from enums.invalid_discount_policy import InvalidDiscountPolicy
from enums.order_transition_policy import OrderTransitionPolicy
from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test suites to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)


def _exit_on_invalid(name: str, reason: Exception, expected: str) -> None:
    print(f"\n ERROR: Invalid {name} configuration\n", file=sys.stderr)
    print(f"Reason: {reason}", file=sys.stderr)
    print(f"Expected: {expected}", file=sys.stderr)
    print(f"Current value: {os.environ.get(name, '(not set)')}\n", file=sys.stderr)
    sys.exit(1)


def _positive_int(name: str, default: str) -> int:
    try:
        value = int(os.environ.get(name, default))
        if value <= 0:
            raise ValueError(f"{name} must be positive (got {value})")
        return value
    except ValueError as e:
        _exit_on_invalid(name, e, "Positive integer")


def _positive_float(name: str, default: str) -> float:
    try:
        value = float(os.environ.get(name, default))
        if value <= 0:
            raise ValueError(f"{name} must be positive (got {value})")
        return value
    except ValueError as e:
        _exit_on_invalid(name, e, "Positive number")


try:
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(os.environ.get("RUNTIME_ENVIRONMENT", "DEV"))
except ValueError as e:
    _exit_on_invalid("RUNTIME_ENVIRONMENT", e, ", ".join(env.value for env in RuntimeEnvironment))

# Database
DB_URL = os.environ.get("DB_URL", "sqlite+aiosqlite:///data/shop.db")
DB_ECHO = os.environ.get("DB_ECHO", "false") == "true"
DB_BUSY_TIMEOUT_SECONDS = _positive_float("DB_BUSY_TIMEOUT_SECONDS", "15")

try:
    CURRENCY = Currency(os.environ.get("CURRENCY", Currency.ARS.value))
except ValueError as e:
    _exit_on_invalid("CURRENCY", e, ", ".join(c.value for c in Currency))

# Inventory / Checkout
RESERVATION_TTL_MINUTES = _positive_int("RESERVATION_TTL_MINUTES", "15")
RESERVATION_CLEANUP_INTERVAL_SECONDS = _positive_int("RESERVATION_CLEANUP_INTERVAL_SECONDS", "60")
LOW_STOCK_THRESHOLD = _positive_int("LOW_STOCK_THRESHOLD", "5")

# What happens to an order when the supplied discount code does not validate:
# skip   -> order is placed without discount (historic behaviour)
# reject -> order placement fails with the discount error
try:
    ON_INVALID_DISCOUNT = InvalidDiscountPolicy(os.environ.get("ON_INVALID_DISCOUNT", "skip").lower())
except ValueError as e:
    _exit_on_invalid("ON_INVALID_DISCOUNT", e, ", ".join(p.value for p in InvalidDiscountPolicy))

# permissive -> any status may follow any status (historic behaviour)
# strict     -> only transitions listed in utils/order_state_machine.py are accepted
try:
    ORDER_TRANSITION_POLICY = OrderTransitionPolicy(os.environ.get("ORDER_TRANSITION_POLICY", "permissive").lower())
except ValueError as e:
    _exit_on_invalid("ORDER_TRANSITION_POLICY", e, ", ".join(p.value for p in OrderTransitionPolicy))

# Transactions
TRANSACTION_TIMEOUT_SECONDS = _positive_int("TRANSACTION_TIMEOUT_SECONDS", "30")
TRANSACTION_MAX_RETRIES = _positive_int("TRANSACTION_MAX_RETRIES", "3")
TRANSACTION_RETRY_DELAY_BASE = _positive_float("TRANSACTION_RETRY_DELAY_BASE", "0.1")

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask sensitive data in logs
LOG_DIR = os.environ.get("LOG_DIR", "logs")

# Log Retention: Environment-specific defaults
# Dev: keep a month for debugging
# Prod: Use 5 days default to save disk space
if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "30"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))
