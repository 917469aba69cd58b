# helpers.py
import hashlib
import hmac
import time
from decimal import Decimal, DecimalException, InvalidOperation, ROUND_DOWN
from typing import Any, Optional

from .errors import InvalidAmount

# All ledger amounts (TON and NMX) are stored as integer nano-units.
NANO = 10 ** 9
NANO_FACTOR = Decimal(NANO)
NANO_STEP = Decimal("1e-9")
MAX_NANO = 2 ** 63 - 1


# ---------------------------
# Identity
# ---------------------------
def address_from_secret(secret: str) -> str:
    # Stable account id derived from the bearer secret, hex-only (0-9a-f)
    digest_hex = hashlib.sha256(secret.encode()).hexdigest()
    return digest_hex[:40]


def consteq(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


# ---------------------------
# Time
# ---------------------------
def now_unix() -> int:
    return int(time.time())


def day_key(ts: Optional[int] = None) -> str:
    # UTC day key YYYY-MM-DD
    if ts is None:
        ts = now_unix()
    return time.strftime("%Y-%m-%d", time.gmtime(ts))


# ---------------------------
# Amounts
# ---------------------------
def parse_ton_decimal(value: Any) -> Decimal:
    """Parse a user-supplied TON amount into an exact Decimal.

    Accepts ints, floats and numeric strings. Raises InvalidAmount for
    anything that is not a finite positive number.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount()
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount()
    if not d.is_finite() or d <= 0:
        raise InvalidAmount()
    return d


def ton_to_nano(d: Decimal) -> int:
    # Truncates past 9 decimals; must fit a signed 64-bit sqlite INTEGER
    try:
        nano = int(d.quantize(NANO_STEP, rounding=ROUND_DOWN) * NANO_FACTOR)
    except DecimalException:
        raise InvalidAmount()
    if nano <= 0 or nano > MAX_NANO:
        raise InvalidAmount()
    return nano


def parse_ton_amount(value: Any) -> int:
    return ton_to_nano(parse_ton_decimal(value))


def to_nano(units: int) -> int:
    return int(units) * NANO


def from_nano(nano: int) -> float:
    return float(Decimal(int(nano)) / NANO_FACTOR)
