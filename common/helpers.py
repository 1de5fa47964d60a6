"""
Storefront - Shared Helpers
=============================
Pure utility functions with NO module dependencies
(generate_unique_order_number takes a session but imports lazily).
"""

import math
import secrets
import string
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


# Largest value a BIGINT column can hold
MAX_DB_INT = 2 ** 63 - 1
# Primary keys are INTEGER columns (32-bit on PostgreSQL)
MAX_ID = 2 ** 31 - 1


def safe_int(value) -> Optional[int]:
    """Safely convert a value to int. Returns None on failure.

    Booleans and non-integral floats are rejected so that a JSON `true`
    or `2.5` never passes as a quantity or id. Values outside the signed
    64-bit range are rejected too; no column can store them.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        number = int(value)
    else:
        try:
            number = int(str(value).strip())
        except (ValueError, TypeError):
            return None
    return number if -MAX_DB_INT - 1 <= number <= MAX_DB_INT else None


def valid_id(value) -> Optional[int]:
    """Primary-key style id (1..MAX_ID) or None."""
    number = safe_int(value)
    return number if number is not None and 1 <= number <= MAX_ID else None


def to_money(value) -> float:
    """Round a Decimal (or number) to cents and return it as float for JSON."""
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def pagination_block(page: int, limit: int, total: int) -> dict:
    """Pagination metadata shared by list endpoints."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


# ==========================================
# Order Number Generator
# ==========================================

_BASE36 = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_order_number() -> str:
    """Human-readable order number: ORD-<base36 ms timestamp>-<6 random chars>."""
    timestamp = to_base36(int(now_utc().timestamp() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"ORD-{timestamp}-{suffix}"


def generate_unique_order_number(db, max_retries: int = 10) -> str:
    """Generate an order number not yet used (the unique index is the final guard)."""
    from modules.order.models import Order
    for _ in range(max_retries):
        code = generate_order_number()
        exists = db.query(Order.id).filter(Order.order_number == code).first()
        if not exists:
            return code
    raise RuntimeError("Failed to generate unique order number after retries")
