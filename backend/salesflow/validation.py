# Overview: Input coercion helpers shared by services; raise ValidationError on bad input.

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError


# Maximum money value: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999
MAX_QUANTITY = 1_000_000


def clean_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip()


def parse_int(value: Any, field: str) -> int:
    """
    Strict integer parsing.

    Accepts ints and plain digit strings. Rejects booleans, decimals and
    scientific notation rather than silently truncating.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_quantity(value: Any, field: str = "quantity", *, default: int | None = None) -> int:
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    qty = parse_int(value, field)
    if qty <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return qty


def parse_rate_cents(value: Any, field: str = "rate") -> int:
    """Rates may be zero (free line) but never negative."""
    if value is None or value == "":
        return 0
    rate = parse_int(value, field)
    if rate < 0:
        raise ValidationError(f"{field} cannot be negative")
    if rate > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")
    return rate


def _positive_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def coerce_positive_cents(value: Any) -> int | None:
    """
    Lenient money coercion for stored amounts.

    Returns the amount in whole cents when value is a positive finite number
    (int, float or numeric string), otherwise None. Fractional cents are
    rounded half-up.
    """
    amount = _positive_decimal(value)
    if amount is None:
        return None
    cents = int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents <= 0 or cents > MAX_PRICE_CENTS:
        return None
    return cents


def parse_optional_cents(value: Any, field: str = "amount") -> int | None:
    """
    Caller-supplied optional amount in cents.

    None means "not supplied": missing, non-numeric, not finite or not
    positive. A positive amount that cannot be stored (under one cent after
    rounding, or above MAX_PRICE_CENTS) raises ValidationError.
    """
    amount = _positive_decimal(value)
    if amount is None:
        return None
    cents = int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents < 1:
        raise ValidationError(f"{field} must be at least 1 cent")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")
    return cents


def parse_line_items(items: Any) -> list[dict]:
    """
    Validate and normalize quote line items.

    Each item needs a name, a positive integer quantity and a non-negative
    integer rate (cents). Amount is computed here, never taken from input.
    """
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for idx, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        name = clean_str(raw.get("name"))
        if not name:
            raise ValidationError(f"items[{idx}].name is required")
        quantity = parse_quantity(raw.get("quantity"), f"items[{idx}].quantity")
        rate_cents = parse_rate_cents(raw.get("rate"), f"items[{idx}].rate")
        lines.append({
            "position": idx,
            "name": name,
            "description": clean_str(raw.get("description")),
            "quantity": quantity,
            "rate_cents": rate_cents,
            "amount_cents": quantity * rate_cents,
            "unit": clean_str(raw.get("unit"), "pcs") or "pcs",
        })
    return lines


def require_json_object(data: Any) -> dict:
    """Request body as a dict; an absent body is an empty object."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
