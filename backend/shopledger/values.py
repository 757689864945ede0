from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from .errors import ValidationError


# NUMERIC(15, 2): 13 integer digits, 2 fractional digits
CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MAX_AMOUNT = Decimal("9999999999999.99")


def to_decimal(value: Any, field: str, *, allow_negative: bool = True) -> Decimal:
    """
    Coerce a client-supplied number into a 2-place Decimal.

    Accepts Decimal, int, float (via its repr) and numeric strings.
    Rejects booleans, NaN/Infinity, values outside NUMERIC(15, 2), and values
    with non-zero digits below the cent ("1.005"); "1.500" is accepted.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, Decimal):
        raw = value
    elif isinstance(value, (int, float)):
        raw = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            raw = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not raw.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    if abs(raw) > MAX_AMOUNT:
        raise ValidationError(f"{field} is out of range")
    amount = raw.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount != raw:
        raise ValidationError(f"{field} must have at most 2 decimal places")
    if not allow_negative and amount < 0:
        raise ValidationError(f"{field} must not be negative")
    return amount


def money(value: Any) -> Decimal:
    """Quantize a trusted numeric value (DB result, computed sum) to cents."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value: Optional[Decimal]) -> Optional[str]:
    """Serialize a Decimal for JSON without float rounding."""
    if value is None:
        return None
    return str(money(value))


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str], field: str = "date") -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime string to a UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" -> midnight of that day
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        s = str(value).strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date")

    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
