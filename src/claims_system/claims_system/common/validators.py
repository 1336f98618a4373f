from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from ..core.exceptions import ValidationError


def _text(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text")
    return value


def require_non_empty(value: Any, field_name: str) -> str:
    value = _text(value, field_name).strip()
    if not value:
        raise ValidationError(f"{field_name} is required")
    return value


def require_min_length(value: Any, field_name: str, min_len: int) -> str:
    value = _text(value, field_name)
    if len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def optional_text(value: Any, field_name: str = "Text") -> Optional[str]:
    return _text(value, field_name).strip() or None


def optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(f"{field_name} must be an object")
    return value


def parse_amount(
    value: Any,
    field_name: str,
    *,
    allow_none: bool = True,
    places: Optional[int] = None,
) -> Optional[Decimal]:
    """Parse a non-negative money/distance amount into Decimal.

    Floats go through ``str`` so 0.55 stays 0.55 and not its binary expansion.
    ``places`` is the scale of the column the amount is stored in; more
    decimal places than that are refused rather than rounded on write.
    """
    if value is None or value == "":
        if allow_none:
            return None
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field_name} must be a non-negative number")
    if places is not None and -amount.normalize().as_tuple().exponent > places:
        raise ValidationError(f"{field_name} allows at most {places} decimal places")
    return amount


def require_positive(value: Any, field_name: str, *, places: Optional[int] = None) -> Decimal:
    amount = parse_amount(value, field_name, allow_none=False, places=places)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return amount


def parse_hhmm(value: Any, field_name: str) -> time:
    v = _text(value, field_name).strip()
    try:
        return datetime.strptime(v, "%H:%M").time()
    except ValueError:
        raise ValidationError(f"{field_name} must be a valid time (HH:MM)")


def parse_date_value(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError):
        raise ValidationError(f"{field_name} must be a valid date (YYYY-MM-DD)")
