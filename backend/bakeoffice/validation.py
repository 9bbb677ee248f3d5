from __future__ import annotations

from typing import Any, Iterable

from .errors import ValidationError, InvalidAmountError
from .time_utils import parse_business_date, parse_iso_datetime


# Largest amount accepted for a single money field (GNF has no minor unit)
MAX_AMOUNT_GNF = 999_999_999_999


def require_fields(payload: dict, *fields: str) -> None:
    """Raise ValidationError naming every missing (None or empty) field."""
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_int(value: Any, field: str) -> int:
    """
    Strict integer coercion.

    Rejects bools, floats, decimals and scientific notation so that
    "12.5" or 1e6 never silently become money.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_amount(value: Any, field: str = "amount", *, allow_zero: bool = False) -> int:
    """Money amount in GNF: positive integer (or zero when allowed)."""
    if value is None:
        if allow_zero:
            return 0
        raise InvalidAmountError(f"{field} is required")
    try:
        amount = parse_int(value, field)
    except ValidationError as exc:
        raise InvalidAmountError(exc.message)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmountError(f"{field} must be greater than zero")
    if amount > MAX_AMOUNT_GNF:
        raise InvalidAmountError(f"{field} exceeds maximum allowed value")
    return amount


def parse_quantity(value: Any, field: str = "quantity", *, allow_negative: bool = False) -> float:
    """Stock quantity: finite non-zero number (kg, L, units)."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    if not isinstance(value, (int, float)):
        raise ValidationError(f"{field} must be a number")
    quantity = float(value)
    if quantity != quantity or quantity in (float("inf"), float("-inf")):
        raise ValidationError(f"{field} must be a finite number")
    if quantity == 0:
        raise ValidationError(f"{field} must not be zero")
    if quantity < 0 and not allow_negative:
        raise ValidationError(f"{field} must be greater than zero")
    return quantity


def parse_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = sorted(choices)
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value


def parse_date_field(value: Any, field: str = "date", *, required: bool = True):
    try:
        parsed = parse_business_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")
    if parsed is None and required:
        raise ValidationError(f"{field} is required")
    return parsed


def parse_datetime_field(value: Any, field: str):
    if value is None or value == "":
        return None
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def parse_bool(value: Any, field: str, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValidationError(f"{field} must be a boolean")


def parse_optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return parse_int(value, field)


def clean_text(value: Any, max_length: int = 255) -> str | None:
    """Strip text fields; empty becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"text exceeds maximum length of {max_length}")
    return text
