from __future__ import annotations

import math
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from studyhall.time_utils import parse_iso_date


# Largest amount a Numeric(10, 2) column can hold
MAX_AMOUNT = Decimal("99999999.99")
ZERO = Decimal("0.00")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """400-level business rule conflict (seat already taken, unknown branch/shift)."""


class NotFoundError(ValueError):
    """404-level: the addressed record does not exist."""


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(payload: dict, fields: Iterable[str], *, message: str | None = None) -> None:
    missing = [f for f in fields if is_blank(payload.get(f))]
    if missing:
        raise ValidationError(message or f"Required fields missing ({', '.join(missing)})")


def clean_str(value: Any) -> str | None:
    """Strip strings; blank becomes None."""
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_amount(value: Any, label: str, *, default: Decimal | None = ZERO) -> Decimal:
    """
    Parse a money field into a two-decimal Decimal.

    Rejects booleans, NaN/inf, negatives and values too large for the column.
    None and "" fall back to `default`.
    """
    if is_blank(value):
        if default is None:
            raise ValidationError(f"{label} is required")
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a valid non-negative number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"{label} must be a valid non-negative number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{label} must be a valid non-negative number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{label} must be a valid non-negative number")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{label} cannot exceed {MAX_AMOUNT}")
    return amount.quantize(Decimal("0.01"))


def parse_date_field(value: Any, label: str) -> date:
    try:
        parsed = parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a date in YYYY-MM-DD format")
    if parsed is None:
        raise ValidationError(f"{label} is required")
    return parsed


def parse_date_range(start_raw: Any, end_raw: Any) -> tuple[date, date]:
    start = parse_date_field(start_raw, "membership_start")
    end = parse_date_field(end_raw, "membership_end")
    if end < start:
        raise ValidationError("membership_end cannot be before membership_start")
    return start, end


def parse_id(value: Any, label: str, *, required: bool = False) -> int | None:
    """Parse an integer id; blank means None unless `required`."""
    if is_blank(value):
        if required:
            raise ValidationError(f"{label} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{label} must be an integer")


def parse_shift_ids(value: Any) -> list[int]:
    """
    Normalize a shift id list: ints only, duplicates dropped, order kept.

    Entries that are not integers are ignored; a non-list is treated as empty.
    """
    if not isinstance(value, (list, tuple)):
        return []
    ids: list[int] = []
    for raw in value:
        if isinstance(raw, bool):
            continue
        try:
            shift_id = int(str(raw).strip())
        except ValueError:
            continue
        if shift_id not in ids:
            ids.append(shift_id)
    return ids
