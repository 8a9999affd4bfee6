# timeleave_api/common/validate.py
from __future__ import annotations

from datetime import datetime, date, time

from timeleave_api.common.errors import ValidationError


def require_fields(d: dict, *names: str):
    for k in names:
        if d.get(k) in (None, ""):
            raise ValidationError(f"{k} is required", field=k)


def parse_date(value, field: str) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    for fmt in ("%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.strptime(str(value), fmt).date()
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", field=field)


def parse_hhmm(value, field: str, required: bool = True):
    """'HH:MM' (24h) → time. Empty is None unless required."""
    if isinstance(value, time):
        return value
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required", field=field)
        return None
    try:
        return datetime.strptime(str(value).strip(), "%H:%M").time()
    except ValueError:
        raise ValidationError(f"{field} must be a time in HH:MM format", field=field)


def parse_datetime(value, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 timestamp", field=field)


def parse_int(value, field: str, minimum: int | None = None, maximum: int | None = None) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", field=field)
    if minimum is not None and n < minimum:
        raise ValidationError(f"{field} must be at least {minimum}", field=field)
    if maximum is not None and n > maximum:
        raise ValidationError(f"{field} must be at most {maximum}", field=field)
    return n


def parse_choice(value, field: str, choices) -> str:
    v = (str(value or "")).strip().upper()
    if v not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(choices))}", field=field)
    return v
