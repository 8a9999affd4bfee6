# timeleave_api/common/clock.py
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

DEFAULT_TIMEZONE = "Asia/Manila"


def company_tz() -> ZoneInfo:
    name = DEFAULT_TIMEZONE
    if has_app_context():
        name = current_app.config.get("COMPANY_TIMEZONE") or DEFAULT_TIMEZONE
    return ZoneInfo(name)


def utcnow() -> datetime:
    """Current UTC instant as a naive datetime, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_wall_clock(ts: datetime) -> datetime:
    """Aware timestamp → naive local wall-clock. Naive input is taken as already local."""
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(company_tz()).replace(tzinfo=None)


def company_today():
    return datetime.now(company_tz()).date()
