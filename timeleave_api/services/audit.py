# timeleave_api/services/audit.py
from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable, Optional

from timeleave_api.extensions import db
from timeleave_api.models.audit import AuditLog


def _jsonable(v):
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, (datetime, date, time)):
        return v.isoformat()
    return str(v)


def diff_changes(before: dict, after: dict, fields: Optional[Iterable[str]] = None) -> list:
    """Field-level [{field, old, new}] for every key whose value changed."""
    keys = list(fields) if fields is not None else list(after.keys())
    out = []
    for k in keys:
        old, new = _jsonable(before.get(k)), _jsonable(after.get(k))
        if old != new:
            out.append({"field": k, "old": old, "new": new})
    return out


def record_audit(table_name: str, record_id, action: str, ctx, reason: str, changes: list) -> AuditLog:
    """
    Stage an audit row on the current session. The caller's commit writes it
    together with the domain change it documents.
    """
    row = AuditLog(
        company_id=getattr(ctx, "company_id", None),
        table_name=table_name,
        record_id=str(record_id),
        action=action,
        user_id=getattr(ctx, "user_id", None),
        reason=reason,
        changes=changes or [],
    )
    db.session.add(row)
    return row
