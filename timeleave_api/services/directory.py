# timeleave_api/services/directory.py
from __future__ import annotations

from typing import Dict, Iterable

from sqlalchemy import func

from timeleave_api.common.errors import AuthorizationError, NotFoundError
from timeleave_api.extensions import db
from timeleave_api.models.employee import Employee


def _active(q):
    return q.filter(Employee.is_active.is_(True), Employee.deleted_at.is_(None))


def find_acting_employee(ctx):
    return _active(Employee.query.filter_by(company_id=ctx.company_id, user_id=ctx.user_id)).first()


def acting_employee(ctx) -> Employee:
    emp = find_acting_employee(ctx)
    if emp is None:
        raise AuthorizationError("Your account is not linked to an active employee profile in this company.")
    return emp


def employee_in_company(ctx, employee_id) -> Employee:
    emp = Employee.query.filter_by(id=employee_id, company_id=ctx.company_id).first()
    if emp is None:
        raise NotFoundError("Employee not found.")
    return emp


def active_direct_report_counts(manager_ids: Iterable[int]) -> Dict[int, int]:
    ids = {i for i in manager_ids if i is not None}
    if not ids:
        return {}
    rows = (
        _active(db.session.query(Employee.reporting_manager_id, func.count(Employee.id)))
        .filter(Employee.reporting_manager_id.in_(ids))
        .group_by(Employee.reporting_manager_id)
        .all()
    )
    return {mid: int(n) for mid, n in rows}
