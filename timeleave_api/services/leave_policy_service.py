# timeleave_api/services/leave_policy_service.py
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Tuple

from sqlalchemy import or_

from timeleave_api.common.auth import require_module
from timeleave_api.common.result import service_action
from timeleave_api.common.validate import parse_int
from timeleave_api.extensions import atomic
from timeleave_api.models.employee import Employee
from timeleave_api.models.leave import LeaveBalance, LeavePolicy, LeaveType
from timeleave_api.services import hooks, leave_ledger
from timeleave_api.services.audit import record_audit
from timeleave_api.services.balance_counters import ZERO, q2

log = logging.getLogger(__name__)

FULL = "FULL"
PRORATED_DAY = "PRORATED_DAY"
PRORATED_MONTH = "PRORATED_MONTH"


def year_bounds(year: int) -> Tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def prorated_entitlement(entitlement, method: str, hire_date: Optional[date], year: int) -> Decimal:
    """
    Scale a full-year entitlement by the part of `year` the employee is employed.

    Hired on/before Jan 1 -> full; hired after Dec 31 -> 0; otherwise by method:
      PRORATED_DAY    entitlement * remaining days (inclusive) / days in year
      PRORATED_MONTH  entitlement * remaining months (inclusive of hire month) / 12
      FULL            entitlement
    """
    start, end = year_bounds(year)
    full = q2(entitlement)
    if hire_date is None or hire_date <= start:
        return full
    if hire_date > end:
        return ZERO
    if method == PRORATED_DAY:
        days_in_year = (end - start).days + 1
        remaining = (end - hire_date).days + 1
        return q2(full * remaining / days_in_year)
    if method == PRORATED_MONTH:
        remaining = 12 - hire_date.month + 1
        return q2(full * remaining / 12)
    return full


def carry_over_amount(leave_type: LeaveType, previous: Optional[LeaveBalance]) -> Decimal:
    if not leave_type.allow_carry_over or previous is None:
        return ZERO
    amount = max(q2(previous.available_balance), ZERO)
    if leave_type.max_carry_over_days is not None:
        amount = min(amount, q2(leave_type.max_carry_over_days))
    return amount


def _policies_for_year(leave_type_ids, year) -> Dict[Tuple[int, int], LeavePolicy]:
    """Most recently effective active policy per (leave type, employment status)."""
    start, end = year_bounds(year)
    rows = (LeavePolicy.query
            .filter(LeavePolicy.leave_type_id.in_(leave_type_ids))
            .filter(LeavePolicy.is_active.is_(True))
            .filter(LeavePolicy.effective_from <= end)
            .filter(or_(LeavePolicy.effective_to.is_(None), LeavePolicy.effective_to >= start))
            .order_by(LeavePolicy.effective_from.asc(), LeavePolicy.id.asc())
            .all())
    out = {}
    for p in rows:
        # later rows win
        out[(p.leave_type_id, p.employment_status_id)] = p
    return out


def get_effective_leave_policy(leave_type_id, employment_status_id, year) -> Optional[LeavePolicy]:
    return _policies_for_year([leave_type_id], year).get((leave_type_id, employment_status_id))


def eligible_employees(company_id, year):
    start, end = year_bounds(year)
    return (Employee.query
            .filter(Employee.company_id == company_id)
            .filter(Employee.is_active.is_(True), Employee.deleted_at.is_(None))
            .filter(Employee.hire_date <= end)
            .filter(or_(Employee.separation_date.is_(None), Employee.separation_date >= start))
            .order_by(Employee.id.asc())
            .all())


def applicable_leave_types(company_id, year):
    start, end = year_bounds(year)
    return (LeaveType.query
            .filter(LeaveType.is_active.is_(True))
            .filter(or_(LeaveType.company_id == company_id, LeaveType.company_id.is_(None)))
            .filter(or_(LeaveType.effective_from.is_(None), LeaveType.effective_from <= end))
            .filter(or_(LeaveType.effective_to.is_(None), LeaveType.effective_to >= start))
            .order_by(LeaveType.id.asc())
            .all())


@service_action
def initialize_leave_balances_for_year(ctx, year) -> dict:
    """
    Open every (employee, leave type) balance for `year` in one transaction.
    Existing rows are left alone, so re-running is a no-op.
    """
    require_module(ctx, "settings")
    year = parse_int(year, "year", minimum=1900, maximum=9999)

    stats = {
        "company_id": ctx.company_id,
        "year": year,
        "employees_considered": 0,
        "leave_types_considered": 0,
        "balances_created": 0,
        "balances_skipped_existing": 0,
        "balances_skipped_no_policy": 0,
    }

    with atomic():
        employees = eligible_employees(ctx.company_id, year)
        leave_types = applicable_leave_types(ctx.company_id, year)
        stats["employees_considered"] = len(employees)
        stats["leave_types_considered"] = len(leave_types)

        emp_ids = [e.id for e in employees]
        lt_ids = [t.id for t in leave_types]
        policies = _policies_for_year(lt_ids, year) if lt_ids else {}

        existing, previous = set(), {}
        if emp_ids and lt_ids:
            for b in (LeaveBalance.query
                      .filter(LeaveBalance.employee_id.in_(emp_ids))
                      .filter(LeaveBalance.leave_type_id.in_(lt_ids))
                      .filter(LeaveBalance.year.in_([year - 1, year]))
                      .all()):
                if b.year == year:
                    existing.add((b.employee_id, b.leave_type_id))
                else:
                    previous[(b.employee_id, b.leave_type_id)] = b

        for emp in employees:
            for lt in leave_types:
                key = (emp.id, lt.id)
                if key in existing:
                    stats["balances_skipped_existing"] += 1
                    continue

                policy = policies.get((lt.id, emp.employment_status_id))
                carry = carry_over_amount(lt, previous.get(key))
                if policy is None and carry <= 0:
                    stats["balances_skipped_no_policy"] += 1
                    continue

                earned = ZERO
                if policy is not None:
                    earned = prorated_entitlement(policy.annual_entitlement, policy.proration_method,
                                                  emp.hire_date, year)

                leave_ledger.open_balance(
                    ctx,
                    company_id=ctx.company_id,
                    employee_id=emp.id,
                    leave_type_id=lt.id,
                    year=year,
                    opening=carry,
                    earned=earned,
                    previous_year=year - 1,
                )
                stats["balances_created"] += 1

        record_audit("leave_balances", f"{ctx.company_id}:{year}", "CREATE", ctx, "LEAVE_YEAR_INITIALIZATION",
                     [{"field": k, "old": None, "new": v} for k, v in stats.items()])

    log.info("leave year %s initialized for company %s: %s", year, ctx.company_id, stats)
    hooks.emit(hooks.balances_changed, "year-initialization", company_id=ctx.company_id, year=year)
    return stats
