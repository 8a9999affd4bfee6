# timeleave_api/services/leave_requests.py
from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import or_

from timeleave_api.common.auth import ELEVATED_ROLES, require_module, require_roles
from timeleave_api.common.clock import utcnow
from timeleave_api.common.errors import DomainStateError, NotFoundError, ValidationError
from timeleave_api.common.result import ActionResult, service_action
from timeleave_api.common.validate import parse_date, parse_int
from timeleave_api.extensions import atomic, db
from timeleave_api.models.leave import LeaveBalance, LeaveRequest, LeaveType
from timeleave_api.services import hooks, leave_ledger
from timeleave_api.services.audit import diff_changes, record_audit
from timeleave_api.services.directory import acting_employee, employee_in_company, find_acting_employee
from timeleave_api.services.request_numbers import LEAVE_PREFIX, generate_request_number
from timeleave_api.services.request_state import RequestKind, RequestStatus, transition

log = logging.getLogger(__name__)

AUDITED_FIELDS = (
    "status", "leave_type_id", "start_date", "end_date", "total_days", "is_half_day",
    "half_day_period", "supervisor_approver_id", "supervisor_approved_at", "supervisor_remarks",
    "hr_approver_user_id", "hr_approved_at", "hr_remarks", "cancelled_at", "cancellation_reason",
)


def snapshot(req: LeaveRequest) -> dict:
    return {f: getattr(req, f) for f in AUDITED_FIELDS}


def _leave_type_for(ctx, leave_type_id) -> LeaveType:
    lt = (LeaveType.query
          .filter(LeaveType.id == leave_type_id, LeaveType.is_active.is_(True))
          .filter(or_(LeaveType.company_id == ctx.company_id, LeaveType.company_id.is_(None)))
          .first())
    if lt is None:
        raise NotFoundError("Leave type not found.")
    return lt


def count_leave_days(start, end, is_half_day: bool) -> Decimal:
    if is_half_day:
        return Decimal("0.50")
    return Decimal((end - start).days + 1).quantize(Decimal("0.01"))


@service_action
def submit_leave_request(ctx, *, leave_type_id, start_date, end_date, reason=None,
                         is_half_day=False, half_day_period=None) -> ActionResult:
    require_module(ctx, "employee_portal")

    sd = parse_date(start_date, "start_date")
    ed = parse_date(end_date, "end_date")
    if ed < sd:
        raise ValidationError("end_date cannot be before start_date", field="end_date")
    if sd.year != ed.year:
        raise ValidationError("Leave requests cannot span two calendar years. File one request per year.",
                              field="end_date")
    is_half_day = bool(is_half_day)
    period = None
    if is_half_day:
        if sd != ed:
            raise ValidationError("A half-day leave must start and end on the same date.", field="is_half_day")
        period = (half_day_period or "").strip().upper()
        if period not in ("AM", "PM"):
            raise ValidationError("half_day_period must be AM or PM", field="half_day_period")

    employee = acting_employee(ctx)
    leave_type = _leave_type_for(ctx, leave_type_id)
    if is_half_day and not leave_type.allow_half_day:
        raise ValidationError("Half day is not allowed for this leave type.", field="is_half_day")

    days = count_leave_days(sd, ed, is_half_day)

    with atomic():
        req = LeaveRequest(
            request_number=generate_request_number(LEAVE_PREFIX, LeaveRequest),
            company_id=ctx.company_id,
            employee_id=employee.id,
            leave_type_id=leave_type.id,
            start_date=sd,
            end_date=ed,
            is_half_day=is_half_day,
            half_day_period=period,
            total_days=days,
            balance_year=sd.year,
            reason=(reason or "").strip() or None,
            status=RequestStatus.PENDING.value,
            supervisor_approver_id=employee.reporting_manager_id,
        )
        db.session.add(req)
        db.session.flush()

        if leave_type.is_paid:
            leave_ledger.reserve(ctx, employee_id=employee.id, leave_type=leave_type,
                                 year=req.balance_year, quantity=days, reference_id=req.id)

        record_audit("leave_requests", req.id, "CREATE", ctx, "EMPLOYEE_SUBMIT_LEAVE_REQUEST",
                     diff_changes({}, snapshot(req)))

    log.info("leave request %s submitted by employee %s (%s days)", req.request_number, employee.id, days)
    hooks.emit(hooks.request_changed, RequestKind.LEAVE, request_id=req.id, company_id=ctx.company_id)
    if leave_type.is_paid:
        hooks.emit(hooks.balances_changed, RequestKind.LEAVE, employee_id=employee.id, year=req.balance_year)
    return ActionResult.ok(req.to_dict(), message="Leave request submitted.")


@service_action
def cancel_leave_request(ctx, request_id, reason=None) -> ActionResult:
    require_module(ctx, "employee_portal")
    employee = acting_employee(ctx)

    with atomic():
        req = (LeaveRequest.query
               .filter_by(id=request_id, company_id=ctx.company_id, employee_id=employee.id)
               .with_for_update()
               .first())
        if req is None:
            raise NotFoundError("Leave request not found.")
        if req.status != RequestStatus.PENDING.value:
            raise DomainStateError("Only pending leave requests can be cancelled.")

        before = snapshot(req)
        leave_ledger.release(ctx, req, remarks=f"Released reservation for cancelled request {req.request_number}")
        transition(req, RequestStatus.CANCELLED, RequestKind.LEAVE)
        req.cancelled_at = utcnow()
        req.cancellation_reason = (reason or "").strip() or "Cancelled by employee"

        record_audit("leave_requests", req.id, "UPDATE", ctx, "EMPLOYEE_CANCEL_LEAVE_REQUEST",
                     diff_changes(before, snapshot(req)))

    hooks.emit(hooks.request_changed, RequestKind.LEAVE, request_id=req.id, company_id=ctx.company_id)
    hooks.emit(hooks.balances_changed, RequestKind.LEAVE, employee_id=employee.id, year=req.balance_year)
    return ActionResult.ok(req.to_dict(), message="Leave request cancelled.")


@service_action
def list_balances(ctx, employee_id, year) -> list:
    employee_id = parse_int(employee_id, "employee_id", minimum=1)
    year = parse_int(year, "year", minimum=1900, maximum=9999)
    me = find_acting_employee(ctx)
    if me is None or me.id != employee_id:
        require_module(ctx, "leave")
        require_roles(ctx, ELEVATED_ROLES)
    employee_in_company(ctx, employee_id)
    return [b.to_dict() for b in leave_ledger.balances_for(employee_id, year)]


@service_action
def list_balance_transactions(ctx, balance_id) -> list:
    require_module(ctx, "leave")
    bal = LeaveBalance.query.filter_by(id=balance_id, company_id=ctx.company_id).first()
    if bal is None:
        raise NotFoundError("Leave balance not found.")
    return [t.to_dict() for t in leave_ledger.transactions_for(bal.id)]
