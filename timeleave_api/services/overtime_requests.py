# timeleave_api/services/overtime_requests.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from timeleave_api.common.auth import require_module
from timeleave_api.common.clock import utcnow
from timeleave_api.common.errors import DomainStateError, NotFoundError, ValidationError
from timeleave_api.common.result import ActionResult, service_action
from timeleave_api.common.validate import parse_date, parse_hhmm
from timeleave_api.extensions import atomic, db
from timeleave_api.models.overtime import OvertimeRequest
from timeleave_api.services import hooks
from timeleave_api.services.audit import diff_changes, record_audit
from timeleave_api.services.balance_counters import q2
from timeleave_api.services.directory import acting_employee
from timeleave_api.services.request_numbers import OVERTIME_PREFIX, generate_request_number
from timeleave_api.services.request_state import RequestKind, RequestStatus, transition
from timeleave_api.services.schedule_resolver import ensure_end_after_start

log = logging.getLogger(__name__)

MIN_OVERTIME = timedelta(hours=1)

AUDITED_FIELDS = (
    "status", "overtime_date", "start_time", "end_time", "hours_requested",
    "supervisor_approver_id", "supervisor_approved_at", "supervisor_remarks",
    "hr_approver_user_id", "hr_approved_at", "hr_remarks", "cancelled_at", "cancellation_reason",
)


def snapshot(req: OvertimeRequest) -> dict:
    return {f: getattr(req, f) for f in AUDITED_FIELDS}


def overtime_span(on, start_t, end_t):
    """Anchor HH:MM times to the overtime date; an end at or before start is the next day."""
    start = datetime.combine(on, start_t)
    end = ensure_end_after_start(start, datetime.combine(on, end_t))
    return start, end


@service_action
def submit_overtime_request(ctx, *, overtime_date, start_time, end_time, reason=None) -> ActionResult:
    require_module(ctx, "employee_portal")

    on = parse_date(overtime_date, "overtime_date")
    st = parse_hhmm(start_time, "start_time")
    et = parse_hhmm(end_time, "end_time")
    if st == et:
        raise ValidationError("end_time must be different from start_time", field="end_time")
    start, end = overtime_span(on, st, et)
    if end - start < MIN_OVERTIME:
        raise ValidationError("Overtime must be at least 1 hour.", field="end_time")
    hours = q2((end - start).total_seconds() / 3600)

    employee = acting_employee(ctx)

    with atomic():
        req = OvertimeRequest(
            request_number=generate_request_number(OVERTIME_PREFIX, OvertimeRequest),
            company_id=ctx.company_id,
            employee_id=employee.id,
            overtime_date=on,
            start_time=start,
            end_time=end,
            hours_requested=hours,
            reason=(reason or "").strip() or None,
            status=RequestStatus.PENDING.value,
            supervisor_approver_id=employee.reporting_manager_id,
        )
        db.session.add(req)
        db.session.flush()
        record_audit("overtime_requests", req.id, "CREATE", ctx, "EMPLOYEE_SUBMIT_OVERTIME_REQUEST",
                     diff_changes({}, snapshot(req)))

    log.info("overtime request %s submitted by employee %s (%s h)", req.request_number, employee.id, hours)
    hooks.emit(hooks.request_changed, RequestKind.OVERTIME, request_id=req.id, company_id=ctx.company_id)
    return ActionResult.ok(req.to_dict(), message="Overtime request submitted.")


@service_action
def cancel_overtime_request(ctx, request_id, reason=None) -> ActionResult:
    require_module(ctx, "employee_portal")
    employee = acting_employee(ctx)

    with atomic():
        req = (OvertimeRequest.query
               .filter_by(id=request_id, company_id=ctx.company_id, employee_id=employee.id)
               .with_for_update()
               .first())
        if req is None:
            raise NotFoundError("Overtime request not found.")
        if req.status != RequestStatus.PENDING.value:
            raise DomainStateError("Only pending overtime requests can be cancelled.")

        before = snapshot(req)
        transition(req, RequestStatus.CANCELLED, RequestKind.OVERTIME)
        req.cancelled_at = utcnow()
        req.cancellation_reason = (reason or "").strip() or "Cancelled by employee"
        record_audit("overtime_requests", req.id, "UPDATE", ctx, "EMPLOYEE_CANCEL_OVERTIME_REQUEST",
                     diff_changes(before, snapshot(req)))

    hooks.emit(hooks.request_changed, RequestKind.OVERTIME, request_id=req.id, company_id=ctx.company_id)
    return ActionResult.ok(req.to_dict(), message="Overtime request cancelled.")
