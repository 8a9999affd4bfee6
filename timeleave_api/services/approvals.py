# timeleave_api/services/approvals.py
"""
Supervisor and HR decisions, shared by leave and overtime requests.

Leave requests carry ledger effects (release on reject, deduct on final
approval); overtime requests only change state.
"""
from __future__ import annotations

import logging

from timeleave_api.common.auth import ELEVATED_ROLES, require_module, require_roles
from timeleave_api.common.clock import utcnow
from timeleave_api.common.errors import AuthorizationError, DomainStateError, NotFoundError, ValidationError
from timeleave_api.common.result import ActionResult, service_action
from timeleave_api.extensions import atomic
from timeleave_api.models.leave import LeaveRequest
from timeleave_api.models.overtime import OvertimeRequest
from timeleave_api.services import hooks, leave_ledger, leave_requests, overtime_requests
from timeleave_api.services.audit import diff_changes, record_audit
from timeleave_api.services.directory import acting_employee
from timeleave_api.services.request_state import Decision, RequestKind, RequestStatus, transition

log = logging.getLogger(__name__)

MODELS = {
    RequestKind.LEAVE: LeaveRequest,
    RequestKind.OVERTIME: OvertimeRequest,
}
TABLES = {
    RequestKind.LEAVE: "leave_requests",
    RequestKind.OVERTIME: "overtime_requests",
}
SNAPSHOTS = {
    RequestKind.LEAVE: leave_requests.snapshot,
    RequestKind.OVERTIME: overtime_requests.snapshot,
}


def parse_kind(value) -> RequestKind:
    if isinstance(value, RequestKind):
        return value
    try:
        return RequestKind(str(value).lower())
    except ValueError:
        raise ValidationError("kind must be leave or overtime", field="kind")


def parse_decision(value) -> Decision:
    if isinstance(value, Decision):
        return value
    try:
        return Decision(str(value).lower())
    except ValueError:
        raise ValidationError("decision must be approve or reject", field="decision")


def load_request(ctx, kind: RequestKind, request_id, lock: bool = True):
    model = MODELS[kind]
    q = model.query.filter_by(id=request_id, company_id=ctx.company_id)
    if lock:
        q = q.with_for_update()
    req = q.first()
    if req is None:
        raise NotFoundError(f"{kind.label} request not found.")
    return req


def audit_request(ctx, kind: RequestKind, req, reason: str, before: dict):
    record_audit(TABLES[kind], req.id, "UPDATE", ctx, reason, diff_changes(before, SNAPSHOTS[kind](req)))


def _notify(ctx, kind: RequestKind, req):
    hooks.emit(hooks.request_changed, kind, request_id=req.id, company_id=ctx.company_id)
    if kind is RequestKind.LEAVE:
        hooks.emit(hooks.balances_changed, kind, employee_id=req.employee_id, year=req.balance_year)


# ---------- supervisor step ----------

@service_action
def supervisor_decide(ctx, kind, request_id, decision, remarks=None) -> ActionResult:
    kind, decision = parse_kind(kind), parse_decision(decision)
    require_module(ctx, "employee_portal")
    me = acting_employee(ctx)

    with atomic():
        req = load_request(ctx, kind, request_id)
        if req.supervisor_approver_id != me.id:
            raise AuthorizationError("Only the designated supervisor approver can act on this request.")
        if req.status != RequestStatus.PENDING.value:
            raise DomainStateError(f"Only pending {kind.value} requests can be acted on by the supervisor.")

        before = SNAPSHOTS[kind](req)
        req.supervisor_remarks = (remarks or "").strip() or None
        if decision is Decision.APPROVE:
            transition(req, RequestStatus.SUPERVISOR_APPROVED, kind)
            req.supervisor_approved_at = utcnow()
        else:
            if kind is RequestKind.LEAVE:
                leave_ledger.release(ctx, req, remarks=f"Supervisor rejected {req.request_number}")
            transition(req, RequestStatus.REJECTED, kind)
        audit_request(ctx, kind, req, f"SUPERVISOR_{decision.name}", before)

    log.info("%s request %s %s by supervisor %s", kind.value, req.request_number, decision.past, me.id)
    _notify(ctx, kind, req)
    return ActionResult.ok(req.to_dict(), message=f"{kind.label} request {decision.past} by supervisor.")


# ---------- HR step ----------

@service_action
def hr_finalize(ctx, kind, request_id, decision, remarks=None) -> ActionResult:
    kind, decision = parse_kind(kind), parse_decision(decision)
    require_module(ctx, "approvals")
    require_roles(ctx, ELEVATED_ROLES, "Only company, HR or payroll admins can finalize requests.")

    with atomic():
        req = load_request(ctx, kind, request_id)
        if req.status != RequestStatus.SUPERVISOR_APPROVED.value:
            raise DomainStateError(f"Only supervisor-approved {kind.value} requests can be finalized.")

        before = SNAPSHOTS[kind](req)
        if decision is Decision.APPROVE:
            if kind is RequestKind.LEAVE:
                leave_ledger.deduct(ctx, req)
            transition(req, RequestStatus.APPROVED, kind)
        else:
            if kind is RequestKind.LEAVE:
                leave_ledger.release(ctx, req, remarks=f"HR rejected {req.request_number}")
            transition(req, RequestStatus.REJECTED, kind)
        req.hr_approver_user_id = ctx.user_id
        req.hr_approved_at = utcnow()
        req.hr_remarks = (remarks or "").strip() or None
        audit_request(ctx, kind, req, f"HR_FINAL_{decision.name}", before)

    log.info("%s request %s finalized (%s) by user %s", kind.value, req.request_number, decision.value, ctx.user_id)
    _notify(ctx, kind, req)
    return ActionResult.ok(req.to_dict(), message=f"{kind.label} request {decision.past}.")
