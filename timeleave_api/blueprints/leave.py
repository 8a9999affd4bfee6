# timeleave_api/blueprints/leave.py
from flask import Blueprint, request

from timeleave_api.common.auth import actor_from_jwt, requires_module
from timeleave_api.common.clock import company_today
from timeleave_api.common.http import respond
from timeleave_api.common.validate import require_fields
from timeleave_api.services import approvals, leave_requests
from timeleave_api.services.request_state import RequestKind

bp = Blueprint("leave", __name__, url_prefix="/api/v1/leave")


# ---------- Requests ----------
@bp.post("/requests")
@requires_module("employee_portal")
def submit_request():
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    require_fields(d, "leave_type_id", "start_date", "end_date")
    result = leave_requests.submit_leave_request(
        ctx,
        leave_type_id=d.get("leave_type_id"),
        start_date=d.get("start_date"),
        end_date=d.get("end_date"),
        reason=d.get("reason"),
        is_half_day=bool(d.get("is_half_day", False)),
        half_day_period=d.get("half_day_period"),
    )
    return respond(result, status=201)


@bp.post("/requests/<int:request_id>/cancel")
@requires_module("employee_portal")
def cancel_request(request_id: int):
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    return respond(leave_requests.cancel_leave_request(ctx, request_id, reason=d.get("reason")))


@bp.post("/requests/<int:request_id>/supervisor-decision")
@requires_module("employee_portal")
def supervisor_decision(request_id: int):
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    return respond(approvals.supervisor_decide(ctx, RequestKind.LEAVE, request_id,
                                               d.get("decision"), remarks=d.get("remarks")))


@bp.post("/requests/<int:request_id>/hr-decision")
@requires_module("approvals")
def hr_decision(request_id: int):
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    return respond(approvals.hr_finalize(ctx, RequestKind.LEAVE, request_id,
                                         d.get("decision"), remarks=d.get("remarks")))


# ---------- Balances ----------
@bp.get("/balances")
@requires_module("employee_portal", "leave")
def get_balances():
    ctx = actor_from_jwt()
    year = request.args.get("year") or company_today().year
    return respond(leave_requests.list_balances(ctx, request.args.get("employee_id"), year))


@bp.get("/balances/<int:balance_id>/transactions")
@requires_module("leave")
def balance_transactions(balance_id: int):
    ctx = actor_from_jwt()
    return respond(leave_requests.list_balance_transactions(ctx, balance_id))
