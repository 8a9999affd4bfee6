# timeleave_api/blueprints/overtime.py
from flask import Blueprint, request

from timeleave_api.common.auth import actor_from_jwt, requires_module
from timeleave_api.common.http import respond
from timeleave_api.common.validate import require_fields
from timeleave_api.services import approvals, overtime_requests
from timeleave_api.services.request_state import RequestKind

bp = Blueprint("overtime", __name__, url_prefix="/api/v1/overtime")


@bp.post("/requests")
@requires_module("employee_portal")
def submit_request():
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    require_fields(d, "overtime_date", "start_time", "end_time")
    result = overtime_requests.submit_overtime_request(
        ctx,
        overtime_date=d.get("overtime_date"),
        start_time=d.get("start_time"),
        end_time=d.get("end_time"),
        reason=d.get("reason"),
    )
    return respond(result, status=201)


@bp.post("/requests/<int:request_id>/cancel")
@requires_module("employee_portal")
def cancel_request(request_id: int):
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    return respond(overtime_requests.cancel_overtime_request(ctx, request_id, reason=d.get("reason")))


@bp.post("/requests/<int:request_id>/supervisor-decision")
@requires_module("employee_portal")
def supervisor_decision(request_id: int):
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    return respond(approvals.supervisor_decide(ctx, RequestKind.OVERTIME, request_id,
                                               d.get("decision"), remarks=d.get("remarks")))


@bp.post("/requests/<int:request_id>/hr-decision")
@requires_module("approvals")
def hr_decision(request_id: int):
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    return respond(approvals.hr_finalize(ctx, RequestKind.OVERTIME, request_id,
                                         d.get("decision"), remarks=d.get("remarks")))
