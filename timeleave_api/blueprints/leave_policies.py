# timeleave_api/blueprints/leave_policies.py
from flask import Blueprint, request

from timeleave_api.common.auth import actor_from_jwt, requires_module
from timeleave_api.common.http import respond
from timeleave_api.services.leave_policy_service import initialize_leave_balances_for_year

bp = Blueprint("leave_policies", __name__, url_prefix="/api/v1/leave-policies")


@bp.post("/initialize-year")
@requires_module("settings")
def initialize_year():
    """Body: {year: 2026}. Re-running for the same year creates nothing new."""
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    return respond(initialize_leave_balances_for_year(ctx, d.get("year")))
