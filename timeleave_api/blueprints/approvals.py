# timeleave_api/blueprints/approvals.py
from flask import Blueprint, request

from timeleave_api.common.auth import actor_from_jwt, requires_module
from timeleave_api.common.http import respond
from timeleave_api.services import approval_queue, override_saga

bp = Blueprint("approvals", __name__, url_prefix="/api/v1/approvals")


@bp.get("/queue")
@requires_module("approvals")
def queue():
    ctx = actor_from_jwt()
    return respond(approval_queue.approval_queue(
        ctx,
        kind=request.args.get("kind"),
        query=request.args.get("query"),
        page=request.args.get("page", 1),
        per_page=request.args.get("per_page", 20),
    ))


@bp.post("/<kind>/<int:request_id>/override")
@requires_module("approvals")
def override(kind: str, request_id: int):
    """Body: {decision: approve|reject, remarks}"""
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    return respond(override_saga.override_request(ctx, kind, request_id, d.get("decision"), remarks=d.get("remarks")))
