# timeleave_api/blueprints/attendance.py
from flask import Blueprint, request

from timeleave_api.common.auth import actor_from_jwt, requires_module
from timeleave_api.common.http import respond
from timeleave_api.services import attendance_engine

bp = Blueprint("attendance", __name__, url_prefix="/api/v1/attendance")


@bp.get("/employees/<int:employee_id>/schedule")
@requires_module("attendance")
def schedule_for_date(employee_id: int):
    ctx = actor_from_jwt()
    return respond(attendance_engine.get_schedule_for_date(ctx, employee_id, request.args.get("date")))


@bp.put("/employees/<int:employee_id>/records/<attendance_date>")
@requires_module("attendance")
def correct_record(employee_id: int, attendance_date: str):
    """
    Body: {time_in: "HH:MM", time_out: "HH:MM", attendance_status, remarks}
    """
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    result = attendance_engine.correct_attendance_record(
        ctx,
        employee_id,
        attendance_date,
        time_in=d.get("time_in"),
        time_out=d.get("time_out"),
        attendance_status=d.get("attendance_status") or "PRESENT",
        remarks=d.get("remarks"),
    )
    return respond(result)


@bp.post("/sync")
@requires_module("attendance")
def sync_events():
    """Body: {events: [{employee_number, timestamp (ISO-8601), direction: IN|OUT}, ...]}"""
    ctx = actor_from_jwt()
    d = request.get_json(silent=True) or {}
    return respond(attendance_engine.sync_clock_events(ctx, d.get("events") or []))
