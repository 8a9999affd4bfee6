# timeleave_api/services/attendance_engine.py
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Tuple

from timeleave_api.common.auth import DTR_CORRECTION_ROLES, require_module, require_roles
from timeleave_api.common.clock import to_wall_clock, utcnow
from timeleave_api.common.errors import ValidationError
from timeleave_api.common.result import ActionResult, service_action
from timeleave_api.common.validate import parse_choice, parse_date, parse_datetime, parse_hhmm
from timeleave_api.extensions import atomic, db
from timeleave_api.models.attendance import AttendanceRecord
from timeleave_api.models.employee import Employee
from timeleave_api.services import hooks
from timeleave_api.services.attendance_metrics import (
    DEFAULT_BREAK_MINUTES, AttendanceMetrics, compute_metrics,
)
from timeleave_api.services.audit import diff_changes, record_audit
from timeleave_api.services.directory import employee_in_company
from timeleave_api.services.schedule_resolver import (
    UNRESOLVED, ScheduledWindow, ensure_end_after_start, resolve_schedule,
)

log = logging.getLogger(__name__)

MANUAL = "MANUAL"
AUTOMATED = "AUTOMATED"
ATTENDANCE_STATUSES = ("PRESENT", "ABSENT", "ON_LEAVE", "REST_DAY", "HOLIDAY")

AUDITED_FIELDS = (
    "actual_time_in", "actual_time_out", "scheduled_time_in", "scheduled_time_out",
    "tardiness_mins", "undertime_mins", "overtime_hours", "hours_worked", "night_diff_hours",
    "attendance_status", "approval_status", "remarks", "time_in_source", "time_out_source",
)

# an OUT more than this long after an IN starts a new day instead of closing the shift
MAX_SHIFT_SPAN = timedelta(hours=24)


def _snapshot(rec: Optional[AttendanceRecord]) -> dict:
    if rec is None:
        return {}
    return {f: getattr(rec, f) for f in AUDITED_FIELDS}


def record_to_dict(rec: AttendanceRecord) -> dict:
    d = {"id": rec.id, "employee_id": rec.employee_id, "attendance_date": rec.attendance_date.isoformat()}
    for f in AUDITED_FIELDS:
        v = getattr(rec, f)
        if isinstance(v, datetime):
            v = v.isoformat()
        elif f in ("overtime_hours", "hours_worked", "night_diff_hours"):
            v = float(v or 0)
        d[f] = v
    return d


def schedule_window_for(employee: Employee, on: date,
                        rec: Optional[AttendanceRecord] = None) -> Tuple[ScheduledWindow, int, int]:
    """
    Scheduled window plus (grace, break) minutes for one employee-day.
    With no schedule assigned, a record's cached scheduled times stand in.
    """
    schedule = employee.work_schedule
    if schedule is None:
        if rec is not None and rec.scheduled_time_in and rec.scheduled_time_out:
            return ScheduledWindow(rec.scheduled_time_in, rec.scheduled_time_out), 0, DEFAULT_BREAK_MINUTES
        return UNRESOLVED, 0, DEFAULT_BREAK_MINUTES
    pattern = schedule.to_pattern()
    return resolve_schedule(on, pattern), pattern.grace_minutes, pattern.break_minutes


def _apply_metrics(rec: AttendanceRecord, m: AttendanceMetrics):
    rec.tardiness_mins = m.tardiness_mins
    rec.undertime_mins = m.undertime_mins
    rec.overtime_hours = m.overtime_hours
    rec.hours_worked = m.hours_worked
    rec.night_diff_hours = m.night_diff_hours


@service_action
def get_schedule_for_date(ctx, employee_id, on) -> dict:
    require_module(ctx, "attendance")
    on = parse_date(on, "date")
    emp = employee_in_company(ctx, employee_id)
    window, grace, brk = schedule_window_for(emp, on)
    return {
        "employee_id": emp.id,
        "date": on.isoformat(),
        "scheduled_time_in": window.scheduled_in.isoformat() if window.scheduled_in else None,
        "scheduled_time_out": window.scheduled_out.isoformat() if window.scheduled_out else None,
        "is_rest_day": not window.is_resolved,
        "grace_minutes": grace,
        "break_minutes": brk,
    }


@service_action
def correct_attendance_record(ctx, employee_id, attendance_date, time_in=None, time_out=None,
                              attendance_status="PRESENT", remarks=None) -> ActionResult:
    """
    Manual DTR edit: create or correct one employee-day and recompute every metric.
    Previously stored metrics are the fallback when the day has no schedule.
    """
    require_module(ctx, "attendance")
    require_roles(ctx, DTR_CORRECTION_ROLES, "Only company admins, HR admins or super admins can edit DTR records.")

    on = parse_date(attendance_date, "attendance_date")
    t_in = parse_hhmm(time_in, "time_in", required=False)
    t_out = parse_hhmm(time_out, "time_out", required=False)
    if (t_in is None) != (t_out is None):
        raise ValidationError("time_in and time_out must be provided together",
                              field="time_out" if t_out is None else "time_in")
    status = parse_choice(attendance_status or "PRESENT", "attendance_status", ATTENDANCE_STATUSES)
    if status == "PRESENT" and t_in is None:
        raise ValidationError("time_in is required when attendance_status is PRESENT", field="time_in")

    actual_in = actual_out = None
    if t_in is not None:
        actual_in = datetime.combine(on, t_in)
        actual_out = ensure_end_after_start(actual_in, datetime.combine(on, t_out))

    with atomic():
        emp = employee_in_company(ctx, employee_id)
        rec = (AttendanceRecord.query
               .filter_by(employee_id=emp.id, attendance_date=on)
               .with_for_update()
               .first())
        creating = rec is None
        before = _snapshot(rec)

        window, grace, brk = schedule_window_for(emp, on, rec)
        previous = None if creating else AttendanceMetrics.from_record(rec)
        metrics = compute_metrics(actual_in, actual_out, window, grace, brk, previous)

        if creating:
            rec = AttendanceRecord(company_id=ctx.company_id, employee_id=emp.id, attendance_date=on)
            db.session.add(rec)

        rec.actual_time_in = actual_in
        rec.actual_time_out = actual_out
        rec.scheduled_time_in = window.scheduled_in
        rec.scheduled_time_out = window.scheduled_out
        _apply_metrics(rec, metrics)
        rec.attendance_status = status
        rec.remarks = (remarks or "").strip() or None
        rec.time_in_source = MANUAL
        rec.time_out_source = MANUAL
        rec.approval_status = "APPROVED"
        rec.approved_by_user_id = ctx.user_id
        rec.approved_at = utcnow()
        db.session.flush()

        record_audit(
            "attendance_records", rec.id, "CREATE" if creating else "UPDATE", ctx,
            "DTR_RECORD_MANUAL_CREATION" if creating else "DTR_RECORD_MANUAL_CORRECTION",
            diff_changes(before, _snapshot(rec), AUDITED_FIELDS),
        )

    log.info("DTR %s for employee %s on %s by user %s",
             "created" if creating else "corrected", emp.id, on, ctx.user_id)
    hooks.emit(hooks.attendance_changed, "manual", employee_id=emp.id, attendance_date=on)
    return ActionResult.ok(record_to_dict(rec), message="DTR record saved.")


# ---------- automated sync ----------

@dataclass(frozen=True)
class ClockEvent:
    employee_number: str
    timestamp: datetime     # wall-clock
    direction: str          # IN | OUT


def parse_clock_event(raw) -> ClockEvent:
    if isinstance(raw, ClockEvent):
        return raw
    if not isinstance(raw, dict):
        raise ValidationError("each clock event must be an object", field="events")
    number = str(raw.get("employee_number") or "").strip()
    if not number:
        raise ValidationError("employee_number is required", field="employee_number")
    ts = to_wall_clock(parse_datetime(raw.get("timestamp"), "timestamp"))
    direction = parse_choice(raw.get("direction"), "direction", ("IN", "OUT"))
    return ClockEvent(number, ts, direction)


def pair_clock_events(events: Iterable[ClockEvent]) -> dict:
    """
    {(employee_number, date): [first_in, last_out]}.
    An OUT dated after the open day closes it only while that day still has
    no OUT and is within MAX_SHIFT_SPAN of its first IN, which keeps
    overnight shifts on the date they started. Any other OUT is keyed by
    its own date.
    """
    days = defaultdict(lambda: [None, None])
    by_emp = defaultdict(list)
    for e in events:
        by_emp[e.employee_number].append(e)

    for number, evs in by_emp.items():
        evs.sort(key=lambda e: e.timestamp)
        open_day = None
        for e in evs:
            if e.direction == "IN":
                key = (number, e.timestamp.date())
                if days[key][0] is None:
                    days[key][0] = e.timestamp
                open_day = key
                continue
            key = (number, e.timestamp.date())
            if open_day is not None and open_day != key:
                first_in, out = days[open_day]
                if out is None and e.timestamp - first_in <= MAX_SHIFT_SPAN:
                    key = open_day
            if days[key][1] is None or e.timestamp > days[key][1]:
                days[key][1] = e.timestamp
    return dict(days)


def is_complete_pair(actual_in, actual_out) -> bool:
    return actual_in is not None and actual_out is not None and actual_out > actual_in


@service_action
def sync_clock_events(ctx, events) -> dict:
    """
    Create DTR rows from device clock events. Existing rows are never touched;
    only a manual correction changes a record.
    """
    require_module(ctx, "attendance")

    stats = {"events_received": 0, "events_invalid": 0, "records_created": 0,
             "records_skipped_existing": 0, "unknown_employees": 0, "days_incomplete": 0}
    parsed = []
    for raw in events or []:
        stats["events_received"] += 1
        try:
            parsed.append(parse_clock_event(raw))
        except ValidationError as e:
            stats["events_invalid"] += 1
            log.warning("skipping clock event %r: %s", raw, e.message)

    pairs = pair_clock_events(parsed)
    numbers = {n for n, _ in pairs}

    with atomic():
        employees = {
            e.employee_number: e
            for e in Employee.query.filter(Employee.company_id == ctx.company_id,
                                           Employee.employee_number.in_(numbers)).all()
        } if numbers else {}

        for (number, on), (actual_in, actual_out) in sorted(pairs.items()):
            emp = employees.get(number)
            if emp is None:
                stats["unknown_employees"] += 1
                continue
            if AttendanceRecord.query.filter_by(employee_id=emp.id, attendance_date=on).first():
                stats["records_skipped_existing"] += 1
                continue
            if not is_complete_pair(actual_in, actual_out):
                # left for a later sync once both punches are in
                stats["days_incomplete"] += 1
                continue

            window, grace, brk = schedule_window_for(emp, on)
            metrics = compute_metrics(actual_in, actual_out, window, grace, brk)
            rec = AttendanceRecord(
                company_id=ctx.company_id,
                employee_id=emp.id,
                attendance_date=on,
                actual_time_in=actual_in,
                actual_time_out=actual_out,
                scheduled_time_in=window.scheduled_in,
                scheduled_time_out=window.scheduled_out,
                attendance_status="PRESENT",
                approval_status="PENDING",
                time_in_source=AUTOMATED,
                time_out_source=AUTOMATED,
            )
            _apply_metrics(rec, metrics)
            db.session.add(rec)
            db.session.flush()
            record_audit("attendance_records", rec.id, "CREATE", ctx, "DTR_RECORD_AUTOMATED_SYNC",
                         diff_changes({}, _snapshot(rec), AUDITED_FIELDS))
            stats["records_created"] += 1

    log.info("clock sync for company %s: %s", ctx.company_id, stats)
    if stats["records_created"]:
        hooks.emit(hooks.attendance_changed, "sync", company_id=ctx.company_id)
    return stats
