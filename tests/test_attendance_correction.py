from datetime import date, datetime

from timeleave_api.models.attendance import AttendanceRecord
from timeleave_api.models.audit import AuditLog
from timeleave_api.services import hooks
from timeleave_api.services.attendance_engine import (
    ClockEvent, correct_attendance_record, get_schedule_for_date, pair_clock_events, sync_clock_events,
)

MONDAY = "2026-03-02"
SUNDAY = "2026-03-08"


def _correct(w, on=MONDAY, time_in="08:25", time_out="18:30", **kw):
    return correct_attendance_record(w.hr_ctx, w.employee.id, on, time_in=time_in, time_out=time_out, **kw)


# ---------- schedule lookup ----------

def test_schedule_for_working_day(world, session):
    res = get_schedule_for_date(world.hr_ctx, world.employee.id, MONDAY)
    assert res.success
    assert res.data["scheduled_time_in"] == "2026-03-02T08:00:00"
    assert res.data["scheduled_time_out"] == "2026-03-02T17:00:00"
    assert res.data["is_rest_day"] is False
    assert res.data["grace_minutes"] == 10


def test_schedule_for_rest_day(world, session):
    res = get_schedule_for_date(world.hr_ctx, world.employee.id, SUNDAY)
    assert res.data["is_rest_day"] is True
    assert res.data["scheduled_time_in"] is None


# ---------- manual correction ----------

def test_creates_record_with_metrics(world, session):
    res = _correct(world, remarks="forgot to clock in")
    assert res.success, res.error
    d = res.data
    assert d["tardiness_mins"] == 15
    assert d["undertime_mins"] == 0
    assert d["overtime_hours"] == 1.5
    assert d["hours_worked"] == 9.08
    assert d["night_diff_hours"] == 0.0
    assert d["time_in_source"] == "MANUAL" and d["time_out_source"] == "MANUAL"
    assert d["approval_status"] == "APPROVED"

    log = AuditLog.query.filter_by(table_name="attendance_records").one()
    assert log.action == "CREATE"
    assert log.reason == "DTR_RECORD_MANUAL_CREATION"


def test_correction_recomputes_and_audits_diff(world, session):
    _correct(world)
    res = _correct(world, time_in="08:00", time_out="16:30")
    assert res.success
    assert res.data["tardiness_mins"] == 0
    assert res.data["undertime_mins"] == 30
    assert res.data["overtime_hours"] == 0.0
    assert AttendanceRecord.query.count() == 1

    log = (AuditLog.query.filter_by(reason="DTR_RECORD_MANUAL_CORRECTION")
           .order_by(AuditLog.id.desc()).first())
    assert log.action == "UPDATE"
    assert {"field": "tardiness_mins", "old": 15, "new": 0} in log.changes
    assert {"field": "undertime_mins", "old": 0, "new": 30} in log.changes
    assert not any(c["field"] == "attendance_status" for c in log.changes)


def test_overnight_correction(world, session):
    res = _correct(world, time_in="22:00", time_out="06:00")
    assert res.data["actual_time_out"] == "2026-03-03T06:00:00"
    assert res.data["night_diff_hours"] == 8.0
    assert res.data["hours_worked"] == 7.0


def test_rest_day_keeps_stored_metrics(world, session):
    session.add(AttendanceRecord(company_id=world.company.id, employee_id=world.employee.id,
                                 attendance_date=date(2026, 3, 8), tardiness_mins=7, hours_worked=3.5,
                                 attendance_status="PRESENT"))
    session.commit()
    res = _correct(world, on=SUNDAY, time_in="09:00", time_out="15:00")
    assert res.success
    assert res.data["tardiness_mins"] == 7
    assert res.data["hours_worked"] == 3.5
    assert res.data["scheduled_time_in"] is None


def test_absent_without_times_zeroes_metrics(world, session):
    _correct(world)
    res = _correct(world, time_in=None, time_out=None, attendance_status="absent")
    assert res.success
    assert res.data["attendance_status"] == "ABSENT"
    assert res.data["hours_worked"] == 0.0
    assert res.data["tardiness_mins"] == 0


def test_times_must_come_in_pairs(world, session):
    res = _correct(world, time_out=None)
    assert res.code == "VALIDATION_ERROR"
    assert "time_out" in res.error


def test_present_requires_times(world, session):
    res = _correct(world, time_in=None, time_out=None)
    assert res.code == "VALIDATION_ERROR"


def test_unknown_status(world, session):
    res = _correct(world, attendance_status="SICK")
    assert res.code == "VALIDATION_ERROR"
    assert "attendance_status" in res.error


def test_payroll_admin_cannot_edit_dtr(world, session):
    res = correct_attendance_record(world.payroll_ctx, world.employee.id, MONDAY, "08:00", "17:00")
    assert res.code == "FORBIDDEN"
    assert AttendanceRecord.query.count() == 0


def test_unknown_employee(world, session):
    res = correct_attendance_record(world.hr_ctx, 9999, MONDAY, "08:00", "17:00")
    assert res.code == "NOT_FOUND"


def test_correction_emits_signal(world, session):
    seen = []

    def receiver(sender, **payload):
        seen.append((sender, payload))

    with hooks.attendance_changed.connected_to(receiver):
        _correct(world)
    assert seen == [("manual", {"employee_id": world.employee.id, "attendance_date": date(2026, 3, 2)})]


def test_failing_receiver_does_not_fail_the_operation(world, session):
    def boom(sender, **payload):
        raise RuntimeError("dashboard cache offline")

    with hooks.attendance_changed.connected_to(boom):
        res = _correct(world)
    assert res.success


# ---------- device sync ----------

def _event(number, ts, direction):
    return {"employee_number": number, "timestamp": ts, "direction": direction}


def test_sync_creates_records(world, session):
    _correct(world, on="2026-03-04")
    events = [
        _event("emp-001", "2026-03-03T00:05:00Z", "IN"),          # 08:05 Manila
        _event("emp-001", "2026-03-03T17:00:00+08:00", "out"),
        _event("mgr-001", "2026-03-03T22:00:00", "IN"),
        _event("mgr-001", "2026-03-04T06:30:00", "OUT"),
        _event("nobody", "2026-03-03T08:00:00", "IN"),
        _event("emp-001", "2026-03-04T08:00:00", "IN"),
        {"employee_number": "emp-001", "timestamp": "2026-03-03T09:00:00"},
    ]
    res = sync_clock_events(world.hr_ctx, events)
    assert res.success, res.error
    assert res.data == {
        "events_received": 7,
        "events_invalid": 1,
        "records_created": 2,
        "records_skipped_existing": 1,
        "unknown_employees": 1,
        "days_incomplete": 0,
    }

    emp = AttendanceRecord.query.filter_by(employee_id=world.employee.id, attendance_date=date(2026, 3, 3)).one()
    assert emp.actual_time_in == datetime(2026, 3, 3, 8, 5)
    assert emp.actual_time_out == datetime(2026, 3, 3, 17, 0)
    assert emp.tardiness_mins == 0
    assert float(emp.hours_worked) == 7.92
    assert emp.time_in_source == "AUTOMATED"
    assert emp.approval_status == "PENDING"

    mgr = AttendanceRecord.query.filter_by(employee_id=world.manager.id).one()
    assert mgr.attendance_date == date(2026, 3, 3)
    assert mgr.actual_time_out == datetime(2026, 3, 4, 6, 30)
    assert float(mgr.night_diff_hours) == 8.0

    # the manual record for 03-04 is untouched
    manual = AttendanceRecord.query.filter_by(employee_id=world.employee.id, attendance_date=date(2026, 3, 4)).one()
    assert manual.time_in_source == "MANUAL"

    reasons = {a.reason for a in AuditLog.query.filter_by(table_name="attendance_records")}
    assert reasons == {"DTR_RECORD_MANUAL_CREATION", "DTR_RECORD_AUTOMATED_SYNC"}


def test_pairing_keeps_stray_next_morning_out_off_a_closed_day():
    pairs = pair_clock_events([
        ClockEvent("emp-001", datetime(2026, 3, 3, 8, 0), "IN"),
        ClockEvent("emp-001", datetime(2026, 3, 3, 17, 0), "OUT"),
        ClockEvent("emp-001", datetime(2026, 3, 4, 7, 30), "OUT"),
    ])
    assert pairs[("emp-001", date(2026, 3, 3))] == [datetime(2026, 3, 3, 8, 0), datetime(2026, 3, 3, 17, 0)]
    assert pairs[("emp-001", date(2026, 3, 4))] == [None, datetime(2026, 3, 4, 7, 30)]


def test_pairing_same_day_break_and_overnight_shift():
    pairs = pair_clock_events([
        ClockEvent("emp-001", datetime(2026, 3, 3, 8, 0), "IN"),
        ClockEvent("emp-001", datetime(2026, 3, 3, 12, 0), "OUT"),
        ClockEvent("emp-001", datetime(2026, 3, 3, 13, 0), "IN"),
        ClockEvent("emp-001", datetime(2026, 3, 3, 17, 30), "OUT"),
        ClockEvent("mgr-001", datetime(2026, 3, 3, 22, 0), "IN"),
        ClockEvent("mgr-001", datetime(2026, 3, 4, 6, 30), "OUT"),
    ])
    assert pairs[("emp-001", date(2026, 3, 3))] == [datetime(2026, 3, 3, 8, 0), datetime(2026, 3, 3, 17, 30)]
    assert pairs[("mgr-001", date(2026, 3, 3))] == [datetime(2026, 3, 3, 22, 0), datetime(2026, 3, 4, 6, 30)]
    assert ("mgr-001", date(2026, 3, 4)) not in pairs


def test_sync_stray_out_does_not_overwrite_previous_day(world, session):
    res = sync_clock_events(world.hr_ctx, [
        _event("emp-001", "2026-03-03T08:00:00", "IN"),
        _event("emp-001", "2026-03-03T17:00:00", "OUT"),
        _event("emp-001", "2026-03-04T07:30:00", "OUT"),
    ])
    assert res.success, res.error
    assert res.data["records_created"] == 1
    assert res.data["days_incomplete"] == 1

    rec = AttendanceRecord.query.filter_by(employee_id=world.employee.id).one()
    assert rec.attendance_date == date(2026, 3, 3)
    assert rec.actual_time_out == datetime(2026, 3, 3, 17, 0)
    assert float(rec.hours_worked) == 8.0
    assert float(rec.night_diff_hours) == 0.0


def test_sync_leaves_incomplete_day_for_a_later_run(world, session):
    first = sync_clock_events(world.hr_ctx, [_event("emp-001", "2026-03-03T08:00:00", "IN")])
    assert first.data["records_created"] == 0
    assert first.data["days_incomplete"] == 1
    assert AttendanceRecord.query.count() == 0

    second = sync_clock_events(world.hr_ctx, [
        _event("emp-001", "2026-03-03T08:00:00", "IN"),
        _event("emp-001", "2026-03-03T17:00:00", "OUT"),
    ])
    assert second.data["records_created"] == 1


def test_sync_rejects_non_object_events(world, session):
    res = sync_clock_events(world.hr_ctx, ["garbage"])
    assert res.data["events_invalid"] == 1
    assert res.data["records_created"] == 0
