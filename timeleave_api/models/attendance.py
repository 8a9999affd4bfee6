from timeleave_api.common.clock import utcnow
from timeleave_api.extensions import db


class WorkSchedule(db.Model):
    __tablename__ = "work_schedules"
    id = db.Column(db.Integer, primary_key=True)
    company_id    = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)
    code          = db.Column(db.String(20), nullable=False)
    name          = db.Column(db.String(60), nullable=False)
    start_time    = db.Column(db.Time, nullable=False)
    end_time      = db.Column(db.Time, nullable=False)
    break_minutes = db.Column(db.Integer, nullable=False, default=60)
    grace_minutes = db.Column(db.Integer, nullable=False, default=0)
    created_at    = db.Column(db.DateTime, nullable=False, default=utcnow)
    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_work_schedule_company_code"),
    )

    day_overrides = db.relationship(
        "WorkScheduleDayOverride",
        cascade="all, delete-orphan",
        order_by="WorkScheduleDayOverride.weekday",
    )

    def to_pattern(self):
        from timeleave_api.services.schedule_resolver import (
            DayOverride, WorkPattern, Weekday, WeeklyOverrides,
        )
        slots = {
            Weekday(o.weekday): DayOverride(
                is_working_day=o.is_working_day,
                start=o.start_time,
                end=o.end_time,
            )
            for o in self.day_overrides
        }
        return WorkPattern(
            start=self.start_time,
            end=self.end_time,
            break_minutes=self.break_minutes if self.break_minutes is not None else 60,
            grace_minutes=self.grace_minutes or 0,
            overrides=WeeklyOverrides.from_mapping(slots),
        )


class WorkScheduleDayOverride(db.Model):
    __tablename__ = "work_schedule_day_overrides"
    id = db.Column(db.Integer, primary_key=True)
    work_schedule_id = db.Column(db.Integer, db.ForeignKey("work_schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    weekday        = db.Column(db.SmallInteger, nullable=False)  # 0=Mon .. 6=Sun
    is_working_day = db.Column(db.Boolean, nullable=False, default=True)
    start_time     = db.Column(db.Time, nullable=True)
    end_time       = db.Column(db.Time, nullable=True)
    __table_args__ = (
        db.UniqueConstraint("work_schedule_id", "weekday", name="uq_schedule_override_weekday"),
        db.CheckConstraint("weekday BETWEEN 0 AND 6", name="ck_schedule_override_weekday"),
    )


class AttendanceRecord(db.Model):
    """Daily time record: one row per employee per date. Never deleted."""
    __tablename__ = "attendance_records"
    id = db.Column(db.Integer, primary_key=True)
    company_id  = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    attendance_date = db.Column(db.Date, nullable=False)

    actual_time_in     = db.Column(db.DateTime, nullable=True)
    actual_time_out    = db.Column(db.DateTime, nullable=True)
    scheduled_time_in  = db.Column(db.DateTime, nullable=True)
    scheduled_time_out = db.Column(db.DateTime, nullable=True)

    tardiness_mins   = db.Column(db.Integer, nullable=False, default=0)
    undertime_mins   = db.Column(db.Integer, nullable=False, default=0)
    overtime_hours   = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    hours_worked     = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    night_diff_hours = db.Column(db.Numeric(6, 2), nullable=False, default=0)

    attendance_status = db.Column(db.String(20), nullable=False, default="PRESENT")  # PRESENT|ABSENT|ON_LEAVE|REST_DAY|HOLIDAY
    approval_status   = db.Column(db.String(20), nullable=False, default="PENDING")  # PENDING|APPROVED
    remarks           = db.Column(db.Text)
    time_in_source    = db.Column(db.String(12), nullable=True)   # AUTOMATED|MANUAL
    time_out_source   = db.Column(db.String(12), nullable=True)

    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    created_at  = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at  = db.Column(db.DateTime, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_employee_date"),
    )

    employee = db.relationship("Employee")
