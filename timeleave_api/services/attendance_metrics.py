# timeleave_api/services/attendance_metrics.py
"""
Attendance metrics from actual clock times and a resolved schedule.

Every function here is pure: the same inputs always give the same outputs,
so a correction can recompute a record as often as it likes.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from timeleave_api.services.balance_counters import q2, ZERO
from timeleave_api.services.schedule_resolver import ScheduledWindow, ensure_end_after_start

NIGHT_START = time(22, 0)
NIGHT_END = time(6, 0)      # next day
DEFAULT_BREAK_MINUTES = 60


@dataclass(frozen=True)
class AttendanceMetrics:
    tardiness_mins: int = 0
    undertime_mins: int = 0
    overtime_hours: Decimal = ZERO
    hours_worked: Decimal = ZERO
    night_diff_hours: Decimal = ZERO

    @classmethod
    def from_record(cls, rec) -> "AttendanceMetrics":
        return cls(
            tardiness_mins=int(rec.tardiness_mins or 0),
            undertime_mins=int(rec.undertime_mins or 0),
            overtime_hours=q2(rec.overtime_hours),
            hours_worked=q2(rec.hours_worked),
            night_diff_hours=q2(rec.night_diff_hours),
        )

    def as_dict(self) -> dict:
        return {
            "tardiness_mins": self.tardiness_mins,
            "undertime_mins": self.undertime_mins,
            "overtime_hours": float(self.overtime_hours),
            "hours_worked": float(self.hours_worked),
            "night_diff_hours": float(self.night_diff_hours),
        }


ZERO_METRICS = AttendanceMetrics()


def _minutes(delta: timedelta) -> Decimal:
    return Decimal(delta // timedelta(microseconds=1)) / Decimal(60_000_000)


def _round_minutes(m: Decimal) -> int:
    return int(m.quantize(Decimal(1), rounding=ROUND_HALF_UP))


# ---------- night differential ----------

def night_window(day: date) -> Tuple[datetime, datetime]:
    """The premium window that opens on `day`: 22:00 → 06:00 of the next day."""
    return datetime.combine(day, NIGHT_START), datetime.combine(day + timedelta(days=1), NIGHT_END)


def night_diff_duration(start: datetime, end: datetime) -> timedelta:
    """Overlap of [start, end) with every nightly window it touches."""
    if end <= start:
        return timedelta(0)
    total = timedelta(0)
    # the window opened the evening before covers the early hours of start's day
    day = start.date() - timedelta(days=1)
    while day <= end.date():
        w_start, w_end = night_window(day)
        overlap = min(end, w_end) - max(start, w_start)
        if overlap > timedelta(0):
            total += overlap
        day += timedelta(days=1)
    return total


def split_at_midnight(start: datetime, end: datetime) -> List[Tuple[datetime, datetime]]:
    chunks = []
    cursor = start
    while cursor < end:
        midnight = datetime.combine(cursor.date() + timedelta(days=1), time(0, 0))
        chunk_end = min(end, midnight)
        chunks.append((cursor, chunk_end))
        cursor = chunk_end
    return chunks


def night_diff_by_day(start: datetime, end: datetime) -> Dict[date, timedelta]:
    """Night differential per calendar day the interval touches."""
    return {a.date(): night_diff_duration(a, b) for a, b in split_at_midnight(start, end)}


def night_diff_hours(start: datetime, end: datetime) -> Decimal:
    return q2(_minutes(night_diff_duration(start, end)) / 60)


# ---------- metrics ----------

def compute_metrics(
    actual_in: Optional[datetime],
    actual_out: Optional[datetime],
    window: ScheduledWindow,
    grace_minutes: int = 0,
    break_minutes: int = DEFAULT_BREAK_MINUTES,
    previous: Optional[AttendanceMetrics] = None,
) -> AttendanceMetrics:
    prev = previous or ZERO_METRICS

    if actual_in is None and actual_out is None:
        return ZERO_METRICS

    # no schedule: keep whatever was stored, including a prior manual correction
    if not window.is_resolved:
        return prev

    sched_in = window.scheduled_in
    sched_out = ensure_end_after_start(sched_in, window.scheduled_out)
    norm_out = actual_out
    if actual_in is not None and actual_out is not None:
        norm_out = ensure_end_after_start(actual_in, actual_out)

    tardiness = prev.tardiness_mins
    if actual_in is not None:
        late = _minutes(actual_in - sched_in) - Decimal(grace_minutes or 0)
        tardiness = max(0, _round_minutes(late))

    undertime, overtime = prev.undertime_mins, prev.overtime_hours
    if norm_out is not None:
        undertime = max(0, _round_minutes(_minutes(sched_out - norm_out)))
        overtime = max(ZERO, q2(_minutes(norm_out - sched_out) / 60))

    hours_worked, night_diff = prev.hours_worked, prev.night_diff_hours
    if actual_in is not None and norm_out is not None:
        worked = _minutes(norm_out - actual_in) - Decimal(break_minutes or 0)
        hours_worked = max(ZERO, q2(worked / 60))
        night_diff = night_diff_hours(actual_in, norm_out)

    return AttendanceMetrics(
        tardiness_mins=tardiness,
        undertime_mins=undertime,
        overtime_hours=overtime,
        hours_worked=hours_worked,
        night_diff_hours=night_diff,
    )
