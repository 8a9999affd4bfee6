# timeleave_api/services/schedule_resolver.py
"""
Resolve (calendar date, work schedule) into the scheduled in/out instants.

Instants are naive wall-clock datetimes in the company's time zone, the same
convention attendance records use.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime, time, timedelta
from enum import IntEnum
from typing import Mapping, NamedTuple, Optional


class Weekday(IntEnum):
    # matches date.weekday()
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, d: date) -> "Weekday":
        return cls(d.weekday())


@dataclass(frozen=True)
class DayOverride:
    is_working_day: bool = True
    start: Optional[time] = None
    end: Optional[time] = None

    @property
    def has_explicit_times(self) -> bool:
        return self.start is not None and self.end is not None


REST_DAY = DayOverride(is_working_day=False)


@dataclass(frozen=True)
class WeeklyOverrides:
    """One optional override per weekday. Field order follows Weekday."""
    monday: Optional[DayOverride] = None
    tuesday: Optional[DayOverride] = None
    wednesday: Optional[DayOverride] = None
    thursday: Optional[DayOverride] = None
    friday: Optional[DayOverride] = None
    saturday: Optional[DayOverride] = None
    sunday: Optional[DayOverride] = None

    def __getitem__(self, day: Weekday) -> Optional[DayOverride]:
        return getattr(self, Weekday(day).name.lower())

    @classmethod
    def from_mapping(cls, slots: Mapping[Weekday, DayOverride]) -> "WeeklyOverrides":
        return cls(**{Weekday(k).name.lower(): v for k, v in slots.items()})

    def as_dict(self) -> dict:
        out = {}
        for f in fields(self):
            o = getattr(self, f.name)
            if o is not None:
                out[f.name] = {
                    "is_working_day": o.is_working_day,
                    "start": o.start.strftime("%H:%M") if o.start else None,
                    "end": o.end.strftime("%H:%M") if o.end else None,
                }
        return out


@dataclass(frozen=True)
class WorkPattern:
    start: time
    end: time
    break_minutes: int = 60
    grace_minutes: int = 0
    overrides: WeeklyOverrides = WeeklyOverrides()


class ScheduledWindow(NamedTuple):
    scheduled_in: Optional[datetime]
    scheduled_out: Optional[datetime]

    @property
    def is_resolved(self) -> bool:
        return self.scheduled_in is not None and self.scheduled_out is not None


UNRESOLVED = ScheduledWindow(None, None)


def ensure_end_after_start(start: datetime, end: datetime) -> datetime:
    """Roll an end instant forward one day when it is not strictly after start."""
    if end <= start:
        return end + timedelta(days=1)
    return end


def resolve_schedule(on: date, schedule: Optional[WorkPattern]) -> ScheduledWindow:
    if schedule is None:
        return UNRESOLVED

    override = schedule.overrides[Weekday.of(on)]
    if override is not None and not override.is_working_day:
        return UNRESOLVED

    if override is not None and override.has_explicit_times:
        start_t, end_t = override.start, override.end
    else:
        start_t, end_t = schedule.start, schedule.end

    if start_t is None or end_t is None:
        return UNRESOLVED

    scheduled_in = datetime.combine(on, start_t)
    scheduled_out = ensure_end_after_start(scheduled_in, datetime.combine(on, end_t))
    return ScheduledWindow(scheduled_in, scheduled_out)
