from datetime import date, datetime, time

from timeleave_api.services.schedule_resolver import (
    DayOverride, REST_DAY, WorkPattern, Weekday, WeeklyOverrides, resolve_schedule,
)

MONDAY = date(2024, 1, 1)
SATURDAY = date(2024, 1, 6)
SUNDAY = date(2024, 1, 7)


def _pattern(start=time(8, 0), end=time(17, 0), **overrides):
    return WorkPattern(start=start, end=end, overrides=WeeklyOverrides(**overrides))


def test_default_times_anchor_to_date():
    w = resolve_schedule(MONDAY, _pattern())
    assert w.scheduled_in == datetime(2024, 1, 1, 8, 0)
    assert w.scheduled_out == datetime(2024, 1, 1, 17, 0)
    assert w.is_resolved


def test_overnight_shift_rolls_end_to_next_day():
    w = resolve_schedule(MONDAY, _pattern(start=time(22, 0), end=time(6, 0)))
    assert w.scheduled_in == datetime(2024, 1, 1, 22, 0)
    assert w.scheduled_out == datetime(2024, 1, 2, 6, 0)


def test_equal_start_and_end_is_a_full_day_shift():
    w = resolve_schedule(MONDAY, _pattern(start=time(7, 0), end=time(7, 0)))
    assert w.scheduled_out == datetime(2024, 1, 2, 7, 0)


def test_rest_day_override_yields_nothing():
    w = resolve_schedule(SUNDAY, _pattern(sunday=REST_DAY))
    assert w.scheduled_in is None and w.scheduled_out is None
    assert not w.is_resolved


def test_override_with_explicit_times_wins():
    pattern = _pattern(saturday=DayOverride(is_working_day=True, start=time(9, 0), end=time(13, 0)))
    w = resolve_schedule(SATURDAY, pattern)
    assert (w.scheduled_in, w.scheduled_out) == (datetime(2024, 1, 6, 9, 0), datetime(2024, 1, 6, 13, 0))
    # other days keep the weekly default
    assert resolve_schedule(MONDAY, pattern).scheduled_in == datetime(2024, 1, 1, 8, 0)


def test_working_override_without_both_times_falls_back_to_default():
    pattern = _pattern(saturday=DayOverride(is_working_day=True, start=time(9, 0), end=None))
    w = resolve_schedule(SATURDAY, pattern)
    assert w.scheduled_in == datetime(2024, 1, 6, 8, 0)


def test_overnight_override_rolls_as_well():
    pattern = _pattern(friday=DayOverride(start=time(20, 0), end=time(4, 0)))
    w = resolve_schedule(date(2024, 1, 5), pattern)
    assert w.scheduled_out == datetime(2024, 1, 6, 4, 0)


def test_no_schedule_is_unresolved():
    assert not resolve_schedule(MONDAY, None).is_resolved


def test_weekly_overrides_are_indexed_by_weekday():
    o = WeeklyOverrides.from_mapping({Weekday.SUNDAY: REST_DAY})
    assert o[Weekday.SUNDAY] is REST_DAY
    assert o[Weekday.MONDAY] is None
    assert Weekday.of(SUNDAY) is Weekday.SUNDAY
    assert o.as_dict() == {"sunday": {"is_working_day": False, "start": None, "end": None}}
