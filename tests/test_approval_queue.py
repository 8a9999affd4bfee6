from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from timeleave_api.models.leave import LeaveRequest
from timeleave_api.models.overtime import OvertimeRequest
from timeleave_api.services.approval_queue import (
    ApprovalQueueItem, Priority, approval_queue, classify_priority, cto_conversion_preview, sort_queue,
)
from timeleave_api.services.approvals import supervisor_decide
from timeleave_api.services.leave_requests import submit_leave_request
from timeleave_api.services.overtime_requests import submit_overtime_request
from tests.conftest import add_employee

NOW = datetime(2026, 6, 10, 12, 0)


@pytest.mark.parametrize("waited,expected", [
    (timedelta(hours=72), Priority.HIGH),
    (timedelta(days=10), Priority.HIGH),
    (timedelta(hours=71, minutes=59), Priority.MEDIUM),
    (timedelta(hours=24), Priority.MEDIUM),
    (timedelta(hours=23, minutes=59), Priority.LOW),
    (timedelta(0), Priority.LOW),
])
def test_priority_thresholds(waited, expected):
    assert classify_priority(NOW - waited, NOW) is expected


def test_priority_without_timestamp_is_medium():
    assert classify_priority(None, NOW) is Priority.MEDIUM


def _item(rid, approved_at, priority):
    return ApprovalQueueItem(
        kind="leave", request_id=rid, request_number=f"LR-{rid}", employee_id=1, employee_name="x", employee_number="e-1",
        quantity=1.0, unit="days", start="2026-06-01", end="2026-06-01", supervisor_approver_id=None,
        supervisor_approved_at=approved_at, submitted_at=approved_at, priority=priority,
    )


def test_sort_is_priority_then_chronological():
    a = _item(1, NOW - timedelta(hours=2), Priority.LOW)
    b = _item(2, NOW - timedelta(hours=80), Priority.HIGH)
    c = _item(3, NOW - timedelta(hours=30), Priority.MEDIUM)
    d = _item(4, NOW - timedelta(hours=100), Priority.HIGH)
    e = _item(5, NOW - timedelta(hours=1), Priority.LOW)
    assert [i.request_id for i in sort_queue([a, b, c, d, e])] == [4, 2, 3, 1, 5]


def test_cto_preview():
    eligible = SimpleNamespace(is_overtime_eligible=True)
    ineligible = SimpleNamespace(is_overtime_eligible=False)
    assert cto_conversion_preview(ineligible, 0) is True
    assert cto_conversion_preview(eligible, 3) is True
    assert cto_conversion_preview(eligible, 0) is False


def _approved_leave(w, start, approved_at, session):
    rid = submit_leave_request(w.employee_ctx, leave_type_id=w.vl.id, start_date=start, end_date=start).data["id"]
    supervisor_decide(w.manager_ctx, "leave", rid, "approve")
    session.get(LeaveRequest, rid).supervisor_approved_at = approved_at
    session.commit()
    return rid


def _approved_overtime(w, on, approved_at, session):
    rid = submit_overtime_request(w.employee_ctx, overtime_date=on, start_time="18:00", end_time="20:00").data["id"]
    supervisor_decide(w.manager_ctx, "overtime", rid, "approve")
    session.get(OvertimeRequest, rid).supervisor_approved_at = approved_at
    session.commit()
    return rid


def test_queue_lists_supervisor_approved_requests(world, session):
    old_leave = _approved_leave(world, "2026-06-15", NOW - timedelta(hours=90), session)
    new_leave = _approved_leave(world, "2026-06-16", NOW - timedelta(hours=3), session)
    ot = _approved_overtime(world, "2026-06-08", NOW - timedelta(hours=30), session)
    submit_leave_request(world.employee_ctx, leave_type_id=world.vl.id,
                         start_date="2026-06-22", end_date="2026-06-22")  # still pending

    res = approval_queue(world.hr_ctx, now=NOW)
    assert res.success, res.error
    items = res.data["items"]
    assert [(i["kind"], i["request_id"]) for i in items] == [
        ("leave", old_leave), ("overtime", ot), ("leave", new_leave),
    ]
    assert [i["priority"] for i in items] == ["HIGH", "MEDIUM", "LOW"]
    assert res.data["summary"] == {
        "total": 3,
        "by_priority": {"HIGH": 1, "MEDIUM": 1, "LOW": 1},
        "by_kind": {"leave": 2, "overtime": 1},
    }
    # an eligible requester without reports of their own
    assert items[1]["cto_conversion_preview"] is False
    assert items[1]["unit"] == "hours" and items[1]["quantity"] == 2.0


def test_queue_filters_and_pages(world, session):
    _approved_leave(world, "2026-06-15", NOW - timedelta(hours=90), session)
    _approved_leave(world, "2026-06-16", NOW - timedelta(hours=3), session)
    _approved_overtime(world, "2026-06-08", NOW - timedelta(hours=30), session)

    only_ot = approval_queue(world.hr_ctx, kind="overtime", now=NOW)
    assert [i["kind"] for i in only_ot.data["items"]] == ["overtime"]

    page2 = approval_queue(world.hr_ctx, page=2, per_page=2, now=NOW)
    assert len(page2.data["items"]) == 1
    assert page2.data["summary"]["total"] == 3
    assert page2.data["total_pages"] == 2


def test_queue_requires_approvals_module(world, session):
    res = approval_queue(world.employee_ctx, now=NOW)
    assert res.code == "FORBIDDEN"


def test_cto_preview_counts_requester_reports(world, session):
    add_employee(session, world.company, "emp-002", manager=world.employee,
                 status=world.regular, schedule=world.schedule)
    session.commit()
    _approved_overtime(world, "2026-06-08", NOW - timedelta(hours=30), session)

    items = approval_queue(world.hr_ctx, now=NOW).data["items"]
    assert items[0]["cto_conversion_preview"] is True


def test_cto_preview_flags_ineligible_requester(world, session):
    world.employee.is_overtime_eligible = False
    session.commit()
    _approved_overtime(world, "2026-06-08", NOW - timedelta(hours=30), session)

    items = approval_queue(world.hr_ctx, now=NOW).data["items"]
    assert items[0]["cto_conversion_preview"] is True


def test_queue_text_search(world, session):
    leave_id = _approved_leave(world, "2026-06-15", NOW - timedelta(hours=90), session)
    _approved_overtime(world, "2026-06-08", NOW - timedelta(hours=30), session)
    number = session.get(LeaveRequest, leave_id).request_number

    by_number = approval_queue(world.hr_ctx, query=number.lower(), now=NOW).data
    assert [i["request_id"] for i in by_number["items"]] == [leave_id]
    assert by_number["summary"]["total"] == 1

    by_employee = approval_queue(world.hr_ctx, query=" EMP-001 ", now=NOW).data
    assert by_employee["summary"]["total"] == 2
    assert {i["employee_number"] for i in by_employee["items"]} == {"emp-001"}

    by_name = approval_queue(world.hr_ctx, query="emp-001 test", now=NOW).data
    assert by_name["summary"]["total"] == 2

    assert approval_queue(world.hr_ctx, query="nobody", now=NOW).data["items"] == []


def test_queue_page_past_end_lands_on_last_page(world, session):
    _approved_leave(world, "2026-06-15", NOW - timedelta(hours=90), session)
    _approved_leave(world, "2026-06-16", NOW - timedelta(hours=3), session)
    _approved_overtime(world, "2026-06-08", NOW - timedelta(hours=30), session)

    res = approval_queue(world.hr_ctx, page=9, per_page=2, now=NOW).data
    assert res["page"] == 2 and res["total_pages"] == 2
    assert len(res["items"]) == 1

    empty = approval_queue(world.hr_ctx, kind="leave", query="nobody", page=4, now=NOW).data
    assert empty["page"] == 1 and empty["total_pages"] == 1
