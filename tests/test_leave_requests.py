from decimal import Decimal

from timeleave_api.common.auth import ActorContext, HR_ADMIN
from timeleave_api.models.audit import AuditLog
from timeleave_api.models.leave import LeaveBalance, LeaveRequest
from timeleave_api.services.approvals import hr_finalize, supervisor_decide
from timeleave_api.services.leave_requests import (
    cancel_leave_request, list_balances, submit_leave_request,
)


def _balance(w):
    return LeaveBalance.query.filter_by(employee_id=w.employee.id, leave_type_id=w.vl.id, year=2026).one()


def _submit(w, start="2026-04-06", end="2026-04-07", **kw):
    res = submit_leave_request(w.employee_ctx, leave_type_id=kw.pop("leave_type_id", w.vl.id),
                               start_date=start, end_date=end, **kw)
    assert res.success, res.error
    return res.data


def test_submit_reserves_and_audits(world, session):
    data = _submit(world)
    assert data["status"] == "PENDING"
    assert data["total_days"] == 2.0
    assert data["request_number"].startswith("LR-")
    assert data["supervisor_approver_id"] == world.manager.id

    bal = _balance(world)
    assert bal.pending_requests == Decimal("2.00")
    assert bal.available_balance == Decimal("8.00")

    log = AuditLog.query.filter_by(table_name="leave_requests", record_id=str(data["id"])).one()
    assert log.action == "CREATE"
    assert log.reason == "EMPLOYEE_SUBMIT_LEAVE_REQUEST"
    assert {"field": "status", "old": None, "new": "PENDING"} in log.changes


def test_half_day_counts_half(world, session):
    data = _submit(world, start="2026-04-06", end="2026-04-06", is_half_day=True, half_day_period="am")
    assert data["total_days"] == 0.5
    assert data["half_day_period"] == "AM"


def test_half_day_must_be_single_date(world, session):
    res = submit_leave_request(world.employee_ctx, leave_type_id=world.vl.id, start_date="2026-04-06",
                               end_date="2026-04-07", is_half_day=True, half_day_period="PM")
    assert not res.success
    assert res.code == "VALIDATION_ERROR"
    assert "half-day" in res.error


def test_cross_year_request_rejected(world, session):
    res = submit_leave_request(world.employee_ctx, leave_type_id=world.vl.id,
                               start_date="2026-12-30", end_date="2027-01-02")
    assert not res.success
    assert res.code == "VALIDATION_ERROR"
    assert LeaveRequest.query.count() == 0


def test_malformed_date_names_field(world, session):
    res = submit_leave_request(world.employee_ctx, leave_type_id=world.vl.id,
                               start_date="not-a-date", end_date="2026-01-02")
    assert not res.success
    assert "start_date" in res.error


def test_unpaid_leave_skips_ledger(world, session):
    before = _balance(world).counters
    data = _submit(world, leave_type_id=world.lwop.id)
    assert data["status"] == "PENDING"
    assert _balance(world).counters == before
    assert cancel_leave_request(world.employee_ctx, data["id"]).success


def test_full_approval_deducts_reserved_days(world, session):
    data = _submit(world)
    sup = supervisor_decide(world.manager_ctx, "leave", data["id"], "approve", remarks="ok")
    assert sup.success, sup.error
    assert sup.data["status"] == "SUPERVISOR_APPROVED"
    assert sup.data["supervisor_remarks"] == "ok"
    assert sup.data["supervisor_approved_at"] is not None

    fin = hr_finalize(world.hr_ctx, "leave", data["id"], "approve", remarks="enjoy")
    assert fin.success, fin.error
    assert fin.data["status"] == "APPROVED"
    assert fin.data["hr_approver_user_id"] == world.hr_user.id

    bal = _balance(world)
    assert bal.credits_used == Decimal("2.00")
    assert bal.pending_requests == Decimal("0.00")
    assert bal.current_balance == Decimal("8.00")
    assert bal.available_balance == Decimal("8.00")

    reasons = [a.reason for a in AuditLog.query.filter_by(table_name="leave_requests").order_by(AuditLog.id)]
    assert reasons == ["EMPLOYEE_SUBMIT_LEAVE_REQUEST", "SUPERVISOR_APPROVE", "HR_FINAL_APPROVE"]


def test_supervisor_reject_releases(world, session):
    data = _submit(world)
    res = supervisor_decide(world.manager_ctx, "leave", data["id"], "reject", remarks="busy week")
    assert res.success
    assert res.data["status"] == "REJECTED"
    assert _balance(world).available_balance == Decimal("10.00")


def test_hr_reject_releases(world, session):
    data = _submit(world)
    supervisor_decide(world.manager_ctx, "leave", data["id"], "approve")
    res = hr_finalize(world.payroll_ctx, "leave", data["id"], "reject", remarks="no cover")
    assert res.success
    assert res.data["status"] == "REJECTED"
    bal = _balance(world)
    assert bal.pending_requests == Decimal("0.00")
    assert bal.credits_used == Decimal("0.00")


def test_only_designated_supervisor_may_decide(world, session):
    data = _submit(world)
    res = supervisor_decide(world.employee_ctx, "leave", data["id"], "approve")
    assert not res.success
    assert res.code == "FORBIDDEN"
    assert session.get(LeaveRequest, data["id"]).status == "PENDING"


def test_hr_cannot_finalize_pending(world, session):
    data = _submit(world)
    res = hr_finalize(world.hr_ctx, "leave", data["id"], "approve")
    assert not res.success
    assert res.code == "INVALID_STATE"
    assert res.error == "Only supervisor-approved leave requests can be finalized."


def test_employee_role_cannot_finalize(world, session):
    data = _submit(world)
    supervisor_decide(world.manager_ctx, "leave", data["id"], "approve")
    res = hr_finalize(world.employee_ctx, "leave", data["id"], "approve")
    assert not res.success
    assert res.code == "FORBIDDEN"
    assert session.get(LeaveRequest, data["id"]).status == "SUPERVISOR_APPROVED"


def test_cannot_cancel_after_supervisor_approval(world, session):
    data = _submit(world)
    supervisor_decide(world.manager_ctx, "leave", data["id"], "approve")
    res = cancel_leave_request(world.employee_ctx, data["id"])
    assert not res.success
    assert res.code == "INVALID_STATE"
    assert _balance(world).pending_requests == Decimal("2.00")


def test_cancel_uses_default_reason(world, session):
    data = _submit(world)
    res = cancel_leave_request(world.employee_ctx, data["id"])
    assert res.data["cancellation_reason"] == "Cancelled by employee"
    assert res.data["cancelled_at"] is not None


def test_request_of_another_company_is_not_found(world, session):
    data = _submit(world)
    supervisor_decide(world.manager_ctx, "leave", data["id"], "approve")
    outsider = ActorContext(user_id=world.hr_user.id, company_id=world.company.id + 99, role=HR_ADMIN)
    res = hr_finalize(outsider, "leave", data["id"], "approve")
    assert res.code == "NOT_FOUND"


def test_list_balances_for_self_and_for_hr(world, session):
    mine = list_balances(world.employee_ctx, world.employee.id, 2026)
    assert mine.success
    assert mine.data[0]["available_balance"] == 10.0

    other = list_balances(world.employee_ctx, world.manager.id, 2026)
    assert other.code == "FORBIDDEN"

    hr = list_balances(world.hr_ctx, world.employee.id, 2026)
    assert hr.success and len(hr.data) == 1
