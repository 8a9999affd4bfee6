# timeleave_api/services/leave_ledger.py
"""
Leave balance ledger.

Every function stages its writes on the current session and leaves the
commit to the caller, so a ledger move always lands in the same transaction
as the request change that triggered it. Balance rows are read with
SELECT ... FOR UPDATE so concurrent reservations on one balance serialize.
"""
from __future__ import annotations

import logging
from typing import Optional

from timeleave_api.common.errors import (
    BalanceMissingError, DomainStateError, DuplicateBalanceError, InsufficientBalanceError,
)
from timeleave_api.extensions import db
from timeleave_api.models.leave import LeaveBalance, LeaveBalanceTransaction, LeaveRequest, LeaveType
from timeleave_api.services.balance_counters import BalanceCounters, q2
from timeleave_api.services.request_state import HOLDS_RESERVATION, RequestStatus

log = logging.getLogger(__name__)

CARRY_OVER = "CARRY_OVER"
ACCRUAL = "ACCRUAL"
RESERVE = "RESERVE"
RELEASE = "RELEASE"
DEDUCT = "DEDUCT"


def find_balance(employee_id: int, leave_type_id: int, year: int, lock: bool = False) -> Optional[LeaveBalance]:
    q = LeaveBalance.query.filter_by(employee_id=employee_id, leave_type_id=leave_type_id, year=year)
    if lock:
        q = q.with_for_update()
    return q.first()


def _locked_balance(employee_id, leave_type_id, year) -> LeaveBalance:
    bal = find_balance(employee_id, leave_type_id, year, lock=True)
    if bal is None:
        raise BalanceMissingError(
            f"No leave balance found for {year}. Please initialize yearly leave balances first."
        )
    return bal


def _append(bal: LeaveBalance, kind: str, amount, running, ctx, reference_type=None, reference_id=None, remarks=None):
    tx = LeaveBalanceTransaction(
        leave_balance_id=bal.id,
        transaction_type=kind,
        amount=q2(amount),
        running_balance=q2(running),
        reference_type=reference_type,
        reference_id=reference_id,
        remarks=remarks,
        created_by_user_id=getattr(ctx, "user_id", None),
    )
    db.session.add(tx)
    return tx


def open_balance(ctx, *, company_id: int, employee_id: int, leave_type_id: int, year: int,
                 opening=0, earned=0, previous_year: Optional[int] = None) -> LeaveBalance:
    """Create the year's balance row with its CARRY_OVER / ACCRUAL entries."""
    if find_balance(employee_id, leave_type_id, year) is not None:
        raise DuplicateBalanceError(
            f"A leave balance for employee {employee_id}, leave type {leave_type_id}, year {year} already exists."
        )
    counters = BalanceCounters.opened(opening, earned)
    bal = LeaveBalance(company_id=company_id, employee_id=employee_id, leave_type_id=leave_type_id, year=year)
    bal.apply_counters(counters)
    db.session.add(bal)
    db.session.flush()

    if counters.opening > 0:
        _append(bal, CARRY_OVER, counters.opening, counters.opening, ctx,
                reference_type="YEAR_INITIALIZATION",
                remarks=f"Carry-over from {previous_year if previous_year else year - 1}")
    if counters.earned > 0:
        _append(bal, ACCRUAL, counters.earned, counters.current, ctx,
                reference_type="YEAR_INITIALIZATION",
                remarks=f"Annual entitlement for {year}")
    return bal


def reserve(ctx, *, employee_id: int, leave_type: LeaveType, year: int, quantity,
            reference_id: Optional[int] = None) -> LeaveBalance:
    if not leave_type.is_paid:
        raise DomainStateError("Unpaid leave types do not reserve leave credits.", code="LEAVE_TYPE_UNPAID")

    bal = _locked_balance(employee_id, leave_type.id, year)
    try:
        after = bal.counters.reserve(quantity)
    except InsufficientBalanceError:
        log.warning("reserve rejected: employee=%s type=%s year=%s qty=%s available=%s",
                    employee_id, leave_type.id, year, quantity, bal.available_balance)
        raise

    bal.apply_counters(after)
    _append(bal, RESERVE, -q2(quantity), after.current, ctx,
            reference_type="LEAVE_REQUEST", reference_id=reference_id,
            remarks="Reserved for pending leave request")
    return bal


def _guard_reservation(request: LeaveRequest, action: str):
    if RequestStatus(request.status) not in HOLDS_RESERVATION:
        raise DomainStateError(
            f"Leave request {request.request_number} no longer holds a reservation and cannot be {action}.",
            code="RESERVATION_NOT_HELD",
        )


def release(ctx, request: LeaveRequest, remarks: str = "Released leave reservation") -> Optional[LeaveBalance]:
    """
    Return a request's reserved quantity to available.

    Call before moving the request out of its holding state; the state check is
    what makes a second call for the same request fail.
    """
    _guard_reservation(request, "released")
    if not request.leave_type.is_paid:
        return None

    bal = _locked_balance(request.employee_id, request.leave_type_id, request.balance_year)
    after = bal.counters.release(request.total_days)
    bal.apply_counters(after)
    _append(bal, RELEASE, q2(request.total_days), after.current, ctx,
            reference_type="LEAVE_REQUEST", reference_id=request.id, remarks=remarks)
    return bal


def deduct(ctx, request: LeaveRequest) -> Optional[LeaveBalance]:
    """Final approval: the reserved quantity moves from pending into used."""
    if RequestStatus(request.status) is not RequestStatus.SUPERVISOR_APPROVED:
        raise DomainStateError(
            f"Leave request {request.request_number} must be supervisor-approved before credits are deducted.",
            code="RESERVATION_NOT_HELD",
        )
    if not request.leave_type.is_paid:
        return None

    bal = _locked_balance(request.employee_id, request.leave_type_id, request.balance_year)
    after = bal.counters.deduct(request.total_days)
    bal.apply_counters(after)
    _append(bal, DEDUCT, -q2(request.total_days), after.current, ctx,
            reference_type="LEAVE_REQUEST", reference_id=request.id,
            remarks=f"Approved leave request {request.request_number}")
    return bal


def balances_for(employee_id: int, year: int):
    return (LeaveBalance.query
            .filter_by(employee_id=employee_id, year=year)
            .order_by(LeaveBalance.leave_type_id.asc())
            .all())


def transactions_for(balance_id: int):
    return (LeaveBalanceTransaction.query
            .filter_by(leave_balance_id=balance_id)
            .order_by(LeaveBalanceTransaction.id.asc())
            .all())
