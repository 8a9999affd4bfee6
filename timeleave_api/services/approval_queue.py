# timeleave_api/services/approval_queue.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from math import ceil
from enum import Enum
from typing import List, Optional

from timeleave_api.common.auth import require_module
from timeleave_api.common.clock import utcnow
from timeleave_api.common.result import service_action
from timeleave_api.common.validate import parse_int
from timeleave_api.models.employee import Employee
from timeleave_api.models.leave import LeaveRequest
from timeleave_api.models.overtime import OvertimeRequest
from timeleave_api.services.approvals import parse_kind
from timeleave_api.services.directory import active_direct_report_counts
from timeleave_api.services.request_state import RequestKind, RequestStatus

HIGH_AFTER = timedelta(hours=72)
MEDIUM_AFTER = timedelta(hours=24)


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return {"HIGH": 3, "MEDIUM": 2, "LOW": 1}[self.value]


def classify_priority(supervisor_approved_at: Optional[datetime], now: datetime) -> Priority:
    if supervisor_approved_at is None:
        return Priority.MEDIUM
    waited = now - supervisor_approved_at
    if waited >= HIGH_AFTER:
        return Priority.HIGH
    if waited >= MEDIUM_AFTER:
        return Priority.MEDIUM
    return Priority.LOW


def cto_conversion_preview(employee: Employee, requester_direct_reports: int) -> bool:
    """Advisory only: overtime that may be converted to compensatory time off.

    A requester who is not overtime-eligible, or who manages active employees
    of their own, is flagged.
    """
    return (not employee.is_overtime_eligible) or requester_direct_reports > 0


@dataclass
class ApprovalQueueItem:
    kind: str
    request_id: int
    request_number: str
    employee_id: int
    employee_name: str
    employee_number: str
    quantity: float
    unit: str
    start: str
    end: str
    supervisor_approver_id: Optional[int]
    supervisor_approved_at: Optional[datetime]
    submitted_at: datetime
    priority: Priority
    cto_conversion_preview: bool = False

    def to_dict(self) -> dict:
        d = asdict(self)
        d["priority"] = self.priority.value
        d["supervisor_approved_at"] = self.supervisor_approved_at.isoformat() if self.supervisor_approved_at else None
        d["submitted_at"] = self.submitted_at.isoformat() if self.submitted_at else None
        return d


def _chronological(item: ApprovalQueueItem):
    return (item.supervisor_approved_at or item.submitted_at, item.submitted_at, item.kind, item.request_id)


def sort_queue(items: List[ApprovalQueueItem]) -> List[ApprovalQueueItem]:
    """Priority descending, then original chronological order."""
    ordered = sorted(items, key=_chronological)
    return sorted(ordered, key=lambda i: -i.priority.rank)


def _leave_items(company_id, now) -> List[ApprovalQueueItem]:
    rows = (LeaveRequest.query
            .filter_by(company_id=company_id, status=RequestStatus.SUPERVISOR_APPROVED.value)
            .all())
    return [
        ApprovalQueueItem(
            kind=RequestKind.LEAVE.value,
            request_id=r.id,
            request_number=r.request_number,
            employee_id=r.employee_id,
            employee_name=r.employee.full_name if r.employee else "",
            employee_number=r.employee.employee_number if r.employee else "",
            quantity=float(r.total_days),
            unit="days",
            start=r.start_date.isoformat(),
            end=r.end_date.isoformat(),
            supervisor_approver_id=r.supervisor_approver_id,
            supervisor_approved_at=r.supervisor_approved_at,
            submitted_at=r.created_at,
            priority=classify_priority(r.supervisor_approved_at, now),
        )
        for r in rows
    ]


def _overtime_items(company_id, now) -> List[ApprovalQueueItem]:
    rows = (OvertimeRequest.query
            .filter_by(company_id=company_id, status=RequestStatus.SUPERVISOR_APPROVED.value)
            .all())
    reports = active_direct_report_counts(r.employee_id for r in rows)
    return [
        ApprovalQueueItem(
            kind=RequestKind.OVERTIME.value,
            request_id=r.id,
            request_number=r.request_number,
            employee_id=r.employee_id,
            employee_name=r.employee.full_name if r.employee else "",
            employee_number=r.employee.employee_number if r.employee else "",
            quantity=float(r.hours_requested),
            unit="hours",
            start=r.start_time.isoformat(),
            end=r.end_time.isoformat(),
            supervisor_approver_id=r.supervisor_approver_id,
            supervisor_approved_at=r.supervisor_approved_at,
            submitted_at=r.created_at,
            priority=classify_priority(r.supervisor_approved_at, now),
            cto_conversion_preview=cto_conversion_preview(r.employee, reports.get(r.employee_id, 0)),
        )
        for r in rows
    ]


def matches_query(item: ApprovalQueueItem, query: Optional[str]) -> bool:
    """Case-insensitive substring match on request number, employee name or number."""
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(needle in (field or "").lower()
               for field in (item.request_number, item.employee_name, item.employee_number))


@service_action
def approval_queue(ctx, kind=None, query=None, page=1, per_page=20, now=None) -> dict:
    require_module(ctx, "approvals")
    page = parse_int(page or 1, "page", minimum=1)
    per_page = parse_int(per_page or 20, "per_page", minimum=1, maximum=200)
    now = now or utcnow()

    items: List[ApprovalQueueItem] = []
    kinds = [parse_kind(kind)] if kind else list(RequestKind)
    if RequestKind.LEAVE in kinds:
        items.extend(_leave_items(ctx.company_id, now))
    if RequestKind.OVERTIME in kinds:
        items.extend(_overtime_items(ctx.company_id, now))

    items = sort_queue([i for i in items if matches_query(i, query)])
    summary = {
        "total": len(items),
        "by_priority": {p.value: sum(1 for i in items if i.priority is p) for p in Priority},
        "by_kind": {k.value: sum(1 for i in items if i.kind == k.value) for k in RequestKind},
    }
    # out-of-range pages land on the last page
    total_pages = max(1, ceil(len(items) / per_page))
    page = min(page, total_pages)
    start = (page - 1) * per_page
    return {
        "items": [i.to_dict() for i in items[start:start + per_page]],
        "summary": summary,
        "page": page,
        "per_page": per_page,
        "total_pages": total_pages,
    }
