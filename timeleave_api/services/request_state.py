# timeleave_api/services/request_state.py
from __future__ import annotations

from enum import Enum

from timeleave_api.common.errors import DomainStateError


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    SUPERVISOR_APPROVED = "SUPERVISOR_APPROVED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class RequestKind(str, Enum):
    LEAVE = "leave"
    OVERTIME = "overtime"

    @property
    def label(self) -> str:
        return "Leave" if self is RequestKind.LEAVE else "Overtime"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def noun(self) -> str:
        return "approval" if self is Decision.APPROVE else "rejection"

    @property
    def past(self) -> str:
        return "approved" if self is Decision.APPROVE else "rejected"


# CANCELLED is reachable from PENDING only
TRANSITIONS = {
    RequestStatus.PENDING: frozenset({
        RequestStatus.SUPERVISOR_APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED,
    }),
    RequestStatus.SUPERVISOR_APPROVED: frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED}),
    RequestStatus.APPROVED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

TERMINAL = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

# states in which a paid leave request still holds a ledger reservation
HOLDS_RESERVATION = frozenset({RequestStatus.PENDING, RequestStatus.SUPERVISOR_APPROVED})


def allowed_targets(status) -> frozenset:
    return TRANSITIONS[RequestStatus(status)]


def can_transition(current, target) -> bool:
    return RequestStatus(target) in allowed_targets(current)


def transition(request, target: RequestStatus, kind: RequestKind):
    current = RequestStatus(request.status)
    if not can_transition(current, target):
        raise DomainStateError(
            f"{kind.label} request cannot move from {current.value} to {RequestStatus(target).value}."
        )
    request.status = RequestStatus(target).value
