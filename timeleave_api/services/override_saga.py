# timeleave_api/services/override_saga.py
"""
HR override of the supervisor step.

Two transactions bridged by compensation:
  1. synthesize  PENDING -> SUPERVISOR_APPROVED on the supervisor's behalf
  2. finalize    the regular HR decision
If 2 fails after 1 committed, rollback restores the supervisor fields
exactly as they were before 1.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from timeleave_api.common.auth import ELEVATED_ROLES, require_module, require_roles
from timeleave_api.common.clock import utcnow
from timeleave_api.common.errors import APIError, CompensationError, DomainStateError
from timeleave_api.common.result import ActionResult, service_action
from timeleave_api.extensions import atomic
from timeleave_api.services import approvals
from timeleave_api.services.directory import find_acting_employee
from timeleave_api.services.request_state import Decision, RequestKind, RequestStatus, transition

log = logging.getLogger(__name__)

RESTORED_FIELDS = ("status", "supervisor_approver_id", "supervisor_approved_at", "supervisor_remarks")


class OverridePhase(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    SUPERVISOR_SYNTHESIZED = "SUPERVISOR_SYNTHESIZED"
    FINALIZED = "FINALIZED"
    ROLLED_BACK = "ROLLED_BACK"


def _with_remarks(text: str, remarks: str) -> str:
    return f"{text}: {remarks}" if remarks else text


class OverrideSaga:
    def __init__(self, ctx, kind: RequestKind, request_id: int, decision: Decision,
                 remarks: Optional[str] = None,
                 finalize: Optional[Callable[..., ActionResult]] = None):
        self.ctx = ctx
        self.kind = RequestKind(kind)
        self.request_id = request_id
        self.decision = Decision(decision)
        self.remarks = (remarks or "").strip()
        self._finalize = finalize or approvals.hr_finalize
        self.phase = OverridePhase.NOT_STARTED
        self.prior: Optional[dict] = None

    @property
    def supervisor_remarks(self) -> str:
        return _with_remarks(f"HR supervisor-stage override for {self.decision.noun}", self.remarks)

    @property
    def final_remarks(self) -> str:
        return _with_remarks(f"HR final {self.decision.noun} via supervisor override", self.remarks)

    def synthesize(self) -> bool:
        """Step 1. Returns False when the request was already supervisor-approved."""
        with atomic():
            req = approvals.load_request(self.ctx, self.kind, self.request_id)
            status = RequestStatus(req.status)
            if status is RequestStatus.SUPERVISOR_APPROVED:
                return False
            if status is not RequestStatus.PENDING:
                raise DomainStateError(
                    f"{self.kind.label} request is no longer pending and cannot be override-{self.decision.past}."
                )

            self.prior = {f: getattr(req, f) for f in RESTORED_FIELDS}
            before = approvals.SNAPSHOTS[self.kind](req)

            approver_id = req.supervisor_approver_id
            if approver_id is None:
                me = find_acting_employee(self.ctx)
                approver_id = me.id if me else None

            transition(req, RequestStatus.SUPERVISOR_APPROVED, self.kind)
            req.supervisor_approver_id = approver_id
            req.supervisor_approved_at = utcnow()
            req.supervisor_remarks = self.supervisor_remarks
            approvals.audit_request(self.ctx, self.kind, req,
                                    f"HR_SUPERVISOR_OVERRIDE_{self.decision.name}", before)

        self.phase = OverridePhase.SUPERVISOR_SYNTHESIZED
        return True

    def finalize(self) -> ActionResult:
        """Step 2: the regular HR decision."""
        result = self._finalize(self.ctx, self.kind, self.request_id, self.decision, remarks=self.final_remarks)
        if result.success:
            self.phase = OverridePhase.FINALIZED
        return result

    def rollback(self):
        """Compensation for step 1. Only a synthesized, unfinalized saga can roll back."""
        if self.phase is not OverridePhase.SUPERVISOR_SYNTHESIZED:
            raise DomainStateError(f"Nothing to roll back in phase {self.phase.value}.")

        with atomic():
            req = approvals.load_request(self.ctx, self.kind, self.request_id)
            if req.status != RequestStatus.SUPERVISOR_APPROVED.value:
                raise DomainStateError(
                    f"{self.kind.label} request {req.request_number} moved to {req.status} "
                    "and can no longer be restored."
                )
            before = approvals.SNAPSHOTS[self.kind](req)
            for field, value in self.prior.items():
                setattr(req, field, value)
            approvals.audit_request(self.ctx, self.kind, req, "HR_SUPERVISOR_OVERRIDE_ROLLBACK", before)

        self.phase = OverridePhase.ROLLED_BACK
        log.warning("override of %s request %s rolled back", self.kind.value, self.request_id)

    def run(self) -> ActionResult:
        self.synthesize()
        result = self.finalize()
        if result.success or self.phase is not OverridePhase.SUPERVISOR_SYNTHESIZED:
            return result

        try:
            self.rollback()
        except APIError as e:
            log.exception("rollback failed for %s request %s", self.kind.value, self.request_id)
            raise CompensationError(result.error, e.message)
        except Exception as e:
            log.exception("rollback failed for %s request %s", self.kind.value, self.request_id)
            raise CompensationError(result.error, str(e))
        return result


@service_action
def override_request(ctx, kind, request_id, decision, remarks=None) -> ActionResult:
    kind, decision = approvals.parse_kind(kind), approvals.parse_decision(decision)
    require_module(ctx, "approvals")
    require_roles(ctx, ELEVATED_ROLES, "Only company, HR or payroll admins can override approvals.")
    return OverrideSaga(ctx, kind, request_id, decision, remarks).run()
