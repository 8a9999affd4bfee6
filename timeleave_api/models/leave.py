from timeleave_api.common.clock import utcnow
from timeleave_api.extensions import db
from timeleave_api.models.approval import ApprovalFieldsMixin
from timeleave_api.services.balance_counters import BalanceCounters


class LeaveType(db.Model):
    __tablename__ = "leave_types"
    id = db.Column(db.Integer, primary_key=True)
    # null company => global type offered to every company
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)
    code = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    is_paid = db.Column(db.Boolean, nullable=False, default=True)
    allow_half_day = db.Column(db.Boolean, nullable=False, default=True)
    allow_carry_over = db.Column(db.Boolean, nullable=False, default=False)
    max_carry_over_days = db.Column(db.Numeric(6, 2), nullable=True)
    effective_from = db.Column(db.Date, nullable=True)
    effective_to = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_leave_type_company_code"),
    )


class LeavePolicy(db.Model):
    __tablename__ = "leave_policies"

    id = db.Column(db.Integer, primary_key=True)
    leave_type_id = db.Column(db.Integer, db.ForeignKey("leave_types.id"), nullable=False, index=True)
    employment_status_id = db.Column(db.Integer, db.ForeignKey("employment_statuses.id"), nullable=False, index=True)

    annual_entitlement = db.Column(db.Numeric(6, 2), nullable=False)  # e.g. 15.00 VL
    proration_method = db.Column(db.String(20), nullable=False, default="FULL")
    # "FULL" | "PRORATED_DAY" | "PRORATED_MONTH"

    effective_from = db.Column(db.Date, nullable=False)
    effective_to = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    leave_type = db.relationship("LeaveType")
    employment_status = db.relationship("EmploymentStatus")


class LeaveBalance(db.Model):
    """
    Per employee / leave type / year account.

    The nine counter columns are written only through `apply_counters`, which
    takes a BalanceCounters value; never assign them one by one.
    """
    __tablename__ = "leave_balances"
    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    leave_type_id = db.Column(db.Integer, db.ForeignKey("leave_types.id", ondelete="CASCADE"), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False)

    opening_balance      = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    credits_earned       = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    credits_used         = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    credits_forfeited    = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    credits_converted    = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    credits_carried_over = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    current_balance      = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    pending_requests     = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    available_balance    = db.Column(db.Numeric(6, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, onupdate=utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "leave_type_id", "year", name="uq_leave_balance_emp_type_year"),
    )

    leave_type = db.relationship("LeaveType")

    @property
    def counters(self) -> BalanceCounters:
        return BalanceCounters.of(
            opening=self.opening_balance,
            earned=self.credits_earned,
            used=self.credits_used,
            forfeited=self.credits_forfeited,
            converted=self.credits_converted,
            carried_over=self.credits_carried_over,
            pending=self.pending_requests,
        )

    def apply_counters(self, c: BalanceCounters):
        self.opening_balance = c.opening
        self.credits_earned = c.earned
        self.credits_used = c.used
        self.credits_forfeited = c.forfeited
        self.credits_converted = c.converted
        self.credits_carried_over = c.carried_over
        self.pending_requests = c.pending
        self.current_balance = c.current
        self.available_balance = c.available

    def to_dict(self):
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "leave_type_id": self.leave_type_id,
            "leave_type_code": self.leave_type.code if self.leave_type else None,
            "year": self.year,
            **self.counters.as_dict(),
        }


class LeaveBalanceTransaction(db.Model):
    """Append-only. One row per ledger mutation."""
    __tablename__ = "leave_balance_transactions"
    id = db.Column(db.Integer, primary_key=True)
    leave_balance_id = db.Column(db.Integer, db.ForeignKey("leave_balances.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_type = db.Column(db.String(20), nullable=False)  # CARRY_OVER|ACCRUAL|RESERVE|RELEASE|DEDUCT
    amount = db.Column(db.Numeric(6, 2), nullable=False)
    running_balance = db.Column(db.Numeric(6, 2), nullable=False)
    reference_type = db.Column(db.String(30), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    remarks = db.Column(db.Text)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "transaction_type": self.transaction_type,
            "amount": float(self.amount),
            "running_balance": float(self.running_balance),
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "remarks": self.remarks,
            "created_by_user_id": self.created_by_user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class LeaveRequest(ApprovalFieldsMixin, db.Model):
    __tablename__ = "leave_requests"
    id = db.Column(db.Integer, primary_key=True)
    leave_type_id = db.Column(db.Integer, db.ForeignKey("leave_types.id", ondelete="RESTRICT"), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    is_half_day = db.Column(db.Boolean, nullable=False, default=False)
    half_day_period = db.Column(db.String(2), nullable=True)  # AM|PM
    total_days = db.Column(db.Numeric(6, 2), nullable=False)
    balance_year = db.Column(db.Integer, nullable=False)

    leave_type = db.relationship("LeaveType")

    @property
    def quantity(self):
        return self.total_days

    def to_dict(self):
        return {
            "id": self.id,
            "request_number": self.request_number,
            "employee_id": self.employee_id,
            "leave_type_id": self.leave_type_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "is_half_day": self.is_half_day,
            "half_day_period": self.half_day_period,
            "total_days": float(self.total_days),
            "status": self.status,
            "reason": self.reason,
            "supervisor_approver_id": self.supervisor_approver_id,
            "supervisor_approved_at": self.supervisor_approved_at.isoformat() if self.supervisor_approved_at else None,
            "supervisor_remarks": self.supervisor_remarks,
            "hr_approver_user_id": self.hr_approver_user_id,
            "hr_approved_at": self.hr_approved_at.isoformat() if self.hr_approved_at else None,
            "hr_remarks": self.hr_remarks,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
        }
