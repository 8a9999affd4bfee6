# timeleave_api/models/approval.py
from sqlalchemy.orm import declared_attr

from timeleave_api.common.clock import utcnow
from timeleave_api.extensions import db


class ApprovalFieldsMixin:
    """Columns shared by every request that walks the supervisor → HR workflow."""

    request_number = db.Column(db.String(32), unique=True, nullable=False)
    status = db.Column(db.String(24), nullable=False, default="PENDING", index=True)
    reason = db.Column(db.Text)

    supervisor_approved_at = db.Column(db.DateTime, nullable=True)
    supervisor_remarks     = db.Column(db.Text, nullable=True)
    hr_approved_at = db.Column(db.DateTime, nullable=True)
    hr_remarks     = db.Column(db.Text, nullable=True)

    cancelled_at        = db.Column(db.DateTime, nullable=True)
    cancellation_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, onupdate=utcnow)

    @declared_attr
    def company_id(cls):
        return db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    @declared_attr
    def employee_id(cls):
        return db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)

    # an employee, not a user: the reporting manager at submit time
    @declared_attr
    def supervisor_approver_id(cls):
        return db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)

    @declared_attr
    def hr_approver_user_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    @declared_attr
    def employee(cls):
        return db.relationship("Employee", foreign_keys=f"{cls.__name__}.employee_id")
