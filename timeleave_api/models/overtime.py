from timeleave_api.extensions import db
from timeleave_api.models.approval import ApprovalFieldsMixin


class OvertimeRequest(ApprovalFieldsMixin, db.Model):
    __tablename__ = "overtime_requests"
    id = db.Column(db.Integer, primary_key=True)
    overtime_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    hours_requested = db.Column(db.Numeric(6, 2), nullable=False)

    @property
    def quantity(self):
        return self.hours_requested

    def to_dict(self):
        return {
            "id": self.id,
            "request_number": self.request_number,
            "employee_id": self.employee_id,
            "overtime_date": self.overtime_date.isoformat(),
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "hours_requested": float(self.hours_requested),
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
