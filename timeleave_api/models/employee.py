from timeleave_api.common.clock import utcnow
from timeleave_api.extensions import db


class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    company_id           = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False)
    user_id              = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reporting_manager_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    employment_status_id = db.Column(db.Integer, db.ForeignKey("employment_statuses.id", ondelete="RESTRICT"), nullable=True)
    work_schedule_id     = db.Column(db.Integer, db.ForeignKey("work_schedules.id", ondelete="SET NULL"), nullable=True)

    employee_number = db.Column(db.String(32), nullable=False)    # unique per company
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)

    hire_date       = db.Column(db.Date, nullable=False)
    separation_date = db.Column(db.Date, nullable=True)   # null while employed
    is_overtime_eligible = db.Column(db.Boolean, nullable=False, default=True)
    is_active  = db.Column(db.Boolean, nullable=False, default=True)
    deleted_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.UniqueConstraint("company_id", "employee_number", name="uq_employee_company_number"),
        db.UniqueConstraint("company_id", "user_id", name="uq_employee_company_user"),
        db.Index("ix_emp_company_id", "company_id"),
        db.Index("ix_emp_reporting_manager_id", "reporting_manager_id"),
    )

    company           = db.relationship("Company")
    employment_status = db.relationship("EmploymentStatus")
    work_schedule     = db.relationship("WorkSchedule")
    reporting_manager = db.relationship("Employee", remote_side=[id])

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)
