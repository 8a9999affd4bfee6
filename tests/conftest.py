import os
from datetime import date, time
from types import SimpleNamespace

import pytest

from timeleave_api import create_app
from timeleave_api.common.auth import ActorContext, EMPLOYEE, HR_ADMIN, PAYROLL_ADMIN
from timeleave_api.extensions import db
from timeleave_api.models.attendance import WorkSchedule, WorkScheduleDayOverride
from timeleave_api.models.employee import Employee
from timeleave_api.models.leave import LeavePolicy, LeaveType
from timeleave_api.models.master import Company, EmploymentStatus
from timeleave_api.models.user import User
from timeleave_api.services import leave_ledger


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    yield db.session


def _user(session, email):
    u = User(email=email, full_name=email.split("@")[0])
    session.add(u)
    session.flush()
    return u


def add_employee(session, company, number, user=None, manager=None, status=None, schedule=None,
                 hire_date=date(2020, 1, 15), **kw):
    e = Employee(
        company_id=company.id,
        user_id=user.id if user else None,
        reporting_manager_id=manager.id if manager else None,
        employment_status_id=status.id if status else None,
        work_schedule_id=schedule.id if schedule else None,
        employee_number=number,
        first_name=number.title(),
        last_name="Test",
        hire_date=hire_date,
        **kw,
    )
    session.add(e)
    session.flush()
    return e


@pytest.fixture(scope="function")
def world(session):
    """
    One company with a day schedule (Sunday rest day), a manager, an employee
    reporting to them, an HR admin, a paid VL and an unpaid LWOP type, and a
    2026 VL balance of 10 days for the employee.
    """
    company = Company(code="ACME", name="Acme Corp")
    session.add(company)
    session.flush()

    regular = EmploymentStatus(company_id=company.id, code="REG", name="Regular")
    session.add(regular)

    schedule = WorkSchedule(company_id=company.id, code="DAY", name="Day shift",
                            start_time=time(8, 0), end_time=time(17, 0),
                            break_minutes=60, grace_minutes=10)
    schedule.day_overrides.append(WorkScheduleDayOverride(weekday=6, is_working_day=False))
    session.add(schedule)
    session.flush()

    manager_user = _user(session, "manager@acme.test")
    employee_user = _user(session, "employee@acme.test")
    hr_user = _user(session, "hr@acme.test")

    manager = add_employee(session, company, "mgr-001", user=manager_user, status=regular, schedule=schedule)
    employee = add_employee(session, company, "emp-001", user=employee_user, manager=manager,
                            status=regular, schedule=schedule)

    vl = LeaveType(company_id=company.id, code="VL", name="Vacation Leave", is_paid=True,
                   allow_half_day=True, allow_carry_over=True, max_carry_over_days=5)
    lwop = LeaveType(company_id=company.id, code="LWOP", name="Leave Without Pay", is_paid=False)
    session.add_all([vl, lwop])
    session.flush()
    session.add(LeavePolicy(leave_type_id=vl.id, employment_status_id=regular.id,
                            annual_entitlement=15, proration_method="PRORATED_MONTH",
                            effective_from=date(2020, 1, 1)))

    w = SimpleNamespace(
        company=company, regular=regular, schedule=schedule,
        manager=manager, employee=employee, vl=vl, lwop=lwop,
        manager_user=manager_user, employee_user=employee_user, hr_user=hr_user,
    )
    w.employee_ctx = ActorContext(user_id=employee_user.id, company_id=company.id, role=EMPLOYEE)
    w.manager_ctx = ActorContext(user_id=manager_user.id, company_id=company.id, role=EMPLOYEE)
    w.hr_ctx = ActorContext(user_id=hr_user.id, company_id=company.id, role=HR_ADMIN)
    w.payroll_ctx = ActorContext(user_id=hr_user.id, company_id=company.id, role=PAYROLL_ADMIN)

    leave_ledger.open_balance(w.hr_ctx, company_id=company.id, employee_id=employee.id,
                              leave_type_id=vl.id, year=2026, opening=0, earned=10)
    session.commit()
    return w
