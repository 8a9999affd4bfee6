# timeleave_api/common/auth.py
from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Iterable, Optional

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from timeleave_api.common.errors import AuthorizationError, ValidationError
from timeleave_api.common.http import fail


# ---------- roles & module access ----------

COMPANY_ADMIN = "COMPANY_ADMIN"
HR_ADMIN = "HR_ADMIN"
PAYROLL_ADMIN = "PAYROLL_ADMIN"
EMPLOYEE = "EMPLOYEE"
SUPER_ADMIN = "SUPER_ADMIN"

MODULE_ACCESS = {
    COMPANY_ADMIN: {"attendance", "leave", "overtime", "approvals", "settings", "employee_portal"},
    HR_ADMIN: {"attendance", "leave", "overtime", "approvals", "settings", "employee_portal"},
    PAYROLL_ADMIN: {"attendance", "leave", "overtime", "approvals", "employee_portal"},
    EMPLOYEE: {"employee_portal"},
}

# may push a request through HR finalize or the supervisor override
ELEVATED_ROLES = frozenset({COMPANY_ADMIN, HR_ADMIN, PAYROLL_ADMIN, SUPER_ADMIN})
# may hand-edit a daily time record
DTR_CORRECTION_ROLES = frozenset({COMPANY_ADMIN, HR_ADMIN, SUPER_ADMIN})


@dataclass(frozen=True)
class ActorContext:
    """Who is acting, for which company. Passed into every core operation."""
    user_id: int
    company_id: int
    role: str
    is_super_admin: bool = False

    @property
    def effective_roles(self) -> set:
        roles = {self.role} if self.role else set()
        if self.is_super_admin:
            roles.add(SUPER_ADMIN)
        return roles

    def can_access(self, module: str) -> bool:
        if self.is_super_admin:
            return True
        return module in MODULE_ACCESS.get(self.role, set())

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return bool(self.effective_roles & set(roles))


def require_module(ctx: ActorContext, module: str):
    if ctx is None or not ctx.can_access(module):
        raise AuthorizationError(f"Your role does not have access to the {module} module.")


def require_roles(ctx: ActorContext, roles: Iterable[str], message: Optional[str] = None):
    if ctx is None or not ctx.has_any_role(roles):
        raise AuthorizationError(message or "Your role is not allowed to perform this action.")


# ---------- JWT → context ----------

def actor_from_jwt() -> ActorContext:
    """
    Build the acting context from the current token.
    Claims: company_id, company_role, platform_role (optional 'SUPER_ADMIN').
    """
    claims = get_jwt() or {}
    uid = get_jwt_identity()
    company_id = claims.get("company_id")
    if uid is None or company_id is None:
        raise AuthorizationError("Token does not carry a company context.")
    try:
        return ActorContext(
            user_id=int(uid),
            company_id=int(company_id),
            role=claims.get("company_role") or "",
            is_super_admin=claims.get("platform_role") == SUPER_ADMIN,
        )
    except (TypeError, ValueError):
        raise ValidationError("Token identity is malformed.", field="sub")


# ---------- decorators ----------

def requires_module(*modules: str):
    """
    Require that the current token's role can use AT LEAST ONE of the modules.
    Super admins always pass.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            try:
                ctx = actor_from_jwt()
            except (AuthorizationError, ValidationError) as e:
                return fail(e.message, status=e.status_code, code=e.code)

            if modules and not any(ctx.can_access(m) for m in modules):
                return fail("Forbidden", status=403, code="FORBIDDEN")

            return fn(*args, **kwargs)
        return inner
    return outer
