# timeleave_api/services/request_numbers.py
import secrets

from timeleave_api.common.clock import company_today
from timeleave_api.common.errors import DomainStateError

LEAVE_PREFIX = "LR"
OVERTIME_PREFIX = "OT"


def generate_request_number(prefix: str, model, on=None, attempts: int = 5) -> str:
    """PREFIX-YYYYMMDD-NNNNNN, re-drawn on collision."""
    stamp = (on or company_today()).strftime("%Y%m%d")
    for _ in range(attempts):
        candidate = f"{prefix}-{stamp}-{secrets.randbelow(1_000_000):06d}"
        if model.query.filter_by(request_number=candidate).first() is None:
            return candidate
    raise DomainStateError("Could not allocate a request number. Please try again.", code="REQUEST_NUMBER_CONFLICT")
