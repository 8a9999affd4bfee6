# timeleave_api/common/result.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from timeleave_api.common.errors import APIError
from timeleave_api.extensions import db

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionResult:
    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None
    status_code: int = 200

    @classmethod
    def ok(cls, data=None, message=None):
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error, code=None, status_code=400):
        return cls(success=False, error=error, code=code, status_code=status_code)

    @classmethod
    def from_error(cls, e: APIError):
        return cls.fail(e.message, code=e.code, status_code=e.status_code)


def service_action(fn):
    """
    Core boundary: the wrapped operation returns an ActionResult and never raises.

    The function body may return an ActionResult itself, or any value which is
    then wrapped as success data. APIError subclasses become failure results;
    anything else is logged and reported as a generic failure.
    """
    @wraps(fn)
    def inner(*args, **kwargs):
        try:
            out = fn(*args, **kwargs)
        except APIError as e:
            db.session.rollback()
            log.info("%s rejected: [%s] %s", fn.__name__, e.code, e.message)
            return ActionResult.from_error(e)
        except SQLAlchemyError:
            db.session.rollback()
            log.exception("%s failed on the database", fn.__name__)
            return ActionResult.fail("Database error. Please try again.", code="DATABASE_ERROR", status_code=500)
        except Exception:
            db.session.rollback()
            log.exception("%s failed unexpectedly", fn.__name__)
            return ActionResult.fail("Unexpected error.", code="INTERNAL_ERROR", status_code=500)
        if isinstance(out, ActionResult):
            return out
        return ActionResult.ok(out)
    return inner
