# timeleave_api/common/errors.py
from flask import Blueprint
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import IntegrityError
from timeleave_api.common.http import fail

bp_errors = Blueprint("errors", __name__)


class APIError(Exception):
    """Custom API Error class."""
    code = "BAD_REQUEST"
    status_code = 400

    def __init__(self, code=None, message="", status_code=None, payload=None):
        super().__init__(message)
        self.code = code or self.code
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload


class ValidationError(APIError):
    """Malformed or out-of-range input. The message names the field."""
    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message, field=None):
        super().__init__(message=message, payload={"field": field} if field else None)
        self.field = field


class AuthorizationError(APIError):
    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, message="You are not allowed to perform this action."):
        super().__init__(message=message)


class NotFoundError(APIError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, message="Record not found."):
        super().__init__(message=message)


class DomainStateError(APIError):
    """Wrong current status for the requested transition."""
    code = "INVALID_STATE"
    status_code = 409

    def __init__(self, message, code=None):
        super().__init__(code=code, message=message)


class InsufficientBalanceError(DomainStateError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, message="Insufficient leave balance for this request."):
        super().__init__(message)


class BalanceMissingError(DomainStateError):
    code = "BALANCE_NOT_FOUND"


class DuplicateBalanceError(DomainStateError):
    code = "DUPLICATE_BALANCE"


class CompensationError(APIError):
    """An override finalize failed and so did its rollback; manual reconciliation needed."""
    code = "ROLLBACK_FAILED"
    status_code = 500

    def __init__(self, original, rollback_message):
        super().__init__(message=f"{original} (Rollback failed: {rollback_message})")
        self.original = original
        self.rollback_message = rollback_message


@bp_errors.app_errorhandler(APIError)
def _api_error(e: APIError):
    return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)


@bp_errors.app_errorhandler(HTTPException)
def _http(e: HTTPException):
    return fail(message=e.description or "HTTP error", status=e.code or 400)


@bp_errors.app_errorhandler(IntegrityError)
def _integrity(e: IntegrityError):
    # 409 for unique/FK violations
    return fail(message="Conflict / integrity error", status=409, code="CONSTRAINT_ERROR",
                detail=str(e.orig) if getattr(e, "orig", None) else str(e))


def register_error_handlers(app):
    app.register_blueprint(bp_errors)

    @app.errorhandler(Exception)
    def _500(e: Exception):
        if isinstance(e, HTTPException):
            return fail(e.description or e.name, status=e.code or 500)
        app.logger.exception(e)
        return fail("Internal server error", status=500)
