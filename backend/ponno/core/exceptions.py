"""
Application error hierarchy with stable machine-readable codes.

Every failure the API reports to clients is a PonnoError subclass carrying an
HTTP status class and a stable ``code`` string, so clients can branch on the
code instead of matching messages. Extra keyword context is kept for logging.
"""

from typing import Any, Optional

from fastapi import status


class PonnoError(Exception):
    """Base exception for application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.context = context


class AuthenticationError(PonnoError):
    """Raised when the caller's access token is missing or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_TOKEN"


class PermissionDeniedError(PonnoError):
    """Raised when the caller's role is insufficient for the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "INSUFFICIENT_PERMISSIONS"


class AccessDeniedError(PonnoError):
    """Raised when the caller is not a party to the requested order."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "ACCESS_DENIED"


class NotFoundError(PonnoError):
    """Raised when a referenced entity does not exist or is inactive."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class BusinessRuleError(PonnoError):
    """Base for 400-class business rule violations."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "BUSINESS_RULE_VIOLATION"


class InsufficientStockError(BusinessRuleError):
    """Raised when the requested quantity exceeds available stock."""

    code = "INSUFFICIENT_QUANTITY"


class DistrictMismatchError(BusinessRuleError):
    """Raised when an agent's district differs from the product's district."""

    code = "AGENT_DISTRICT_MISMATCH"


class InvalidTransitionError(BusinessRuleError):
    """Raised when the requested status is not reachable from the current one."""

    code = "INVALID_STATUS_TRANSITION"

    def __init__(
        self,
        message: str,
        current_status: Any,
        target_status: Any,
        **context: Any,
    ):
        super().__init__(message, **context)
        self.current_status = current_status
        self.target_status = target_status


class StoreError(PonnoError):
    """Raised when the relational store rejects or fails an operation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORE_ERROR"


# PostgreSQL SQLSTATE -> (code, HTTP status, message)
_INTEGRITY_ERRORS: dict[str, tuple[str, int, str]] = {
    "23505": (
        "DUPLICATE_ENTRY",
        status.HTTP_409_CONFLICT,
        "Duplicate entry found",
    ),
    "23503": (
        "INVALID_REFERENCE",
        status.HTTP_400_BAD_REQUEST,
        "Referenced record not found",
    ),
    "23514": (
        "CONSTRAINT_VIOLATION",
        status.HTTP_400_BAD_REQUEST,
        "Invalid data provided",
    ),
}


def store_error_from_exception(
    exc: Exception,
    message: str,
    **context: Any,
) -> StoreError:
    """
    Translate a database exception into a StoreError.

    Integrity violations are classified by the PostgreSQL SQLSTATE exposed by
    the driver (``pgcode`` or ``sqlstate`` on the wrapped DBAPI error);
    anything else becomes a generic 500 STORE_ERROR.

    Args:
        exc: Exception raised by SQLAlchemy
        message: Fallback message describing the failed operation
        **context: Additional logging context

    Returns:
        StoreError ready to be raised
    """
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)

    if sqlstate in _INTEGRITY_ERRORS:
        code, status_code, integrity_message = _INTEGRITY_ERRORS[sqlstate]
        return StoreError(
            integrity_message,
            code=code,
            status_code=status_code,
            error=str(exc),
            **context,
        )

    return StoreError(message, error=str(exc), **context)
