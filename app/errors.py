"""Structured API errors."""

from fastapi import HTTPException

from app.services.accounts import AccountResult, ErrorCode

# Default status for each failure; endpoints may override.
STATUS_BY_CODE = {
    ErrorCode.TOKEN_NOT_FOUND: 400,
    ErrorCode.TOKEN_EXPIRED: 400,
    ErrorCode.ALREADY_ACTIVE: 400,
    ErrorCode.ACCOUNT_NOT_ACTIVATED: 403,
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.PASSWORD_POLICY_VIOLATION: 400,
    ErrorCode.EMAIL_CONFLICT: 409,
}


def api_error(status_code: int, code: str, message: str, details: list[str] | None = None) -> HTTPException:
    """Build an HTTPException whose detail is rendered as a machine-readable error body."""
    detail = {"code": code, "message": message}
    if details:
        detail["details"] = details
    return HTTPException(status_code=status_code, detail=detail)


def result_error(result: AccountResult) -> HTTPException:
    """HTTPException for a failed account operation."""
    return api_error(
        STATUS_BY_CODE.get(result.error_code, 400),
        result.error_code.value,
        result.error,
        result.details,
    )
