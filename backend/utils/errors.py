"""
Application error types. Every error carries a machine-readable code that is
rendered in the response envelope next to the message.
"""
from fastapi import HTTPException, status


class AppError(HTTPException):
    code = "Internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = None):
        super().__init__(status_code=self.status_code, detail=detail or self.code)


class ValidationFailed(AppError):
    code = "ValidationFailed"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidReference(AppError):
    code = "InvalidReference"
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(AppError):
    code = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidOtp(AppError):
    code = "InvalidOtp"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(AppError):
    code = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AppError):
    code = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    code = "Conflict"
    status_code = status.HTTP_400_BAD_REQUEST


class TotalMismatch(AppError):
    code = "TotalMismatch"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransition(AppError):
    code = "InvalidTransition"
    status_code = status.HTTP_400_BAD_REQUEST


class OtpExpired(AppError):
    code = "OtpExpired"
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamFailure(AppError):
    code = "UpstreamFailure"
    status_code = status.HTTP_400_BAD_REQUEST


class Internal(AppError):
    code = "Internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# Fallback codes for plain HTTPExceptions raised by FastAPI itself
CODES_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: "ValidationFailed",
    status.HTTP_401_UNAUTHORIZED: "Unauthorized",
    status.HTTP_403_FORBIDDEN: "Forbidden",
    status.HTTP_404_NOT_FOUND: "NotFound",
    status.HTTP_405_METHOD_NOT_ALLOWED: "NotFound",
    status.HTTP_422_UNPROCESSABLE_ENTITY: "ValidationFailed",
}


def error_code_for(exc: HTTPException) -> str:
    code = getattr(exc, "code", None)
    if code:
        return code
    return CODES_BY_STATUS.get(exc.status_code, "Internal")
