"""
core/errors.py
--------------
Application error taxonomy.

Services raise these; the global handler in main.py renders every one of
them as ``{"error": <message>}`` with the class's HTTP status. Clients never
receive structured error codes beyond the message and status.
"""

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Access denied"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input data"


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class AccountLocked(AppError):
    status_code = status.HTTP_423_LOCKED
    message = "Account is temporarily locked. Please try again later."


class TwoFactorRequired(AppError):
    """Not a hard failure: the caller should prompt for a code and resubmit."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "2FA_REQUIRED"


class InvalidTwoFactorCode(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid 2FA code"


class UpstreamFailure(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Upstream service error"
