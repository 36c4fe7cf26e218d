"""
Typed failures raised by the credential service and the request guards.

Each kind carries a stable machine-readable ``code`` and the HTTP status
the API layer answers with.  Messages are human-readable and may change.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class AuthErrorCodes:
    USER_ALREADY_EXISTS = "USER_ALREADY_EXISTS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
    REFRESH_TOKEN_EXPIRED = "REFRESH_TOKEN_EXPIRED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    MISSING_TOKEN = "MISSING_TOKEN"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_RESET_TOKEN = "INVALID_RESET_TOKEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TODO_NOT_FOUND = "TODO_NOT_FOUND"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class AuthError(Exception):
    code: str = AuthErrorCodes.INTERNAL_SERVER_ERROR
    message: str = "Internal server error"
    status_code: int = 500

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class AlreadyExistsError(AuthError):
    code = AuthErrorCodes.USER_ALREADY_EXISTS
    message = "An account with this email already exists"
    status_code = 409


class InvalidCredentialsError(AuthError):
    code = AuthErrorCodes.INVALID_CREDENTIALS
    message = "Invalid email or password"
    status_code = 401


class InvalidRefreshTokenError(AuthError):
    code = AuthErrorCodes.INVALID_REFRESH_TOKEN
    message = "Invalid refresh token"
    status_code = 401


class RefreshTokenExpiredError(AuthError):
    code = AuthErrorCodes.REFRESH_TOKEN_EXPIRED
    message = "Refresh token has expired"
    status_code = 401


class UserNotFoundError(AuthError):
    code = AuthErrorCodes.USER_NOT_FOUND
    message = "User not found"
    status_code = 404


class MissingTokenError(AuthError):
    code = AuthErrorCodes.MISSING_TOKEN
    message = "Authentication token is required"
    status_code = 401


class InvalidTokenError(AuthError):
    code = AuthErrorCodes.INVALID_TOKEN
    message = "Invalid or expired access token"
    status_code = 401


class InvalidResetTokenError(AuthError):
    code = AuthErrorCodes.INVALID_RESET_TOKEN
    message = "Invalid or expired password reset token"
    status_code = 400


class TodoNotFoundError(AuthError):
    code = AuthErrorCodes.TODO_NOT_FOUND
    message = "To-do not found"
    status_code = 404


class ValidationFailedError(AuthError):
    code = AuthErrorCodes.VALIDATION_ERROR
    message = "Request validation failed"
    status_code = 400

    def __init__(self, details: List[Dict[str, str]], message: Optional[str] = None):
        self.details = details
        if message is None and details:
            message = details[0]["message"]
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["details"] = self.details
        return data
