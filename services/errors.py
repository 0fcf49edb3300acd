"""
Error kinds raised by the session/credential services.

Every error carries a machine readable ``code`` and the HTTP ``status`` the
API layer answers with; api.errors turns them into the uniform envelope.
"""
from __future__ import annotations

from utils.security import ExpiredToken, InvalidSignature, TokenError  # noqa: F401


class ServiceError(Exception):
    code = "SERVICE_ERROR"
    status = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Conflict(ServiceError):
    code = "CONFLICT"
    status = 409
    default_message = "User with this email or username already exists"


class InvalidCredentials(ServiceError):
    code = "INVALID_CREDENTIALS"
    status = 401
    default_message = "Invalid credentials"


class InvalidRefreshToken(ServiceError):
    code = "INVALID_REFRESH_TOKEN"
    status = 401
    default_message = "Invalid refresh token"


class InvalidAccessToken(ServiceError):
    code = "INVALID_ACCESS_TOKEN"
    status = 401
    default_message = "Invalid access token"


class ValidationFailed(ServiceError):
    code = "VALIDATION_ERROR"
    status = 422
    default_message = "Validation failed"


