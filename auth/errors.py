"""
auth/errors.py -- Authorization failures raised by the session guard.

Every failure carries the HTTP status class it maps to and a stable
machine-readable code. api/main.py turns any AuthorizationError into a JSON
error response; nothing else in the request path needs to know the mapping.

  Unauthorized        401  no_session, no_organization
  InvalidCredentials  401  invalid_credentials (sign-in only)
  Forbidden           403  insufficient_role
"""

from __future__ import annotations


class AuthorizationError(Exception):
    status_code: int = 401
    code: str = "unauthorized"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class Unauthorized(AuthorizationError):
    status_code = 401

    @classmethod
    def no_session(cls) -> Unauthorized:
        return cls("Unauthorized: No active session", code="no_session")

    @classmethod
    def no_organization(cls) -> Unauthorized:
        return cls("Unauthorized: No organization context", code="no_organization")


class InvalidCredentials(Unauthorized):
    code = "invalid_credentials"

    def __init__(self) -> None:
        super().__init__("Invalid email or password.")


class Forbidden(AuthorizationError):
    status_code = 403
    code = "insufficient_role"
