"""
auth/dependencies.py -- FastAPI Depends() helpers for session authorization.

Token transport, checked in priority order:
  1. "session_token" cookie -- set by POST /auth/login.
  2. Authorization: Bearer <token> header -- API clients.

get_session()    -- valid session (repaired if possible), else 401 no_session.
require_auth()   -- session with organization context, else 401.
require_role(r)  -- require_auth plus role check, else 403 insufficient_role.

When the guard re-issues a token during the request (organization context
repaired), the new token is written back as the session cookie.

These functions raise auth.errors exceptions; api/main.py maps them to HTTP
responses.

Layer rule: no imports from api/. fastapi is allowed here because this module
is part of the dependency injection system.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Request, Response

from auth.guard import SessionGuard
from auth.models import Session
from auth.tokens import SESSION_COOKIE, encode_token, set_session_cookie
from orgs.models import Role


def get_raw_token(request: Request) -> Optional[str]:
    """Return the session token from the cookie or Bearer header, or None."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token or None


def _write_back(response: Response, session: Session) -> Session:
    if session.refreshed:
        set_session_cookie(response, encode_token(session.token), session.token)
    return session


def get_session(request: Request, response: Response) -> Session:
    """Require a valid session token.

    Use as a FastAPI dependency:
        @router.get("/whoami")
        def route(session: Session = Depends(get_session)): ...
    """
    guard: SessionGuard = request.app.state.guard
    return _write_back(response, guard.require_session(get_raw_token(request)))


def require_auth(request: Request, response: Response) -> Session:
    """Require a valid session with organization context."""
    guard: SessionGuard = request.app.state.guard
    session = guard.require_organization_context(guard.require_session(get_raw_token(request)))
    return _write_back(response, session)


def require_role(required: Role) -> Callable[[Request, Response], Session]:
    """Build a dependency that requires at least `required` in the session's organization.

        @router.post("/settings", dependencies=[Depends(require_role(Role.admin))])
    """

    def dependency(request: Request, response: Response) -> Session:
        guard: SessionGuard = request.app.state.guard
        return guard.check_role(require_auth(request, response), required)

    dependency.__name__ = f"require_{required.value}"
    return dependency
