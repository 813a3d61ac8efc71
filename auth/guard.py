"""
auth/guard.py -- Session guard used by every protected operation.

The guard takes the raw token string as an explicit argument; it never looks
up a "current request". auth/dependencies.py extracts the token from the
request and passes it in.

Consistency repair, evaluated on every session read:

    Valid              -> proceed
    MissingOrgContext  -> Repairing (TokenIssuer.refresh -> provisioner)
    Repairing          -> Valid   (token re-issued, Session.refreshed=True)
                       -> Failed  (Unauthorized no_organization)

Failed means the identity still has no membership after the repair. It
should not happen after a first successful sign-in. A store outage during
the repair is not Failed: SQLAlchemyError propagates and the request is
answered 500 internal_error.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from auth.errors import AuthorizationError, Forbidden, Unauthorized
from auth.issuer import TokenIssuer
from auth.models import Session
from auth.roles import has_permission
from auth.tokens import decode_token
from orgs.models import Role

logger = logging.getLogger("workspace.auth")


class SessionGuard:
    """Authorization checks over a raw session token, with one organization repair."""

    def __init__(self, issuer: TokenIssuer) -> None:
        self.issuer = issuer

    def require_session(self, raw_token: Optional[str]) -> Session:
        """Return the session for a valid, unexpired token. Raises Unauthorized(no_session).

        A token without organization context gets one repair attempt here; a
        failed repair is not an error at this stage (see
        require_organization_context).
        """
        token = decode_token(raw_token) if raw_token else None
        if token is None:
            raise Unauthorized.no_session()
        session = Session(token=token)
        if not token.has_organization:
            session = self._repair(session)
        return session

    def require_organization_context(self, session: Session) -> Session:
        """Return session with organization context. Raises Unauthorized(no_organization)."""
        if session.token.has_organization:
            return session
        if not session.repair_attempted:
            session = self._repair(session)
            if session.token.has_organization:
                return session
        logger.error("Identity %s has no organization", session.user_id)
        raise Unauthorized.no_organization()

    def require_role(self, raw_token: Optional[str], required: Role) -> Session:
        """Return the session if its role satisfies `required`. Raises Unauthorized or Forbidden."""
        session = self.require_organization_context(self.require_session(raw_token))
        return self.check_role(session, required)

    def check_role(self, session: Session, required: Role) -> Session:
        if not has_permission(session.role, required):
            raise Forbidden(f"Forbidden: {required.value} role required")
        return session

    # ------------------------------------------------------------------
    # Non-raising helpers
    # ------------------------------------------------------------------

    def has_role(self, raw_token: Optional[str], required: Role) -> bool:
        """Return True if the token's session satisfies `required`; False on any auth failure."""
        try:
            self.require_role(raw_token, required)
        except AuthorizationError:
            return False
        return True

    def current_organization_id(self, raw_token: Optional[str]) -> Optional[str]:
        """Return the session's organization id, or None if unauthenticated."""
        try:
            return self.require_session(raw_token).organization_id
        except AuthorizationError:
            return None

    # ------------------------------------------------------------------
    # Repair
    # ------------------------------------------------------------------

    def _repair(self, session: Session) -> Session:
        logger.warning("Session for %s missing organization context, reloading", session.user_id)
        token = self.issuer.refresh(session.token)
        return replace(
            session,
            token=token,
            refreshed=session.refreshed or token is not session.token,
            repair_attempted=True,
        )
