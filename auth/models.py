"""
auth/models.py -- Domain dataclasses for authentication and sessions.

Pattern: Data class (pure data container). The session shape is an explicit
type validated where it enters the system (auth/tokens.decode_token), not a
loose dict that handlers poke at.

SessionToken is frozen. Enrichment and refresh produce a new token via
dataclasses.replace(); nothing edits a token in place.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from orgs.models import Role


@dataclass(frozen=True)
class Identity:
    """An authenticated principal. Built once by the credential verifier."""

    id: str
    email: str
    display_name: str


@dataclass(frozen=True)
class SessionToken:
    """Portable, time-bounded proof of identity plus organization context.

    organization_id and role are None until the token is enriched. When
    organization_id is set, subject_id holds a membership in that
    organization with the given role.
    """

    subject_id: str
    email: str
    name: str
    issued_at: datetime
    expires_at: datetime
    organization_id: Optional[str] = None
    role: Optional[Role] = None

    @property
    def has_organization(self) -> bool:
        return self.organization_id is not None and self.role is not None

    def with_organization(self, organization_id: str, role: Role) -> SessionToken:
        """Return a re-issued token carrying the given organization context.

        Only the organization fields change. subject_id, issued_at and
        expires_at are carried over so refresh never extends a session.
        """
        return replace(self, organization_id=organization_id, role=role)


@dataclass(frozen=True)
class Session:
    """The per-request view of a session token.

    refreshed is True when the guard re-issued the token during this request
    (repair or explicit update); the transport layer must hand the new token
    back to the client. repair_attempted stops a single request from calling
    the provisioner more than once.
    """

    token: SessionToken
    refreshed: bool = False
    repair_attempted: bool = False

    @property
    def user_id(self) -> str:
        return self.token.subject_id

    @property
    def organization_id(self) -> Optional[str]:
        return self.token.organization_id

    @property
    def role(self) -> Optional[Role]:
        return self.token.role

    def to_payload(self) -> dict:
        """Return the session payload exposed to request handlers."""
        return {
            "user": {
                "id": self.token.subject_id,
                "organizationId": self.token.organization_id,
                "role": self.token.role.value if self.token.role is not None else None,
                "email": self.token.email,
                "name": self.token.name,
            }
        }
