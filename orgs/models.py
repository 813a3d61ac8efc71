"""
orgs/models.py -- Domain types for organizations and memberships.

Role and Plan are the data-model boundary for their values: constructing
Role("superuser") or Plan("gold") raises ValueError, so code that holds a Role
never needs to re-check it. The store's row mappers and the token decoder
parse through these enums.

The dataclasses are pure data containers. Persistence lives in orgs/store.py,
provisioning rules in orgs/provisioner.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Membership role, totally ordered by rank: owner > admin > member > viewer."""

    owner = "owner"
    admin = "admin"
    member = "member"
    viewer = "viewer"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK: dict[Role, int] = {
    Role.owner: 3,
    Role.admin: 2,
    Role.member: 1,
    Role.viewer: 0,
}


class Plan(str, Enum):
    """Billing plan. Carried as opaque data; nothing in this codebase enforces it."""

    free = "free"
    pro = "pro"
    enterprise = "enterprise"


@dataclass(frozen=True)
class Organization:
    """A tenant workspace. Never deleted automatically.

    name is 1-255 characters; the API layer rejects anything else before it
    reaches the store. created_at is an ISO 8601 UTC string set on insert.
    """

    id: str
    name: str
    created_at: str
    plan: Optional[Plan] = None


@dataclass(frozen=True)
class Membership:
    """The (identity, organization, role) relation. Unique per identity/organization pair."""

    identity_id: str
    organization_id: str
    role: Role
    created_at: str = ""


@dataclass(frozen=True)
class MemberOrganization:
    """An organization as seen by one of its members."""

    organization: Organization
    role: Role
