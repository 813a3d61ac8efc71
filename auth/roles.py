"""
auth/roles.py -- Role resolution.

has_permission() is the only place that decides whether one role satisfies
another. It compares ranks in the fixed order owner > admin > member > viewer
and does no I/O.
"""

from __future__ import annotations

from orgs.models import Role


def has_permission(actual: Role, required: Role) -> bool:
    """Return True if a member holding `actual` may perform an action needing `required`."""
    return actual.rank >= required.rank


def parse_role(value: str | Role) -> Role:
    """Parse a role name. Raises ValueError for anything outside the four known roles."""
    return value if isinstance(value, Role) else Role(value)
