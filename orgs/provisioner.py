"""
orgs/provisioner.py -- Guarantee every identity has a home workspace.

ensure_default_organization() is idempotent and safe to call on every sign-in
and every session repair:

  1. Identity already belongs to an organization -> return the earliest one
     (creation order, see OrganizationStore.list_organizations). Nothing is
     written.
  2. Otherwise create "<name>'s Workspace" with the identity as owner.
  3. If a concurrent call won the race, the store raises ProvisioningConflict
     after rolling back this call's writes. Re-read and return the winner's
     organization. The conflict never reaches the caller.

Store failures (SQLAlchemyError) propagate unchanged.
"""

from __future__ import annotations

import logging
from typing import Optional

from orgs.models import Organization
from orgs.store import OrganizationStore, ProvisioningConflict

logger = logging.getLogger("workspace.orgs")

_FALLBACK_NAME = "My Workspace"


def workspace_name(display_name_hint: Optional[str]) -> str:
    """Return the default workspace name for an identity's display name."""
    hint = (display_name_hint or "").strip()
    if not hint:
        return _FALLBACK_NAME
    # Keep the generated name inside the 255-char organization name limit.
    return f"{hint[:243]}'s Workspace"


class OrganizationProvisioner:
    """Finds or creates the default workspace for an identity."""

    def __init__(self, store: OrganizationStore) -> None:
        self.store = store

    def ensure_default_organization(self, identity_id: str, display_name_hint: Optional[str] = None) -> Organization:
        existing = self.store.list_organizations(identity_id)
        if existing:
            return existing[0].organization

        try:
            return self.store.create_default_organization(workspace_name(display_name_hint), identity_id)
        except ProvisioningConflict:
            logger.info("Concurrent provisioning for identity %s; using the winning organization", identity_id)
            return self._winner(identity_id)

    def _winner(self, identity_id: str) -> Organization:
        org_id = self.store.get_default_organization_id(identity_id)
        if org_id is not None:
            org = self.store.get_organization(org_id)
            if org is not None:
                return org
        # The conflicting row committed before ours, so a membership normally exists.
        existing = self.store.list_organizations(identity_id)
        if not existing:
            raise RuntimeError(f"provisioning conflict for identity {identity_id!r} but no winning organization found")
        return existing[0].organization
