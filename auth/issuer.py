"""
auth/issuer.py -- Session token lifecycle: mint, enrich, refresh.

Token states:
  Minted    -- subject, email, name, iat, exp. Produced by sign-in.
  Enriched  -- organization_id and role filled in from the identity's default
               workspace (provisioned on demand).
  Refreshed -- the Minted -> Enriched step re-run, on an explicit "update"
               signal or on any read of a token without organization context.

Sign-in is an ordered pipeline of named stages, each called explicitly:

    verify -> enrich -> issue

verify short-circuits with InvalidCredentials. At sign-in only, a store
failure during enrich does not fail the pipeline: the token is issued
unenriched and the session guard repairs it on the next read. Outside
sign-in (refresh, session repair) store failures propagate and the request
fails with a 500.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from auth.credentials import CredentialVerifier
from auth.errors import InvalidCredentials
from auth.models import Identity, SessionToken
from auth.tokens import mint_token
from orgs.provisioner import OrganizationProvisioner
from orgs.store import OrganizationStore

logger = logging.getLogger("workspace.auth")

UPDATE_TRIGGER = "update"


class TokenIssuer:
    """Mints session tokens at sign-in and fills in organization context."""

    def __init__(
        self,
        verifier: CredentialVerifier,
        provisioner: OrganizationProvisioner,
        store: OrganizationStore,
    ) -> None:
        self.verifier = verifier
        self.provisioner = provisioner
        self.store = store

    # ------------------------------------------------------------------
    # Sign-in pipeline
    # ------------------------------------------------------------------

    def sign_in(self, email: Optional[str], password: Optional[str]) -> SessionToken:
        """Run verify -> enrich -> issue. Raises InvalidCredentials on a bad login."""
        identity = self.verify(email, password)
        token = mint_token(identity)
        try:
            token = self.enrich(token)
        except SQLAlchemyError:
            logger.exception("Failed to load organization context for %s at sign-in", token.subject_id)
        return self.issue(token)

    def verify(self, email: Optional[str], password: Optional[str]) -> Identity:
        identity = self.verifier.authenticate(email, password)
        if identity is None:
            raise InvalidCredentials()
        return identity

    def issue(self, token: SessionToken) -> SessionToken:
        if token.has_organization:
            logger.info(
                "Issued session for %s in organization %s (%s)",
                token.subject_id,
                token.organization_id,
                token.role.value,
            )
        else:
            logger.warning("Issued session for %s without organization context", token.subject_id)
        return token

    # ------------------------------------------------------------------
    # Enrichment / refresh
    # ------------------------------------------------------------------

    def enrich(self, token: SessionToken) -> SessionToken:
        """Return token re-issued with the identity's default organization and role.

        Returns the token unchanged if the membership cannot be read back.
        SQLAlchemyError from an unavailable store propagates.
        """
        org = self.provisioner.ensure_default_organization(token.subject_id, token.name)
        membership = self.store.get_membership(token.subject_id, org.id)
        if membership is None:
            logger.error("Identity %s has no membership in organization %s", token.subject_id, org.id)
            return token
        return token.with_organization(org.id, membership.role)

    def refresh(self, token: SessionToken, trigger: Optional[str] = None) -> SessionToken:
        """Apply the refresh rule evaluated on every token read.

        Enrich when organization context is missing or the client sent the
        "update" trigger; otherwise return the token untouched.
        """
        if token.has_organization and trigger != UPDATE_TRIGGER:
            return token
        return self.enrich(token)
