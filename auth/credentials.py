"""
auth/credentials.py -- Credential verification for the configured principal.

This deployment signs in exactly one identity, configured through
ADMIN_EMAIL / ADMIN_PASSWORD (or ADMIN_PASSWORD_HASH) / ADMIN_NAME / ADMIN_ID.
CredentialVerifier is the single seam for replacing that with a
multi-identity store: callers depend only on authenticate(email, password).

Passwords: bcrypt used directly (no passlib wrapper). The plaintext
ADMIN_PASSWORD is hashed once at construction so the check below is the same
bcrypt comparison a stored hash would get.

Timing: authenticate() always runs one bcrypt check, against _DUMMY_HASH when
the email does not match, so response time does not reveal whether the email
was right.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

import bcrypt

from auth.models import Identity
from core.config import Settings

logger = logging.getLogger("workspace.auth")


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first failed login is not measurably
# faster than later ones.
_DUMMY_HASH: str = hash_password("workspace_timing_dummy")


class CredentialVerifier:
    """Authenticate sign-in attempts against one configured principal."""

    def __init__(
        self,
        email: str,
        password_hash: str,
        identity_id: str = "1",
        display_name: str = "Admin",
    ) -> None:
        self._identity = Identity(id=identity_id, email=email, display_name=display_name)
        self._password_hash = password_hash

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialVerifier:
        password_hash = settings.admin_password_hash or hash_password(settings.admin_password)
        return cls(
            email=settings.admin_email,
            password_hash=password_hash,
            identity_id=settings.admin_id,
            display_name=settings.admin_name,
        )

    def authenticate(self, email: Optional[str], password: Optional[str]) -> Optional[Identity]:
        """Return the Identity for an exact email/password match, None otherwise."""
        if not email or not password:
            return None
        email_ok = hmac.compare_digest(email.encode("utf-8"), self._identity.email.encode("utf-8"))
        # Equalize timing -- run bcrypt even when the email is wrong.
        password_ok = verify_password(password, self._password_hash if email_ok else _DUMMY_HASH)
        if email_ok and password_ok:
            return self._identity
        logger.info("Rejected sign-in attempt")
        return None
