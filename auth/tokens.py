"""
auth/tokens.py -- Session token minting, JWT encoding, and cookie transport.

Security design decisions:
  JWT: python-jose with HS256, signed with SECRET_KEY. Claims:
       sub, email, name, iat, exp, and -- once enriched -- org_id and role.
       decode_token() returns None on any failure (bad signature, expired,
       missing or malformed claim, unknown role); the guard turns that into
       Unauthorized(NoSession).

  Lifetime: exp = iat + 30 days, fixed at mint time. Re-issuing an enriched
       token copies iat/exp from the original, so a session never slides.

  SECRET_KEY: sourced from core.config.get_settings(), which validates length
       and refuses to start without one outside debug mode.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from auth.models import Identity, SessionToken
from auth.roles import parse_role
from core.config import get_settings
from orgs.models import Role

logger = logging.getLogger("workspace.auth")

_settings = get_settings()

_ALGORITHM = "HS256"

SESSION_MAX_AGE = timedelta(days=30)
SESSION_COOKIE = "session_token"


# ---------------------------------------------------------------------------
# Mint
# ---------------------------------------------------------------------------


def mint_token(identity: Identity, now: Optional[datetime] = None) -> SessionToken:
    """Create a base (unenriched) token for a freshly authenticated identity."""
    issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    return SessionToken(
        subject_id=identity.id,
        email=identity.email,
        name=identity.display_name,
        issued_at=issued_at,
        expires_at=issued_at + SESSION_MAX_AGE,
    )


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def encode_token(token: SessionToken) -> str:
    """Serialize a SessionToken as a signed JWT."""
    payload: dict = {
        "sub": token.subject_id,
        "email": token.email,
        "name": token.name,
        "iat": int(token.issued_at.timestamp()),
        "exp": int(token.expires_at.timestamp()),
    }
    if token.has_organization:
        payload["org_id"] = token.organization_id
        payload["role"] = token.role.value
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_token(raw: str) -> SessionToken | None:
    """Verify a JWT and parse it into a SessionToken. Returns None on any failure."""
    try:
        payload = jwt.decode(raw, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None

    subject_id = payload.get("sub")
    if not isinstance(subject_id, str) or not subject_id:
        return None
    try:
        issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError):
        return None

    org_id = payload.get("org_id")
    role: Optional[Role] = None
    if org_id is not None:
        try:
            role = parse_role(payload.get("role"))
        except ValueError:
            logger.warning("Rejected token with unknown role for subject %s", subject_id)
            return None

    return SessionToken(
        subject_id=subject_id,
        email=payload.get("email") or "",
        name=payload.get("name") or "",
        issued_at=issued_at,
        expires_at=expires_at,
        organization_id=org_id,
        role=role,
    )


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, raw_token: str, token: SessionToken) -> None:
    """Write the session JWT as an httpOnly cookie that expires with the token.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST (CSRF mitigation).
    secure: HTTPS-only when SECURE_COOKIES=true.
    """
    max_age = max(int((token.expires_at - datetime.now(timezone.utc)).total_seconds()), 0)
    response.set_cookie(
        SESSION_COOKIE,
        value=raw_token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=max_age,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(SESSION_COOKIE)
