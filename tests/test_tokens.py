"""Unit tests for auth/tokens.py -- minting, JWT round trips, and rejection of bad tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.models import Identity
from auth.tokens import SESSION_MAX_AGE, decode_token, encode_token, mint_token
from core.config import get_settings
from orgs.models import Role

IDENTITY = Identity(id="1", email="admin@x.com", display_name="Admin")


def _sign(payload: dict) -> str:
    return jwt.encode(payload, get_settings().secret_key, algorithm="HS256")


def _claims(**overrides) -> dict:
    now = int(datetime.now(timezone.utc).timestamp())
    claims = {"sub": "1", "email": "admin@x.com", "name": "Admin", "iat": now, "exp": now + 3600}
    claims.update(overrides)
    return {k: v for k, v in claims.items() if v is not None}


class TestMint:
    def test_minted_token_has_no_organization(self) -> None:
        token = mint_token(IDENTITY)
        assert token.subject_id == "1"
        assert token.organization_id is None
        assert token.role is None
        assert not token.has_organization

    def test_expiry_is_thirty_days_after_issue(self) -> None:
        now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        token = mint_token(IDENTITY, now=now)
        assert token.issued_at == now
        assert token.expires_at == now + timedelta(days=30)
        assert SESSION_MAX_AGE == timedelta(days=30)

    def test_with_organization_keeps_subject_and_times(self) -> None:
        token = mint_token(IDENTITY)
        enriched = token.with_organization("org-1", Role.owner)
        assert enriched is not token
        assert (enriched.subject_id, enriched.issued_at, enriched.expires_at) == (
            token.subject_id,
            token.issued_at,
            token.expires_at,
        )
        assert (enriched.organization_id, enriched.role) == ("org-1", Role.owner)
        assert token.organization_id is None


class TestEncodeDecode:
    def test_enriched_token_survives_transport(self) -> None:
        token = mint_token(IDENTITY).with_organization("org-1", Role.admin)
        decoded = decode_token(encode_token(token))
        assert decoded == token

    def test_unenriched_token_decodes_without_organization(self) -> None:
        decoded = decode_token(encode_token(mint_token(IDENTITY)))
        assert decoded is not None
        assert decoded.organization_id is None
        assert decoded.role is None

    def test_expired_token_rejected(self) -> None:
        stale = mint_token(IDENTITY, now=datetime.now(timezone.utc) - timedelta(days=31))
        assert decode_token(encode_token(stale)) is None

    def test_tampered_payload_rejected(self) -> None:
        """A payload from one token paired with another token's signature must not verify."""
        header, _payload, signature = encode_token(mint_token(IDENTITY)).split(".")
        other = Identity(id="2", email="intruder@x.com", display_name="Intruder")
        _header, forged_payload, _sig = encode_token(mint_token(other).with_organization("org-1", Role.owner)).split(".")
        assert decode_token(f"{header}.{forged_payload}.{signature}") is None

    def test_foreign_key_rejected(self) -> None:
        raw = jwt.encode(_claims(), "x" * 64, algorithm="HS256")
        assert decode_token(raw) is None

    @pytest.mark.parametrize("raw", ["", "not-a-jwt", "a.b.c"])
    def test_garbage_rejected(self, raw: str) -> None:
        assert decode_token(raw) is None

    def test_unknown_role_rejected(self) -> None:
        assert decode_token(_sign(_claims(org_id="org-1", role="superuser"))) is None

    def test_organization_without_role_rejected(self) -> None:
        assert decode_token(_sign(_claims(org_id="org-1"))) is None

    def test_missing_subject_rejected(self) -> None:
        claims = _claims()
        del claims["sub"]
        assert decode_token(_sign(claims)) is None
