"""
api/routes/v1/auth.py -- Sign-in and session endpoints.

Routes:
  POST /api/v1/auth/login    -- verify -> enrich -> issue; sets session cookie
  POST /api/v1/auth/logout   -- clears the session cookie
  GET  /api/v1/auth/session  -- current session payload (repairs org context)
  POST /api/v1/auth/session  -- explicit "update": re-enrich and re-issue the token

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT).
  A failed login returns the same generic 401 for a wrong email and a wrong
  password, and never sets a cookie or returns a token.
  Cache-Control: no-store on responses that carry a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, SessionPayload, SessionUser
from auth.dependencies import get_session
from auth.issuer import UPDATE_TRIGGER, TokenIssuer
from auth.models import Session, SessionToken
from auth.tokens import clear_session_cookie, encode_token, set_session_cookie
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/login:   public -- sign-in must be unauthenticated
# - POST /api/v1/auth/logout:  public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/session: requires a valid token (get_session)
# - POST /api/v1/auth/session: requires a valid token (get_session)
router = APIRouter()


@limiter.limit(get_settings().login_rate_limit)
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return and set the session token.

    InvalidCredentials propagates to the AuthorizationError handler, which
    answers 401 without a token.
    """
    issuer: TokenIssuer = request.app.state.issuer
    token = issuer.sign_in(body.email, body.password)
    return _token_response(token)


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the session cookie."""
    resp = JSONResponse(content={"success": True})
    clear_session_cookie(resp)
    return resp


@router.get("/auth/session", response_model=SessionPayload)
def read_session(session: Session = Depends(get_session)) -> SessionPayload:
    """Return the session payload. Organization fields are null if repair failed."""
    return SessionPayload.model_validate(session.to_payload())


@router.post("/auth/session", response_model=LoginResponse)
def update_session(request: Request, session: Session = Depends(get_session)) -> JSONResponse:
    """Re-run enrichment on client request and re-issue the token.

    issued_at and expires_at are carried over from the current token.
    """
    issuer: TokenIssuer = request.app.state.issuer
    token = issuer.refresh(session.token, trigger=UPDATE_TRIGGER)
    return _token_response(token)


def _token_response(token: SessionToken) -> JSONResponse:
    raw = encode_token(token)
    payload = Session(token=token).to_payload()
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=raw,
            expires_at=token.expires_at,
            user=SessionUser.model_validate(payload["user"]),
        ).model_dump(mode="json"),
    )
    set_session_cookie(resp, raw, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp
