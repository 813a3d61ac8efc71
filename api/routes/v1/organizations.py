"""
api/routes/v1/organizations.py -- List and create organizations.

Routes:
  GET  /api/v1/organizations -- organizations the caller belongs to, creation order
  POST /api/v1/organizations -- create an organization owned by the caller

Both routes require a session with organization context (require_auth).
Body validation failures are answered 400 with one entry per violated field
by the RequestValidationError handler in api/main.py. The plan value is
stored and returned as-is; nothing here enforces plan limits.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import (
    OrganizationCreate,
    OrganizationCreatedResponse,
    OrganizationListResponse,
    OrganizationResponse,
)
from auth.dependencies import require_auth
from auth.models import Session
from orgs.models import Role
from orgs.store import OrganizationStore

# Auth policy:
# - GET  /api/v1/organizations: requires auth with organization context
# - POST /api/v1/organizations: requires auth with organization context
router = APIRouter()


@router.get("/organizations", response_model=OrganizationListResponse)
def list_organizations(request: Request, session: Session = Depends(require_auth)) -> OrganizationListResponse:
    store: OrganizationStore = request.app.state.store
    members = store.list_organizations(session.user_id)
    return OrganizationListResponse(organizations=[OrganizationResponse.from_member(m) for m in members])


@router.post("/organizations", response_model=OrganizationCreatedResponse, status_code=201)
def create_organization(
    request: Request,
    body: OrganizationCreate,
    session: Session = Depends(require_auth),
) -> OrganizationCreatedResponse:
    """Create an organization with the caller as owner."""
    store: OrganizationStore = request.app.state.store
    org = store.create_organization(body.name, session.user_id, body.plan)
    return OrganizationCreatedResponse(organization=OrganizationResponse.from_domain(org, Role.owner))
