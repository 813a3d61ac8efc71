"""
API request and response models for the workspace REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
separate from the dataclasses in orgs/models.py and auth/models.py, which own
the domain representation. Route handlers map between the two.

Field names on the wire follow the session payload contract (camelCase where
the contract says so, e.g. organizationId, createdAt).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from orgs.models import MemberOrganization, Organization, Plan, Role

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    Fields are optional here so a missing email or password is an ordinary
    401 from the credential verifier rather than a 400.
    """

    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class OrganizationCreate(BaseModel):
    """Request body for POST /api/v1/organizations."""

    name: str = Field(min_length=1, max_length=255)
    plan: Optional[Plan] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class SessionUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    organizationId: Optional[str]
    role: Optional[Role]
    email: str
    name: str


class SessionPayload(BaseModel):
    """Session shape every protected handler may rely on."""

    model_config = ConfigDict(frozen=True)

    user: SessionUser


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: SessionUser


class OrganizationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    plan: Optional[Plan]
    createdAt: str
    role: Optional[Role] = None

    @classmethod
    def from_domain(cls, org: Organization, role: Optional[Role] = None) -> "OrganizationResponse":
        return cls(id=org.id, name=org.name, plan=org.plan, createdAt=org.created_at, role=role)

    @classmethod
    def from_member(cls, member: MemberOrganization) -> "OrganizationResponse":
        return cls.from_domain(member.organization, member.role)


class OrganizationListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    organizations: list[OrganizationResponse]


class OrganizationCreatedResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    organization: OrganizationResponse


class FieldViolation(BaseModel):
    """One violated field constraint in a 400 response."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: str
    code: Optional[str] = None
    details: Optional[list[FieldViolation]] = None


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
