"""
orgs/store.py -- SQLAlchemy Core persistence layer for organizations and memberships.

Pattern: Repository + Data Mapper. OrganizationStore is the repository; the
_row_to_* functions are the mappers. Nothing outside this module touches SQL.

Consistency guarantees:
  Atomic create: an organization and its owner membership are written in one
  engine.begin() transaction. If the request dies between the two inserts the
  transaction rolls back, so an organization without an owner is never
  visible.

  One default workspace per identity: default_organizations.identity_id is a
  primary key. create_default_organization() writes that row in the same
  transaction as the organization, so of two concurrent first-time
  provisioners exactly one commits. The loser gets IntegrityError, its whole
  transaction is rolled back, and ProvisioningConflict is raised for the
  provisioner to resolve by re-reading.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = OrganizationStore()                               # SQLite default
    store = OrganizationStore("postgresql://user:pw@host/db") # PostgreSQL
    org = store.create_organization("Acme", owner_id="1", plan=Plan.pro)
    orgs = store.list_organizations("1")
    store.close()
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    event,
    select,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.config import get_settings
from orgs.models import MemberOrganization, Membership, Organization, Plan, Role

logger = logging.getLogger("workspace.orgs")


class ProvisioningConflict(Exception):
    """Another writer already provisioned a default organization for this identity."""

    def __init__(self, identity_id: str) -> None:
        super().__init__(f"default organization already provisioned for identity {identity_id!r}")
        self.identity_id = identity_id


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_organizations = Table(
    "organizations",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("plan", String(20)),  # NULL = no plan set
    Column("created_at", String(32), nullable=False),
    CheckConstraint("length(name) BETWEEN 1 AND 255", name="ck_organizations_name_length"),
    CheckConstraint("plan IS NULL OR plan IN ('free', 'pro', 'enterprise')", name="ck_organizations_plan"),
)

_memberships = Table(
    "memberships",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("identity_id", String(64), nullable=False, index=True),
    Column("organization_id", String(36), ForeignKey("organizations.id"), nullable=False),
    Column("role", String(20), nullable=False, server_default="member"),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("identity_id", "organization_id", name="uq_membership_identity_org"),
    CheckConstraint("role IN ('owner', 'admin', 'member', 'viewer')", name="ck_memberships_role"),
)

_default_organizations = Table(
    "default_organizations",
    metadata,
    Column("identity_id", String(64), primary_key=True),
    Column("organization_id", String(36), ForeignKey("organizations.id"), nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind the provisioning writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    # Fixed microsecond precision keeps ISO strings lexicographically sortable.
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrganizationStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync dependencies and routes in a thread pool, so the
            # same pooled connection may be used from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_organization(self, name: str, owner_id: str, plan: Optional[Plan] = None) -> Organization:
        """Create an organization with owner_id as its owner, in one transaction."""
        with self.engine.begin() as conn:
            org = _insert_organization(conn, name, owner_id, plan)
        logger.info("Created organization %s for identity %s", org.id, owner_id)
        return org

    def create_default_organization(self, name: str, owner_id: str) -> Organization:
        """Create owner_id's default organization, or raise ProvisioningConflict.

        The organization, the owner membership, and the default_organizations
        row commit together or not at all.
        """
        try:
            with self.engine.begin() as conn:
                org = _insert_organization(conn, name, owner_id, None)
                conn.execute(
                    _default_organizations.insert().values(
                        identity_id=owner_id,
                        organization_id=org.id,
                        created_at=org.created_at,
                    )
                )
        except IntegrityError as exc:
            # Only a committed default row for this identity means another writer won.
            if self.get_default_organization_id(owner_id) is None:
                raise
            raise ProvisioningConflict(owner_id) from exc
        logger.info("Provisioned default organization %s for identity %s", org.id, owner_id)
        return org

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_organizations(self, identity_id: str) -> list[MemberOrganization]:
        """Return every organization identity_id belongs to, in creation order.

        Ties on created_at fall back to membership insertion order, so the
        first element is stable across calls.
        """
        stmt = (
            select(_organizations, _memberships.c.role)
            .join(_memberships, _memberships.c.organization_id == _organizations.c.id)
            .where(_memberships.c.identity_id == identity_id)
            .order_by(_organizations.c.created_at, _memberships.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [MemberOrganization(organization=_row_to_organization(r), role=Role(r.role)) for r in rows]

    def get_organization(self, organization_id: str) -> Optional[Organization]:
        """Fetch a single organization by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_organizations.select().where(_organizations.c.id == organization_id)).fetchone()
        return _row_to_organization(row) if row is not None else None

    def get_membership(self, identity_id: str, organization_id: str) -> Optional[Membership]:
        """Return identity_id's membership in organization_id, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _memberships.select().where(
                    (_memberships.c.identity_id == identity_id) & (_memberships.c.organization_id == organization_id)
                )
            ).fetchone()
        return _row_to_membership(row) if row is not None else None

    def get_default_organization_id(self, identity_id: str) -> Optional[str]:
        """Return the organization recorded as identity_id's default workspace, if any."""
        with self.engine.connect() as conn:
            return conn.execute(
                select(_default_organizations.c.organization_id).where(
                    _default_organizations.c.identity_id == identity_id
                )
            ).scalar()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Organization store health check failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


def _insert_organization(conn: Connection, name: str, owner_id: str, plan: Optional[Plan]) -> Organization:
    org = Organization(id=str(uuid.uuid4()), name=name, plan=plan, created_at=_now_iso())
    conn.execute(
        _organizations.insert().values(
            id=org.id,
            name=org.name,
            plan=plan.value if plan is not None else None,
            created_at=org.created_at,
        )
    )
    conn.execute(
        _memberships.insert().values(
            identity_id=owner_id,
            organization_id=org.id,
            role=Role.owner.value,
            created_at=org.created_at,
        )
    )
    return org


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_organization(row) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        plan=Plan(row.plan) if row.plan is not None else None,
        created_at=row.created_at,
    )


def _row_to_membership(row) -> Membership:
    return Membership(
        identity_id=row.identity_id,
        organization_id=row.organization_id,
        role=Role(row.role),
        created_at=row.created_at,
    )
