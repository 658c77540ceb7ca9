"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in linkhub/models/.
PgProjectRepo converts between rows and dataclasses.

The unique constraints on projects.slug and domains.slug are the real
guarantee that no two projects share a slug or a domain; the API's
pre-checks only exist to give a fast, friendly 422.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from linkhub.db.engine import Base

SLUG_UNIQUE = "uq_projects_slug"
DOMAIN_UNIQUE = "uq_domains_slug"


class ProjectRow(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Default collation: comparisons are exact and case-sensitive.
    slug: Mapped[str] = mapped_column(String(48), nullable=False)
    plan: Mapped[str] = mapped_column(
        String(32), nullable=False, default="free"
    )  # free|pro|enterprise
    billing_cycle_start: Mapped[int] = mapped_column(
        Integer, nullable=False
    )  # day of month at creation, 1-31
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Named so an IntegrityError can be attributed to slug vs domain.
    __table_args__ = (UniqueConstraint("slug", name=SLUG_UNIQUE),)


class DomainRow(Base):
    __tablename__ = "domains"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    slug: Mapped[str] = mapped_column(String(253), nullable=False)
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending"
    )  # pending|registered|failed

    __table_args__ = (UniqueConstraint("slug", name=DOMAIN_UNIQUE),)


class ProjectUserRow(Base):
    __tablename__ = "project_users"

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False)  # owner
