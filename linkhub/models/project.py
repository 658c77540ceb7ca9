from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

DomainStatus = Literal["pending", "registered", "failed"]


@dataclass(frozen=True, slots=True)
class Project:
    """A tenant workspace.

    billing_cycle_start is the day of month (1-31) captured at creation.
    It carries no month or year, so a project created on the 31st has no
    defined cycle start in shorter months; whatever bills against it needs
    an explicit policy for that case.
    """

    id: UUID
    name: str
    slug: str
    billing_cycle_start: int
    created_at: datetime
    plan: str = "free"  # free|pro|enterprise

    @staticmethod
    def new(*, name: str, slug: str, now: datetime | None = None) -> Project:
        now = now or datetime.now(UTC)
        return Project(
            id=uuid4(),
            name=name,
            slug=slug,
            billing_cycle_start=now.day,
            created_at=now,
        )


@dataclass(frozen=True, slots=True)
class Domain:
    id: UUID
    slug: str  # the DNS name
    project_id: UUID
    primary: bool = False
    status: DomainStatus = "pending"

    @staticmethod
    def new(*, slug: str, project_id: UUID, primary: bool = False) -> Domain:
        return Domain(id=uuid4(), slug=slug, project_id=project_id, primary=primary)


@dataclass(frozen=True, slots=True)
class ProjectMembership:
    project_id: UUID
    user_id: str
    role: str  # owner


@dataclass(frozen=True, slots=True)
class ProjectWithDomains:
    project: Project
    domains: tuple[Domain, ...] = ()

    @property
    def primary_domain(self) -> Domain | None:
        return next((d for d in self.domains if d.primary), None)
