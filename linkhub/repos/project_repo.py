from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from linkhub.models.project import (
    Domain,
    DomainStatus,
    Project,
    ProjectMembership,
    ProjectWithDomains,
)


class ProjectConflictError(Exception):
    """The store rejected a write because a unique key is already taken."""


class SlugTakenError(ProjectConflictError):
    pass


class DomainTakenError(ProjectConflictError):
    pass


class ProjectRepo(Protocol):
    async def get_by_slug(self, slug: str) -> Project | None: ...
    async def domain_exists(self, domain: str) -> bool: ...
    async def get_domain(self, domain: str) -> Domain | None: ...
    async def create(
        self, project: Project, owner_user_id: str, domain: str
    ) -> ProjectWithDomains: ...
    async def list_for_user(self, user_id: str) -> list[ProjectWithDomains]: ...
    async def set_domain_status(
        self, domain: str, status: DomainStatus
    ) -> Domain | None: ...
    async def list_domains_by_status(self, *statuses: DomainStatus) -> list[Domain]: ...


class InMemoryProjectRepo:
    """Dict-backed store used when DATABASE_URL is not configured.

    Slug and domain keys are exact, case-sensitive matches, the same as the
    default PostgreSQL collation.  create() checks and writes without
    awaiting anything in between, so it is atomic with respect to other
    coroutines on the loop.
    """

    def __init__(self) -> None:
        self._projects: dict[UUID, Project] = {}
        self._by_slug: dict[str, UUID] = {}
        self._domains: dict[str, Domain] = {}
        self._memberships: dict[tuple[UUID, str], ProjectMembership] = {}

    async def get_by_slug(self, slug: str) -> Project | None:
        project_id = self._by_slug.get(slug)
        return self._projects.get(project_id) if project_id else None

    async def domain_exists(self, domain: str) -> bool:
        return domain in self._domains

    async def get_domain(self, domain: str) -> Domain | None:
        return self._domains.get(domain)

    async def create(
        self, project: Project, owner_user_id: str, domain: str
    ) -> ProjectWithDomains:
        if project.slug in self._by_slug:
            raise SlugTakenError(project.slug)
        if domain in self._domains:
            raise DomainTakenError(domain)

        primary = Domain.new(slug=domain, project_id=project.id, primary=True)
        self._projects[project.id] = project
        self._by_slug[project.slug] = project.id
        self._domains[domain] = primary
        self._memberships[(project.id, owner_user_id)] = ProjectMembership(
            project_id=project.id, user_id=owner_user_id, role="owner"
        )
        return ProjectWithDomains(project=project, domains=(primary,))

    async def list_for_user(self, user_id: str) -> list[ProjectWithDomains]:
        project_ids = [pid for (pid, uid) in self._memberships if uid == user_id]
        return [
            ProjectWithDomains(
                project=self._projects[pid],
                domains=tuple(
                    d for d in self._domains.values() if d.project_id == pid
                ),
            )
            for pid in project_ids
        ]

    async def set_domain_status(
        self, domain: str, status: DomainStatus
    ) -> Domain | None:
        existing = self._domains.get(domain)
        if existing is None:
            return None
        updated = replace(existing, status=status)
        self._domains[domain] = updated
        return updated

    async def list_domains_by_status(self, *statuses: DomainStatus) -> list[Domain]:
        return [d for d in self._domains.values() if d.status in statuses]
