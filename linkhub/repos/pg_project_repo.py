"""PostgreSQL implementation of ProjectRepo."""

from __future__ import annotations

from collections import defaultdict
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linkhub.db.tables import (
    DOMAIN_UNIQUE,
    SLUG_UNIQUE,
    DomainRow,
    ProjectRow,
    ProjectUserRow,
)
from linkhub.models.project import Domain, DomainStatus, Project, ProjectWithDomains
from linkhub.repos.project_repo import DomainTakenError, SlugTakenError


class PgProjectRepo:
    """Satisfies the ProjectRepo Protocol using PostgreSQL via SQLAlchemy.

    Each operation opens its own short-lived session.  The provisioning flow
    runs lookups and the create concurrently, and an AsyncSession must not
    be shared between concurrent awaits.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_slug(self, slug: str) -> Project | None:
        async with self._session_factory() as session:
            stmt = select(ProjectRow).where(ProjectRow.slug == slug)
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _row_to_project(row) if row is not None else None

    async def domain_exists(self, domain: str) -> bool:
        async with self._session_factory() as session:
            stmt = select(DomainRow.id).where(DomainRow.slug == domain)
            return (await session.execute(stmt)).first() is not None

    async def get_domain(self, domain: str) -> Domain | None:
        async with self._session_factory() as session:
            stmt = select(DomainRow).where(DomainRow.slug == domain)
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _row_to_domain(row) if row is not None else None

    async def create(
        self, project: Project, owner_user_id: str, domain: str
    ) -> ProjectWithDomains:
        primary = Domain.new(slug=domain, project_id=project.id, primary=True)
        async with self._session_factory() as session:
            session.add(
                ProjectRow(
                    id=project.id,
                    name=project.name,
                    slug=project.slug,
                    plan=project.plan,
                    billing_cycle_start=project.billing_cycle_start,
                    created_at=project.created_at,
                )
            )
            # Flush the project first so the FK targets exist.
            try:
                await session.flush()
                session.add_all(
                    [
                        ProjectUserRow(
                            project_id=project.id,
                            user_id=owner_user_id,
                            role="owner",
                        ),
                        DomainRow(
                            id=primary.id,
                            slug=primary.slug,
                            project_id=project.id,
                            primary=True,
                            status=primary.status,
                        ),
                    ]
                )
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                message = str(exc.orig)
                if SLUG_UNIQUE in message:
                    raise SlugTakenError(project.slug) from exc
                if DOMAIN_UNIQUE in message:
                    raise DomainTakenError(domain) from exc
                raise
        return ProjectWithDomains(project=project, domains=(primary,))

    async def list_for_user(self, user_id: str) -> list[ProjectWithDomains]:
        async with self._session_factory() as session:
            stmt = (
                select(ProjectRow)
                .join(ProjectUserRow, ProjectUserRow.project_id == ProjectRow.id)
                .where(ProjectUserRow.user_id == user_id)
                .order_by(ProjectRow.created_at)
            )
            projects = (await session.execute(stmt)).scalars().all()
            if not projects:
                return []

            domain_stmt = select(DomainRow).where(
                DomainRow.project_id.in_([p.id for p in projects])
            )
            by_project: dict[UUID, list[Domain]] = defaultdict(list)
            for row in (await session.execute(domain_stmt)).scalars():
                by_project[row.project_id].append(_row_to_domain(row))

        return [
            ProjectWithDomains(
                project=_row_to_project(p), domains=tuple(by_project[p.id])
            )
            for p in projects
        ]

    async def set_domain_status(
        self, domain: str, status: DomainStatus
    ) -> Domain | None:
        async with self._session_factory() as session:
            stmt = (
                update(DomainRow)
                .where(DomainRow.slug == domain)
                .values(status=status)
                .returning(DomainRow)
            )
            row = (await session.execute(stmt)).scalar_one_or_none()
            await session.commit()
            return _row_to_domain(row) if row is not None else None

    async def list_domains_by_status(self, *statuses: DomainStatus) -> list[Domain]:
        async with self._session_factory() as session:
            stmt = select(DomainRow).where(DomainRow.status.in_(statuses))
            return [_row_to_domain(r) for r in (await session.execute(stmt)).scalars()]


def _row_to_project(row: ProjectRow) -> Project:
    return Project(
        id=row.id,
        name=row.name,
        slug=row.slug,
        plan=row.plan or "free",
        billing_cycle_start=row.billing_cycle_start,
        created_at=row.created_at,
    )


def _row_to_domain(row: DomainRow) -> Domain:
    return Domain(
        id=row.id,
        slug=row.slug,
        project_id=row.project_id,
        primary=row.primary,
        status=row.status,  # type: ignore[arg-type]
    )
