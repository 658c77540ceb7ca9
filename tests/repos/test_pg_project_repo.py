"""PgProjectRepo.create() against a stand-in session.

The unique constraints are what actually keep slugs and domains exclusive
under concurrent creates, so the IntegrityError → conflict translation is
checked here without a database: the session raises what asyncpg would.
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError

from linkhub.db.tables import (
    DOMAIN_UNIQUE,
    SLUG_UNIQUE,
    DomainRow,
    ProjectRow,
    ProjectUserRow,
)
from linkhub.models.project import Project
from linkhub.repos.pg_project_repo import PgProjectRepo
from linkhub.repos.project_repo import DomainTakenError, SlugTakenError


def _unique_violation(constraint: str) -> IntegrityError:
    orig = Exception(
        f'duplicate key value violates unique constraint "{constraint}"'
    )
    return IntegrityError("INSERT", {}, orig)


class _FakeSession:
    def __init__(
        self,
        flush_error: Exception | None = None,
        commit_error: Exception | None = None,
    ) -> None:
        self.added: list[object] = []
        self.rolled_back = False
        self.committed = False
        self._flush_error = flush_error
        self._commit_error = commit_error

    async def __aenter__(self) -> _FakeSession:
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    def add(self, row: object) -> None:
        self.added.append(row)

    def add_all(self, rows: list[object]) -> None:
        self.added.extend(rows)

    async def flush(self) -> None:
        if self._flush_error is not None:
            raise self._flush_error

    async def commit(self) -> None:
        if self._commit_error is not None:
            raise self._commit_error
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True


def _repo(session: _FakeSession) -> PgProjectRepo:
    return PgProjectRepo(lambda: session)  # type: ignore[arg-type]


def _create(session: _FakeSession):
    project = Project.new(name="Acme", slug="acme")
    return asyncio.run(_repo(session).create(project, "user-1", "acme.com"))


def test_create_writes_project_membership_and_domain() -> None:
    session = _FakeSession()
    created = _create(session)

    assert session.committed
    kinds = [type(row) for row in session.added]
    assert kinds == [ProjectRow, ProjectUserRow, DomainRow]
    assert created.primary_domain is not None
    assert created.primary_domain.slug == "acme.com"
    assert created.primary_domain.status == "pending"


def test_slug_constraint_becomes_slug_taken() -> None:
    session = _FakeSession(flush_error=_unique_violation(SLUG_UNIQUE))

    with pytest.raises(SlugTakenError):
        _create(session)
    assert session.rolled_back


def test_domain_constraint_becomes_domain_taken() -> None:
    session = _FakeSession(commit_error=_unique_violation(DOMAIN_UNIQUE))

    with pytest.raises(DomainTakenError):
        _create(session)
    assert session.rolled_back


def test_other_integrity_errors_propagate() -> None:
    session = _FakeSession(commit_error=_unique_violation("project_users_pkey"))

    with pytest.raises(IntegrityError):
        _create(session)
    assert session.rolled_back


def test_constraint_names_match_migration() -> None:
    assert SLUG_UNIQUE == "uq_projects_slug"
    assert DOMAIN_UNIQUE == "uq_domains_slug"
