"""create_project() phases and domain reconciliation.

Each test wires fresh in-memory collaborators so the store, the provider
and the queue can be inspected directly afterwards.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from linkhub.models.project import ProjectWithDomains
from linkhub.repos.project_repo import InMemoryProjectRepo
from linkhub.services.domains import DOMAIN_TAKEN, InMemoryDomainProvider
from linkhub.services.provisioning import (
    MissingFieldsError,
    ProjectValidationError,
    create_project,
    reconcile_domain,
    reconcile_pending_domains,
)
from linkhub.services.reserved_keys import InMemoryReservedKeys
from linkhub.services.slug_policy import SLUG_TAKEN
from linkhub.services.task_queue import DOMAIN_REGISTRATION_QUEUE, InMemoryTaskQueue


class _Env:
    def __init__(self) -> None:
        self.repo = InMemoryProjectRepo()
        self.provider = InMemoryDomainProvider()
        self.reserved = InMemoryReservedKeys()
        self.queue = InMemoryTaskQueue()

    def create(
        self,
        name: str | None = "Acme",
        slug: str | None = "acme",
        domain: str | None = "acme.com",
        user_id: str = "user-1",
        **kwargs,
    ):
        return create_project(
            name=name,
            slug=slug,
            domain=domain,
            user_id=user_id,
            repo=kwargs.pop("repo", self.repo),
            provider=kwargs.pop("provider", self.provider),
            reserved_keys=self.reserved,
            queue=self.queue,
            platform_domains=("linkhub.sh",),
            **kwargs,
        )


@pytest.fixture
def env() -> _Env:
    return _Env()


# ---- happy path ----


def test_create_persists_project_membership_and_domain(env: _Env) -> None:
    project_out, registration = asyncio.run(env.create())

    assert project_out.ok and registration.ok
    created = project_out.value
    assert isinstance(created, ProjectWithDomains)
    assert created.project.slug == "acme"
    assert created.primary_domain is not None
    assert created.primary_domain.slug == "acme.com"
    assert created.primary_domain.status == "registered"

    listed = asyncio.run(env.repo.list_for_user("user-1"))
    assert [p.project.slug for p in listed] == ["acme"]
    assert env.provider.is_registered("acme.com")
    assert asyncio.run(env.queue.queue_length(DOMAIN_REGISTRATION_QUEUE)) == 0


def test_creator_is_owner(env: _Env) -> None:
    project_out, _ = asyncio.run(env.create())
    membership = env.repo._memberships[(project_out.value.project.id, "user-1")]
    assert membership.role == "owner"


def test_billing_cycle_start_is_day_of_month(env: _Env) -> None:
    now = datetime(2026, 1, 31, 12, 0, tzinfo=UTC)
    project_out, _ = asyncio.run(env.create(now=now))
    assert project_out.value.project.billing_cycle_start == 31
    assert project_out.value.project.created_at == now


# ---- phase 1: required fields ----


@pytest.mark.parametrize(
    "overrides",
    [{"name": None}, {"slug": ""}, {"domain": None}, {"name": "", "slug": ""}],
)
def test_missing_fields(env: _Env, overrides: dict) -> None:
    with pytest.raises(MissingFieldsError, match="Missing name or slug or domain"):
        asyncio.run(env.create(**overrides))


# ---- phase 2: validation ----


def test_validation_reports_both_errors(env: _Env) -> None:
    with pytest.raises(ProjectValidationError) as exc_info:
        asyncio.run(env.create(slug="a" * 49, domain="linkhub.sh"))

    assert exc_info.value.stage == "validation"
    assert exc_info.value.slug_error == "Slug must be less than 48 characters"
    assert exc_info.value.domain_error == "Domain is reserved"


def test_validation_failure_writes_nothing(env: _Env) -> None:
    with pytest.raises(ProjectValidationError):
        asyncio.run(env.create(domain="not a domain"))

    assert env.repo._projects == {}
    assert not env.provider.is_registered("not a domain")


# ---- phase 3: uniqueness ----


def test_existing_slug_rejected(env: _Env) -> None:
    asyncio.run(env.create())
    with pytest.raises(ProjectValidationError) as exc_info:
        asyncio.run(env.create(domain="other.com"))

    assert exc_info.value.stage == "uniqueness"
    assert exc_info.value.slug_error == SLUG_TAKEN
    assert exc_info.value.domain_error is None
    assert not env.provider.is_registered("other.com")


def test_existing_slug_and_domain_both_reported(env: _Env) -> None:
    asyncio.run(env.create())
    with pytest.raises(ProjectValidationError) as exc_info:
        asyncio.run(env.create())

    assert exc_info.value.slug_error == SLUG_TAKEN
    assert exc_info.value.domain_error == DOMAIN_TAKEN


def test_slug_uniqueness_is_case_sensitive(env: _Env) -> None:
    asyncio.run(env.create())
    project_out, _ = asyncio.run(env.create(slug="ACME", domain="other.com"))
    assert project_out.ok


# ---- concurrent creates ----


def test_concurrent_same_slug_only_one_wins(env: _Env) -> None:
    async def race():
        return await asyncio.gather(
            env.create(domain="one.com", user_id="alice"),
            env.create(domain="two.com", user_id="bob"),
            return_exceptions=True,
        )

    results = asyncio.run(race())

    winners = [r for r in results if isinstance(r, list)]
    losers = [r for r in results if isinstance(r, ProjectValidationError)]
    assert len(winners) == 1 and len(losers) == 1
    assert losers[0].slug_error == SLUG_TAKEN
    assert len(env.repo._projects) == 1

    # The loser's domain registration does not outlive its failed project.
    stored = winners[0][0].value.primary_domain.slug
    lost = "two.com" if stored == "one.com" else "one.com"
    assert env.provider.is_registered(stored)
    assert not env.provider.is_registered(lost)


def test_concurrent_same_domain_keeps_winners_registration(env: _Env) -> None:
    async def race():
        return await asyncio.gather(
            env.create(slug="one"),
            env.create(slug="two"),
            return_exceptions=True,
        )

    results = asyncio.run(race())

    losers = [r for r in results if isinstance(r, ProjectValidationError)]
    assert len(losers) == 1
    assert losers[0].domain_error == DOMAIN_TAKEN
    assert losers[0].slug_error is None
    assert env.provider.is_registered("acme.com")


# ---- phase 4: partial failures ----


def test_provider_rejection_marks_domain_failed_and_queues_retry(env: _Env) -> None:
    env.provider.fail_with = "Invalid request"

    project_out, registration = asyncio.run(env.create())

    assert project_out.ok
    assert project_out.value.primary_domain.status == "failed"
    assert not registration.ok
    assert registration.reason == "Invalid request"

    stored = asyncio.run(env.repo.get_domain("acme.com"))
    assert stored is not None and stored.status == "failed"

    task = asyncio.run(env.queue.dequeue(DOMAIN_REGISTRATION_QUEUE))
    assert task is not None
    assert task.payload == {
        "domain": "acme.com",
        "project_id": str(project_out.value.project.id),
    }


def test_provider_crash_gets_generic_reason(env: _Env) -> None:
    class _CrashingProvider(InMemoryDomainProvider):
        async def add_domain(self, domain: str) -> dict:
            raise RuntimeError("socket exploded")

    project_out, registration = asyncio.run(env.create(provider=_CrashingProvider()))

    assert project_out.ok
    assert registration.reason == "Failed to register domain"


def test_store_failure_is_rejected_outcome(env: _Env) -> None:
    class _BrokenRepo(InMemoryProjectRepo):
        async def create(self, project, owner_user_id, domain):
            raise RuntimeError("disk full")

    project_out, registration = asyncio.run(env.create(repo=_BrokenRepo()))

    assert not project_out.ok
    assert project_out.reason == "Failed to create project"
    assert registration.ok


# ---- reconciliation ----


def test_reconcile_registers_failed_domain(env: _Env) -> None:
    env.provider.fail_with = "temporarily unavailable"
    asyncio.run(env.create())

    env.provider.fail_with = None
    result = asyncio.run(reconcile_domain("acme.com", env.repo, env.provider))

    assert result is not None and result.status == "registered"
    assert env.provider.is_registered("acme.com")


def test_reconcile_still_failing_stays_failed(env: _Env) -> None:
    env.provider.fail_with = "nope"
    asyncio.run(env.create())

    result = asyncio.run(reconcile_domain("acme.com", env.repo, env.provider))
    assert result is not None and result.status == "failed"


def test_reconcile_skips_registered_domain(env: _Env) -> None:
    asyncio.run(env.create())
    # A provider call would fail now; a registered domain must not make one.
    env.provider.fail_with = "should not be called"

    result = asyncio.run(reconcile_domain("acme.com", env.repo, env.provider))
    assert result is not None and result.status == "registered"


def test_reconcile_unknown_domain(env: _Env) -> None:
    assert asyncio.run(reconcile_domain("ghost.com", env.repo, env.provider)) is None


def test_reconcile_pending_domains_sweeps_all(env: _Env) -> None:
    env.provider.fail_with = "down"
    asyncio.run(env.create(slug="one", domain="one.com"))
    asyncio.run(env.create(slug="two", domain="two.com"))
    env.provider.fail_with = None
    asyncio.run(env.create(slug="three", domain="three.com"))

    count = asyncio.run(reconcile_pending_domains(env.repo, env.provider))

    assert count == 2
    remaining = asyncio.run(env.repo.list_domains_by_status("pending", "failed"))
    assert remaining == []


# ---- failures after the project is stored ----


class _DownQueue(InMemoryTaskQueue):
    async def enqueue(self, queue: str, payload: dict):
        raise ConnectionError("redis down")


def test_queue_outage_still_returns_both_outcomes(env: _Env) -> None:
    env.provider.fail_with = "provider down"
    env.queue = _DownQueue()

    project_out, registration = asyncio.run(env.create())

    assert project_out.ok
    assert project_out.value.primary_domain.status == "failed"
    assert registration.reason == "provider down"
    # The sweep still finds the domain without the queued task.
    stored = asyncio.run(env.repo.get_domain("acme.com"))
    assert stored is not None and stored.status == "failed"


def test_status_write_failure_still_returns_both_outcomes(env: _Env) -> None:
    class _StatusWriteFails(InMemoryProjectRepo):
        async def set_domain_status(self, domain, status):
            raise RuntimeError("connection reset")

    project_out, registration = asyncio.run(env.create(repo=_StatusWriteFails()))

    assert project_out.ok and registration.ok
    assert project_out.value.primary_domain.status == "pending"


def test_sweep_continues_past_a_failing_domain(env: _Env) -> None:
    env.provider.fail_with = "down"
    asyncio.run(env.create(slug="one", domain="one.com"))
    asyncio.run(env.create(slug="two", domain="two.com"))

    class _ChokesOnOne(InMemoryDomainProvider):
        async def add_domain(self, domain: str) -> dict:
            if domain == "one.com":
                raise ValueError("unparseable provider response")
            return await super().add_domain(domain)

    count = asyncio.run(reconcile_pending_domains(env.repo, _ChokesOnOne()))

    assert count == 1
    one = asyncio.run(env.repo.get_domain("one.com"))
    two = asyncio.run(env.repo.get_domain("two.com"))
    assert one is not None and one.status == "failed"
    assert two is not None and two.status == "registered"
