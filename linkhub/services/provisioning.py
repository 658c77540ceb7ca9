"""Project creation and domain reconciliation.

create_project() runs four phases in order; each phase starts its
independent steps together and waits for all of them:

  1. required fields         name, slug, domain all non-empty
  2. input validation        slug policy + domain validator
  3. uniqueness              slug lookup + domain existence
  4. provisioning            store write + provider registration

Phases 1-3 raise before anything is written.  Phase 4 writes to two systems
that share no transaction: the store (project, owner membership, primary
domain) and the hosting provider.  Both outcomes go back to the caller.
The primary domain's status records whether the provider half succeeded
(registered/failed).  Failed registrations are queued for the worker, which
retries them through reconcile_domain().

The slug/domain pre-checks can race with a concurrent request.  The store's
unique constraints catch that, and the conflict comes back as the same
ProjectValidationError the pre-check raises.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Literal

from linkhub.core.config import SETTINGS
from linkhub.core.metrics import (
    DOMAIN_REGISTRATIONS,
    PROJECT_REJECTIONS,
    PROJECTS_CREATED,
)
from linkhub.models.project import Domain, Project, ProjectWithDomains
from linkhub.repos.project_repo import (
    DomainTakenError,
    ProjectConflictError,
    ProjectRepo,
    SlugTakenError,
)
from linkhub.services.domains import (
    DOMAIN_TAKEN,
    DomainProvider,
    DomainRegistrationError,
    domain_exists,
    validate_domain,
)
from linkhub.services.reserved_keys import ReservedKeys
from linkhub.services.slug_policy import SLUG_TAKEN, validate_slug
from linkhub.services.task_queue import DOMAIN_REGISTRATION_QUEUE, TaskQueue

logger = logging.getLogger(__name__)

MISSING_FIELDS = "Missing name or slug or domain"


class MissingFieldsError(ValueError):
    def __init__(self) -> None:
        super().__init__(MISSING_FIELDS)


class ProjectValidationError(Exception):
    """Slug and/or domain rejected; either error may be None."""

    def __init__(
        self,
        slug_error: str | None,
        domain_error: str | None,
        *,
        stage: str,
    ) -> None:
        super().__init__(slug_error or domain_error)
        self.slug_error = slug_error
        self.domain_error = domain_error
        self.stage = stage  # validation|uniqueness|conflict


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of one provisioning step: a value, or the reason it failed."""

    status: Literal["fulfilled", "rejected"]
    value: Any = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "fulfilled"


async def create_project(
    *,
    name: str | None,
    slug: str | None,
    domain: str | None,
    user_id: str,
    repo: ProjectRepo,
    provider: DomainProvider,
    reserved_keys: ReservedKeys,
    queue: TaskQueue,
    platform_domains: tuple[str, ...] = SETTINGS.platform_domains,
    now: datetime | None = None,
) -> list[Outcome]:
    """Validate, then persist the project and register its domain.

    Returns [project_outcome, registration_outcome]; a fulfilled project
    outcome carries a ProjectWithDomains, a fulfilled registration outcome
    carries the provider's domain record.
    """
    if not name or not slug or not domain:
        PROJECT_REJECTIONS.labels(stage="missing_fields").inc()
        raise MissingFieldsError()

    slug_error, domain_result = await asyncio.gather(
        validate_slug(slug, reserved_keys),
        validate_domain(domain, platform_domains),
    )
    if slug_error or domain_result is not True:
        PROJECT_REJECTIONS.labels(stage="validation").inc()
        raise ProjectValidationError(
            slug_error,
            None if domain_result is True else domain_result,
            stage="validation",
        )

    existing, domain_taken = await asyncio.gather(
        repo.get_by_slug(slug),
        domain_exists(domain, repo),
    )
    if existing is not None or domain_taken:
        PROJECT_REJECTIONS.labels(stage="uniqueness").inc()
        raise ProjectValidationError(
            SLUG_TAKEN if existing is not None else None,
            DOMAIN_TAKEN if domain_taken else None,
            stage="uniqueness",
        )

    project = Project.new(name=name, slug=slug, now=now)
    created, registered = await asyncio.gather(
        repo.create(project, user_id, domain),
        provider.add_domain(domain),
        return_exceptions=True,
    )

    if isinstance(created, ProjectConflictError):
        await _release_unowned_domain(domain, registered, repo, provider)
        PROJECT_REJECTIONS.labels(stage="conflict").inc()
        logger.warning(
            "Project create lost a uniqueness race  slug=%s domain=%s",
            slug,
            domain,
            extra={"project_slug": slug, "domain": domain},
        )
        raise ProjectValidationError(
            SLUG_TAKEN if isinstance(created, SlugTakenError) else None,
            DOMAIN_TAKEN if isinstance(created, DomainTakenError) else None,
            stage="conflict",
        )

    registration = _registration_outcome(domain, registered)

    if isinstance(created, BaseException):
        logger.error(
            "Project create failed  slug=%s domain=%s",
            slug,
            domain,
            exc_info=created,
            extra={"project_slug": slug, "domain": domain},
        )
        return [Outcome("rejected", reason="Failed to create project"), registration]

    PROJECTS_CREATED.inc()
    logger.info(
        "Project created  slug=%s user_id=%s domain=%s registered=%s",
        slug,
        user_id,
        domain,
        registration.ok,
        extra={"project_slug": slug, "domain": domain, "user_id": user_id},
    )
    created = await _record_registration(created, registration.ok, repo, queue)
    return [Outcome("fulfilled", value=created), registration]


def _registration_outcome(domain: str, registered: object) -> Outcome:
    if isinstance(registered, DomainRegistrationError):
        DOMAIN_REGISTRATIONS.labels(result="failed").inc()
        return Outcome("rejected", reason=registered.message)
    if isinstance(registered, BaseException):
        DOMAIN_REGISTRATIONS.labels(result="failed").inc()
        logger.error(
            "Domain registration crashed  domain=%s",
            domain,
            exc_info=registered,
            extra={"domain": domain},
        )
        return Outcome("rejected", reason="Failed to register domain")
    DOMAIN_REGISTRATIONS.labels(result="registered").inc()
    return Outcome("fulfilled", value=registered)


async def _record_registration(
    created: ProjectWithDomains,
    registered: bool,
    repo: ProjectRepo,
    queue: TaskQueue,
) -> ProjectWithDomains:
    """Stamp the primary domain registered/failed; queue a retry on failure.

    The project is already stored by now, so a failure here is logged and
    the response still reports both outcomes.  A domain whose stamp or retry
    task was lost stays pending/failed and the worker's sweep finds it.
    """
    primary = created.primary_domain
    if primary is None:
        return created

    try:
        updated = await repo.set_domain_status(
            primary.slug, "registered" if registered else "failed"
        )
    except Exception:
        logger.exception(
            "Could not record registration status  domain=%s",
            primary.slug,
            extra={"domain": primary.slug},
        )
        updated = None

    if not registered:
        try:
            await queue.enqueue(
                DOMAIN_REGISTRATION_QUEUE,
                {"domain": primary.slug, "project_id": str(created.project.id)},
            )
        except Exception:
            logger.exception(
                "Could not queue registration retry  domain=%s",
                primary.slug,
                extra={"domain": primary.slug},
            )

    if updated is None:
        return created
    return replace(
        created,
        domains=tuple(updated if d.id == primary.id else d for d in created.domains),
    )


async def _release_unowned_domain(
    domain: str,
    registered: object,
    repo: ProjectRepo,
    provider: DomainProvider,
) -> None:
    """Undo a provider registration made for a project that was never stored.

    Skipped when another project owns the domain in the store; that
    project needs the registration.
    """
    if isinstance(registered, BaseException) or await repo.domain_exists(domain):
        return
    try:
        await provider.remove_domain(domain)
    except DomainRegistrationError as e:
        logger.warning(
            "Could not release orphaned domain=%s: %s",
            domain,
            e.message,
            extra={"domain": domain},
        )


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


async def reconcile_domain(
    domain: str, repo: ProjectRepo, provider: DomainProvider
) -> Domain | None:
    """Retry provider registration for a stored domain.

    Idempotent: a domain already marked registered is left alone.  Returns
    the domain with its new status, or None if it is no longer stored.
    """
    current = await repo.get_domain(domain)
    if current is None:
        logger.info("Skipping reconcile for unknown domain=%s", domain)
        return None
    if current.status == "registered":
        return current

    try:
        await provider.add_domain(domain)
    except DomainRegistrationError as e:
        DOMAIN_REGISTRATIONS.labels(result="failed").inc()
        logger.warning(
            "Domain still not registered  domain=%s reason=%s",
            domain,
            e.message,
            extra={"domain": domain},
        )
        return await repo.set_domain_status(domain, "failed")

    DOMAIN_REGISTRATIONS.labels(result="registered").inc()
    logger.info("Domain reconciled  domain=%s", domain, extra={"domain": domain})
    return await repo.set_domain_status(domain, "registered")


async def reconcile_pending_domains(
    repo: ProjectRepo, provider: DomainProvider
) -> int:
    """Sweep every pending/failed domain once; returns how many now registered.

    One domain failing does not stop the sweep; it is logged and left for
    the next run.
    """
    registered = 0
    for d in await repo.list_domains_by_status("pending", "failed"):
        try:
            result = await reconcile_domain(d.slug, repo, provider)
        except Exception:
            logger.exception(
                "Reconcile failed  domain=%s", d.slug, extra={"domain": d.slug}
            )
            continue
        if result is not None and result.status == "registered":
            registered += 1
    return registered
