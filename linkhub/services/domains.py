"""Custom-domain validation and registration with the hosting provider.

A project's domain has to exist in two places: our own domains table, and
the hosting provider (Vercel) that terminates TLS and routes the traffic.
This module owns the provider half.  The store half lives in the project
repo.  Nothing here coordinates the two; see services/provisioning.py for
how the status of each domain is tracked and reconciled.
"""

from __future__ import annotations

import logging
import re
from typing import Literal, Protocol, runtime_checkable

import httpx

from linkhub.core.config import SETTINGS
from linkhub.repos.project_repo import ProjectRepo

logger = logging.getLogger(__name__)

MAX_DOMAIN_LENGTH = 253

_LABEL = r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
VALID_DOMAIN_RE = re.compile(rf"(?:{_LABEL}\.)+[a-zA-Z]{{2,63}}")

DOMAIN_MISSING = "Missing domain"
DOMAIN_INVALID = "Invalid domain"
DOMAIN_RESERVED = "Domain is reserved"
DOMAIN_TAKEN = "Domain is already in use."


async def validate_domain(
    domain: str,
    platform_domains: tuple[str, ...] = SETTINGS.platform_domains,
) -> Literal[True] | str:
    """Return True if the domain may be attached to a project.

    Anything else is a human-readable reason, forwarded to the client as-is.
    The platform's own short-link domains (and their subdomains) are never
    available to customers.
    """
    if not domain:
        return DOMAIN_MISSING
    if len(domain) > MAX_DOMAIN_LENGTH or not VALID_DOMAIN_RE.fullmatch(domain):
        return DOMAIN_INVALID
    lowered = domain.lower()
    if any(lowered == p or lowered.endswith(f".{p}") for p in platform_domains):
        return DOMAIN_RESERVED
    return True


async def domain_exists(domain: str, repo: ProjectRepo) -> bool:
    """True if any project already stores this domain.

    Exact match against the store; the provider is not consulted.
    """
    return await repo.domain_exists(domain)


class DomainRegistrationError(Exception):
    """The provider did not accept the domain."""

    def __init__(self, domain: str, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.domain = domain
        self.message = message
        self.code = code


@runtime_checkable
class DomainProvider(Protocol):
    async def add_domain(self, domain: str) -> dict:
        """Register the domain; returns the provider's domain record."""
        ...

    async def remove_domain(self, domain: str) -> None: ...


class InMemoryDomainProvider:
    """Records registrations in a dict; used when no provider token is set.

    Tests flip `fail_with` to simulate the provider rejecting domains.
    """

    def __init__(self) -> None:
        self._domains: dict[str, dict] = {}
        self.fail_with: str | None = None

    async def add_domain(self, domain: str) -> dict:
        if self.fail_with is not None:
            raise DomainRegistrationError(domain, self.fail_with)
        record = {"name": domain, "apexName": _apex(domain), "verified": True}
        self._domains[domain] = record
        return record

    async def remove_domain(self, domain: str) -> None:
        self._domains.pop(domain, None)

    def is_registered(self, domain: str) -> bool:
        return domain in self._domains


class VercelDomainProvider:
    """Vercel project-domains REST API.

    One request per call, no retries here; failed registrations are picked
    up by the domain_registration worker instead.
    """

    def __init__(
        self,
        *,
        api_url: str,
        token: str,
        project_id: str,
        team_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._token = token
        self._project_id = project_id
        self._team_id = team_id
        self._client = client
        self._timeout = timeout

    def _params(self) -> dict[str, str]:
        return {"teamId": self._team_id} if self._team_id else {}

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self._api_url}{path}"
        if self._client is not None:
            return await self._client.request(
                method,
                url,
                params=self._params(),
                headers=self._headers(),
                timeout=self._timeout,
                **kwargs,
            )
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(
                method, url, params=self._params(), headers=self._headers(), **kwargs
            )

    async def add_domain(self, domain: str) -> dict:
        try:
            resp = await self._request(
                "POST",
                f"/v10/projects/{self._project_id}/domains",
                json={"name": domain},
            )
        except httpx.RequestError as e:
            logger.warning("Domain provider unreachable  domain=%s error=%s", domain, e)
            raise DomainRegistrationError(
                domain, "Domain provider unreachable"
            ) from e

        if resp.is_success:
            logger.info("Domain registered with provider  domain=%s", domain)
            return resp.json()

        code, message = _provider_error(resp)
        logger.warning(
            "Domain provider rejected domain=%s status=%d code=%s",
            domain,
            resp.status_code,
            code,
        )
        raise DomainRegistrationError(domain, message, code)

    async def remove_domain(self, domain: str) -> None:
        try:
            resp = await self._request(
                "DELETE", f"/v9/projects/{self._project_id}/domains/{domain}"
            )
        except httpx.RequestError as e:
            raise DomainRegistrationError(
                domain, "Domain provider unreachable"
            ) from e
        # 404: already gone, which is what we wanted
        if not resp.is_success and resp.status_code != 404:
            code, message = _provider_error(resp)
            raise DomainRegistrationError(domain, message, code)


def _provider_error(resp: httpx.Response) -> tuple[str | None, str]:
    """Pull {"error": {"code", "message"}} out of a provider error response."""
    try:
        error = resp.json().get("error") or {}
    except ValueError:
        error = {}
    message = error.get("message") or f"Domain provider returned {resp.status_code}"
    return error.get("code"), message


def _apex(domain: str) -> str:
    return ".".join(domain.split(".")[-2:])


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if SETTINGS.domain_provider_configured:
    domain_provider: DomainProvider = VercelDomainProvider(
        api_url=SETTINGS.vercel_api_url,
        token=SETTINGS.vercel_api_token,  # type: ignore[arg-type]
        project_id=SETTINGS.vercel_project_id,  # type: ignore[arg-type]
        team_id=SETTINGS.vercel_team_id,
    )
else:
    domain_provider = InMemoryDomainProvider()
