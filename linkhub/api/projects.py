"""Project (workspace) endpoints.

GET  /projects  : every project the caller is a member of, with domains
POST /projects  : create a project with its primary custom domain

Validation errors use the body shapes the dashboard already renders,
not FastAPI's {"detail": ...}:

  422 {"error": "Missing name or slug or domain"}
  422 {"slugError": str | null, "domainError": str | null}

A request that passes validation always gets 200 with one outcome per
provisioning step, [project, domain registration], each either
{"status": "fulfilled", "value": ...} or {"status": "rejected", "reason": ...}.
The client inspects which parts succeeded.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from linkhub.api.dependencies import (
    get_domain_provider,
    get_project_repo,
    get_reserved_keys,
    get_task_queue,
    require_user,
)
from linkhub.models.principal import Principal
from linkhub.models.project import ProjectWithDomains
from linkhub.repos.project_repo import ProjectRepo
from linkhub.services import provisioning
from linkhub.services.domains import DomainProvider
from linkhub.services.provisioning import (
    MissingFieldsError,
    Outcome,
    ProjectValidationError,
)
from linkhub.services.reserved_keys import ReservedKeys
from linkhub.services.task_queue import TaskQueue
from linkhub.ui.plan_badge import badge_variant

router = APIRouter(prefix="/projects", tags=["projects"])

ALLOWED_METHODS = ("GET", "POST")
OTHER_METHODS = ("PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE", "CONNECT")


# --- Pydantic schemas ---


class ProjectCreateIn(BaseModel):
    # Optional so a missing field reaches the handler's own 422 body.
    name: str | None = None
    slug: str | None = None
    domain: str | None = None


class DomainOut(BaseModel):
    slug: str
    primary: bool
    status: str


class ProjectOut(BaseModel):
    id: str
    name: str
    slug: str
    plan: str
    badge: str
    billingCycleStart: int
    createdAt: datetime
    domains: list[DomainOut]


def _project_out(item: ProjectWithDomains) -> ProjectOut:
    p = item.project
    return ProjectOut(
        id=str(p.id),
        name=p.name,
        slug=p.slug,
        plan=p.plan,
        badge=badge_variant(p.plan).value,
        billingCycleStart=p.billing_cycle_start,
        createdAt=p.created_at,
        domains=[
            DomainOut(slug=d.slug, primary=d.primary, status=d.status)
            for d in item.domains
        ],
    )


def _outcome_json(outcome: Outcome) -> dict:
    if not outcome.ok:
        return {"status": "rejected", "reason": outcome.reason}
    value = outcome.value
    if isinstance(value, ProjectWithDomains):
        value = _project_out(value).model_dump(mode="json")
    return {"status": "fulfilled", "value": value}


# --- Endpoints ---


@router.get("", response_model=list[ProjectOut])
async def list_projects(
    principal: Annotated[Principal, Depends(require_user)],
    repo: Annotated[ProjectRepo, Depends(get_project_repo)],
) -> list[ProjectOut]:
    """All projects the caller belongs to, in any role, with their domains."""
    projects = await repo.list_for_user(principal.user_id)
    return [_project_out(p) for p in projects]


@router.post("")
async def create_project(
    principal: Annotated[Principal, Depends(require_user)],
    repo: Annotated[ProjectRepo, Depends(get_project_repo)],
    provider: Annotated[DomainProvider, Depends(get_domain_provider)],
    reserved: Annotated[ReservedKeys, Depends(get_reserved_keys)],
    queue: Annotated[TaskQueue, Depends(get_task_queue)],
    body: ProjectCreateIn | None = None,
) -> JSONResponse:
    """Create a project; the caller becomes its owner."""
    body = body or ProjectCreateIn()
    try:
        outcomes = await provisioning.create_project(
            name=body.name,
            slug=body.slug,
            domain=body.domain,
            user_id=principal.user_id,
            repo=repo,
            provider=provider,
            reserved_keys=reserved,
            queue=queue,
        )
    except MissingFieldsError as e:
        return JSONResponse(
            status_code=422,
            content={"error": str(e)},
        )
    except ProjectValidationError as e:
        return JSONResponse(
            status_code=422,
            content={"slugError": e.slug_error, "domainError": e.domain_error},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=[_outcome_json(o) for o in outcomes],
    )


@router.api_route(
    "",
    methods=list(OTHER_METHODS),
    include_in_schema=False,
    dependencies=[Depends(require_user)],
)
async def method_not_allowed(request: Request) -> PlainTextResponse:
    # Starlette's own 405 would only list the methods of the first matching
    # route, so the Allow header is spelled out here.
    return PlainTextResponse(
        f"Method {request.method} Not Allowed",
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        headers={"Allow": ", ".join(ALLOWED_METHODS)},
    )
