from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from linkhub.models.principal import Principal
from linkhub.repos.project_repo import ProjectRepo
from linkhub.repos.store import project_repo
from linkhub.services import token_service
from linkhub.services.domains import DomainProvider, domain_provider
from linkhub.services.reserved_keys import ReservedKeys, reserved_keys
from linkhub.services.task_queue import TaskQueue, task_queue

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug("Token validated for user=%s", principal.user_id)
    return principal


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
# Handlers take these through Depends so tests can swap them with
# app.dependency_overrides instead of patching module globals.


def get_project_repo() -> ProjectRepo:
    return project_repo


def get_domain_provider() -> DomainProvider:
    return domain_provider


def get_reserved_keys() -> ReservedKeys:
    return reserved_keys


def get_task_queue() -> TaskQueue:
    return task_queue
