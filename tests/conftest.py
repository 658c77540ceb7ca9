from __future__ import annotations

import os
import sys
from pathlib import Path

# Tests always run against the in-memory backends, whatever the shell has set.
os.environ["APP_ENV"] = "test"
for _var in ("DATABASE_URL", "REDIS_URL", "VERCEL_API_TOKEN", "VERCEL_PROJECT_ID"):
    os.environ.pop(_var, None)

# Ensure repo root is on sys.path so `import linkhub` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from linkhub.main import app  # noqa: E402
from linkhub.repos.store import project_repo  # noqa: E402
from linkhub.services import token_service  # noqa: E402
from linkhub.services.domains import domain_provider  # noqa: E402
from linkhub.services.reserved_keys import reserved_keys  # noqa: E402
from linkhub.services.task_queue import task_queue  # noqa: E402


@pytest.fixture(autouse=True)
def reset_project_store() -> None:
    """Clear projects, domains and memberships between tests."""
    project_repo._projects.clear()  # type: ignore[union-attr]
    project_repo._by_slug.clear()  # type: ignore[union-attr]
    project_repo._domains.clear()  # type: ignore[union-attr]
    project_repo._memberships.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_reserved_keys() -> None:
    reserved_keys._keys.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_domain_provider() -> None:
    """Forget registrations and stop simulating provider failures."""
    domain_provider._domains.clear()  # type: ignore[union-attr]
    domain_provider.fail_with = None  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_dependency_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth_headers(username: str = "test-user") -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(username)}"}


@pytest.fixture
def token() -> str:
    return mint_token()
