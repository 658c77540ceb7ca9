"""Process-wide project store.

PostgreSQL when DATABASE_URL is configured, otherwise the in-memory repo
(local dev and tests).  Same conditional-singleton pattern as db/redis.py.
"""

from __future__ import annotations

from linkhub.db.engine import async_session_factory
from linkhub.repos.pg_project_repo import PgProjectRepo
from linkhub.repos.project_repo import InMemoryProjectRepo, ProjectRepo

if async_session_factory is not None:
    project_repo: ProjectRepo = PgProjectRepo(async_session_factory)
else:
    project_repo = InMemoryProjectRepo()
