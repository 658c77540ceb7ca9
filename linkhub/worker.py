"""Background worker process.

RUN:  python -m linkhub.worker

Same image as the API, different command.  On startup it sweeps every
domain still pending or failed, then polls the registered queues and
dispatches each task to its handler.  A failing task is logged and
dropped; the domain stays "failed" in the store and the next sweep
picks it up again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from linkhub.core.config import SETTINGS
from linkhub.core.logging import setup_logging
from linkhub.repos.store import project_repo
from linkhub.services.domains import domain_provider
from linkhub.services.provisioning import (
    reconcile_domain,
    reconcile_pending_domains,
)
from linkhub.services.task_queue import DOMAIN_REGISTRATION_QUEUE, task_queue

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@register_handler(DOMAIN_REGISTRATION_QUEUE)
async def handle_domain_registration(payload: dict) -> None:
    domain = payload["domain"]
    result = await reconcile_domain(domain, project_repo, domain_provider)
    logger.info(
        "Domain registration retry  domain=%s status=%s",
        domain,
        result.status if result is not None else "missing",
    )


async def run_worker() -> None:
    """Sweep once, then poll all registered queues forever."""
    try:
        swept = await reconcile_pending_domains(project_repo, domain_provider)
        logger.info("Startup sweep registered %d domain(s)", swept)
    except Exception:
        # The queued retries still work; the next restart sweeps again.
        logger.exception("Startup sweep failed")

    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        idle = True
        for queue_name in queues:
            task = await task_queue.dequeue(queue_name, timeout=1)
            if task is None:
                continue

            idle = False
            handler = HANDLERS[queue_name]
            try:
                await handler(task.payload)
                logger.info("Task %s on [%s] completed", task.id, queue_name)
            except Exception:
                logger.exception("Task %s on [%s] failed", task.id, queue_name)

        # The in-memory queue returns at once instead of blocking like BRPOP.
        if idle:
            await asyncio.sleep(1)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
