"""SAQ queue and worker settings."""

from saq import CronJob, Queue

from magiclink.config import settings

# Expired tokens and sessions are swept every quarter hour
PRUNE_SCHEDULE = "*/15 * * * *"
WORKER_CONCURRENCY = 2

queue = Queue.from_url(settings.redis_url)


async def shutdown(_ctx: dict) -> None:
    from magiclink.database import close_db

    await close_db()


def get_queue_settings() -> dict:
    """Keyword arguments for ``saq.Worker``."""
    # Deferred: maintenance imports the database layer
    from magiclink.tasks.maintenance import (
        MAINTENANCE_TIMEOUT_SECONDS,
        prune_expired_auth_records,
    )

    prune = CronJob(
        prune_expired_auth_records,
        cron=PRUNE_SCHEDULE,
        timeout=MAINTENANCE_TIMEOUT_SECONDS,
    )
    return {
        "queue": queue,
        "functions": [prune_expired_auth_records],
        "cron_jobs": [prune],
        "concurrency": WORKER_CONCURRENCY,
        "shutdown": shutdown,
    }
