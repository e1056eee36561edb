"""Scheduler worker process.

RUN:  python -m learnsync.worker

Runs the four reconciliation jobs on their cron schedules.  Same image as
the API, different command:

  api:     uvicorn learnsync.main:app --host 0.0.0.0 --port 8000
  worker:  python -m learnsync.worker

Several workers may run at once when REDIS_URL is set: the Redis job guard
lets only one of them execute a given job per tick.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from learnsync.container import build_container
from learnsync.core.config import SETTINGS
from learnsync.core.logging import setup_logging
from learnsync.db.engine import lifespan_db
from learnsync.db.redis import lifespan_redis

logger = logging.getLogger("learnsync.worker")


async def run_worker(stop: asyncio.Event | None = None) -> None:
    """Start the scheduler and block until ``stop`` is set."""
    stop = stop or asyncio.Event()
    container = build_container(SETTINGS)

    async with lifespan_db():
        async with lifespan_redis():
            container.scheduler.start()
            for status in container.scheduler.job_statuses():
                logger.info(
                    "Job %s cron=%r next_run_at=%s",
                    status.name,
                    status.cron,
                    status.next_run_at,
                    extra={"job": status.name},
                )
            try:
                await stop.wait()
            finally:
                container.scheduler.shutdown()
    logger.info("Worker stopped")


def main() -> None:
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

    async def _main() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        await run_worker(stop)

    asyncio.run(_main())


if __name__ == "__main__":
    main()
