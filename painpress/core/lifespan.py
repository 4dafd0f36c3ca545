import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from painpress.core.database import create_tables, dispose_engine
from painpress.core.logging import _initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and background loops, and tear them down on shutdown."""
  from painpress.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("painpress.core.lifespan")
  tasks: list[asyncio.Task[None]] = []

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")

    if settings.auto_create_tables:
      await create_tables()
      logger.info("Database tables ensured.")

    if settings.scheduler_enabled:
      from painpress.jobs.cleanup import run_cleanup
      from painpress.jobs.scheduler import get_scheduler, start_periodic_tasks
      from painpress.storage.factory import _get_content_repo, _get_jobs_repo, _get_posts_repo

      scheduler = get_scheduler(settings)

      async def _cleanup() -> None:
        await run_cleanup(jobs_repo=_get_jobs_repo(settings), posts_repo=_get_posts_repo(settings), content_repo=_get_content_repo(settings))

      tasks = start_periodic_tasks(settings=settings, tick=scheduler.run_tick, cleanup=_cleanup)
      logger.info("Scheduler loops started (tick every %ds, cleanup every %ds).", settings.generation_interval_seconds, settings.cleanup_interval_seconds)

  except Exception:  # noqa: BLE001
    # Log initialization failures but allow the app to continue starting.
    logger.warning("Startup initialization failed; continuing without it.", exc_info=True)

  yield

  for task in tasks:
    task.cancel()
  for task in tasks:
    with contextlib.suppress(asyncio.CancelledError):
      await task
  await dispose_engine()
  logger.info("Shutdown complete.")
