from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from painpress.api.deps import require_task_secret
from painpress.api.models import CleanupResponse, TickResponse
from painpress.config import Settings, get_settings

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


@router.post("/generation-tick", status_code=status.HTTP_200_OK, response_model=TickResponse)
async def generation_tick(settings: Annotated[Settings, Depends(get_settings)]) -> TickResponse:
  """Run one scheduler tick; used by external cron when the in-process loop is disabled."""
  from painpress.jobs.scheduler import get_scheduler

  result = await get_scheduler(settings).run_tick()
  return TickResponse(jobs_started=result.jobs_started, jobs_completed=result.jobs_completed, jobs_failed=result.jobs_failed, auto_queued=result.auto_queued)


@router.post("/cleanup", status_code=status.HTTP_200_OK, response_model=CleanupResponse)
async def cleanup(settings: Annotated[Settings, Depends(get_settings)]) -> CleanupResponse:
  from painpress.jobs.cleanup import run_cleanup
  from painpress.storage.factory import _get_content_repo, _get_jobs_repo, _get_posts_repo

  result = await run_cleanup(jobs_repo=_get_jobs_repo(settings), posts_repo=_get_posts_repo(settings), content_repo=_get_content_repo(settings))
  logger.info("Cleanup task finished")
  return CleanupResponse(deleted_posts=result.deleted_posts, deleted_jobs=result.deleted_jobs, deleted_images=result.deleted_images, freed_bytes=result.freed_bytes)
