import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from painpress.api.models import JobCreateRequest, JobCreateResponse, JobListResponse, JobRetryRequest, JobStatsResponse, JobStatusResponse
from painpress.config import Settings, get_settings
from painpress.jobs.models import JobStatus
from painpress.services import jobs as job_service

router = APIRouter()
logger = logging.getLogger("painpress.api.routes.jobs")


@router.get("", response_model=JobListResponse)
async def list_jobs(
  settings: Annotated[Settings, Depends(get_settings)],
  status: JobStatus | None = None,
  limit: Annotated[int, Query(ge=1, le=200)] = 50,
  offset: Annotated[int, Query(ge=0)] = 0,
) -> JobListResponse:
  """List generation jobs, newest first."""
  return await job_service.list_jobs(settings=settings, status_filter=status, limit=limit, offset=offset)


@router.get("/stats", response_model=JobStatsResponse)
async def job_stats(settings: Annotated[Settings, Depends(get_settings)]) -> JobStatsResponse:
  scheduler = None
  if settings.scheduler_enabled:
    from painpress.jobs.scheduler import get_scheduler

    scheduler = get_scheduler(settings)
  return await job_service.job_stats(settings=settings, scheduler=scheduler)


@router.post("", response_model=JobCreateResponse)
async def create_job(payload: JobCreateRequest, settings: Annotated[Settings, Depends(get_settings)]) -> JobCreateResponse:
  """Queue a generation job for a discovered post."""
  job_id = await job_service.create_job(payload.post_id, settings=settings)
  return JobCreateResponse(job_id=job_id)


@router.post("/{job_id}/start", response_model=JobStatusResponse)
async def start_job(job_id: str, background_tasks: BackgroundTasks, settings: Annotated[Settings, Depends(get_settings)]) -> JobStatusResponse:
  """Run a pending job now instead of waiting for the next tick."""
  return await job_service.start_job(job_id, settings=settings, background_tasks=background_tasks)


@router.post("/{job_id}/retry", response_model=JobStatusResponse)
async def retry_job(job_id: str, payload: JobRetryRequest, settings: Annotated[Settings, Depends(get_settings)]) -> JobStatusResponse:
  """Requeue a failed job."""
  return await job_service.retry_job(job_id, settings=settings, fresh=payload.fresh)


@router.post("/{job_id}/cancel", response_model=JobStatusResponse)
async def cancel_job(job_id: str, settings: Annotated[Settings, Depends(get_settings)]) -> JobStatusResponse:
  return await job_service.cancel_job(job_id, settings=settings)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, settings: Annotated[Settings, Depends(get_settings)]) -> JobStatusResponse:
  """Fetch the status of a generation job."""
  return await job_service.get_job_status(job_id, settings=settings)
