import logging

from fastapi import BackgroundTasks, HTTPException, status

from painpress.api.models import JobListResponse, JobStatsResponse, JobStatusResponse
from painpress.config import Settings
from painpress.jobs.models import CANCELLED_MESSAGE, STAGE_ARTIFACT_FIELDS, TERMINAL_STATUSES, JobRecord
from painpress.jobs.scheduler import JobScheduler
from painpress.storage.factory import _get_jobs_repo, _get_posts_repo
from painpress.storage.jobs_repo import JobsRepository
from painpress.storage.posts_repo import PostsRepository
from painpress.utils.ids import generate_job_id
from painpress.utils.timestamps import now_iso

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job not found."
_POST_NOT_FOUND_MSG = "Discovered post not found."
_QUEUEABLE_POST_STATUSES = {"pending", "queued"}


def _job_status_from_record(record: JobRecord) -> JobStatusResponse:
  """Convert a persisted job record into an API response payload."""
  return JobStatusResponse(
    job_id=record.job_id,
    status=record.status,
    current_step=record.current_step,
    progress=record.progress,
    retry_count=record.retry_count,
    error_message=record.error_message,
    content_id=record.content_id,
    created_at=record.created_at,
    updated_at=record.updated_at,
    started_at=record.started_at,
    completed_at=record.completed_at,
    usage=record.usage,
    logs=record.logs,
  )


async def _require_job(repo: JobsRepository, job_id: str) -> JobRecord:
  record = await repo.get_job(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return record


async def create_job(post_id: str, *, settings: Settings, jobs_repo: JobsRepository | None = None, posts_repo: PostsRepository | None = None) -> str:
  """Queue a generation job for a discovered post and return its id."""
  jobs_repo = jobs_repo or _get_jobs_repo(settings)
  posts_repo = posts_repo or _get_posts_repo(settings)

  post = await posts_repo.get_post(post_id)
  if post is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_POST_NOT_FOUND_MSG)
  if post.status not in _QUEUEABLE_POST_STATUSES:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Post is not available for generation (status={post.status}).")

  timestamp = now_iso()
  record = JobRecord(
    job_id=generate_job_id(),
    discovered_post_id=post.id,
    niche_id=post.niche_id,
    status="pending",
    created_at=timestamp,
    updated_at=timestamp,
    progress=0,
    retry_count=0,
  )
  await jobs_repo.create_job(record)
  await posts_repo.update_post_status(post.id, "queued")
  logger.info("Created generation job %s for post %s", record.job_id, post.id)
  return record.job_id


async def start_job(job_id: str, *, settings: Settings, background_tasks: BackgroundTasks, scheduler: JobScheduler | None = None, jobs_repo: JobsRepository | None = None) -> JobStatusResponse:
  """Dispatch a pending job immediately instead of waiting for the next tick."""
  repo = jobs_repo or _get_jobs_repo(settings)
  record = await _require_job(repo, job_id)

  if record.status != "pending":
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Only pending jobs can be started (status={record.status}).")

  if scheduler is None:
    from painpress.jobs.scheduler import get_scheduler

    scheduler = get_scheduler(settings)

  if scheduler.is_job_running(job_id):
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Job is already running.")

  background_tasks.add_task(_run_in_background, scheduler, job_id)
  return _job_status_from_record(record)


async def _run_in_background(scheduler: JobScheduler, job_id: str) -> None:
  try:
    await scheduler.run_job(job_id)
  except Exception:  # noqa: BLE001
    # The orchestrator has already marked the job failed.
    logger.error("Background run of job %s failed", job_id, exc_info=True)


async def retry_job(job_id: str, *, settings: Settings, fresh: bool = False, jobs_repo: JobsRepository | None = None) -> JobStatusResponse:
  """Requeue a failed job, keeping stored artifacts unless a fresh run is requested."""
  repo = jobs_repo or _get_jobs_repo(settings)
  record = await _require_job(repo, job_id)

  if record.status != "failed":
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Only failed jobs can be retried.")

  # Stricter than failed-only: retries are capped by PAINPRESS_MAX_GENERATION_RETRIES.
  if record.retry_count >= settings.max_generation_retries:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Retry limit reached for this job.")

  fields: dict[str, object] = {
    "status": "pending",
    "current_step": None,
    "progress": 0,
    "error_message": None,
    "error_detail": None,
    "retry_count": record.retry_count + 1,
    "started_at": None,
    "completed_at": None,
    "logs": record.logs + [f"Retry attempt {record.retry_count + 1} queued{' (fresh)' if fresh else ''}."],
  }
  if fresh:
    fields.update({field_name: None for field_name in STAGE_ARTIFACT_FIELDS.values()})

  updated = await repo.update_job(job_id, **fields)
  if updated is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)

  logger.info("Job %s requeued (retry %d, fresh=%s)", job_id, updated.retry_count, fresh)
  return _job_status_from_record(updated)


async def cancel_job(job_id: str, *, settings: Settings, jobs_repo: JobsRepository | None = None, posts_repo: PostsRepository | None = None) -> JobStatusResponse:
  """Mark a job as cancelled and return its post to the pool."""
  repo = jobs_repo or _get_jobs_repo(settings)
  posts = posts_repo or _get_posts_repo(settings)
  record = await _require_job(repo, job_id)

  if record.status in TERMINAL_STATUSES:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Job already finished (status={record.status}).")

  updated = await repo.update_job(job_id, status="failed", error_message=CANCELLED_MESSAGE, logs=record.logs + [CANCELLED_MESSAGE])
  if updated is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)

  await posts.update_post_status(record.discovered_post_id, "pending")
  logger.info("Job %s cancelled", job_id)
  return _job_status_from_record(updated)


async def get_job_status(job_id: str, *, settings: Settings, jobs_repo: JobsRepository | None = None) -> JobStatusResponse:
  repo = jobs_repo or _get_jobs_repo(settings)
  return _job_status_from_record(await _require_job(repo, job_id))


async def list_jobs(*, settings: Settings, status_filter: str | None = None, limit: int = 50, offset: int = 0, jobs_repo: JobsRepository | None = None) -> JobListResponse:
  repo = jobs_repo or _get_jobs_repo(settings)
  records, total = await repo.list_jobs(limit, offset, status=status_filter)
  return JobListResponse(items=[_job_status_from_record(record) for record in records], total=total, limit=limit, offset=offset)


async def job_stats(*, settings: Settings, scheduler: JobScheduler | None = None, jobs_repo: JobsRepository | None = None) -> JobStatsResponse:
  """Return job counts grouped by status."""
  repo = jobs_repo or _get_jobs_repo(settings)
  counts = await repo.count_by_status()
  running = scheduler.running_jobs_count() if scheduler is not None else 0
  return JobStatsResponse(counts=counts, total=sum(counts.values()), running=running)
