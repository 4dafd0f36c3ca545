from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

from painpress.jobs.models import JobStatus


class JobCreateRequest(BaseModel):
  """Request payload for queueing a generation job."""

  post_id: StrictStr = Field(min_length=1, description="Discovered post to turn into an article.")
  model_config = ConfigDict(extra="forbid")


class JobCreateResponse(BaseModel):
  job_id: StrictStr


class JobRetryRequest(BaseModel):
  """Request payload for retrying a failed job."""

  fresh: bool = Field(default=False, description="Discard stored stage artifacts and rerun every stage.")
  model_config = ConfigDict(extra="forbid")


class JobStatusResponse(BaseModel):
  """Status payload for a generation job."""

  job_id: StrictStr
  status: JobStatus
  current_step: StrictStr | None = None
  progress: StrictInt = Field(default=0, ge=0, le=100)
  retry_count: StrictInt = 0
  error_message: StrictStr | None = None
  content_id: StrictStr | None = None
  created_at: StrictStr
  updated_at: StrictStr
  started_at: StrictStr | None = None
  completed_at: StrictStr | None = None
  usage: dict[str, Any] | None = None
  logs: list[str] = Field(default_factory=list)


class JobListResponse(BaseModel):
  items: list[JobStatusResponse]
  total: StrictInt
  limit: StrictInt
  offset: StrictInt


class JobStatsResponse(BaseModel):
  """Job counts by status plus the local scheduler load."""

  counts: dict[str, int]
  total: StrictInt
  running: StrictInt


class ComponentRegenerateResponse(BaseModel):
  content_id: StrictStr
  index: StrictInt
  success: bool
  attempts: StrictInt
  error: StrictStr | None = None


class TickResponse(BaseModel):
  jobs_started: StrictInt
  jobs_completed: StrictInt
  jobs_failed: StrictInt
  auto_queued: StrictInt


class CleanupResponse(BaseModel):
  deleted_posts: StrictInt
  deleted_jobs: StrictInt
  deleted_images: StrictInt
  freed_bytes: StrictInt
