"""Storage interfaces for generation jobs."""

from __future__ import annotations

from typing import Any, Protocol

from painpress.jobs.models import JobRecord

UPDATABLE_JOB_FIELDS: frozenset[str] = frozenset(
  {
    "status",
    "current_step",
    "progress",
    "retry_count",
    "error_message",
    "error_detail",
    "voice_analysis",
    "research",
    "outline",
    "generated_content",
    "component_output",
    "images",
    "usage",
    "content_id",
    "claimed_by",
    "lease_expires_at",
    "started_at",
    "completed_at",
    "logs",
  }
)


class JobsRepository(Protocol):
  """Repository contract for job persistence."""

  async def create_job(self, record: JobRecord) -> None:
    """Persist an initial job record."""

  async def get_job(self, job_id: str) -> JobRecord | None:
    """Fetch a job by identifier."""

  async def update_job(self, job_id: str, **fields: Any) -> JobRecord | None:
    """Apply partial updates to a job; explicit None clears a column."""

  async def find_pending(self, limit: int) -> list[JobRecord]:
    """Return pending jobs, newest first."""

  async def claim_job(self, job_id: str, owner: str, lease_seconds: int) -> bool:
    """Take the lease on a pending job unless another live owner holds it."""

  async def release_job(self, job_id: str, owner: str) -> None:
    """Drop the lease held by owner."""

  async def list_jobs(self, limit: int, offset: int, status: str | None = None) -> tuple[list[JobRecord], int]:
    """Return a page of jobs, newest first, and the total count."""

  async def count_by_status(self) -> dict[str, int]:
    """Return job counts keyed by status."""

  async def delete_failed_before(self, cutoff: str) -> int:
    """Delete failed jobs last updated before cutoff."""


def validate_job_fields(fields: dict[str, Any]) -> None:
  """Reject update keys that are not job columns."""
  unknown = set(fields) - UPDATABLE_JOB_FIELDS
  if unknown:
    raise ValueError(f"Unknown job fields: {', '.join(sorted(unknown))}")
