"""Postgres-backed repository for generation jobs using SQLAlchemy."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, or_, select, update

from painpress.core.database import get_session_factory
from painpress.jobs.models import JobRecord
from painpress.schema.sql import GenerationJob
from painpress.storage.jobs_repo import JobsRepository, validate_job_fields
from painpress.utils.timestamps import iso_offset, now_iso


class PostgresJobsRepository(JobsRepository):
  """Persist generation jobs to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: JobRecord) -> None:
    async with self._session_factory() as session:
      job = GenerationJob(
        job_id=record.job_id,
        discovered_post_id=record.discovered_post_id,
        niche_id=record.niche_id,
        status=record.status,
        current_step=record.current_step,
        progress=record.progress,
        retry_count=record.retry_count,
        logs=list(record.logs),
        created_at=record.created_at,
        updated_at=record.updated_at,
      )
      session.add(job)
      await session.commit()

  async def get_job(self, job_id: str) -> JobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(GenerationJob, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def update_job(self, job_id: str, **fields: Any) -> JobRecord | None:
    validate_job_fields(fields)
    async with self._session_factory() as session:
      row = await session.get(GenerationJob, job_id)
      if row is None:
        return None
      for name, value in fields.items():
        setattr(row, name, value)
      row.updated_at = now_iso()
      session.add(row)
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  async def find_pending(self, limit: int) -> list[JobRecord]:
    async with self._session_factory() as session:
      stmt = select(GenerationJob).where(GenerationJob.status == "pending").order_by(GenerationJob.created_at.desc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows]

  async def claim_job(self, job_id: str, owner: str, lease_seconds: int) -> bool:
    now = now_iso()
    async with self._session_factory() as session:
      # Compare-and-swap: only one owner can move the lease forward.
      stmt = (
        update(GenerationJob)
        .where(
          GenerationJob.job_id == job_id,
          GenerationJob.status == "pending",
          or_(GenerationJob.claimed_by.is_(None), GenerationJob.claimed_by == owner, GenerationJob.lease_expires_at < now),
        )
        .values(claimed_by=owner, lease_expires_at=iso_offset(seconds=lease_seconds), updated_at=now)
      )
      result = await session.execute(stmt)
      await session.commit()
      return result.rowcount == 1

  async def release_job(self, job_id: str, owner: str) -> None:
    async with self._session_factory() as session:
      stmt = update(GenerationJob).where(GenerationJob.job_id == job_id, GenerationJob.claimed_by == owner).values(claimed_by=None, lease_expires_at=None)
      await session.execute(stmt)
      await session.commit()

  async def list_jobs(self, limit: int, offset: int, status: str | None = None) -> tuple[list[JobRecord], int]:
    async with self._session_factory() as session:
      stmt = select(GenerationJob).order_by(GenerationJob.created_at.desc()).limit(limit).offset(offset)
      count_stmt = select(func.count()).select_from(GenerationJob)
      if status:
        stmt = stmt.where(GenerationJob.status == status)
        count_stmt = count_stmt.where(GenerationJob.status == status)
      total = await session.scalar(count_stmt)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows], int(total or 0)

  async def count_by_status(self) -> dict[str, int]:
    async with self._session_factory() as session:
      stmt = select(GenerationJob.status, func.count()).group_by(GenerationJob.status)
      rows = (await session.execute(stmt)).all()
      return {status: int(count) for status, count in rows}

  async def delete_failed_before(self, cutoff: str) -> int:
    async with self._session_factory() as session:
      stmt = delete(GenerationJob).where(GenerationJob.status == "failed", GenerationJob.updated_at < cutoff)
      result = await session.execute(stmt)
      await session.commit()
      return int(result.rowcount or 0)

  def _model_to_record(self, row: GenerationJob) -> JobRecord:
    return JobRecord(
      job_id=row.job_id,
      discovered_post_id=row.discovered_post_id,
      niche_id=row.niche_id,
      status=row.status,  # type: ignore[arg-type]
      created_at=row.created_at,
      updated_at=row.updated_at,
      current_step=row.current_step,
      progress=row.progress,
      retry_count=row.retry_count,
      error_message=row.error_message,
      error_detail=row.error_detail,
      voice_analysis=row.voice_analysis,
      research=row.research,
      outline=row.outline,
      generated_content=row.generated_content,
      component_output=row.component_output,
      images=row.images,
      usage=row.usage,
      content_id=row.content_id,
      claimed_by=row.claimed_by,
      lease_expires_at=row.lease_expires_at,
      started_at=row.started_at,
      completed_at=row.completed_at,
      logs=list(row.logs or []),
    )
