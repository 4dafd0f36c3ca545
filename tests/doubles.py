"""In-memory repositories and scripted models shared by the test suite."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from painpress.ai.providers.base import AIModel, SimpleModelResponse, StructuredModelResponse
from painpress.config import Settings
from painpress.jobs.models import JobRecord
from painpress.storage.content_repo import ContentRecord, ImageRecord
from painpress.storage.posts_repo import NicheRecord, PostRecord
from painpress.utils.timestamps import iso_offset, now_iso

TIMESTAMP = "2026-01-01T00:00:00Z"


def make_settings(**overrides: Any) -> Settings:
  """Build settings without touching the environment."""
  base = Settings(
    environment="test",
    debug=False,
    allowed_origins=("http://localhost",),
    pg_dsn=None,
    pg_connect_timeout=5,
    auto_create_tables=False,
    log_dir="./logs",
    log_max_bytes=1024,
    log_backup_count=1,
    output_dir="./output",
    max_concurrent_jobs=3,
    max_generation_retries=3,
    job_lease_seconds=60,
    scheduler_enabled=False,
    generation_interval_seconds=900,
    cleanup_interval_seconds=86400,
    task_secret="s3cret",
    esbuild_binary="esbuild",
    esbuild_timeout_seconds=5.0,
    gemini_api_key=None,
    openrouter_api_key=None,
    fast_model="fast",
    pro_model="pro",
    image_model="image",
    code_model="code",
    review_model="review",
  )
  return replace(base, **overrides)


def make_job(job_id: str, **overrides: Any) -> JobRecord:
  fields: dict[str, Any] = {"job_id": job_id, "discovered_post_id": "post-1", "niche_id": "niche-1", "status": "pending", "created_at": TIMESTAMP, "updated_at": TIMESTAMP}
  fields.update(overrides)
  return JobRecord(**fields)


def make_post(post_id: str = "post-1", **overrides: Any) -> PostRecord:
  fields: dict[str, Any] = {
    "id": post_id,
    "niche_id": "niche-1",
    "title": "How do I stop my React app re-rendering?",
    "content": "Every keystroke re-renders the whole tree and I do not know why.",
    "status": "pending",
    "created_at": TIMESTAMP,
    "updated_at": TIMESTAMP,
  }
  fields.update(overrides)
  return PostRecord(**fields)


class InMemoryJobsRepo:
  def __init__(self) -> None:
    self.jobs: dict[str, JobRecord] = {}
    self.released: list[tuple[str, str]] = []

  async def create_job(self, record: JobRecord) -> None:
    self.jobs[record.job_id] = record

  async def get_job(self, job_id: str) -> JobRecord | None:
    return self.jobs.get(job_id)

  async def update_job(self, job_id: str, **fields: Any) -> JobRecord | None:
    record = self.jobs.get(job_id)
    if record is None:
      return None
    updated = replace(record, **fields, updated_at=now_iso())
    self.jobs[job_id] = updated
    return updated

  async def find_pending(self, limit: int) -> list[JobRecord]:
    pending = [job for job in self.jobs.values() if job.status == "pending"]
    pending.sort(key=lambda job: job.created_at, reverse=True)
    return pending[:limit]

  async def claim_job(self, job_id: str, owner: str, lease_seconds: int) -> bool:
    record = self.jobs.get(job_id)
    if record is None or record.status != "pending":
      return False
    lease_free = record.claimed_by in (None, owner) or (record.lease_expires_at or "") < now_iso()
    if not lease_free:
      return False
    self.jobs[job_id] = replace(record, claimed_by=owner, lease_expires_at=iso_offset(seconds=lease_seconds))
    return True

  async def release_job(self, job_id: str, owner: str) -> None:
    self.released.append((job_id, owner))
    record = self.jobs.get(job_id)
    if record is not None and record.claimed_by == owner:
      self.jobs[job_id] = replace(record, claimed_by=None, lease_expires_at=None)

  async def list_jobs(self, limit: int, offset: int, status: str | None = None) -> tuple[list[JobRecord], int]:
    records = [job for job in self.jobs.values() if status is None or job.status == status]
    records.sort(key=lambda job: job.created_at, reverse=True)
    return records[offset : offset + limit], len(records)

  async def count_by_status(self) -> dict[str, int]:
    counts: dict[str, int] = {}
    for job in self.jobs.values():
      counts[job.status] = counts.get(job.status, 0) + 1
    return counts

  async def delete_failed_before(self, cutoff: str) -> int:
    doomed = [job_id for job_id, job in self.jobs.items() if job.status == "failed" and job.updated_at < cutoff]
    for job_id in doomed:
      del self.jobs[job_id]
    return len(doomed)


class InMemoryPostsRepo:
  def __init__(self) -> None:
    self.posts: dict[str, PostRecord] = {}
    self.niches: dict[str, NicheRecord] = {"niche-1": NicheRecord(id="niche-1", name="React", target_audience="frontend developers", keywords=["react", "hooks"])}

  def add(self, post: PostRecord) -> PostRecord:
    self.posts[post.id] = post
    return post

  async def get_post(self, post_id: str) -> PostRecord | None:
    return self.posts.get(post_id)

  async def get_niche(self, niche_id: str) -> NicheRecord | None:
    return self.niches.get(niche_id)

  async def update_post_status(self, post_id: str, status: str) -> None:
    record = self.posts.get(post_id)
    if record is not None:
      self.posts[post_id] = replace(record, status=status, updated_at=now_iso())

  async def list_pending_by_score(self, limit: int) -> list[PostRecord]:
    pending = sorted((post for post in self.posts.values() if post.status == "pending"), key=lambda post: post.pain_score, reverse=True)
    return pending[:limit]

  async def delete_rejected_before(self, cutoff: str) -> int:
    doomed = [post_id for post_id, post in self.posts.items() if post.status == "rejected" and post.updated_at < cutoff]
    for post_id in doomed:
      del self.posts[post_id]
    return len(doomed)


class InMemoryContentRepo:
  def __init__(self) -> None:
    self.content: dict[str, ContentRecord] = {}
    self.images: dict[str, ImageRecord] = {}

  async def create_content(self, record: ContentRecord) -> None:
    self.content[record.id] = record

  async def get_content(self, content_id: str) -> ContentRecord | None:
    return self.content.get(content_id)

  async def update_content(self, content_id: str, **fields: Any) -> ContentRecord | None:
    record = self.content.get(content_id)
    if record is None:
      return None
    updated = replace(record, **fields)
    self.content[content_id] = updated
    return updated

  async def recent_titles(self, limit: int) -> list[str]:
    records = sorted(self.content.values(), key=lambda record: record.created_at, reverse=True)
    return [record.title for record in records[:limit]]

  async def add_images(self, images: list[ImageRecord]) -> None:
    for image in images:
      self.images[image.id] = image

  async def list_images_for_archived(self) -> list[ImageRecord]:
    archived = {content_id for content_id, record in self.content.items() if record.status == "archived"}
    return [image for image in self.images.values() if image.content_id in archived]

  async def delete_images(self, image_ids: list[str]) -> int:
    deleted = 0
    for image_id in image_ids:
      if self.images.pop(image_id, None) is not None:
        deleted += 1
    return deleted


class ScriptedModel(AIModel):
  """Model double that replays queued replies; exceptions in the queue are raised."""

  supports_structured_output = True

  def __init__(self, *, text: list[Any] | None = None, structured: list[Any] | None = None, name: str = "scripted") -> None:
    self.name = name
    self.text_replies = list(text or [])
    self.structured_replies = list(structured or [])
    self.prompts: list[str] = []
    self.calls: list[dict[str, Any]] = []

  async def generate(self, prompt: str, *, max_tokens: int | None = None, temperature: float | None = None, system_prompt: str | None = None) -> SimpleModelResponse:
    self.prompts.append(prompt)
    self.calls.append({"max_tokens": max_tokens, "temperature": temperature, "system_prompt": system_prompt})
    reply = self.text_replies.pop(0)
    if isinstance(reply, BaseException):
      raise reply
    if isinstance(reply, SimpleModelResponse):
      return reply
    return SimpleModelResponse(content=reply, usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15})

  async def generate_structured(
    self, prompt: str, schema: dict[str, Any] | None = None, *, max_tokens: int | None = None, temperature: float | None = None, system_prompt: str | None = None
  ) -> StructuredModelResponse:
    self.prompts.append(prompt)
    self.calls.append({"schema": schema, "max_tokens": max_tokens, "temperature": temperature, "system_prompt": system_prompt})
    reply = self.structured_replies.pop(0)
    if isinstance(reply, BaseException):
      raise reply
    return StructuredModelResponse(content=reply, usage={"prompt_tokens": 20, "completion_tokens": 10, "total_tokens": 30})
