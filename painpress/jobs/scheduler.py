"""Bounded-concurrency scheduler for generation jobs."""

from __future__ import annotations

import asyncio
import logging
import os
import socket
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from painpress.ai.agents.topic_selector import TopicSelectorAgent
from painpress.ai.pipeline.contracts import TopicCandidate, TopicSelectionInput
from painpress.config import Settings
from painpress.storage.content_repo import ContentRepository
from painpress.storage.jobs_repo import JobsRepository
from painpress.storage.posts_repo import PostsRepository

logger = logging.getLogger(__name__)

AUTO_SELECT_CANDIDATES = 20
AUTO_SELECT_RECENT_TITLES = 10
AUTO_SELECT_MAX_JOBS = 2

JobCreator = Callable[[str], Awaitable[str]]


class JobRunner(Protocol):
  async def run(self, job_id: str) -> str: ...


@dataclass
class TickResult:
  """Counters for one scheduler tick."""

  jobs_started: int = 0
  jobs_completed: int = 0
  jobs_failed: int = 0
  auto_queued: int = 0


def default_lease_owner() -> str:
  """Identify this process as a lease holder."""
  return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class JobScheduler:
  """Dispatch pending jobs up to the configured concurrency ceiling."""

  def __init__(
    self,
    *,
    settings: Settings,
    jobs_repo: JobsRepository,
    posts_repo: PostsRepository,
    content_repo: ContentRepository,
    runner: JobRunner,
    job_creator: JobCreator,
    topic_selector: TopicSelectorAgent | None = None,
    owner: str | None = None,
  ) -> None:
    self._settings = settings
    self._jobs_repo = jobs_repo
    self._posts_repo = posts_repo
    self._content_repo = content_repo
    self._runner = runner
    self._job_creator = job_creator
    self._topic_selector = topic_selector
    self.owner = owner or default_lease_owner()
    self._running: set[str] = set()

  def running_jobs_count(self) -> int:
    return len(self._running)

  def is_job_running(self, job_id: str) -> bool:
    return job_id in self._running

  async def run_tick(self) -> TickResult:
    """Auto-select new work, then start as many pending jobs as there are free slots."""
    result = TickResult(auto_queued=await self.auto_select())

    available = self._settings.max_concurrent_jobs - len(self._running)
    if available <= 0:
      logger.info("No free job slots (%d running)", len(self._running))
      return result

    pending = await self._jobs_repo.find_pending(self._settings.max_concurrent_jobs)
    candidates = [job for job in pending if job.job_id not in self._running][:available]

    claimed: list[str] = []
    for job in candidates:
      if await self._jobs_repo.claim_job(job.job_id, self.owner, self._settings.job_lease_seconds):
        claimed.append(job.job_id)
      else:
        logger.info("Job %s is leased by another scheduler; skipping", job.job_id)

    result.jobs_started = len(claimed)
    outcomes = await asyncio.gather(*(self._execute(job_id) for job_id in claimed), return_exceptions=True)
    for job_id, outcome in zip(claimed, outcomes, strict=True):
      if isinstance(outcome, BaseException):
        result.jobs_failed += 1
        logger.warning("Job %s failed: %s", job_id, outcome)
      else:
        result.jobs_completed += 1

    logger.info("Tick complete (started=%d, completed=%d, failed=%d, auto_queued=%d)", result.jobs_started, result.jobs_completed, result.jobs_failed, result.auto_queued)
    return result

  async def run_job(self, job_id: str) -> bool:
    """Run one job outside a tick, respecting the running set and the lease."""
    if job_id in self._running:
      logger.info("Job %s is already running", job_id)
      return False
    if not await self._jobs_repo.claim_job(job_id, self.owner, self._settings.job_lease_seconds):
      logger.info("Job %s could not be claimed", job_id)
      return False
    await self._execute(job_id)
    return True

  async def _execute(self, job_id: str) -> str:
    self._running.add(job_id)
    try:
      return await self._runner.run(job_id)
    finally:
      self._running.discard(job_id)
      await self._jobs_repo.release_job(job_id, self.owner)

  async def auto_select(self) -> int:
    """Ask the topic selector for the next posts and queue jobs for them."""
    if self._topic_selector is None:
      return 0

    posts = await self._posts_repo.list_pending_by_score(AUTO_SELECT_CANDIDATES)
    if not posts:
      return 0
    recent_titles = await self._content_repo.recent_titles(AUTO_SELECT_RECENT_TITLES)

    selection_input = TopicSelectionInput(candidates=[TopicCandidate(id=post.id, title=post.title, pain_score=post.pain_score) for post in posts], recent_titles=recent_titles)
    try:
      selection = await self._topic_selector.run(selection_input)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Topic selection failed: %s", exc)
      return 0

    if not selection.selected_ids:
      logger.info("Topic selector chose nothing: %s", selection.reasoning)
      return 0

    candidate_ids = {post.id for post in posts}
    queued = 0
    for post_id in selection.selected_ids[:AUTO_SELECT_MAX_JOBS]:
      if post_id not in candidate_ids:
        logger.warning("Topic selector returned unknown post id %s; skipping", post_id)
        continue
      try:
        job_id = await self._job_creator(post_id)
      except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to create job for post %s: %s", post_id, exc)
        continue
      queued += 1
      logger.info("Auto-queued job %s for post %s", job_id, post_id)

    return queued


async def _run_periodically(name: str, interval_seconds: int, task: Callable[[], Awaitable[object]]) -> None:
  while True:
    await asyncio.sleep(interval_seconds)
    try:
      await task()
    except Exception:  # noqa: BLE001
      logger.error("Periodic %s run failed", name, exc_info=True)


def start_periodic_tasks(*, settings: Settings, tick: Callable[[], Awaitable[object]], cleanup: Callable[[], Awaitable[object]]) -> list[asyncio.Task[None]]:
  """Start the generation and cleanup loops; callers cancel the returned tasks on shutdown."""
  return [
    asyncio.create_task(_run_periodically("generation tick", settings.generation_interval_seconds, tick), name="painpress-generation-tick"),
    asyncio.create_task(_run_periodically("cleanup", settings.cleanup_interval_seconds, cleanup), name="painpress-cleanup"),
  ]


def build_scheduler(settings: Settings) -> JobScheduler:
  """Wire a scheduler against the configured Postgres repositories and models."""
  from painpress.ai.orchestrator import GenerationOrchestrator
  from painpress.ai.router import ModelRole, ProviderMode, get_model_for_role
  from painpress.services.jobs import create_job
  from painpress.storage.factory import _get_content_repo, _get_jobs_repo, _get_posts_repo

  jobs_repo = _get_jobs_repo(settings)
  posts_repo = _get_posts_repo(settings)
  content_repo = _get_content_repo(settings)

  async def _create(post_id: str) -> str:
    return await create_job(post_id, settings=settings, jobs_repo=jobs_repo, posts_repo=posts_repo)

  orchestrator = GenerationOrchestrator(settings=settings, jobs_repo=jobs_repo, posts_repo=posts_repo, content_repo=content_repo)
  selector = TopicSelectorAgent(model=get_model_for_role(ModelRole.FAST, settings), prov=ProviderMode.GEMINI.value)
  return JobScheduler(
    settings=settings,
    jobs_repo=jobs_repo,
    posts_repo=posts_repo,
    content_repo=content_repo,
    runner=orchestrator,
    job_creator=_create,
    topic_selector=selector,
  )


_SCHEDULER: JobScheduler | None = None


def get_scheduler(settings: Settings) -> JobScheduler:
  """Return the process-wide scheduler so the running set is shared."""
  global _SCHEDULER
  if _SCHEDULER is None:
    _SCHEDULER = build_scheduler(settings)
  return _SCHEDULER
