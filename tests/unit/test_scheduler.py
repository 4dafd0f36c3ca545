from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from painpress.ai.agents.topic_selector import TopicSelectorAgent
from painpress.ai.orchestrator import GenerationOrchestrator
from painpress.jobs.scheduler import JobScheduler
from tests.doubles import ScriptedModel, make_job, make_post, make_settings


class RecordingRunner:
  """Runner that records peak concurrency and can fail chosen jobs."""

  def __init__(self, scheduler_ref: list[JobScheduler], *, fail: set[str] | None = None) -> None:
    self._scheduler_ref = scheduler_ref
    self.fail = fail or set()
    self.ran: list[str] = []
    self.peak = 0

  async def run(self, job_id: str) -> str:
    scheduler = self._scheduler_ref[0]
    assert scheduler.is_job_running(job_id)
    self.ran.append(job_id)
    self.peak = max(self.peak, scheduler.running_jobs_count())
    await asyncio.sleep(0)
    if job_id in self.fail:
      raise RuntimeError(f"{job_id} failed")
    return f"content-{job_id}"


def _scheduler(jobs_repo, posts_repo, content_repo, *, fail=None, max_concurrent_jobs=3, topic_selector=None, job_creator=None):
  ref: list[JobScheduler] = []
  runner = RecordingRunner(ref, fail=fail)

  async def _no_create(post_id: str) -> str:
    raise AssertionError("job creation not expected")

  scheduler = JobScheduler(
    settings=make_settings(max_concurrent_jobs=max_concurrent_jobs),
    jobs_repo=jobs_repo,
    posts_repo=posts_repo,
    content_repo=content_repo,
    runner=runner,
    job_creator=job_creator or _no_create,
    topic_selector=topic_selector,
    owner="test-owner",
  )
  ref.append(scheduler)
  return scheduler, runner


async def _seed_jobs(jobs_repo, count: int) -> None:
  for index in range(count):
    await jobs_repo.create_job(make_job(f"job-{index}", created_at=f"2026-01-01T00:00:0{index}Z"))


@pytest.mark.anyio
async def test_tick_respects_concurrency_ceiling(jobs_repo, posts_repo, content_repo) -> None:
  await _seed_jobs(jobs_repo, 5)
  scheduler, runner = _scheduler(jobs_repo, posts_repo, content_repo)

  result = await scheduler.run_tick()

  assert result.jobs_started == 3
  assert result.jobs_completed == 3
  assert result.jobs_failed == 0
  # Newest pending jobs go first.
  assert sorted(runner.ran) == ["job-2", "job-3", "job-4"]
  assert runner.peak <= 3
  assert scheduler.running_jobs_count() == 0
  assert sorted(job_id for job_id, _owner in jobs_repo.released) == ["job-2", "job-3", "job-4"]


@pytest.mark.anyio
async def test_failed_job_leaves_running_set_and_releases_lease(jobs_repo, posts_repo, content_repo) -> None:
  await _seed_jobs(jobs_repo, 2)
  scheduler, _runner = _scheduler(jobs_repo, posts_repo, content_repo, fail={"job-1"})

  result = await scheduler.run_tick()

  assert result.jobs_started == 2
  assert result.jobs_completed == 1
  assert result.jobs_failed == 1
  assert not scheduler.is_job_running("job-1")
  assert ("job-1", "test-owner") in jobs_repo.released
  assert jobs_repo.jobs["job-1"].claimed_by is None


@pytest.mark.anyio
async def test_job_with_missing_post_is_not_redispatched(jobs_repo, posts_repo, content_repo) -> None:
  settings = make_settings(max_concurrent_jobs=1)
  posts_repo.add(make_post(status="queued"))
  await jobs_repo.create_job(make_job("job-old", created_at="2026-01-01T00:00:00Z"))
  await jobs_repo.create_job(make_job("poison", discovered_post_id="gone", created_at="2026-01-02T00:00:00Z"))

  def no_provider(_sink):
    raise ValueError("no provider configured")

  orchestrator = GenerationOrchestrator(
    settings=settings,
    jobs_repo=jobs_repo,
    posts_repo=posts_repo,
    content_repo=content_repo,
    agents_factory=no_provider,
    bundler=AsyncMock(return_value="bundle-js"),
  )

  async def _no_create(post_id: str) -> str:
    raise AssertionError("job creation not expected")

  scheduler = JobScheduler(
    settings=settings,
    jobs_repo=jobs_repo,
    posts_repo=posts_repo,
    content_repo=content_repo,
    runner=orchestrator,
    job_creator=_no_create,
    owner="test-owner",
  )

  first = await scheduler.run_tick()
  assert (first.jobs_started, first.jobs_failed) == (1, 1)
  poison = jobs_repo.jobs["poison"]
  assert poison.status == "failed"
  assert poison.error_message == "Discovered post not found: gone"

  # The older job gets the slot instead of the failed one.
  second = await scheduler.run_tick()
  assert (second.jobs_started, second.jobs_failed) == (1, 1)
  assert jobs_repo.jobs["job-old"].status == "failed"

  third = await scheduler.run_tick()
  assert third.jobs_started == 0
  assert [job_id for job_id, _owner in jobs_repo.released] == ["poison", "job-old"]


@pytest.mark.anyio
async def test_tick_skips_running_jobs_and_counts_their_slot(jobs_repo, posts_repo, content_repo) -> None:
  await _seed_jobs(jobs_repo, 5)
  started = asyncio.Event()
  release = asyncio.Event()
  ran: list[str] = []

  class BlockingRunner:
    async def run(self, job_id: str) -> str:
      ran.append(job_id)
      if job_id == "job-4":
        started.set()
        await release.wait()
      return "content"

  async def _no_create(post_id: str) -> str:
    raise AssertionError("job creation not expected")

  scheduler = JobScheduler(
    settings=make_settings(max_concurrent_jobs=3),
    jobs_repo=jobs_repo,
    posts_repo=posts_repo,
    content_repo=content_repo,
    runner=BlockingRunner(),
    job_creator=_no_create,
    owner="test-owner",
  )

  blocked = asyncio.create_task(scheduler.run_job("job-4"))
  await started.wait()

  result = await scheduler.run_tick()

  assert result.jobs_started == 2
  assert ran.count("job-4") == 1
  assert scheduler.is_job_running("job-4")

  release.set()
  assert await blocked is True
  assert scheduler.running_jobs_count() == 0


@pytest.mark.anyio
async def test_claim_lost_to_another_owner_is_skipped(jobs_repo, posts_repo, content_repo) -> None:
  await _seed_jobs(jobs_repo, 1)
  assert await jobs_repo.claim_job("job-0", "other-instance", 600)
  scheduler, runner = _scheduler(jobs_repo, posts_repo, content_repo)

  result = await scheduler.run_tick()

  assert result.jobs_started == 0
  assert runner.ran == []


@pytest.mark.anyio
async def test_run_job_refuses_duplicates(jobs_repo, posts_repo, content_repo) -> None:
  await _seed_jobs(jobs_repo, 1)
  scheduler, runner = _scheduler(jobs_repo, posts_repo, content_repo)
  scheduler._running.add("job-0")

  assert await scheduler.run_job("job-0") is False
  assert runner.ran == []


@pytest.mark.anyio
async def test_auto_select_filters_unknown_ids_and_caps_at_two(jobs_repo, posts_repo, content_repo) -> None:
  for index, score in enumerate([40, 90, 70]):
    posts_repo.add(make_post(f"p{index}", title=f"Pain {index}", pain_score=score))
  created: list[str] = []

  async def _create(post_id: str) -> str:
    created.append(post_id)
    return f"job-for-{post_id}"

  model = ScriptedModel(structured=[{"selectedIds": ["p1", "not-a-candidate", "p2"], "reasoning": "highest pain"}])
  selector = TopicSelectorAgent(model=model, prov="gemini")
  scheduler, _runner = _scheduler(jobs_repo, posts_repo, content_repo, topic_selector=selector, job_creator=_create)

  queued = await scheduler.auto_select()

  assert queued == 1
  assert created == ["p1"]
  # Candidates are offered highest pain first.
  assert model.prompts[0].index("Pain 1") < model.prompts[0].index("Pain 2") < model.prompts[0].index("Pain 0")


@pytest.mark.anyio
async def test_auto_select_survives_selector_and_creator_failures(jobs_repo, posts_repo, content_repo) -> None:
  posts_repo.add(make_post("p0"))
  posts_repo.add(make_post("p1"))

  failing = TopicSelectorAgent(model=ScriptedModel(structured=[RuntimeError("quota exceeded")]), prov="gemini")
  scheduler, _runner = _scheduler(jobs_repo, posts_repo, content_repo, topic_selector=failing)
  assert await scheduler.auto_select() == 0

  async def _flaky_create(post_id: str) -> str:
    if post_id == "p0":
      raise RuntimeError("insert failed")
    return "job-p1"

  selector = TopicSelectorAgent(model=ScriptedModel(structured=[{"selectedIds": ["p0", "p1"]}]), prov="gemini")
  scheduler, _runner = _scheduler(jobs_repo, posts_repo, content_repo, topic_selector=selector, job_creator=_flaky_create)
  assert await scheduler.auto_select() == 1

  empty = TopicSelectorAgent(model=ScriptedModel(structured=[{"selectedIds": [], "reasoning": "nothing fits"}]), prov="gemini")
  scheduler, _runner = _scheduler(jobs_repo, posts_repo, content_repo, topic_selector=empty)
  assert await scheduler.auto_select() == 0


@pytest.mark.anyio
async def test_tick_includes_auto_queued_jobs(jobs_repo, posts_repo, content_repo, settings) -> None:
  from painpress.services.jobs import create_job

  posts_repo.add(make_post("p0", pain_score=10))

  async def _create(post_id: str) -> str:
    return await create_job(post_id, settings=settings, jobs_repo=jobs_repo, posts_repo=posts_repo)

  selector = TopicSelectorAgent(model=ScriptedModel(structured=[{"selectedIds": ["p0"]}]), prov="gemini")
  scheduler, runner = _scheduler(jobs_repo, posts_repo, content_repo, topic_selector=selector, job_creator=_create)

  result = await scheduler.run_tick()

  assert result.auto_queued == 1
  assert result.jobs_started == 1
  assert posts_repo.posts["p0"].status == "queued"
  assert len(runner.ran) == 1
