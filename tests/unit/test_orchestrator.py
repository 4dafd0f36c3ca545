from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from painpress.ai.orchestrator import GenerationOrchestrator, OrchestrationError, PipelineAgents
from painpress.ai.pipeline.contracts import (
  ComponentGenerationOutput,
  ComponentGenerationResult,
  ComponentSpec,
  ContentOutline,
  GeneratedComponent,
  GeneratedContent,
  GeneratedImage,
  ImageArtifact,
  ResearchResult,
  VoiceAnalysis,
)
from tests.doubles import make_job, make_post

VOICE = VoiceAnalysis(experience_level="intermediate", communication_style="technical", preferred_format="example-heavy", terminology_level="intermediate")
RESEARCH = ResearchResult(topic="re-renders", summary="Memoize expensive children.")
SPEC = ComponentSpec(type="quiz", purpose="Check memo usage", placement="end")
OUTLINE = ContentOutline(title="Stop Needless Re-renders", slug="stop-needless-re-renders", description="Find wasted renders.", interactive_components=[SPEC])
ARTICLE = GeneratedContent(title="Stop Needless Re-renders", slug="stop-needless-re-renders", description="Find wasted renders.", content="## Why\nBecause.")
COMPONENT = GeneratedComponent(id="comp-1", type="quiz", name="KnowledgeQuiz", code="export default function KnowledgeQuiz() { return null; }", exports=["KnowledgeQuiz"])
IMAGE = GeneratedImage(
  id="img-1",
  type="hero",
  prompt="hero",
  alt_text="Hero",
  filename="stop-needless-re-renders-hero-img-1.png",
  file_path="/tmp/img.png",
  width=1024,
  height=576,
  mime_type="image/png",
)


def _agent(result: object) -> MagicMock:
  agent = MagicMock()
  agent.run = AsyncMock(return_value=result)
  return agent


def _agents() -> PipelineAgents:
  components = ComponentGenerationOutput(components=[COMPONENT], status=[ComponentGenerationResult(success=True, component=COMPONENT, spec=SPEC, attempts=1)])
  return PipelineAgents(
    voice=_agent(VOICE),
    research=_agent(RESEARCH),
    outline=_agent(OUTLINE),
    content=_agent(ARTICLE),
    components=_agent(components),
    images=_agent(ImageArtifact(images=[IMAGE])),
  )


def _orchestrator(settings, jobs_repo, posts_repo, content_repo, agents: PipelineAgents, **kwargs) -> GenerationOrchestrator:
  return GenerationOrchestrator(
    settings=settings,
    jobs_repo=jobs_repo,
    posts_repo=posts_repo,
    content_repo=content_repo,
    agents_factory=lambda _sink: agents,
    bundler=AsyncMock(return_value="bundle-js"),
    **kwargs,
  )


@pytest.mark.anyio
async def test_successful_run_assembles_content(settings, jobs_repo, posts_repo, content_repo) -> None:
  posts_repo.add(make_post(status="queued"))
  await jobs_repo.create_job(make_job("job-1"))
  agents = _agents()
  orchestrator = _orchestrator(settings, jobs_repo, posts_repo, content_repo, agents)

  content_id = await orchestrator.run("job-1")

  job = jobs_repo.jobs["job-1"]
  assert job.status == "completed"
  assert job.progress == 100
  assert job.content_id == content_id
  assert job.completed_at is not None
  assert job.started_at is not None
  assert job.voice_analysis == VOICE.model_dump(mode="json", by_alias=True)
  assert job.component_output["bundle"] == "bundle-js"
  assert job.usage is not None
  assert job.usage["totals"]["calls"] == 0

  record = content_repo.content[content_id]
  assert record.status == "review"
  assert record.slug == "stop-needless-re-renders"
  assert record.component_bundle == "bundle-js"
  assert record.components[0]["name"] == "KnowledgeQuiz"
  assert [image.content_id for image in content_repo.images.values()] == [content_id]
  assert posts_repo.posts["post-1"].status == "completed"

  voice_input = agents.voice.run.await_args.args[0]
  assert voice_input.post.id == "post-1"
  assert voice_input.niche.name == "React"


@pytest.mark.anyio
async def test_stage_progress_checkpoints(settings, jobs_repo, posts_repo, content_repo) -> None:
  posts_repo.add(make_post())
  await jobs_repo.create_job(make_job("job-1"))
  seen: list[tuple[str, int]] = []
  original_update = jobs_repo.update_job

  async def _tracking_update(job_id: str, **fields):
    if "current_step" in fields and "progress" in fields:
      seen.append((fields["current_step"], fields["progress"]))
    return await original_update(job_id, **fields)

  jobs_repo.update_job = _tracking_update
  await _orchestrator(settings, jobs_repo, posts_repo, content_repo, _agents()).run("job-1")

  assert seen == [
    ("voice", 0),
    ("voice", 10),
    ("research", 25),
    ("outline", 40),
    ("content", 55),
    ("components", 70),
    ("images", 85),
    ("assembly", 95),
    ("completed", 100),
  ]


@pytest.mark.anyio
async def test_stage_failure_fails_job_and_returns_post(settings, jobs_repo, posts_repo, content_repo) -> None:
  posts_repo.add(make_post(status="queued"))
  await jobs_repo.create_job(make_job("job-1", claimed_by="owner-1"))
  agents = _agents()
  agents.research.run = AsyncMock(side_effect=RuntimeError("search exploded"))
  orchestrator = _orchestrator(settings, jobs_repo, posts_repo, content_repo, agents, lease_owner="owner-1")

  with pytest.raises(OrchestrationError) as exc_info:
    await orchestrator.run("job-1")

  assert isinstance(exc_info.value.__cause__, RuntimeError)
  assert any("search exploded" in line for line in exc_info.value.logs)
  job = jobs_repo.jobs["job-1"]
  assert job.status == "failed"
  assert job.error_message == "search exploded"
  assert "RuntimeError" in job.error_detail
  # The finished voice stage stays stored for a resumed retry.
  assert job.voice_analysis is not None
  assert job.research is None
  assert posts_repo.posts["post-1"].status == "pending"
  assert ("job-1", "owner-1") in jobs_repo.released
  assert content_repo.content == {}


@pytest.mark.anyio
async def test_resume_skips_stored_stages(settings, jobs_repo, posts_repo, content_repo) -> None:
  posts_repo.add(make_post())
  await jobs_repo.create_job(
    make_job(
      "job-1",
      retry_count=1,
      voice_analysis=VOICE.model_dump(mode="json", by_alias=True),
      research=RESEARCH.model_dump(mode="json", by_alias=True),
    )
  )
  agents = _agents()

  await _orchestrator(settings, jobs_repo, posts_repo, content_repo, agents).run("job-1")

  agents.voice.run.assert_not_awaited()
  agents.research.run.assert_not_awaited()
  agents.outline.run.assert_awaited_once()
  outline_input = agents.outline.run.await_args.args[0]
  assert outline_input.research.summary == RESEARCH.summary
  job = jobs_repo.jobs["job-1"]
  assert job.status == "completed"
  assert "Skipping voice: reusing stored artifact" in job.logs


@pytest.mark.anyio
async def test_invalid_stored_artifact_is_regenerated(settings, jobs_repo, posts_repo, content_repo) -> None:
  posts_repo.add(make_post())
  await jobs_repo.create_job(make_job("job-1", voice_analysis={"experienceLevel": "wizard"}))
  agents = _agents()

  await _orchestrator(settings, jobs_repo, posts_repo, content_repo, agents).run("job-1")

  agents.voice.run.assert_awaited_once()


@pytest.mark.anyio
async def test_missing_post_marks_job_failed(settings, jobs_repo, posts_repo, content_repo) -> None:
  await jobs_repo.create_job(make_job("job-1", discovered_post_id="ghost"))
  orchestrator = _orchestrator(settings, jobs_repo, posts_repo, content_repo, _agents(), lease_owner="worker-1")

  with pytest.raises(OrchestrationError, match="Discovered post not found: ghost"):
    await orchestrator.run("job-1")

  job = jobs_repo.jobs["job-1"]
  assert job.status == "failed"
  assert job.error_message == "Discovered post not found: ghost"
  assert job.logs[-1] == "Discovered post not found: ghost"
  assert jobs_repo.released == [("job-1", "worker-1")]


@pytest.mark.anyio
async def test_missing_niche_marks_job_failed(settings, jobs_repo, posts_repo, content_repo) -> None:
  posts_repo.add(make_post())
  await jobs_repo.create_job(make_job("job-1", niche_id="gone"))

  with pytest.raises(OrchestrationError, match="Niche not found: gone"):
    await _orchestrator(settings, jobs_repo, posts_repo, content_repo, _agents()).run("job-1")

  job = jobs_repo.jobs["job-1"]
  assert job.status == "failed"
  assert job.error_message == "Niche not found: gone"
  assert posts_repo.posts["post-1"].status == "pending"


@pytest.mark.anyio
async def test_failed_start_write_marks_job_failed(settings, jobs_repo, posts_repo, content_repo) -> None:
  posts_repo.add(make_post(status="queued"))
  await jobs_repo.create_job(make_job("job-1"))
  original_status_update = posts_repo.update_post_status

  async def failing_status_update(post_id: str, status: str) -> None:
    if status == "processing":
      raise RuntimeError("posts table locked")
    await original_status_update(post_id, status)

  posts_repo.update_post_status = failing_status_update
  agents = _agents()

  with pytest.raises(OrchestrationError, match="posts table locked"):
    await _orchestrator(settings, jobs_repo, posts_repo, content_repo, agents).run("job-1")

  job = jobs_repo.jobs["job-1"]
  assert job.status == "failed"
  assert job.error_message == "posts table locked"
  assert posts_repo.posts["post-1"].status == "pending"
  agents.voice.run.assert_not_awaited()


@pytest.mark.anyio
async def test_agents_factory_error_marks_job_failed(settings, jobs_repo, posts_repo, content_repo) -> None:
  posts_repo.add(make_post(status="queued"))
  await jobs_repo.create_job(make_job("job-1"))

  def broken_factory(_sink):
    raise ValueError("GEMINI_API_KEY is not set")

  orchestrator = GenerationOrchestrator(
    settings=settings,
    jobs_repo=jobs_repo,
    posts_repo=posts_repo,
    content_repo=content_repo,
    agents_factory=broken_factory,
    bundler=AsyncMock(return_value="bundle-js"),
  )

  with pytest.raises(OrchestrationError, match="GEMINI_API_KEY"):
    await orchestrator.run("job-1")

  assert jobs_repo.jobs["job-1"].status == "failed"
  assert posts_repo.posts["post-1"].status == "pending"


@pytest.mark.anyio
async def test_missing_job_raises(settings, jobs_repo, posts_repo, content_repo) -> None:
  with pytest.raises(OrchestrationError, match="Generation job not found"):
    await _orchestrator(settings, jobs_repo, posts_repo, content_repo, _agents()).run("nope")
