"""Orchestration for the staged article generation pipeline."""

from __future__ import annotations

import logging
import traceback
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, NoReturn, TypeVar

from pydantic import BaseModel, ValidationError

from painpress.ai.agents import AlignmentReviewer, ComponentBuilderAgent, ContentAgent, ImagesAgent, OutlineAgent, ResearchAgent, VoiceAgent
from painpress.ai.pipeline.contracts import (
  ComponentArtifact,
  ComponentsInput,
  ContentInput,
  ContentOutline,
  GeneratedComponent,
  GeneratedContent,
  GenerationContext,
  ImageArtifact,
  ImagesInput,
  NicheContext,
  OutlineInput,
  ResearchInput,
  ResearchResult,
  SourcePost,
  VoiceAnalysis,
  VoiceInput,
)
from painpress.ai.router import ModelRole, ProviderMode, get_gemini_model_for_role, get_model_for_role
from painpress.ai.utils.usage import summarize_usage
from painpress.components.bundler import bundle_components
from painpress.config import Settings
from painpress.jobs.models import STAGE_ARTIFACT_FIELDS, STAGE_PROGRESS, JobRecord
from painpress.storage.content_repo import ContentRecord, ContentRepository, ImageRecord
from painpress.storage.jobs_repo import JobsRepository
from painpress.storage.posts_repo import PostsRepository
from painpress.utils.ids import generate_id
from painpress.utils.timestamps import now_iso

logger = logging.getLogger(__name__)

ArtifactT = TypeVar("ArtifactT", bound=BaseModel)
UsageSink = Callable[[dict[str, Any]], None]
Bundler = Callable[[list[GeneratedComponent]], Awaitable[str]]


class OrchestrationError(RuntimeError):
  """Raised when the orchestration pipeline encounters a fatal error."""

  def __init__(self, message: str, *, logs: list[str]) -> None:
    """Store the failure message and a log snapshot for upstream handlers."""
    super().__init__(message)
    self.logs = logs


@dataclass
class PipelineAgents:
  """Agents used by one pipeline run."""

  voice: VoiceAgent
  research: ResearchAgent
  outline: OutlineAgent
  content: ContentAgent
  components: ComponentBuilderAgent
  images: ImagesAgent


AgentsFactory = Callable[[UsageSink], PipelineAgents]


@dataclass
class _OrchestrationContext:
  """Mutable state for one job run."""

  job: JobRecord
  generation: GenerationContext
  logs: list[str] = field(default_factory=list)
  usage: list[dict[str, Any]] = field(default_factory=list)

  def log(self, message: str) -> None:
    self.logs.append(message)
    logger.info("[%s] %s", self.job.job_id, message)


def build_default_agents(settings: Settings) -> AgentsFactory:
  """Return a factory wiring each stage to its configured model role."""

  def _factory(usage_sink: UsageSink) -> PipelineAgents:
    gemini = ProviderMode.GEMINI.value
    openrouter = ProviderMode.OPENROUTER.value
    fast_model = get_model_for_role(ModelRole.FAST, settings)
    reviewer = AlignmentReviewer(model=get_model_for_role(ModelRole.REVIEW, settings), prov=openrouter, use=usage_sink)
    return PipelineAgents(
      voice=VoiceAgent(model=fast_model, prov=gemini, use=usage_sink),
      research=ResearchAgent(model=fast_model, prov=gemini, use=usage_sink, search_model=get_gemini_model_for_role(ModelRole.FAST, settings)),
      outline=OutlineAgent(model=fast_model, prov=gemini, use=usage_sink),
      content=ContentAgent(model=get_model_for_role(ModelRole.PRO, settings), prov=gemini, use=usage_sink),
      components=ComponentBuilderAgent(model=get_model_for_role(ModelRole.CODE, settings), prov=openrouter, use=usage_sink, reviewer=reviewer),
      images=ImagesAgent(model=fast_model, prov=gemini, image_model=get_gemini_model_for_role(ModelRole.IMAGE, settings), output_dir=settings.output_dir, use=usage_sink),
    )

  return _factory


class GenerationOrchestrator:
  """Runs one generation job through its stages and persists each artifact."""

  def __init__(
    self,
    *,
    settings: Settings,
    jobs_repo: JobsRepository,
    posts_repo: PostsRepository,
    content_repo: ContentRepository,
    agents_factory: AgentsFactory | None = None,
    bundler: Bundler | None = None,
    lease_owner: str | None = None,
  ) -> None:
    self._settings = settings
    self._jobs_repo = jobs_repo
    self._posts_repo = posts_repo
    self._content_repo = content_repo
    self._agents_factory = agents_factory or build_default_agents(settings)
    self._bundler = bundler or self._default_bundler
    self._lease_owner = lease_owner

  async def _default_bundler(self, components: list[GeneratedComponent]) -> str:
    return await bundle_components(components, esbuild_binary=self._settings.esbuild_binary, timeout=self._settings.esbuild_timeout_seconds)

  async def run(self, job_id: str) -> str:
    """Run the pipeline for a job and return the new content id."""
    job = await self._jobs_repo.get_job(job_id)
    if job is None:
      raise OrchestrationError(f"Generation job not found: {job_id}", logs=[])

    try:
      ctx = await self._load_context(job)
      return await self._run_guarded(ctx)
    finally:
      if self._lease_owner:
        await self._jobs_repo.release_job(job_id, self._lease_owner)

  async def _run_guarded(self, ctx: _OrchestrationContext) -> str:
    job_id = ctx.job.job_id
    try:
      agents = self._agents_factory(ctx.usage.append)
      await self._jobs_repo.update_job(job_id, status="voice", current_step="voice", progress=0, started_at=now_iso())
      await self._posts_repo.update_post_status(ctx.generation.post.id, "processing")
      ctx.log("Starting generation job")
      return await self._run_stages(ctx, agents)
    except Exception as exc:  # noqa: BLE001
      await self._fail_job(ctx, exc)
      raise OrchestrationError(str(exc), logs=ctx.logs) from exc

  async def _load_context(self, job: JobRecord) -> _OrchestrationContext:
    post = await self._posts_repo.get_post(job.discovered_post_id)
    if post is None:
      await self._reject_unloadable(job, f"Discovered post not found: {job.discovered_post_id}")

    niche = await self._posts_repo.get_niche(job.niche_id)
    if niche is None:
      await self._reject_unloadable(job, f"Niche not found: {job.niche_id}")

    generation = GenerationContext(
      job_id=job.job_id,
      niche_id=niche.id,
      created_at=datetime.now(UTC),
      post=SourcePost(
        id=post.id,
        title=post.title,
        content=post.content,
        source_url=post.source_url,
        author=post.author,
        author_level=post.author_level,
        pain_analysis=post.pain_analysis,
      ),
      niche=NicheContext(name=niche.name, voice_guidelines=niche.voice_guidelines, target_audience=niche.target_audience, keywords=niche.keywords),
    )
    return _OrchestrationContext(job=job, generation=generation)

  async def _reject_unloadable(self, job: JobRecord, message: str) -> NoReturn:
    # Failed jobs drop out of the scheduler's pending queue.
    logger.error("Generation job %s cannot start: %s", job.job_id, message)
    logs = [*job.logs, message]
    await self._jobs_repo.update_job(job.job_id, status="failed", error_message=message, logs=logs)
    raise OrchestrationError(message, logs=logs)

  async def _run_stages(self, ctx: _OrchestrationContext, agents: PipelineAgents) -> str:
    generation = ctx.generation
    post = generation.post
    niche = generation.niche

    await self._enter_stage(ctx, "voice")
    voice = await self._resume_or_run(ctx, "voice", VoiceAnalysis, lambda: agents.voice.run(VoiceInput(post=post, niche=niche), generation))

    await self._enter_stage(ctx, "research")
    research = await self._resume_or_run(ctx, "research", ResearchResult, lambda: agents.research.run(ResearchInput(post=post, niche=niche, voice=voice), generation))

    await self._enter_stage(ctx, "outline")
    outline = await self._resume_or_run(ctx, "outline", ContentOutline, lambda: agents.outline.run(OutlineInput(post=post, niche=niche, voice=voice, research=research), generation))

    await self._enter_stage(ctx, "content")
    content_input = ContentInput(post=post, niche=niche, voice=voice, research=research, outline=outline)
    article = await self._resume_or_run(ctx, "content", GeneratedContent, lambda: agents.content.run(content_input, generation))

    await self._enter_stage(ctx, "components")

    async def _build_components() -> ComponentArtifact:
      output = await agents.components.run(ComponentsInput(outline=outline, content=article), generation)
      bundle = await self._bundler(output.components)
      return ComponentArtifact(components=output.components, status=output.status, bundle=bundle)

    components = await self._resume_or_run(ctx, "components", ComponentArtifact, _build_components)

    await self._enter_stage(ctx, "images")
    images = await self._resume_or_run(ctx, "images", ImageArtifact, lambda: agents.images.run(ImagesInput(niche_id=generation.niche_id, outline=outline, content=article), generation))

    await self._enter_stage(ctx, "assembly")
    return await self._assemble(ctx, outline, article, components, images)

  async def _enter_stage(self, ctx: _OrchestrationContext, stage: str) -> None:
    await self._jobs_repo.update_job(ctx.job.job_id, status=stage, current_step=stage, progress=STAGE_PROGRESS[stage])
    ctx.log(f"Stage {stage} started")

  async def _resume_or_run(self, ctx: _OrchestrationContext, stage: str, artifact_type: type[ArtifactT], produce: Callable[[], Awaitable[ArtifactT]]) -> ArtifactT:
    """Reuse a stored artifact that still validates, otherwise run the stage and persist its output."""
    stored = ctx.job.artifact_for(stage)
    if stored is not None:
      try:
        artifact = artifact_type.model_validate(stored)
      except ValidationError as exc:
        logger.warning("Stored %s artifact for job %s failed validation; regenerating: %s", stage, ctx.job.job_id, exc)
      else:
        ctx.log(f"Skipping {stage}: reusing stored artifact")
        return artifact

    artifact = await produce()
    await self._jobs_repo.update_job(ctx.job.job_id, **{STAGE_ARTIFACT_FIELDS[stage]: artifact.model_dump(mode="json", by_alias=True)})
    return artifact

  async def _assemble(self, ctx: _OrchestrationContext, outline: ContentOutline, article: GeneratedContent, components: ComponentArtifact, images: ImageArtifact) -> str:
    generation = ctx.generation
    content_id = generate_id()
    timestamp = now_iso()

    record = ContentRecord(
      id=content_id,
      niche_id=generation.niche_id,
      job_id=generation.job_id,
      discovered_post_id=generation.post.id,
      slug=outline.slug,
      title=outline.title,
      description=outline.description,
      content=article.content,
      status="review",
      created_at=timestamp,
      updated_at=timestamp,
      components=[component.model_dump(mode="json", by_alias=True) for component in components.components],
      component_bundle=components.bundle,
      component_status=[result.model_dump(mode="json", by_alias=True) for result in components.status],
    )
    await self._content_repo.create_content(record)

    image_records = [
      ImageRecord(
        id=image.id,
        content_id=content_id,
        type=image.type,
        prompt=image.prompt,
        alt_text=image.alt_text,
        filename=image.filename,
        file_path=image.file_path,
        width=image.width,
        height=image.height,
        mime_type=image.mime_type,
        status="completed",
      )
      for image in images.images
    ]
    await self._content_repo.add_images(image_records)

    await self._posts_repo.update_post_status(generation.post.id, "completed")
    ctx.log(f"Generation job completed (content_id={content_id})")
    await self._jobs_repo.update_job(
      generation.job_id,
      status="completed",
      current_step="completed",
      progress=STAGE_PROGRESS["completed"],
      completed_at=now_iso(),
      content_id=content_id,
      usage=summarize_usage(ctx.usage),
      logs=ctx.logs,
    )
    return content_id

  async def _fail_job(self, ctx: _OrchestrationContext, exc: Exception) -> None:
    job_id = ctx.job.job_id
    ctx.logs.append(f"Generation job failed: {exc}")
    logger.error("Generation job %s failed", job_id, exc_info=exc)
    await self._jobs_repo.update_job(
      job_id,
      status="failed",
      error_message=str(exc),
      error_detail="".join(traceback.format_exception(exc)),
      usage=summarize_usage(ctx.usage),
      logs=ctx.logs,
    )
    # Return the post to the pool so it can be retried.
    await self._posts_repo.update_post_status(ctx.generation.post.id, "pending")
