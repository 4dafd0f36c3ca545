"""Shared data contracts for the generation pipeline."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

MAX_COMPONENT_RETRIES = 3

COMPONENT_NAMES: dict[str, str] = {
  "quiz": "KnowledgeQuiz",
  "playground": "CodePlayground",
  "diagram": "InteractiveDiagram",
  "calculator": "Calculator",
  "comparison-table": "ComparisonTable",
}
DEFAULT_COMPONENT_NAME = "InteractiveComponent"

ImageType = Literal["hero", "inline", "diagram"]
AspectRatio = Literal["1:1", "16:9", "4:3"]


def component_name_for(component_type: str) -> str:
  """Return the deterministic React component name for a component type."""
  return COMPONENT_NAMES.get(component_type, DEFAULT_COMPONENT_NAME)


class CamelModel(BaseModel):
  """Base model accepting both the camelCase keys models emit and snake_case field names."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VoiceAnalysis(CamelModel):
  """How the original poster writes and what level of content suits them."""

  experience_level: Literal["beginner", "intermediate", "advanced"]
  communication_style: Literal["formal", "casual", "technical"]
  preferred_format: Literal["step-by-step", "conceptual", "example-heavy"]
  terminology_level: Literal["basic", "intermediate", "expert"]
  learning_goals: list[str] = Field(default_factory=list)
  frustration_points: list[str] = Field(default_factory=list)
  background_assumptions: list[str] = Field(default_factory=list)


class ResearchSource(CamelModel):
  title: str = ""
  url: str = ""
  relevance: str = ""


class ResearchResult(CamelModel):
  """Synthesized research notes for one pain point."""

  topic: str
  summary: str
  key_points: list[str] = Field(default_factory=list)
  sources: list[ResearchSource] = Field(default_factory=list)
  related_topics: list[str] = Field(default_factory=list)
  best_practices: list[str] = Field(default_factory=list)
  common_mistakes: list[str] = Field(default_factory=list)


class ComponentSpec(CamelModel):
  """Description of one interactive component, fixed once the outline exists."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

  # Known types are listed in COMPONENT_NAMES; unknown ones get the default name.
  type: str
  purpose: str
  placement: str
  requirements: list[str] = Field(default_factory=list)


class OutlineSection(CamelModel):
  heading: str
  type: str = "concept"
  key_points: list[str] = Field(default_factory=list)
  estimated_length: int = 0
  component_suggestion: str | None = None


class ContentOutline(CamelModel):
  """Article outline, including the interactive component specs."""

  title: str
  slug: str = ""
  description: str = ""
  target_audience: str = ""
  sections: list[OutlineSection] = Field(default_factory=list)
  interactive_components: list[ComponentSpec] = Field(default_factory=list)
  seo_keywords: list[str] = Field(default_factory=list)
  estimated_read_time: int = 0


class ContentSection(CamelModel):
  heading: str
  content: str
  component_placeholder: str | None = None


class GeneratedContent(CamelModel):
  """Article markdown plus its parsed sections."""

  title: str
  slug: str
  description: str
  content: str
  sections: list[ContentSection] = Field(default_factory=list)


class GeneratedComponent(CamelModel):
  """A validated component ready for bundling."""

  id: str
  type: str
  name: str
  code: str
  props: dict[str, Any] = Field(default_factory=dict)
  exports: list[str] = Field(default_factory=list)


class ComponentGenerationResult(CamelModel):
  """Outcome of the retry loop for one component spec."""

  success: bool
  component: GeneratedComponent | None = None
  spec: ComponentSpec
  error: str | None = None
  attempts: int = Field(ge=1, le=MAX_COMPONENT_RETRIES)

  @model_validator(mode="after")
  def _check_outcome(self) -> ComponentGenerationResult:
    if self.success and self.component is None:
      raise ValueError("Successful component results must carry a component.")
    if not self.success and (self.component is not None or not self.error):
      raise ValueError("Failed component results must carry an error and no component.")
    return self


class ComponentGenerationOutput(CamelModel):
  """Components that passed validation plus the per-spec status list."""

  components: list[GeneratedComponent] = Field(default_factory=list)
  status: list[ComponentGenerationResult] = Field(default_factory=list)


class ComponentArtifact(ComponentGenerationOutput):
  """Persisted output of the components stage."""

  bundle: str = ""


class ImageSpec(CamelModel):
  type: ImageType
  prompt: str
  alt_text: str = ""
  placement: str = ""
  aspect_ratio: AspectRatio = "16:9"


class ImagePlan(CamelModel):
  images: list[ImageSpec] = Field(default_factory=list)


class GeneratedImage(CamelModel):
  """An image written to disk for the article."""

  id: str
  type: ImageType
  prompt: str
  alt_text: str
  filename: str
  file_path: str
  width: int
  height: int
  mime_type: str


class ImageArtifact(CamelModel):
  """Persisted output of the images stage."""

  images: list[GeneratedImage] = Field(default_factory=list)


class TopicSelection(CamelModel):
  """Scheduler topic ranking returned by the fast model."""

  selected_ids: list[str] = Field(default_factory=list)
  reasoning: str = ""


class AlignmentIssue(BaseModel):
  component_id: str
  type: Literal["layout", "styling", "structure", "accessibility"]
  severity: Literal["warning", "error"]
  description: str
  suggestion: str


class AlignmentReview(BaseModel):
  """Parsed review of one or more components."""

  issues: list[AlignmentIssue] = Field(default_factory=list)
  suggestions: list[str] = Field(default_factory=list)

  @property
  def is_valid(self) -> bool:
    return not any(issue.severity == "error" for issue in self.issues)


class SourcePost(BaseModel):
  """The discovered post a job writes about."""

  id: str
  title: str
  content: str
  source_url: str = ""
  author: str | None = None
  author_level: str | None = None
  pain_analysis: dict[str, Any] | None = None


class NicheContext(BaseModel):
  name: str
  voice_guidelines: str | None = None
  target_audience: str | None = None
  keywords: list[str] = Field(default_factory=list)


class GenerationContext(BaseModel):
  """Context metadata for a generation job."""

  job_id: str
  niche_id: str
  created_at: datetime
  post: SourcePost
  niche: NicheContext
  metadata: dict[str, Any] | None = None


class VoiceInput(BaseModel):
  post: SourcePost
  niche: NicheContext


class ResearchInput(BaseModel):
  post: SourcePost
  niche: NicheContext
  voice: VoiceAnalysis


class OutlineInput(ResearchInput):
  research: ResearchResult


class ContentInput(OutlineInput):
  outline: ContentOutline


class ComponentsInput(BaseModel):
  outline: ContentOutline
  content: GeneratedContent


class ImagesInput(BaseModel):
  niche_id: str
  outline: ContentOutline
  content: GeneratedContent


class TopicCandidate(BaseModel):
  """Pending post offered to the topic selector."""

  id: str
  title: str
  pain_score: int = 0


class TopicSelectionInput(BaseModel):
  candidates: list[TopicCandidate] = Field(default_factory=list)
  recent_titles: list[str] = Field(default_factory=list)


class AlignmentInput(BaseModel):
  components: list[GeneratedComponent] = Field(default_factory=list)
  outline: ContentOutline
