"""Domain models for article generation jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

JobStatus = Literal["pending", "voice", "research", "outline", "content", "components", "images", "assembly", "completed", "failed"]
StageName = Literal["voice", "research", "outline", "content", "components", "images", "assembly"]

STAGES: tuple[StageName, ...] = ("voice", "research", "outline", "content", "components", "images", "assembly")
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

# Progress written when a stage starts.
STAGE_PROGRESS: dict[str, int] = {
  "voice": 10,
  "research": 25,
  "outline": 40,
  "content": 55,
  "components": 70,
  "images": 85,
  "assembly": 95,
  "completed": 100,
}

# Job column holding each stage's persisted artifact.
STAGE_ARTIFACT_FIELDS: dict[str, str] = {
  "voice": "voice_analysis",
  "research": "research",
  "outline": "outline",
  "content": "generated_content",
  "components": "component_output",
  "images": "images",
}

CANCELLED_MESSAGE = "Cancelled by user"


@dataclass
class JobRecord:
  """Represents one pain point to article generation job."""

  job_id: str
  discovered_post_id: str
  niche_id: str
  status: JobStatus
  created_at: str
  updated_at: str
  current_step: str | None = None
  progress: int = 0
  retry_count: int = 0
  error_message: str | None = None
  error_detail: str | None = None
  voice_analysis: dict[str, Any] | None = None
  research: dict[str, Any] | None = None
  outline: dict[str, Any] | None = None
  generated_content: dict[str, Any] | None = None
  component_output: dict[str, Any] | None = None
  images: dict[str, Any] | None = None
  usage: dict[str, Any] | None = None
  content_id: str | None = None
  claimed_by: str | None = None
  lease_expires_at: str | None = None
  started_at: str | None = None
  completed_at: str | None = None
  logs: list[str] = field(default_factory=list)

  def artifact_for(self, stage: str) -> dict[str, Any] | None:
    """Return the stored artifact for a stage, if any."""
    field_name = STAGE_ARTIFACT_FIELDS.get(stage)
    if field_name is None:
      return None
    return getattr(self, field_name)
