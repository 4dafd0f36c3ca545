"""Storage interfaces for discovered posts and niches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

PostStatus = Literal["pending", "queued", "processing", "completed", "rejected"]


@dataclass
class PostRecord:
  """A discovered pain point awaiting (or done with) generation."""

  id: str
  niche_id: str
  title: str
  content: str
  status: PostStatus
  created_at: str
  updated_at: str
  source_url: str = ""
  author: str | None = None
  author_level: str | None = None
  pain_score: int = 0
  pain_analysis: dict[str, Any] | None = None


@dataclass
class NicheRecord:
  id: str
  name: str
  voice_guidelines: str | None = None
  target_audience: str | None = None
  keywords: list[str] = field(default_factory=list)


class PostsRepository(Protocol):
  """Repository contract for posts and their niches."""

  async def get_post(self, post_id: str) -> PostRecord | None:
    """Fetch a post by identifier."""

  async def get_niche(self, niche_id: str) -> NicheRecord | None:
    """Fetch a niche by identifier."""

  async def update_post_status(self, post_id: str, status: PostStatus) -> None:
    """Move a post to a new status."""

  async def list_pending_by_score(self, limit: int) -> list[PostRecord]:
    """Return pending posts ordered by pain score, highest first."""

  async def delete_rejected_before(self, cutoff: str) -> int:
    """Delete rejected posts last updated before cutoff."""
