"""Storage interfaces for generated content and images."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

ContentStatus = Literal["review", "published", "archived"]


@dataclass
class ContentRecord:
  """A generated article awaiting review or published."""

  id: str
  niche_id: str
  job_id: str
  discovered_post_id: str
  slug: str
  title: str
  description: str
  content: str
  status: ContentStatus
  created_at: str
  updated_at: str
  components: list[dict[str, Any]] = field(default_factory=list)
  component_bundle: str = ""
  component_status: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class ImageRecord:
  id: str
  content_id: str
  type: str
  prompt: str
  alt_text: str
  filename: str
  file_path: str
  width: int
  height: int
  mime_type: str
  status: str = "completed"


class ContentRepository(Protocol):
  """Repository contract for content and image persistence."""

  async def create_content(self, record: ContentRecord) -> None:
    """Persist a new content record."""

  async def get_content(self, content_id: str) -> ContentRecord | None:
    """Fetch a content record by identifier."""

  async def update_content(self, content_id: str, **fields: Any) -> ContentRecord | None:
    """Apply partial updates to a content record."""

  async def recent_titles(self, limit: int) -> list[str]:
    """Return the most recently created content titles."""

  async def add_images(self, images: list[ImageRecord]) -> None:
    """Persist image rows for a content record."""

  async def list_images_for_archived(self) -> list[ImageRecord]:
    """Return images whose content has been archived."""

  async def delete_images(self, image_ids: list[str]) -> int:
    """Delete image rows by identifier."""
