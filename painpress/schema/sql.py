from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from painpress.core.database import Base

_NOW_ISO = text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')""")


class Niche(Base):
  __tablename__ = "niches"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  voice_guidelines: Mapped[str | None] = mapped_column(Text, nullable=True)
  target_audience: Mapped[str | None] = mapped_column(Text, nullable=True)
  keywords: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_NOW_ISO)


class DiscoveredPost(Base):
  __tablename__ = "discovered_posts"
  __table_args__ = (Index("ix_discovered_posts_status_score", "status", "pain_score"),)

  id: Mapped[str] = mapped_column(String, primary_key=True)
  niche_id: Mapped[str] = mapped_column(ForeignKey("niches.id", ondelete="CASCADE"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(Text, nullable=False)
  content: Mapped[str] = mapped_column(Text, nullable=False, default="")
  source_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
  author: Mapped[str | None] = mapped_column(String, nullable=True)
  author_level: Mapped[str | None] = mapped_column(String, nullable=True)
  pain_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  pain_analysis: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  status: Mapped[str] = mapped_column(String, nullable=False, default="pending", index=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_NOW_ISO)
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_NOW_ISO)


class GenerationJob(Base):
  __tablename__ = "generation_jobs"

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  discovered_post_id: Mapped[str] = mapped_column(ForeignKey("discovered_posts.id", ondelete="CASCADE"), nullable=False, index=True)
  niche_id: Mapped[str] = mapped_column(ForeignKey("niches.id", ondelete="CASCADE"), nullable=False, index=True)
  status: Mapped[str] = mapped_column(String, nullable=False, index=True)
  current_step: Mapped[str | None] = mapped_column(String, nullable=True)
  progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  error_detail: Mapped[str | None] = mapped_column(Text, nullable=True)
  voice_analysis: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  research: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  outline: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  generated_content: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  component_output: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  images: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  usage: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  logs: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
  content_id: Mapped[str | None] = mapped_column(String, nullable=True)
  claimed_by: Mapped[str | None] = mapped_column(String, nullable=True)
  lease_expires_at: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_NOW_ISO)
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_NOW_ISO)
  started_at: Mapped[str | None] = mapped_column(String, nullable=True)
  completed_at: Mapped[str | None] = mapped_column(String, nullable=True)


class Content(Base):
  __tablename__ = "content"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  niche_id: Mapped[str] = mapped_column(ForeignKey("niches.id", ondelete="CASCADE"), nullable=False, index=True)
  job_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  discovered_post_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  slug: Mapped[str] = mapped_column(String, nullable=False, index=True)
  title: Mapped[str] = mapped_column(Text, nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  content: Mapped[str] = mapped_column(Text, nullable=False)
  components: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
  component_bundle: Mapped[str] = mapped_column(Text, nullable=False, default="")
  component_status: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
  status: Mapped[str] = mapped_column(String, nullable=False, default="review", index=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_NOW_ISO)
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_NOW_ISO)


class ContentImage(Base):
  __tablename__ = "content_images"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  content_id: Mapped[str] = mapped_column(ForeignKey("content.id", ondelete="CASCADE"), nullable=False, index=True)
  type: Mapped[str] = mapped_column(String, nullable=False)
  prompt: Mapped[str] = mapped_column(Text, nullable=False)
  alt_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
  filename: Mapped[str] = mapped_column(String, nullable=False)
  file_path: Mapped[str] = mapped_column(Text, nullable=False)
  width: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  height: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  mime_type: Mapped[str] = mapped_column(String, nullable=False, default="image/png")
  status: Mapped[str] = mapped_column(String, nullable=False, default="completed")
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_NOW_ISO)
