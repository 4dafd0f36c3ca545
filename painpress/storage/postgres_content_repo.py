"""Postgres-backed repository for generated content and images."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select

from painpress.core.database import get_session_factory
from painpress.schema.sql import Content, ContentImage
from painpress.storage.content_repo import ContentRecord, ContentRepository, ImageRecord
from painpress.utils.timestamps import now_iso

_UPDATABLE_CONTENT_FIELDS = frozenset({"slug", "title", "description", "content", "components", "component_bundle", "component_status", "status"})


class PostgresContentRepository(ContentRepository):
  """Persist articles and their images to Postgres."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_content(self, record: ContentRecord) -> None:
    async with self._session_factory() as session:
      session.add(
        Content(
          id=record.id,
          niche_id=record.niche_id,
          job_id=record.job_id,
          discovered_post_id=record.discovered_post_id,
          slug=record.slug,
          title=record.title,
          description=record.description,
          content=record.content,
          components=record.components,
          component_bundle=record.component_bundle,
          component_status=record.component_status,
          status=record.status,
          created_at=record.created_at,
          updated_at=record.updated_at,
        )
      )
      await session.commit()

  async def get_content(self, content_id: str) -> ContentRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Content, content_id)
      if row is None:
        return None
      return self._content_to_record(row)

  async def update_content(self, content_id: str, **fields: Any) -> ContentRecord | None:
    unknown = set(fields) - _UPDATABLE_CONTENT_FIELDS
    if unknown:
      raise ValueError(f"Unknown content fields: {', '.join(sorted(unknown))}")
    async with self._session_factory() as session:
      row = await session.get(Content, content_id)
      if row is None:
        return None
      for name, value in fields.items():
        setattr(row, name, value)
      row.updated_at = now_iso()
      session.add(row)
      await session.commit()
      await session.refresh(row)
      return self._content_to_record(row)

  async def recent_titles(self, limit: int) -> list[str]:
    async with self._session_factory() as session:
      stmt = select(Content.title).order_by(Content.created_at.desc()).limit(limit)
      return list((await session.execute(stmt)).scalars().all())

  async def add_images(self, images: list[ImageRecord]) -> None:
    if not images:
      return
    async with self._session_factory() as session:
      for image in images:
        session.add(
          ContentImage(
            id=image.id,
            content_id=image.content_id,
            type=image.type,
            prompt=image.prompt,
            alt_text=image.alt_text,
            filename=image.filename,
            file_path=image.file_path,
            width=image.width,
            height=image.height,
            mime_type=image.mime_type,
            status=image.status,
          )
        )
      await session.commit()

  async def list_images_for_archived(self) -> list[ImageRecord]:
    async with self._session_factory() as session:
      stmt = select(ContentImage).join(Content, Content.id == ContentImage.content_id).where(Content.status == "archived")
      rows = (await session.execute(stmt)).scalars().all()
      return [self._image_to_record(row) for row in rows]

  async def delete_images(self, image_ids: list[str]) -> int:
    if not image_ids:
      return 0
    async with self._session_factory() as session:
      result = await session.execute(delete(ContentImage).where(ContentImage.id.in_(image_ids)))
      await session.commit()
      return int(result.rowcount or 0)

  def _content_to_record(self, row: Content) -> ContentRecord:
    return ContentRecord(
      id=row.id,
      niche_id=row.niche_id,
      job_id=row.job_id,
      discovered_post_id=row.discovered_post_id,
      slug=row.slug,
      title=row.title,
      description=row.description,
      content=row.content,
      status=row.status,  # type: ignore[arg-type]
      created_at=row.created_at,
      updated_at=row.updated_at,
      components=list(row.components or []),
      component_bundle=row.component_bundle,
      component_status=list(row.component_status or []),
    )

  def _image_to_record(self, row: ContentImage) -> ImageRecord:
    return ImageRecord(
      id=row.id,
      content_id=row.content_id,
      type=row.type,
      prompt=row.prompt,
      alt_text=row.alt_text,
      filename=row.filename,
      file_path=row.file_path,
      width=row.width,
      height=row.height,
      mime_type=row.mime_type,
      status=row.status,
    )
