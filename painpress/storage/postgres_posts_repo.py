"""Postgres-backed repository for discovered posts and niches."""

from __future__ import annotations

from sqlalchemy import delete, select

from painpress.core.database import get_session_factory
from painpress.schema.sql import DiscoveredPost, Niche
from painpress.storage.posts_repo import NicheRecord, PostRecord, PostsRepository, PostStatus
from painpress.utils.timestamps import now_iso


class PostgresPostsRepository(PostsRepository):
  """Read and move discovered posts through their lifecycle."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_post(self, post_id: str) -> PostRecord | None:
    async with self._session_factory() as session:
      row = await session.get(DiscoveredPost, post_id)
      if row is None:
        return None
      return self._post_to_record(row)

  async def get_niche(self, niche_id: str) -> NicheRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Niche, niche_id)
      if row is None:
        return None
      return NicheRecord(id=row.id, name=row.name, voice_guidelines=row.voice_guidelines, target_audience=row.target_audience, keywords=list(row.keywords or []))

  async def update_post_status(self, post_id: str, status: PostStatus) -> None:
    async with self._session_factory() as session:
      row = await session.get(DiscoveredPost, post_id)
      if row is None:
        return
      row.status = status
      row.updated_at = now_iso()
      session.add(row)
      await session.commit()

  async def list_pending_by_score(self, limit: int) -> list[PostRecord]:
    async with self._session_factory() as session:
      stmt = select(DiscoveredPost).where(DiscoveredPost.status == "pending").order_by(DiscoveredPost.pain_score.desc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._post_to_record(row) for row in rows]

  async def delete_rejected_before(self, cutoff: str) -> int:
    async with self._session_factory() as session:
      stmt = delete(DiscoveredPost).where(DiscoveredPost.status == "rejected", DiscoveredPost.updated_at < cutoff)
      result = await session.execute(stmt)
      await session.commit()
      return int(result.rowcount or 0)

  def _post_to_record(self, row: DiscoveredPost) -> PostRecord:
    return PostRecord(
      id=row.id,
      niche_id=row.niche_id,
      title=row.title,
      content=row.content,
      status=row.status,  # type: ignore[arg-type]
      created_at=row.created_at,
      updated_at=row.updated_at,
      source_url=row.source_url,
      author=row.author,
      author_level=row.author_level,
      pain_score=row.pain_score,
      pain_analysis=row.pain_analysis,
    )
