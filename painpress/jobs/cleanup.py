"""Maintenance job pruning stale posts, failed jobs and archived images."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from starlette.concurrency import run_in_threadpool

from painpress.storage.content_repo import ContentRepository
from painpress.storage.jobs_repo import JobsRepository
from painpress.storage.posts_repo import PostsRepository
from painpress.utils.timestamps import iso_offset

logger = logging.getLogger(__name__)

REJECTED_POST_RETENTION_DAYS = 30
FAILED_JOB_RETENTION_DAYS = 7


@dataclass(frozen=True)
class CleanupResult:
  deleted_posts: int = 0
  deleted_jobs: int = 0
  deleted_images: int = 0
  freed_bytes: int = 0


def _unlink(path: Path) -> int:
  """Remove a file and return the number of bytes freed."""
  if not path.exists():
    return 0
  size = path.stat().st_size
  path.unlink()
  return size


async def run_cleanup(*, jobs_repo: JobsRepository, posts_repo: PostsRepository, content_repo: ContentRepository) -> CleanupResult:
  """Delete old rejected posts, old failed jobs, and images of archived content."""
  deleted_posts = await posts_repo.delete_rejected_before(iso_offset(days=-REJECTED_POST_RETENTION_DAYS))
  deleted_jobs = await jobs_repo.delete_failed_before(iso_offset(days=-FAILED_JOB_RETENTION_DAYS))

  freed_bytes = 0
  images = await content_repo.list_images_for_archived()
  for image in images:
    try:
      freed_bytes += await run_in_threadpool(_unlink, Path(image.file_path))
    except OSError as exc:
      logger.warning("Failed to delete image file %s: %s", image.file_path, exc)

  deleted_images = await content_repo.delete_images([image.id for image in images])

  result = CleanupResult(deleted_posts=deleted_posts, deleted_jobs=deleted_jobs, deleted_images=deleted_images, freed_bytes=freed_bytes)
  logger.info("Cleanup complete (posts=%d, jobs=%d, images=%d, freed_bytes=%d)", deleted_posts, deleted_jobs, deleted_images, freed_bytes)
  return result
