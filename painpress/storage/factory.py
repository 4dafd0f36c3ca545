from painpress.config import Settings
from painpress.storage.content_repo import ContentRepository
from painpress.storage.jobs_repo import JobsRepository
from painpress.storage.posts_repo import PostsRepository
from painpress.storage.postgres_content_repo import PostgresContentRepository
from painpress.storage.postgres_jobs_repo import PostgresJobsRepository
from painpress.storage.postgres_posts_repo import PostgresPostsRepository

_MISSING_DSN_MSG = "PAINPRESS_PG_DSN must be set to enable Postgres persistence."


def _get_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the active jobs repository."""
  if not settings.pg_dsn:
    raise ValueError(_MISSING_DSN_MSG)

  return PostgresJobsRepository()


def _get_posts_repo(settings: Settings) -> PostsRepository:
  """Return the active posts repository."""
  if not settings.pg_dsn:
    raise ValueError(_MISSING_DSN_MSG)

  return PostgresPostsRepository()


def _get_content_repo(settings: Settings) -> ContentRepository:
  """Return the active content repository."""
  if not settings.pg_dsn:
    raise ValueError(_MISSING_DSN_MSG)

  return PostgresContentRepository()
