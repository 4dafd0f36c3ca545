"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from painpress.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the painpress service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  pg_dsn: str | None
  pg_connect_timeout: int
  auto_create_tables: bool
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  output_dir: str
  max_concurrent_jobs: int
  max_generation_retries: int
  job_lease_seconds: int
  scheduler_enabled: bool
  generation_interval_seconds: int
  cleanup_interval_seconds: int
  task_secret: str | None
  esbuild_binary: str
  esbuild_timeout_seconds: float
  gemini_api_key: str | None
  openrouter_api_key: str | None
  fast_model: str
  pro_model: str
  image_model: str
  code_model: str
  review_model: str


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:3000",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("PAINPRESS_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("PAINPRESS_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  return value or None


def _parse_int(name: str, default: str, *, minimum: int) -> int:
  """Read an integer env var and enforce a lower bound."""
  raw = os.getenv(name, default)
  try:
    value = int(raw)
  except ValueError as exc:
    raise ValueError(f"{name} must be an integer, got '{raw}'.") from exc

  if value < minimum:
    raise ValueError(f"{name} must be >= {minimum}.")

  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("PAINPRESS_ENV", "development").lower()
  debug = _parse_bool(os.getenv("PAINPRESS_DEBUG"))

  log_max_bytes = _parse_int("PAINPRESS_LOG_MAX_BYTES", "5242880", minimum=1)  # 5MB default
  log_backup_count = _parse_int("PAINPRESS_LOG_BACKUP_COUNT", "10", minimum=0)

  # Concurrency ceiling for the generation scheduler.
  max_concurrent_jobs = _parse_int("PAINPRESS_MAX_CONCURRENT_JOBS", "3", minimum=1)
  max_generation_retries = _parse_int("PAINPRESS_MAX_GENERATION_RETRIES", "3", minimum=0)
  job_lease_seconds = _parse_int("PAINPRESS_JOB_LEASE_SECONDS", "1800", minimum=1)

  generation_interval_seconds = _parse_int("PAINPRESS_GENERATION_INTERVAL_SECONDS", "900", minimum=1)
  cleanup_interval_seconds = _parse_int("PAINPRESS_CLEANUP_INTERVAL_SECONDS", "86400", minimum=1)

  esbuild_timeout_raw = os.getenv("PAINPRESS_ESBUILD_TIMEOUT_SECONDS", "30")
  try:
    esbuild_timeout_seconds = float(esbuild_timeout_raw)
  except ValueError as exc:
    raise ValueError(f"PAINPRESS_ESBUILD_TIMEOUT_SECONDS must be a number, got '{esbuild_timeout_raw}'.") from exc
  if esbuild_timeout_seconds <= 0:
    raise ValueError("PAINPRESS_ESBUILD_TIMEOUT_SECONDS must be positive.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("PAINPRESS_ALLOWED_ORIGINS")),
    pg_dsn=os.getenv("PAINPRESS_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=_parse_int("PAINPRESS_PG_CONNECT_TIMEOUT", "5", minimum=1),
    auto_create_tables=_parse_bool(os.getenv("PAINPRESS_AUTO_CREATE_TABLES")),
    log_dir=(os.getenv("PAINPRESS_LOG_DIR") or "./logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    output_dir=(os.getenv("PAINPRESS_OUTPUT_DIR") or "./output").strip(),
    max_concurrent_jobs=max_concurrent_jobs,
    max_generation_retries=max_generation_retries,
    job_lease_seconds=job_lease_seconds,
    scheduler_enabled=_parse_bool(os.getenv("PAINPRESS_SCHEDULER_ENABLED")),
    generation_interval_seconds=generation_interval_seconds,
    cleanup_interval_seconds=cleanup_interval_seconds,
    task_secret=_optional_str(os.getenv("PAINPRESS_TASK_SECRET")),
    esbuild_binary=(os.getenv("PAINPRESS_ESBUILD_BINARY") or "esbuild").strip(),
    esbuild_timeout_seconds=esbuild_timeout_seconds,
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    openrouter_api_key=_optional_str(os.getenv("OPENROUTER_API_KEY")),
    fast_model=(os.getenv("PAINPRESS_FAST_MODEL") or "gemini-2.5-flash").strip(),
    pro_model=(os.getenv("PAINPRESS_PRO_MODEL") or "gemini-2.5-pro").strip(),
    image_model=(os.getenv("PAINPRESS_IMAGE_MODEL") or "gemini-2.5-flash-image").strip(),
    code_model=(os.getenv("PAINPRESS_CODE_MODEL") or "anthropic/claude-opus-4.5").strip(),
    review_model=(os.getenv("PAINPRESS_REVIEW_MODEL") or "anthropic/claude-opus-4.5").strip(),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load only the settings needed to open database connections."""

  return DatabaseSettings(
    debug=_parse_bool(os.getenv("PAINPRESS_DEBUG")),
    pg_dsn=os.getenv("PAINPRESS_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=_parse_int("PAINPRESS_PG_CONNECT_TIMEOUT", "5", minimum=1),
  )
