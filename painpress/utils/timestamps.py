"""UTC timestamp helpers; stored timestamps are second-precision ISO strings."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def now_iso() -> str:
  return datetime.now(UTC).strftime(ISO_FORMAT)


def iso_offset(*, seconds: float = 0, days: float = 0) -> str:
  """Return the ISO timestamp at now plus the given offset (negative for the past)."""
  return (datetime.now(UTC) + timedelta(seconds=seconds, days=days)).strftime(ISO_FORMAT)
