"""Shared error classification helpers for AI provider handling."""

from __future__ import annotations

from collections.abc import Iterable

_TRANSIENT_HINTS: tuple[str, ...] = (
  "rate limit",
  "429",
  "too many requests",
  "resource exhausted",
  "timeout",
  "timed out",
  "econnreset",
  "econnrefused",
  "503",
  "500",
)

_OUTPUT_HINTS: tuple[str, ...] = (
  "invalid json",
  "failed to parse",
  "parse json",
  "schema",
  "validation",
)


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  return any(hint in message for hint in hints)


def is_transient_error(exc: BaseException) -> bool:
  """Return True when an exception looks like a rate limit or transient outage."""
  message = str(exc).lower()
  return _match_hint(message, _TRANSIENT_HINTS)


def is_output_error(exc: BaseException) -> bool:
  """Return True when an exception indicates invalid output formatting."""
  message = str(exc).lower()
  return _match_hint(message, _OUTPUT_HINTS)
