"""Identifier and slug utilities."""

from __future__ import annotations

import re
import secrets
import string
import unicodedata
import uuid

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_DASH_RE = re.compile(r"[\s_-]+")


def generate_job_id() -> str:
  """Return a new generation job identifier."""
  return str(uuid.uuid4())


def generate_id(size: int = 16) -> str:
  """Return a short non-sequential id for content, components and images."""
  alphabet = string.ascii_lowercase + string.digits
  return "".join(secrets.choice(alphabet) for _ in range(size))


def slugify(text: str, *, max_length: int = 80) -> str:
  """Lowercase, ASCII-fold and dash-join a title into a URL slug."""
  normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
  cleaned = _SLUG_STRIP_RE.sub("", normalized.lower())
  slug = _SLUG_DASH_RE.sub("-", cleaned).strip("-")
  return slug[:max_length].rstrip("-")
