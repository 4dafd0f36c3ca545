"""Ordered strategies for pulling component source out of free-text model replies."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from painpress.components.sanitizer import sanitize_template_literals

logger = logging.getLogger(__name__)

_LANGUAGE_TAGS: frozenset[str] = frozenset({"tsx", "typescript", "jsx", "javascript"})
_RAW_CODE_MARKERS: tuple[str, ...] = ("export default", "function ", "const ")


class ExtractionStrategy(Protocol):
  """One way of locating code inside a model response."""

  name: str

  def extract(self, text: str) -> str | None:
    """Return the code found in ``text`` or None when this strategy does not apply."""


@dataclass(frozen=True)
class TaggedFenceStrategy:
  """Closed fenced block opened with an exact language tag."""

  tag: str
  name: str = field(init=False)
  _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

  def __post_init__(self) -> None:
    object.__setattr__(self, "name", f"{self.tag}_fence")
    object.__setattr__(self, "_pattern", re.compile(rf"```{re.escape(self.tag)}\s*\r?\n(.*?)```", re.DOTALL))

  def extract(self, text: str) -> str | None:
    match = self._pattern.search(text)
    if match is None:
      return None
    return match.group(1).strip() or None


@dataclass(frozen=True)
class GenericFenceStrategy:
  """Any closed fenced block; drops a leading language line when present."""

  name: str = "generic_fence"

  _PATTERN = re.compile(r"```\r?\n(.*?)```", re.DOTALL)

  def extract(self, text: str) -> str | None:
    match = self._PATTERN.search(text)
    if match is None:
      return None
    extracted = match.group(1).strip()
    first_line, newline, rest = extracted.partition("\n")
    if newline and first_line.strip().lower() in _LANGUAGE_TAGS:
      logger.debug("Stripping language line '%s' from generic fence", first_line.strip())
      extracted = rest.strip()
    return extracted or None


@dataclass(frozen=True)
class UnclosedFenceStrategy:
  """Fence opened but never closed, usually a reply truncated by the token limit."""

  name: str = "unclosed_fence"

  _PATTERN = re.compile(r"```(?:tsx|typescript|jsx|javascript)?\s*\r?\n(.+)", re.DOTALL)

  def extract(self, text: str) -> str | None:
    match = self._PATTERN.search(text)
    if match is None:
      return None
    extracted = match.group(1).strip()
    # Trim a partial closing fence left at the cut-off point.
    if extracted.endswith("``"):
      extracted = extracted[:-2].strip()
    elif extracted.endswith("`"):
      extracted = extracted[:-1].strip()
    if extracted:
      logger.info("Code extracted from an unclosed fence (reply may be truncated), length=%d", len(extracted))
    return extracted or None


@dataclass(frozen=True)
class RawResponseStrategy:
  """Whole reply when it already looks like source code."""

  name: str = "raw_response"

  def extract(self, text: str) -> str | None:
    if not any(marker in text for marker in _RAW_CODE_MARKERS):
      return None
    return text.strip() or None


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (
  TaggedFenceStrategy("tsx"),
  TaggedFenceStrategy("typescript"),
  TaggedFenceStrategy("jsx"),
  GenericFenceStrategy(),
  UnclosedFenceStrategy(),
  RawResponseStrategy(),
)


def extract_code(text: str, strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES) -> str | None:
  """Run the strategies in order and return sanitized code from the first match."""
  for strategy in strategies:
    code = strategy.extract(text)
    if code is None:
      continue
    logger.debug("Code extracted via %s", strategy.name)
    return sanitize_template_literals(code)
  return None
