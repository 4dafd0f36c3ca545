"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Final, cast

from google import genai
from google.genai import types

from painpress.ai.backoff import retry_with_backoff
from painpress.ai.json_parser import parse_json_with_fallback
from painpress.ai.providers.base import AIModel, Provider, SimpleModelResponse, StructuredModelResponse

logger = logging.getLogger(__name__)

_DEFAULT_MAX_TOKENS: Final[int] = 8192
_GROUNDED_MAX_TOKENS: Final[int] = 4096


@dataclass(frozen=True)
class SearchSource:
  """Web source cited by a grounded search response."""

  title: str
  url: str


@dataclass
class GroundedSearchResponse:
  """Grounded search answer plus the web sources Gemini cited."""

  content: str
  sources: list[SearchSource] = field(default_factory=list)
  usage: dict[str, int] | None = None


@dataclass(frozen=True)
class ImageData:
  """Raw image bytes returned by native image generation."""

  data: bytes
  mime_type: str = "image/png"


def _usage_from(response: Any) -> dict[str, int] | None:
  metadata = getattr(response, "usage_metadata", None)
  if not metadata:
    return None
  return {"prompt_tokens": metadata.prompt_token_count or 0, "completion_tokens": metadata.candidates_token_count or 0, "total_tokens": metadata.total_token_count or 0}


def _stop_reason_from(response: Any) -> str | None:
  candidates = getattr(response, "candidates", None) or []
  if not candidates or candidates[0].finish_reason is None:
    return None
  reason = str(getattr(candidates[0].finish_reason, "name", candidates[0].finish_reason))
  # Normalize to the same vocabulary the OpenRouter model reports.
  if reason == "MAX_TOKENS":
    return "max_tokens"
  return reason.lower()


class GeminiModel(AIModel):
  """Gemini model client with structured, grounded and image output."""

  def __init__(self, name: str, api_key: str | None = None) -> None:
    self.name: str = name
    self.supports_structured_output = True

    api_key = api_key or os.getenv("GEMINI_API_KEY")
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")

    self._client = genai.Client(api_key=api_key)

  async def generate(self, prompt: str, *, max_tokens: int | None = None, temperature: float | None = None, system_prompt: str | None = None) -> SimpleModelResponse:
    """Generate text response from Gemini."""
    config = types.GenerateContentConfig(max_output_tokens=max_tokens or _DEFAULT_MAX_TOKENS, temperature=temperature, system_instruction=system_prompt)
    # Use the async client to avoid blocking the asyncio event loop.
    response = await retry_with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt, config=config)

    content = response.text or ""
    logger.debug("Gemini response (%s, %d chars)", self.name, len(content))
    return SimpleModelResponse(content=content, usage=_usage_from(response), stop_reason=_stop_reason_from(response))

  async def generate_structured(
    self, prompt: str, schema: dict[str, Any] | None = None, *, max_tokens: int | None = None, temperature: float | None = None, system_prompt: str | None = None
  ) -> StructuredModelResponse:
    """Generate structured JSON output using Gemini's JSON mode."""
    instructions = [system_prompt] if system_prompt else []
    if schema:
      # The schema is given as instructions; pydantic $defs are not accepted by response_schema.
      instructions.append(f"Respond with JSON that matches this schema:\n```json\n{json.dumps(schema, indent=2)}\n```")
    config = types.GenerateContentConfig(
      max_output_tokens=max_tokens or _DEFAULT_MAX_TOKENS, temperature=temperature, system_instruction="\n\n".join(instructions) or None, response_mime_type="application/json"
    )
    response = await retry_with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt, config=config)
    logger.debug("Gemini structured response (raw):\n%s", response.text)

    try:
      cleaned = self.strip_json_fences(response.text or "")
      parsed = cast(dict[str, Any], parse_json_with_fallback(cleaned))
    except json.JSONDecodeError as e:
      raise RuntimeError(f"Gemini returned invalid JSON: {e}") from e

    if not isinstance(parsed, dict):
      raise RuntimeError(f"Gemini returned invalid JSON: expected an object, got {type(parsed).__name__}")
    return StructuredModelResponse(content=parsed, usage=_usage_from(response))

  async def generate_grounded(self, query: str, *, temperature: float = 0.7, system_prompt: str | None = None, max_tokens: int | None = None) -> GroundedSearchResponse:
    """Answer a query with the Google Search tool and collect cited sources."""
    config = types.GenerateContentConfig(
      max_output_tokens=max_tokens or _GROUNDED_MAX_TOKENS, temperature=temperature, system_instruction=system_prompt, tools=[types.Tool(google_search=types.GoogleSearch())]
    )
    response = await retry_with_backoff(self._client.aio.models.generate_content, model=self.name, contents=query, config=config)

    sources: list[SearchSource] = []
    candidates = response.candidates or []
    grounding = candidates[0].grounding_metadata if candidates else None
    for chunk in (grounding.grounding_chunks if grounding else None) or []:
      if chunk.web:
        sources.append(SearchSource(title=chunk.web.title or "", url=chunk.web.uri or ""))

    logger.debug("Gemini grounded search returned %d sources", len(sources))
    return GroundedSearchResponse(content=response.text or "", sources=sources, usage=_usage_from(response))

  async def generate_image(self, prompt: str) -> list[ImageData]:
    """Generate images with Gemini native image output."""
    config = types.GenerateContentConfig(response_modalities=["IMAGE"])
    response = await retry_with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt, config=config)

    images: list[ImageData] = []
    for candidate in response.candidates or []:
      if not candidate.content or not candidate.content.parts:
        continue
      for part in candidate.content.parts:
        if part.inline_data and part.inline_data.data:
          images.append(ImageData(data=part.inline_data.data, mime_type=part.inline_data.mime_type or "image/png"))

    logger.debug("Gemini image generation returned %d images", len(images))
    return images


class GeminiProvider(Provider):
  """Gemini provider."""

  _DEFAULT_MODEL: Final[str] = "gemini-2.5-flash"
  _AVAILABLE_MODELS: Final[set[str]] = {
    "gemini-2.5-pro",
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.5-flash-image",
    "gemini-2.0-flash",
    "gemini-2.0-flash-lite",
  }

  def __init__(self, api_key: str | None = None) -> None:
    self.name: str = "gemini"
    self._api_key = api_key

  def get_model(self, model: str | None = None) -> GeminiModel:
    """Return a Gemini model client."""
    model_name = model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported Gemini model '{model_name}'.")
    return GeminiModel(model_name, api_key=self._api_key)
