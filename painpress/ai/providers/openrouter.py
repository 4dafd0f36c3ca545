"""OpenRouter provider implementation using openai SDK."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Final, cast

from openai import AsyncOpenAI

from painpress.ai.backoff import retry_with_backoff
from painpress.ai.json_parser import parse_json_with_fallback
from painpress.ai.providers.base import AIModel, Provider, SimpleModelResponse, StructuredModelResponse

logger = logging.getLogger(__name__)

_DEFAULT_MAX_TOKENS: Final[int] = 4096


def _usage_from(response: Any) -> dict[str, int] | None:
  if not response.usage:
    return None
  return {"prompt_tokens": response.usage.prompt_tokens, "completion_tokens": response.usage.completion_tokens, "total_tokens": response.usage.total_tokens}


def _build_messages(prompt: str, system_prompt: str | None) -> list[dict[str, str]]:
  messages = []
  if system_prompt:
    messages.append({"role": "system", "content": system_prompt})
  messages.append({"role": "user", "content": prompt})
  return messages


class OpenRouterModel(AIModel):
  """OpenRouter chat model client; used for the Claude code and review roles."""

  def __init__(self, name: str, api_key: str | None = None, base_url: str | None = None) -> None:
    self.name: str = name
    self.supports_structured_output = True

    api_key = api_key or os.getenv("OPENROUTER_API_KEY")
    if not api_key:
      raise ValueError("OPENROUTER_API_KEY environment variable is required")

    # OpenRouter uses the OpenAI-compatible API; attribution headers are optional.
    default_headers = {}
    referer = os.getenv("OPENROUTER_HTTP_REFERER")
    if referer:
      default_headers["HTTP-Referer"] = referer
    title = os.getenv("OPENROUTER_TITLE")
    if title:
      default_headers["X-Title"] = title

    self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or "https://openrouter.ai/api/v1", default_headers=default_headers or None)

  async def generate(self, prompt: str, *, max_tokens: int | None = None, temperature: float | None = None, system_prompt: str | None = None) -> SimpleModelResponse:
    """Generate text response from OpenRouter."""
    params: dict[str, Any] = {"model": self.name, "messages": _build_messages(prompt, system_prompt), "max_tokens": max_tokens or _DEFAULT_MAX_TOKENS}
    if temperature is not None:
      params["temperature"] = temperature

    response = await retry_with_backoff(self._client.chat.completions.create, **params)

    choice = response.choices[0]
    content = choice.message.content or ""
    # "length" means the reply hit the token ceiling.
    stop_reason = "max_tokens" if choice.finish_reason == "length" else choice.finish_reason
    logger.debug("OpenRouter response (%s, %d chars, stop=%s)", self.name, len(content), stop_reason)
    return SimpleModelResponse(content=content, usage=_usage_from(response), stop_reason=stop_reason)

  async def generate_structured(
    self, prompt: str, schema: dict[str, Any] | None = None, *, max_tokens: int | None = None, temperature: float | None = None, system_prompt: str | None = None
  ) -> StructuredModelResponse:
    """Generate structured JSON output using OpenAI's JSON mode."""
    system_msg = "You are a helpful assistant that outputs valid JSON."
    if schema:
      system_msg += f"\nYou MUST strictly output JSON adhering to this schema:\n```json\n{json.dumps(schema, indent=2)}\n```"
    system_msg += "\nOutput valid JSON only, no markdown formatting."
    if system_prompt:
      system_msg = f"{system_prompt}\n\n{system_msg}"

    params: dict[str, Any] = {
      "model": self.name,
      "messages": _build_messages(prompt, system_msg),
      "max_tokens": max_tokens or _DEFAULT_MAX_TOKENS,
      "response_format": {"type": "json_object"},
    }
    if temperature is not None:
      params["temperature"] = temperature

    response = await retry_with_backoff(self._client.chat.completions.create, **params)
    content = response.choices[0].message.content or "{}"
    logger.debug("OpenRouter structured response (raw):\n%s", content)

    try:
      cleaned = self.strip_json_fences(content)
      parsed = cast(dict[str, Any], parse_json_with_fallback(cleaned))
    except json.JSONDecodeError as e:
      raise RuntimeError(f"OpenRouter returned invalid JSON: {e}") from e
    return StructuredModelResponse(content=parsed, usage=_usage_from(response))


class OpenRouterProvider(Provider):
  """OpenRouter provider."""

  _DEFAULT_MODEL: Final[str] = "anthropic/claude-opus-4.5"
  _AVAILABLE_MODELS: Final[set[str]] = {
    "anthropic/claude-opus-4.5",
    "anthropic/claude-opus-4.1",
    "anthropic/claude-sonnet-4.5",
    "anthropic/claude-sonnet-4",
    "anthropic/claude-haiku-4.5",
  }

  def __init__(self, api_key: str | None = None, base_url: str | None = None) -> None:
    self.name: str = "openrouter"
    self._api_key = api_key
    self._base_url = base_url

  def get_model(self, model: str | None = None) -> OpenRouterModel:
    """Return an OpenRouter model client."""
    model_name = model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported OpenRouter model '{model_name}'.")
    return OpenRouterModel(model_name, api_key=self._api_key, base_url=self._base_url)
