"""Base class for AI agents."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from painpress.ai.errors import is_output_error
from painpress.ai.pipeline.contracts import GenerationContext
from painpress.ai.providers.base import AIModel

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")
ModelT = TypeVar("ModelT", bound=BaseModel)
UsageSink = Callable[[dict[str, Any]], None] | None
Model = AIModel
Context = GenerationContext | None

logger = logging.getLogger(__name__)


class BaseAgent(ABC, Generic[InputT, OutputT]):
  """Base agent with shared dependencies."""

  name: str

  def __init__(self, *, model: Model, prov: str, use: UsageSink = None) -> None:
    self._model = model
    self._provider_name = prov
    self._usage_sink = use

  @abstractmethod
  async def run(self, input_data: InputT, ctx: Context = None) -> OutputT:
    """Run the agent on input data."""

  def _record_usage(self, *, agent: str, purpose: str, call_index: str, usage: dict[str, int] | None) -> None:
    if not usage or not self._usage_sink:
      return
    payload = {
      "model": getattr(self._model, "name", "unknown"),
      "provider": self._provider_name,
      "agent": agent,
      "purpose": purpose,
      "call_index": call_index,
      **usage,
    }
    self._usage_sink(payload)

  def _build_json_retry_prompt(self, *, prompt_text: str, error: Exception) -> str:
    """Append parser errors to prompts so retries can fix invalid JSON."""
    suffix = "\n\n".join(
      [
        "Previous response could not be parsed as JSON.",
        f"Parser error: {error}",
        "Return ONLY valid JSON and ensure the schema is followed exactly.",
      ]
    )
    return f"{prompt_text}\n\n{suffix}"

  async def _generate_structured(
    self, prompt_text: str, output_type: type[ModelT], *, purpose: str, temperature: float | None = None, system_prompt: str | None = None, max_tokens: int | None = None
  ) -> ModelT:
    """Request structured output and validate it, retrying once on malformed output."""
    schema = output_type.model_json_schema(by_alias=True)
    try:
      response = await self._model.generate_structured(prompt_text, schema, max_tokens=max_tokens, temperature=temperature, system_prompt=system_prompt)
      self._record_usage(agent=self.name, purpose=purpose, call_index="1/1", usage=response.usage)
      return output_type.model_validate(response.content)
    except Exception as exc:  # noqa: BLE001
      if not isinstance(exc, ValidationError) and not is_output_error(exc):
        raise
      logger.warning("%s returned unusable output for %s, retrying once: %s", self.name, purpose, exc)
      # Retry the same request with the parser error appended.
      retry_prompt = self._build_json_retry_prompt(prompt_text=prompt_text, error=exc)
      retry_purpose = f"{purpose}_retry"
      response = await self._model.generate_structured(retry_prompt, schema, max_tokens=max_tokens, temperature=temperature, system_prompt=system_prompt)
      self._record_usage(agent=self.name, purpose=retry_purpose, call_index="retry/1", usage=response.usage)
      return output_type.model_validate(response.content)
