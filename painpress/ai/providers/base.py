"""Base interfaces for AI providers and models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol


class ModelResponse(Protocol):
  """Response contract for model outputs."""

  content: str
  usage: dict[str, int] | None


@dataclass
class SimpleModelResponse:
  """Text model response with the provider's normalized stop reason."""

  content: str
  usage: dict[str, int] | None = None
  stop_reason: str | None = None


@dataclass
class StructuredModelResponse:
  """Structured model response structure."""

  content: dict[str, Any]
  usage: dict[str, int] | None = None


class AIModel(ABC):
  """Abstract base class for AI models."""

  name: str
  supports_structured_output: bool = False

  @abstractmethod
  async def generate(self, prompt: str, *, max_tokens: int | None = None, temperature: float | None = None, system_prompt: str | None = None) -> SimpleModelResponse:
    """Generate a response for the given prompt."""

  async def generate_structured(
    self, prompt: str, schema: dict[str, Any] | None = None, *, max_tokens: int | None = None, temperature: float | None = None, system_prompt: str | None = None
  ) -> StructuredModelResponse:
    """Generate structured output that conforms to the provided JSON schema."""
    raise RuntimeError("Structured output is not supported by this model.")

  @staticmethod
  def strip_json_fences(text: str) -> str:
    """Drop a surrounding ```json fence if the model added one."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
      cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
      cleaned = cleaned[3:]
    if cleaned.endswith("```"):
      cleaned = cleaned[:-3]
    return cleaned.strip()


class Provider(ABC):
  """Abstract base class for AI providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str | None = None) -> AIModel:
    """Return the model client for the provider."""
