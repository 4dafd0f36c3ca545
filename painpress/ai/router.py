"""Routing utilities for provider/model selection."""

from __future__ import annotations

from enum import Enum

from painpress.ai.providers.base import AIModel, Provider
from painpress.ai.providers.gemini import GeminiModel, GeminiProvider
from painpress.ai.providers.openrouter import OpenRouterProvider
from painpress.config import Settings, get_settings


class ProviderMode(str, Enum):
  """Supported provider modes."""

  GEMINI = "gemini"
  OPENROUTER = "openrouter"


class ModelRole(str, Enum):
  """Pipeline roles that each resolve to one configured model."""

  FAST = "fast"
  PRO = "pro"
  IMAGE = "image"
  CODE = "code"
  REVIEW = "review"


_ROLE_PROVIDERS: dict[ModelRole, ProviderMode] = {
  ModelRole.FAST: ProviderMode.GEMINI,
  ModelRole.PRO: ProviderMode.GEMINI,
  ModelRole.IMAGE: ProviderMode.GEMINI,
  ModelRole.CODE: ProviderMode.OPENROUTER,
  ModelRole.REVIEW: ProviderMode.OPENROUTER,
}


def get_provider_for_mode(mode: str | ProviderMode, settings: Settings | None = None) -> Provider:
  """Return a provider instance for the given mode."""
  settings = settings or get_settings()
  key = mode.value if isinstance(mode, ProviderMode) else mode
  if key == ProviderMode.GEMINI.value:
    return GeminiProvider(api_key=settings.gemini_api_key)
  if key == ProviderMode.OPENROUTER.value:
    return OpenRouterProvider(api_key=settings.openrouter_api_key)
  raise ValueError(f"Unsupported provider mode '{mode}'.")


def _model_name_for_role(role: ModelRole, settings: Settings) -> str:
  names = {
    ModelRole.FAST: settings.fast_model,
    ModelRole.PRO: settings.pro_model,
    ModelRole.IMAGE: settings.image_model,
    ModelRole.CODE: settings.code_model,
    ModelRole.REVIEW: settings.review_model,
  }
  return names[role]


def get_model_for_role(role: str | ModelRole, settings: Settings | None = None) -> AIModel:
  """Return the configured model client for a pipeline role."""
  settings = settings or get_settings()
  try:
    resolved = ModelRole(role)
  except ValueError as exc:
    raise ValueError(f"Unsupported model role '{role}'.") from exc

  provider = get_provider_for_mode(_ROLE_PROVIDERS[resolved], settings)
  return provider.get_model(_model_name_for_role(resolved, settings))


def get_gemini_model_for_role(role: str | ModelRole, settings: Settings | None = None) -> GeminiModel:
  """Return a Gemini client for roles that need grounded search or image output."""
  model = get_model_for_role(role, settings)
  if not isinstance(model, GeminiModel):
    raise ValueError(f"Model role '{role}' is not served by Gemini.")
  return model
