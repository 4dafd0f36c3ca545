import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import HTTPException, status

from painpress.ai.agents.component_builder import ComponentBuilderAgent
from painpress.ai.pipeline.contracts import ComponentGenerationResult, ComponentSpec, GeneratedComponent
from painpress.api.models import ComponentRegenerateResponse
from painpress.config import Settings
from painpress.storage.content_repo import ContentRepository
from painpress.storage.factory import _get_content_repo
from painpress.utils.timestamps import now_iso

logger = logging.getLogger(__name__)

_CONTENT_NOT_FOUND_MSG = "Content not found."

Bundler = Callable[[list[GeneratedComponent]], Awaitable[str]]


def _build_builder(settings: Settings) -> ComponentBuilderAgent:
  from painpress.ai.router import ModelRole, ProviderMode, get_model_for_role

  return ComponentBuilderAgent(model=get_model_for_role(ModelRole.CODE, settings), prov=ProviderMode.OPENROUTER.value)


def _default_bundler(settings: Settings) -> Bundler:
  from painpress.components.bundler import bundle_components

  async def _bundle(components: list[GeneratedComponent]) -> str:
    return await bundle_components(components, esbuild_binary=settings.esbuild_binary, timeout=settings.esbuild_timeout_seconds)

  return _bundle


def _merge_component(components: list[dict[str, Any]], status_entries: list[dict[str, Any]], index: int, fresh: dict[str, Any]) -> list[dict[str, Any]]:
  """Swap in the regenerated component, keeping component order aligned with the status list."""
  previous = (status_entries[index].get("component") or {}).get("id")
  merged = list(components)
  for position, component in enumerate(merged):
    if previous and component.get("id") == previous:
      merged[position] = fresh
      return merged

  # The slot previously failed; insert after the successful entries that precede it.
  position = sum(1 for entry in status_entries[:index] if entry.get("success") and entry.get("component"))
  merged.insert(min(position, len(merged)), fresh)
  return merged


async def regenerate_component(
  content_id: str,
  index: int,
  *,
  settings: Settings,
  content_repo: ContentRepository | None = None,
  builder: ComponentBuilderAgent | None = None,
  bundler: Bundler | None = None,
) -> ComponentRegenerateResponse:
  """Rebuild one component of a stored article and refresh its bundle."""
  repo = content_repo or _get_content_repo(settings)
  record = await repo.get_content(content_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_CONTENT_NOT_FOUND_MSG)

  status_entries = list(record.component_status)
  if index < 0 or index >= len(status_entries):
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Component index {index} is out of range (0-{len(status_entries) - 1}).")

  spec = ComponentSpec.model_validate(status_entries[index]["spec"])
  builder = builder or _build_builder(settings)
  result: ComponentGenerationResult = await builder.generate_with_retry(spec, record)

  fresh_status = result.model_dump(mode="json", by_alias=True)
  components = record.components
  fields: dict[str, Any] = {"updated_at": now_iso()}

  if result.success and result.component is not None:
    components = _merge_component(record.components, status_entries, index, result.component.model_dump(mode="json", by_alias=True))
    bundle = await (bundler or _default_bundler(settings))([GeneratedComponent.model_validate(component) for component in components])
    fields.update(components=components, component_bundle=bundle)
    logger.info("Regenerated component %d of content %s in %d attempts", index, content_id, result.attempts)
  else:
    logger.warning("Component %d of content %s failed to regenerate: %s", index, content_id, result.error)

  status_entries[index] = fresh_status
  fields["component_status"] = status_entries
  await repo.update_content(content_id, **fields)

  return ComponentRegenerateResponse(content_id=content_id, index=index, success=result.success, attempts=result.attempts, error=result.error)
