"""Interactive component builder with validate-and-retry generation."""

from __future__ import annotations

import logging

from painpress.ai.agents.alignment import AlignmentReviewer
from painpress.ai.agents.base import BaseAgent, Context, Model, UsageSink
from painpress.ai.agents.prompts import Article, render_component_prompt, render_component_retry_block, render_component_system_prompt
from painpress.ai.pipeline.contracts import (
  MAX_COMPONENT_RETRIES,
  AlignmentInput,
  ComponentGenerationOutput,
  ComponentGenerationResult,
  ComponentsInput,
  ComponentSpec,
  ContentOutline,
  GeneratedComponent,
  component_name_for,
)
from painpress.components.extraction import extract_code
from painpress.components.validator import validate_component_code
from painpress.utils.ids import generate_id

logger = logging.getLogger(__name__)

COMPONENT_MAX_TOKENS = 8192
NULL_COMPONENT_ERROR = "Component generation returned null"
MAX_RETRIES_ERROR = "Max retries exceeded"


def build_component_prompt(spec: ComponentSpec, article: Article, previous_error: str | None = None) -> str:
  """Build the prompt for one attempt, appending feedback from the previous failure."""
  prompt = render_component_prompt(spec, article)
  if previous_error:
    prompt += render_component_retry_block(previous_error)
  return prompt


class ComponentBuilderAgent(BaseAgent[ComponentsInput, ComponentGenerationOutput]):
  """Generate validated React components for each outline spec."""

  name = "ComponentBuilder"

  def __init__(self, *, model: Model, prov: str, use: UsageSink = None, reviewer: AlignmentReviewer | None = None) -> None:
    super().__init__(model=model, prov=prov, use=use)
    self._reviewer = reviewer

  async def run(self, input_data: ComponentsInput, ctx: Context = None) -> ComponentGenerationOutput:
    return await self.generate_components(input_data.outline, input_data.content, ctx)

  async def generate_components(self, outline: ContentOutline, article: Article, ctx: Context = None) -> ComponentGenerationOutput:
    """Build every spec in order, then run one alignment repair pass."""
    components: list[GeneratedComponent] = []
    status: list[ComponentGenerationResult] = []

    for spec in outline.interactive_components:
      result = await self.generate_with_retry(spec, article, ctx)
      status.append(result)
      if result.success and result.component is not None:
        components.append(result.component)

    if components and self._reviewer is not None:
      components, status = await self._apply_alignment_fixes(components, status, outline, article)

    succeeded = sum(1 for result in status if result.success)
    logger.info("Components generated (%d succeeded, %d failed)", succeeded, len(status) - succeeded)
    return ComponentGenerationOutput(components=components, status=status)

  async def generate_with_retry(self, spec: ComponentSpec, article: Article, ctx: Context = None) -> ComponentGenerationResult:
    """Generate one component, feeding each failure back into the next attempt."""
    last_error: str | None = None

    for attempt in range(1, MAX_COMPONENT_RETRIES + 1):
      try:
        component = await self._generate_component(spec, article, last_error, attempt)
      except Exception as exc:  # noqa: BLE001
        last_error = str(exc)
        logger.error("Component generation threw on attempt %d (type=%s): %s", attempt, spec.type, last_error)
        continue

      if component is None:
        last_error = NULL_COMPONENT_ERROR
        logger.warning("Component generation returned null on attempt %d (type=%s)", attempt, spec.type)
        continue

      validation = validate_component_code(component.code)
      if validation.valid:
        logger.info("Component generated on attempt %d (type=%s)", attempt, spec.type)
        return ComponentGenerationResult(success=True, component=component, spec=spec, attempts=attempt)

      last_error = validation.error or "Unknown validation error"
      logger.warning("Component validation failed on attempt %d/%d (type=%s): %s", attempt, MAX_COMPONENT_RETRIES, spec.type, last_error)

    logger.error("Component generation failed after %d attempts (type=%s): %s", MAX_COMPONENT_RETRIES, spec.type, last_error)
    return ComponentGenerationResult(success=False, spec=spec, error=last_error or MAX_RETRIES_ERROR, attempts=MAX_COMPONENT_RETRIES)

  async def _generate_component(self, spec: ComponentSpec, article: Article, previous_error: str | None, attempt: int) -> GeneratedComponent | None:
    prompt_text = build_component_prompt(spec, article, previous_error)
    response = await self._model.generate(prompt_text, max_tokens=COMPONENT_MAX_TOKENS, temperature=0.3, system_prompt=render_component_system_prompt(article))
    self._record_usage(agent=self.name, purpose=f"build_{spec.type}", call_index=f"{attempt}/{MAX_COMPONENT_RETRIES}", usage=response.usage)

    if response.stop_reason == "max_tokens":
      logger.warning("Component output truncated by max_tokens (type=%s, %d chars)", spec.type, len(response.content))

    code = extract_code(response.content)
    if not code:
      return None

    name = component_name_for(spec.type)
    return GeneratedComponent(id=generate_id(), type=spec.type, name=name, code=code, props={}, exports=[name])

  async def _apply_alignment_fixes(
    self, components: list[GeneratedComponent], status: list[ComponentGenerationResult], outline: ContentOutline, article: Article
  ) -> tuple[list[GeneratedComponent], list[ComponentGenerationResult]]:
    reviewer = self._reviewer
    if reviewer is None:
      return components, status

    review = await reviewer.run(AlignmentInput(components=components, outline=outline))
    for issue in review.issues:
      if issue.severity != "error":
        continue
      index = next((i for i, component in enumerate(components) if component.id == issue.component_id), None)
      if index is None:
        continue

      logger.info("Regenerating %s with alignment fix: %s", components[index].name, issue.description)
      try:
        fixed = await reviewer.regenerate_with_hint(components[index], issue.suggestion, article)
      except Exception as exc:  # noqa: BLE001
        logger.warning("Alignment fix failed for %s: %s", components[index].name, exc)
        continue

      components[index] = fixed
      # Keep the status entry pointing at the component that will ship.
      for position, result in enumerate(status):
        if result.component is not None and result.component.id == issue.component_id:
          status[position] = result.model_copy(update={"component": fixed})

    if review.suggestions:
      logger.debug("Alignment suggestions: %s", review.suggestions)

    return components, status
