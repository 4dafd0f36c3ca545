"""Outline agent implementation."""

from __future__ import annotations

import logging

from painpress.ai.agents.base import BaseAgent, Context
from painpress.ai.agents.prompts import render_outline_prompt, render_system_prompt
from painpress.ai.pipeline.contracts import ContentOutline, OutlineInput
from painpress.utils.ids import slugify

logger = logging.getLogger(__name__)

MIN_SLUG_LENGTH = 3


class OutlineAgent(BaseAgent[OutlineInput, ContentOutline]):
  """Plan article sections and interactive components."""

  name = "Outline"

  async def run(self, input_data: OutlineInput, ctx: Context = None) -> ContentOutline:
    prompt_text = render_outline_prompt(input_data.post, input_data.niche, input_data.voice, input_data.research)
    outline = await self._generate_structured(prompt_text, ContentOutline, purpose="create_outline", temperature=0.6, system_prompt=render_system_prompt("outline_system.md"))

    # Models occasionally return an empty or placeholder slug.
    if len(outline.slug) < MIN_SLUG_LENGTH:
      outline = outline.model_copy(update={"slug": slugify(outline.title)})

    logger.info("Outline created: %s (%d sections, %d components)", outline.title, len(outline.sections), len(outline.interactive_components))
    return outline
