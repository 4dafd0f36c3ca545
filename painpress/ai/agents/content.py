"""Article writing agent implementation."""

from __future__ import annotations

import logging
import re

from painpress.ai.agents.base import BaseAgent, Context
from painpress.ai.agents.prompts import render_content_prompt, render_content_system_prompt
from painpress.ai.pipeline.contracts import ContentInput, ContentOutline, ContentSection, GeneratedContent

logger = logging.getLogger(__name__)

CONTENT_MAX_TOKENS = 8192
FALLBACK_SECTION_HEADING = "Content"

_TITLE_RE = re.compile(r"^#\s+(.+?)$", re.MULTILINE)
_LEADING_TITLE_RE = re.compile(r"^#\s+.+?\n+")
_SECTION_RE = re.compile(r"^##\s+(.+?)$([\s\S]*?)(?=^##\s|\Z)", re.MULTILINE)
_COMPONENT_PLACEHOLDER_RE = re.compile(r"\{\{COMPONENT:([^:]+):([^}]+)\}\}")


def parse_generated_content(raw_content: str, outline: ContentOutline) -> GeneratedContent:
  """Split article markdown into a title and ``##`` sections."""
  content = raw_content.strip()

  title_match = _TITLE_RE.search(content)
  title = title_match.group(1).strip() if title_match else outline.title

  # The page template renders the title, so drop a leading H1.
  content = _LEADING_TITLE_RE.sub("", content, count=1)

  sections: list[ContentSection] = []
  for match in _SECTION_RE.finditer(content):
    heading = match.group(1).strip()
    section_content = match.group(2).strip()

    placeholder = None
    component_match = _COMPONENT_PLACEHOLDER_RE.search(section_content)
    if component_match:
      placeholder = f"{component_match.group(1)}:{component_match.group(2)}"
      section_content = section_content.replace(component_match.group(0), "", 1).strip()

    sections.append(ContentSection(heading=heading, content=section_content, component_placeholder=placeholder))

  if not sections:
    sections.append(ContentSection(heading=FALLBACK_SECTION_HEADING, content=content))

  return GeneratedContent(title=title, slug=outline.slug, description=outline.description, content=content, sections=sections)


class ContentAgent(BaseAgent[ContentInput, GeneratedContent]):
  """Write the article markdown from the outline."""

  name = "Content"

  async def run(self, input_data: ContentInput, ctx: Context = None) -> GeneratedContent:
    prompt_text = render_content_prompt(input_data.post, input_data.research, input_data.outline)
    system_prompt = render_content_system_prompt(input_data.voice, input_data.niche)

    response = await self._model.generate(prompt_text, max_tokens=CONTENT_MAX_TOKENS, temperature=0.7, system_prompt=system_prompt)
    self._record_usage(agent=self.name, purpose="write_article", call_index="1/1", usage=response.usage)
    if response.stop_reason == "max_tokens":
      logger.warning("Article output hit the token ceiling and may be truncated")

    content = parse_generated_content(response.content, input_data.outline)
    logger.info("Article written (%d chars, %d sections)", len(content.content), len(content.sections))
    return content
