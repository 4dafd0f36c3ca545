"""Alignment review and repair for generated components."""

from __future__ import annotations

import logging
import re

from painpress.ai.agents.base import BaseAgent, Context
from painpress.ai.agents.prompts import Article, render_alignment_fix_prompt, render_alignment_review_prompt, render_system_prompt
from painpress.ai.pipeline.contracts import AlignmentInput, AlignmentIssue, AlignmentReview, GeneratedComponent
from painpress.components.extraction import extract_code

logger = logging.getLogger(__name__)

REVIEW_MAX_TOKENS = 2048
FIX_MAX_TOKENS = 4096
NO_ISSUES_MARKER = "NO_ISSUES"

_ISSUE_RE = re.compile(
  r"ISSUE:\s*Type:\s*(layout|styling|structure|accessibility)\s*Severity:\s*(error|warning)\s*Description:\s*(.+?)\s*Suggestion:\s*(.+?)(?=ISSUE:|SUGGESTIONS:|$)",
  re.IGNORECASE | re.DOTALL,
)
_SUGGESTIONS_RE = re.compile(r"SUGGESTIONS:\s*([\s\S]*?)$")
_BULLET_RE = re.compile(r"^-\s*")


def _parse_suggestions(text: str) -> list[str]:
  match = _SUGGESTIONS_RE.search(text)
  if not match:
    return []
  lines = (_BULLET_RE.sub("", line.strip()) for line in match.group(1).split("\n"))
  return [line for line in lines if line]


def parse_alignment_response(text: str, component_id: str) -> AlignmentReview:
  """Parse the plain-text review protocol into issues and suggestions."""
  if NO_ISSUES_MARKER in text:
    return AlignmentReview(suggestions=_parse_suggestions(text))

  issues = [
    AlignmentIssue(component_id=component_id, type=match.group(1).lower(), severity=match.group(2).lower(), description=match.group(3).strip(), suggestion=match.group(4).strip())
    for match in _ISSUE_RE.finditer(text)
  ]
  return AlignmentReview(issues=issues, suggestions=_parse_suggestions(text))


class AlignmentReviewer(BaseAgent[AlignmentInput, AlignmentReview]):
  """Review components for layout problems and repair the serious ones."""

  name = "AlignmentReviewer"

  async def run(self, input_data: AlignmentInput, ctx: Context = None) -> AlignmentReview:
    """Review every component and merge the findings."""
    components = input_data.components
    outline = input_data.outline
    issues: list[AlignmentIssue] = []
    suggestions: list[str] = []
    system_prompt = render_system_prompt("alignment_review_system.md")

    for index, component in enumerate(components, start=1):
      prompt_text = render_alignment_review_prompt(component, outline)
      try:
        response = await self._model.generate(prompt_text, max_tokens=REVIEW_MAX_TOKENS, temperature=0.2, system_prompt=system_prompt)
      except Exception as exc:  # noqa: BLE001
        logger.warning("Alignment review failed for %s: %s", component.name, exc)
        continue

      self._record_usage(agent=self.name, purpose="review_alignment", call_index=f"{index}/{len(components)}", usage=response.usage)
      review = parse_alignment_response(response.content, component.id)
      issues.extend(review.issues)
      suggestions.extend(review.suggestions)

    return AlignmentReview(issues=issues, suggestions=suggestions)

  async def regenerate_with_hint(self, component: GeneratedComponent, suggestion: str, article: Article) -> GeneratedComponent:
    """Ask for a fixed version of a component, keeping the original if nothing usable comes back."""
    prompt_text = render_alignment_fix_prompt(component, suggestion, article)
    response = await self._model.generate(prompt_text, max_tokens=FIX_MAX_TOKENS, temperature=0.2, system_prompt=render_system_prompt("alignment_fix_system.md"))
    self._record_usage(agent=self.name, purpose="fix_alignment", call_index="1/1", usage=response.usage)

    code = extract_code(response.content)
    if not code:
      logger.warning("Alignment fix for %s returned no code; keeping the original", component.name)
      return component
    return component.model_copy(update={"code": code})
