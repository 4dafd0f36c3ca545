"""Topic selection agent used by the scheduler."""

from __future__ import annotations

from painpress.ai.agents.base import BaseAgent, Context
from painpress.ai.agents.prompts import render_topic_selector_prompt
from painpress.ai.pipeline.contracts import TopicSelection, TopicSelectionInput


class TopicSelectorAgent(BaseAgent[TopicSelectionInput, TopicSelection]):
  """Rank pending posts against recently published titles."""

  name = "TopicSelector"

  async def run(self, input_data: TopicSelectionInput, ctx: Context = None) -> TopicSelection:
    candidates = [{"id": candidate.id, "title": candidate.title, "painScore": candidate.pain_score} for candidate in input_data.candidates]
    prompt_text = render_topic_selector_prompt(candidates, input_data.recent_titles)
    return await self._generate_structured(prompt_text, TopicSelection, purpose="select_topics", temperature=0.3)
