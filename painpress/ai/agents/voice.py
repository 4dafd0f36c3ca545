"""Voice analysis agent implementation."""

from __future__ import annotations

import logging

from painpress.ai.agents.base import BaseAgent, Context
from painpress.ai.agents.prompts import render_system_prompt, render_voice_prompt
from painpress.ai.pipeline.contracts import VoiceAnalysis, VoiceInput

logger = logging.getLogger(__name__)


class VoiceAgent(BaseAgent[VoiceInput, VoiceAnalysis]):
  """Infer the poster's experience level and preferred learning style."""

  name = "Voice"

  async def run(self, input_data: VoiceInput, ctx: Context = None) -> VoiceAnalysis:
    prompt_text = render_voice_prompt(input_data.post, input_data.niche)
    analysis = await self._generate_structured(prompt_text, VoiceAnalysis, purpose="analyze_voice", temperature=0.3, system_prompt=render_system_prompt("voice_system.md"))
    logger.info("Voice analysis complete (level=%s, style=%s)", analysis.experience_level, analysis.communication_style)
    return analysis
