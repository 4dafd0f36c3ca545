"""Agent implementations."""

from painpress.ai.agents.alignment import AlignmentReviewer
from painpress.ai.agents.base import BaseAgent
from painpress.ai.agents.component_builder import ComponentBuilderAgent
from painpress.ai.agents.content import ContentAgent
from painpress.ai.agents.images import ImagesAgent
from painpress.ai.agents.outline import OutlineAgent
from painpress.ai.agents.research import ResearchAgent
from painpress.ai.agents.topic_selector import TopicSelectorAgent
from painpress.ai.agents.voice import VoiceAgent

__all__ = ["AlignmentReviewer", "BaseAgent", "ComponentBuilderAgent", "ContentAgent", "ImagesAgent", "OutlineAgent", "ResearchAgent", "TopicSelectorAgent", "VoiceAgent"]
