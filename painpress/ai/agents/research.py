"""Research agent implementation."""

from __future__ import annotations

import logging
import re
from typing import Protocol

from painpress.ai.agents.base import BaseAgent, Context, Model, UsageSink
from painpress.ai.agents.prompts import render_research_prompt, render_system_prompt
from painpress.ai.pipeline.contracts import ResearchInput, ResearchResult, ResearchSource
from painpress.ai.providers.gemini import GroundedSearchResponse

logger = logging.getLogger(__name__)

MAX_SEARCH_QUERIES = 3
MAX_SOURCES = 10
SEARCH_RELEVANCE = "Related to query"
ACTION_WORDS = ("setup", "configure", "install", "fix", "debug", "implement", "create", "deploy", "monitor", "optimize")

_ACTION_SPLIT_RE = re.compile(r"[?.!,]")


class GroundedSearchModel(Protocol):
  """Model that can answer a query with web search grounding."""

  name: str

  async def generate_grounded(self, query: str, *, temperature: float = 0.7, system_prompt: str | None = None, max_tokens: int | None = None) -> GroundedSearchResponse: ...


def extract_main_action(title: str) -> str:
  """Pull the main action phrase out of a lowercased title for how-to queries."""
  for action in ACTION_WORDS:
    idx = title.find(action)
    if idx == -1:
      continue
    # Keep the clause following the action word.
    return _ACTION_SPLIT_RE.split(title[idx : idx + 50])[-1] or action

  return " ".join(title.split(" ")[:5])


def build_research_queries(input_data: ResearchInput) -> list[str]:
  """Build the ordered search queries for a post."""
  post = input_data.post
  niche = input_data.niche
  keyword = niche.keywords[0] if niche.keywords else ""
  topic = keyword or niche.name

  queries = [
    f"{post.title} best practices solutions",
    f"how to {extract_main_action(post.title.lower())} {keyword}".strip(),
    f"{topic} common problems solutions",
  ]

  # Level-specific follow-up query.
  if input_data.voice.experience_level == "beginner":
    queries.append(f"{topic} tutorial beginner guide")
  elif input_data.voice.experience_level == "advanced":
    queries.append(f"{topic} advanced techniques performance")

  return queries


def merge_sources(model_sources: list[ResearchSource], search_sources: list[ResearchSource], *, limit: int = MAX_SOURCES) -> list[ResearchSource]:
  """Merge model-cited and search-cited sources, first URL wins."""
  merged: dict[str, ResearchSource] = {}
  for source in [*model_sources, *search_sources]:
    if source.url and source.url not in merged:
      merged[source.url] = source
  return list(merged.values())[:limit]


class ResearchAgent(BaseAgent[ResearchInput, ResearchResult]):
  """Gather grounded search results and synthesize them into research notes."""

  name = "Research"

  def __init__(self, *, model: Model, prov: str, use: UsageSink = None, search_model: GroundedSearchModel | None = None) -> None:
    super().__init__(model=model, prov=prov, use=use)
    self._search_model = search_model

  async def run(self, input_data: ResearchInput, ctx: Context = None) -> ResearchResult:
    system_prompt = render_system_prompt("research_system.md")
    queries = build_research_queries(input_data)
    search_results, search_sources = await self._search(queries[:MAX_SEARCH_QUERIES], system_prompt)

    prompt_text = render_research_prompt(input_data.post, input_data.voice, search_results)
    synthesis = await self._generate_structured(prompt_text, ResearchResult, purpose="synthesize_research", temperature=0.4, system_prompt=system_prompt)

    sources = merge_sources(synthesis.sources, search_sources)
    logger.info("Research complete (%d sources, %d key points)", len(sources), len(synthesis.key_points))
    return synthesis.model_copy(update={"sources": sources})

  async def _search(self, queries: list[str], system_prompt: str) -> tuple[list[str], list[ResearchSource]]:
    results: list[str] = []
    sources: list[ResearchSource] = []
    if self._search_model is None:
      logger.warning("No grounded search model configured; synthesizing without search results")
      return results, sources

    for index, query in enumerate(queries, start=1):
      try:
        response = await self._search_model.generate_grounded(query, temperature=0.5, system_prompt=system_prompt)
      except Exception as exc:  # noqa: BLE001
        logger.warning("Research query failed (%s): %s", query, exc)
        continue

      self._record_usage(agent=self.name, purpose="grounded_search", call_index=f"{index}/{len(queries)}", usage=response.usage)
      results.append(response.content)
      sources.extend(ResearchSource(title=source.title, url=source.url, relevance=SEARCH_RELEVANCE) for source in response.sources)

    return results, sources
