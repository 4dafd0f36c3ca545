"""Prompt helpers shared by agents."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

from painpress.ai.pipeline.contracts import ComponentSpec, ContentOutline, GeneratedComponent, GeneratedContent, NicheContext, ResearchResult, SourcePost, VoiceAnalysis, component_name_for

VOICE_CONTENT_LIMIT = 3000
OUTLINE_CONTENT_LIMIT = 2000
CONTENT_CONTENT_LIMIT = 1500
SYNTHESIS_CONTENT_LIMIT = 1000
SEARCH_RESULT_LIMIT = 2000

_COMPONENT_EXAMPLES: dict[str, str] = {
  "quiz": """Example quiz structure:
- Multiple choice questions
- Immediate feedback on answers
- Score tracking
- "Try again" functionality""",
  "playground": """Example playground structure:
- Code editor area (use a textarea)
- Run/Execute button
- Output display area
- Reset to original code button""",
  "diagram": """Example diagram structure:
- SVG-based visualization with hardcoded paths
- Interactive elements with hover states (use onMouseEnter/onMouseLeave, NOT CSS hover)
- Text labels at fixed positions
- Responsive sizing using viewBox

CRITICAL FOR DIAGRAMS - NO TEMPLATE LITERALS:
- WRONG: className={`node ${active ? "active" : ""}`}
- CORRECT: className={"node " + (active ? "active" : "")}
- WRONG: <text>{`Step ${i}`}</text>
- CORRECT: <text>{"Step " + i}</text>""",
  "calculator": """Example calculator structure:
- Input fields for parameters
- Calculate button
- Results display
- Explanation of the formula""",
  "comparison-table": """Example comparison table structure:
- Data array defined at the top of the component
- Sortable columns
- Highlighted recommendations
- Expandable rows for details

TABLE HEADER STYLING (MANDATORY):
- Header row: className="bg-gray-100" or "bg-sky-50"
- Header cells: className="px-4 py-3 text-left text-sm font-semibold text-gray-900"
- NEVER use text-white in table headers

PATTERNS:
- Data: const rows = [{ name: "Option A", score: 3 }, ...];
- className: className={"px-4 py-2 " + (row.recommended ? "bg-green-50" : "")}
- Dynamic text: {row.name + " (" + row.score + ")"}""",
}


class Article(Protocol):
  """Anything carrying an article title and description."""

  title: str
  description: str


_IMAGE_STYLES: dict[str, str] = {
  "hero": "Professional, modern, clean design with subtle gradients. Tech-focused aesthetic. No text in image.",
  "diagram": "Clear technical diagram with labeled components. White or light background. Professional infographic style.",
  "inline": "Supportive illustration that aids understanding. Clean, minimal style. Educational focus.",
}


def _load_prompt(name: str) -> str:
  """Load a prompt template from the prompts directory."""
  try:
    path = Path(__file__).parents[1] / "prompts" / name
    return path.read_text(encoding="utf-8").strip()
  except (FileNotFoundError, PermissionError, UnicodeDecodeError) as exc:
    raise RuntimeError(f"Failed to load prompt '{name}': {exc}") from exc


def _replace_placeholders(template: str, values: dict[str, str]) -> str:
  """Substitute {{PLACEHOLDER}} markers with prompt context."""
  rendered = template
  for key, value in values.items():
    rendered = rendered.replace(f"{{{{{key}}}}}", value)

  return rendered


def _join(items: list[str] | None) -> str:
  return ", ".join(items or []) or "-"


def _bullets(items: list[str] | None) -> str:
  if not items:
    return "-"
  return "\n".join(f"- {item}" for item in items)


def _format_pain_analysis(pain_analysis: dict[str, Any] | None) -> str:
  """Render the stored pain analysis block when the scoring step produced one."""
  if not pain_analysis:
    return ""

  pain_points = pain_analysis.get("painPoints") or pain_analysis.get("pain_points") or []
  depth = pain_analysis.get("technicalDepth", pain_analysis.get("technical_depth", "unknown"))
  author_level = pain_analysis.get("authorLevel") or pain_analysis.get("author_level") or "unknown"
  lines = ["Pain Analysis:", f"- Pain Points: {_join([str(point) for point in pain_points])}", f"- Technical Depth: {depth}/10", f"- Author Level: {author_level}"]
  return "\n".join(lines)


def render_system_prompt(name: str) -> str:
  """Load a system prompt that carries no placeholders."""
  return _load_prompt(name)


def render_voice_prompt(post: SourcePost, niche: NicheContext) -> str:
  """Build the voice analysis prompt for a source post."""
  template = _load_prompt("voice.md")
  target_audience = f"Target Audience: {niche.target_audience}" if niche.target_audience else ""
  replacements = {
    "POST_TITLE": post.title,
    "POST_CONTENT": post.content[:VOICE_CONTENT_LIMIT],
    "PAIN_ANALYSIS": _format_pain_analysis(post.pain_analysis),
    "NICHE_NAME": niche.name,
    "TARGET_AUDIENCE": target_audience,
  }
  return _replace_placeholders(template, replacements)


def format_search_results(results: list[str]) -> str:
  """Number grounded search answers for the synthesis prompt."""
  if not results:
    return "No search results available. Use your own knowledge."
  blocks = [f"--- Source {index} ---\n{result[:SEARCH_RESULT_LIMIT]}" for index, result in enumerate(results, start=1)]
  return "\n\n".join(blocks)


def render_research_prompt(post: SourcePost, voice: VoiceAnalysis, search_results: list[str]) -> str:
  """Build the research synthesis prompt."""
  template = _load_prompt("research.md")
  replacements = {
    "POST_TITLE": post.title,
    "POST_CONTENT": post.content[:SYNTHESIS_CONTENT_LIMIT],
    "EXPERIENCE_LEVEL": voice.experience_level,
    "LEARNING_GOALS": _join(voice.learning_goals),
    "SEARCH_RESULTS": format_search_results(search_results),
  }
  return _replace_placeholders(template, replacements)


def _format_niche_details(niche: NicheContext) -> str:
  lines = []
  if niche.voice_guidelines:
    lines.append(f"- Voice Guidelines: {niche.voice_guidelines}")
  if niche.target_audience:
    lines.append(f"- Target Audience: {niche.target_audience}")
  if niche.keywords:
    lines.append(f"- Keywords: {_join(niche.keywords)}")
  return "\n".join(lines)


def render_outline_prompt(post: SourcePost, niche: NicheContext, voice: VoiceAnalysis, research: ResearchResult) -> str:
  """Build the outline prompt from the voice analysis and research."""
  template = _load_prompt("outline.md")
  replacements = {
    "POST_TITLE": post.title,
    "POST_CONTENT": post.content[:OUTLINE_CONTENT_LIMIT],
    "SOURCE_URL": post.source_url or "-",
    "EXPERIENCE_LEVEL": voice.experience_level,
    "COMMUNICATION_STYLE": voice.communication_style,
    "PREFERRED_FORMAT": voice.preferred_format,
    "TERMINOLOGY_LEVEL": voice.terminology_level,
    "LEARNING_GOALS": _join(voice.learning_goals),
    "FRUSTRATION_POINTS": _join(voice.frustration_points),
    "RESEARCH_SUMMARY": research.summary,
    "KEY_POINTS": _bullets(research.key_points),
    "BEST_PRACTICES": _bullets(research.best_practices),
    "NICHE_NAME": niche.name,
    "NICHE_DETAILS": _format_niche_details(niche),
  }
  return _replace_placeholders(template, replacements)


def _format_outline_sections(outline: ContentOutline) -> str:
  """Render outline sections with their component insertion markers."""
  blocks = []
  for index, section in enumerate(outline.sections, start=1):
    block = f"\n{index}. {section.heading} ({section.type})\n   Key points: {_join(section.key_points)}\n   Length: ~{section.estimated_length} words"
    # Mark the exact spot a component belongs so the writer emits the placeholder there.
    component = next((spec for spec in outline.interactive_components if spec.placement == section.heading), None)
    if component is not None:
      block += f"\n   [INSERT HERE: {{{{COMPONENT:{component.type}:{component.purpose}}}}}]"
    blocks.append(block)
  return "".join(blocks)


def _format_component_placements(outline: ContentOutline) -> str:
  if not outline.interactive_components:
    return "No interactive components planned. Do not insert component placeholders."
  lines = [f'- Type: "{spec.type}" | Placement: "{spec.placement}" | Purpose: {spec.purpose}\n  Insert as: {{{{COMPONENT:{spec.type}:{spec.purpose}}}}}' for spec in outline.interactive_components]
  return "\n".join(lines)


def render_content_system_prompt(voice: VoiceAnalysis, niche: NicheContext) -> str:
  """Build the writer system prompt tuned to the reader's voice."""
  template = _load_prompt("content_system.md")
  replacements = {
    "EXPERIENCE_LEVEL": voice.experience_level,
    "COMMUNICATION_STYLE": voice.communication_style,
    "TERMINOLOGY_LEVEL": voice.terminology_level,
    "PREFERRED_FORMAT": voice.preferred_format,
    "BRAND_VOICE": niche.voice_guidelines or "Clear, practical and friendly.",
  }
  return _replace_placeholders(template, replacements)


def render_content_prompt(post: SourcePost, research: ResearchResult, outline: ContentOutline) -> str:
  """Build the article writing prompt."""
  template = _load_prompt("content.md")
  replacements = {
    "POST_TITLE": post.title,
    "POST_CONTENT": post.content[:CONTENT_CONTENT_LIMIT],
    "RESEARCH_SUMMARY": research.summary,
    "KEY_POINTS": _bullets(research.key_points),
    "BEST_PRACTICES": _bullets(research.best_practices),
    "COMMON_MISTAKES": _bullets(research.common_mistakes),
    "OUTLINE_TITLE": outline.title,
    "OUTLINE_SECTIONS": _format_outline_sections(outline),
    "COMPONENT_PLACEMENTS": _format_component_placements(outline),
  }
  return _replace_placeholders(template, replacements)


def render_images_plan_prompt(outline: ContentOutline, content: GeneratedContent) -> str:
  template = _load_prompt("images_plan.md")
  sections = "\n".join(f"- {section.heading} ({section.type})" for section in outline.sections) or "-"
  return _replace_placeholders(template, {"ARTICLE_TITLE": content.title, "ARTICLE_DESCRIPTION": content.description, "SECTIONS": sections})


def render_image_prompt(prompt: str, image_type: str, article_title: str) -> str:
  """Wrap a planned image prompt with style and context guidance."""
  style = _IMAGE_STYLES.get(image_type, _IMAGE_STYLES["inline"])
  return f"{prompt}\n\nStyle: {style}\nContext: Technical article about {article_title}\nRequirements: High quality, professional, suitable for web article"


def render_topic_selector_prompt(candidates: list[dict[str, Any]], recent_titles: list[str]) -> str:
  """Build the scheduler topic selection prompt."""
  template = _load_prompt("topic_selector.md")
  recent = "\n".join(f"- {title}" for title in recent_titles) or "None yet"
  candidate_json = json.dumps(candidates, indent=2, ensure_ascii=True)
  return _replace_placeholders(template, {"RECENT_TITLES": recent, "CANDIDATES": candidate_json})


def component_example_for(component_type: str) -> str:
  return _COMPONENT_EXAMPLES.get(component_type, "")


def render_component_system_prompt(article: Article) -> str:
  template = _load_prompt("component_builder_system.md")
  return _replace_placeholders(template, {"ARTICLE_TITLE": article.title})


def render_component_prompt(spec: ComponentSpec, article: Article) -> str:
  """Build the first-attempt prompt for one component spec."""
  template = _load_prompt("component_builder.md")
  replacements = {
    "ARTICLE_TITLE": article.title,
    "ARTICLE_DESCRIPTION": article.description,
    "COMPONENT_TYPE": spec.type,
    "COMPONENT_PURPOSE": spec.purpose,
    "COMPONENT_PLACEMENT": spec.placement,
    "COMPONENT_REQUIREMENTS": _bullets(spec.requirements),
    "COMPONENT_EXAMPLE": component_example_for(spec.type),
    "COMPONENT_NAME": component_name_for(spec.type),
  }
  return _replace_placeholders(template, replacements)


def render_component_retry_block(previous_error: str) -> str:
  """Build the feedback block appended to retries after a failed attempt."""
  explanation = previous_error
  # Unterminated strings nearly always mean a template literal slipped through.
  if "Unterminated string literal" in previous_error:
    explanation = _replace_placeholders(_load_prompt("component_unterminated.md"), {"ERROR": previous_error})
  block = _replace_placeholders(_load_prompt("component_retry.md"), {"ERROR_EXPLANATION": explanation})
  return f"\n\n{block}"


def render_alignment_review_prompt(component: GeneratedComponent, article: Article) -> str:
  template = _load_prompt("alignment_review.md")
  replacements = {"COMPONENT_NAME": component.name, "COMPONENT_TYPE": component.type, "ARTICLE_TITLE": article.title, "COMPONENT_CODE": component.code}
  return _replace_placeholders(template, replacements)


def render_alignment_fix_prompt(component: GeneratedComponent, suggestion: str, article: Article) -> str:
  template = _load_prompt("alignment_fix.md")
  replacements = {"COMPONENT_CODE": component.code, "SUGGESTION": suggestion, "ARTICLE_TITLE": article.title, "ARTICLE_DESCRIPTION": article.description}
  return _replace_placeholders(template, replacements)
