"""Image planning and generation agent."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from starlette.concurrency import run_in_threadpool

from painpress.ai.agents.base import BaseAgent, Context, Model, UsageSink
from painpress.ai.agents.prompts import render_image_prompt, render_images_plan_prompt
from painpress.ai.pipeline.contracts import GeneratedContent, GeneratedImage, ImageArtifact, ImagePlan, ImageSpec, ImagesInput
from painpress.ai.providers.gemini import ImageData
from painpress.utils.ids import generate_id

logger = logging.getLogger(__name__)

MAX_IMAGES = 3
PNG_HEADER_LENGTH = 24


class ImageModel(Protocol):
  """Model that returns raw image bytes for a prompt."""

  name: str

  async def generate_image(self, prompt: str) -> list[ImageData]: ...


def png_dimensions(data: bytes) -> tuple[int, int]:
  """Read width and height from the PNG IHDR chunk."""
  if len(data) < PNG_HEADER_LENGTH:
    return 0, 0
  width = int.from_bytes(data[16:20], "big")
  height = int.from_bytes(data[20:24], "big")
  return width, height


def fallback_image_plan(content: GeneratedContent) -> list[ImageSpec]:
  """Single hero image used when planning fails."""
  prompt = f"Professional technical illustration for article: {content.title}. Modern, clean design, blue and purple gradient, abstract tech elements."
  return [ImageSpec(type="hero", prompt=prompt, alt_text=content.title, placement="header", aspect_ratio="16:9")]


def _write_image(path: Path, data: bytes) -> None:
  path.parent.mkdir(parents=True, exist_ok=True)
  path.write_bytes(data)


class ImagesAgent(BaseAgent[ImagesInput, ImageArtifact]):
  """Plan article images and render them to the output directory."""

  name = "Images"

  def __init__(self, *, model: Model, prov: str, image_model: ImageModel, output_dir: str, use: UsageSink = None) -> None:
    super().__init__(model=model, prov=prov, use=use)
    self._image_model = image_model
    self._output_dir = Path(output_dir)

  async def run(self, input_data: ImagesInput, ctx: Context = None) -> ImageArtifact:
    specs = await self.plan_images(input_data)
    if not specs:
      logger.info("No images planned")
      return ImageArtifact()

    images: list[GeneratedImage] = []
    for spec in specs:
      try:
        image = await self._generate_single(spec, input_data)
      except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to generate %s image: %s", spec.type, exc)
        continue
      if image is not None:
        images.append(image)

    logger.info("Image generation complete (%d of %d)", len(images), len(specs))
    return ImageArtifact(images=images)

  async def plan_images(self, input_data: ImagesInput) -> list[ImageSpec]:
    prompt_text = render_images_plan_prompt(input_data.outline, input_data.content)
    try:
      plan = await self._generate_structured(prompt_text, ImagePlan, purpose="plan_images", temperature=0.5)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Image planning failed, using a single hero image: %s", exc)
      return fallback_image_plan(input_data.content)
    return plan.images[:MAX_IMAGES]

  async def _generate_single(self, spec: ImageSpec, input_data: ImagesInput) -> GeneratedImage | None:
    content = input_data.content
    results = await self._image_model.generate_image(render_image_prompt(spec.prompt, spec.type, content.title))
    if not results:
      logger.warning("No image returned for %s spec", spec.type)
      return None

    image = results[0]
    image_id = generate_id()
    filename = f"{content.slug}-{spec.type}-{image_id}.png"
    file_path = self._output_dir / "images" / input_data.niche_id / filename
    await run_in_threadpool(_write_image, file_path, image.data)

    width, height = png_dimensions(image.data)
    return GeneratedImage(
      id=image_id,
      type=spec.type,
      prompt=spec.prompt,
      alt_text=spec.alt_text,
      filename=filename,
      file_path=str(file_path),
      width=width,
      height=height,
      mime_type=image.mime_type,
    )
