"""Merge generated components into a single browser-loadable script."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Sequence

from painpress.ai.pipeline.contracts import GeneratedComponent

logger = logging.getLogger(__name__)

_REACT_NAMED_IMPORT_RE = re.compile(r"^import\s+(?:React|\{[^}]*\})\s+from\s+['\"]react['\"];?\s*$", re.MULTILINE)
_REACT_NAMESPACE_IMPORT_RE = re.compile(r"^import\s+\*\s+as\s+React\s+from\s+['\"]react['\"];?\s*$", re.MULTILINE)
_ANY_IMPORT_RE = re.compile(r"^import\s+.*from\s+['\"][^'\"]+['\"];?\s*$", re.MULTILINE)
_EXPORT_DEFAULT_RE = re.compile(r"^export\s+default\s+", re.MULTILINE)
_EXPORT_LIST_RE = re.compile(r"^export\s+\{[^}]*\};?\s*$", re.MULTILINE)
_EXPORT_DECLARATION_RE = re.compile(r"^export\s+(?=const|function|class|let|var)", re.MULTILINE)

# React and ReactDOM are loaded from a CDN by the article page.
REACT_GLOBALS_PREAMBLE = """
var React = window.React;
var useState = React.useState;
var useEffect = React.useEffect;
var useCallback = React.useCallback;
var useMemo = React.useMemo;
var useRef = React.useRef;
var useReducer = React.useReducer;
var useContext = React.useContext;
var createContext = React.createContext;
var ReactDOM = window.ReactDOM;
"""

ESBUILD_ARGS: tuple[str, ...] = (
  "--loader=tsx",
  "--target=es2020",
  "--jsx=transform",
  "--jsx-factory=React.createElement",
  "--jsx-fragment=React.Fragment",
  "--minify",
)


def strip_module_syntax(code: str) -> str:
  """Remove import/export syntax so the component can run as a plain script."""
  stripped = _REACT_NAMED_IMPORT_RE.sub("", code)
  stripped = _REACT_NAMESPACE_IMPORT_RE.sub("", stripped)
  stripped = _ANY_IMPORT_RE.sub("", stripped)
  stripped = _EXPORT_DEFAULT_RE.sub("", stripped)
  stripped = _EXPORT_LIST_RE.sub("", stripped)
  stripped = _EXPORT_DECLARATION_RE.sub("", stripped)
  return stripped.strip()


def assemble_bundle_source(components: Sequence[GeneratedComponent]) -> str:
  """Concatenate stripped components between the React preamble and global exposure lines."""
  blocks = [f"// Component: {component.name}\n{strip_module_syntax(component.code)}" for component in components]
  exposure = "\n".join(f"window.{component.name} = {component.name};" for component in components)
  return f"{REACT_GLOBALS_PREAMBLE}\n" + "\n\n".join(blocks) + f"\n\n// Expose components globally\n{exposure}"


async def _transform_with_esbuild(source: str, *, binary: str, timeout: float) -> str:
  process = await asyncio.create_subprocess_exec(binary, *ESBUILD_ARGS, stdin=asyncio.subprocess.PIPE, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE)
  try:
    stdout, stderr = await asyncio.wait_for(process.communicate(source.encode("utf-8")), timeout=timeout)
  except asyncio.TimeoutError:
    process.kill()
    await process.wait()
    raise

  if process.returncode != 0:
    raise RuntimeError(f"esbuild exited with code {process.returncode}: {stderr.decode('utf-8', errors='replace').strip()}")

  return stdout.decode("utf-8")


async def bundle_components(components: Sequence[GeneratedComponent], *, esbuild_binary: str = "esbuild", timeout: float = 30.0) -> str:
  """Build the component bundle, falling back to the untransformed source when esbuild fails."""
  if not components:
    return ""

  source = assemble_bundle_source(components)
  try:
    bundled = await _transform_with_esbuild(source, binary=esbuild_binary, timeout=timeout)
  except (OSError, RuntimeError, asyncio.TimeoutError) as exc:
    logger.warning("esbuild transform failed, using untransformed bundle: %s", exc)
    return source

  logger.info("Bundled %d components (%d bytes)", len(components), len(bundled))
  return bundled
