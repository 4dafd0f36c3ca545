"""Syntax validation for generated TSX components."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

logger = logging.getLogger(__name__)

TSX_LANGUAGE = Language(tree_sitter_typescript.language_tsx())

NO_EXPORTS_ERROR = "Component has no exports"
_QUOTE_CHARS = ("'", '"', "`")


@dataclass(frozen=True)
class ValidationResult:
  """Outcome of a component validation pass."""

  valid: bool
  error: str | None = None


def validate_component_code(code: str) -> ValidationResult:
  """Parse the component as TSX and require at least one top-level export."""
  try:
    parser = Parser(TSX_LANGUAGE)
    tree = parser.parse(code.encode("utf-8"))
  except Exception as exc:  # noqa: BLE001
    logger.warning("Component validation failed: %s", exc)
    return ValidationResult(valid=False, error=str(exc))

  root = tree.root_node
  if root.has_error:
    problem = _first_problem_node(root)
    error = _describe_problem(problem) if problem is not None else "Syntax error"
    logger.warning("Component validation failed: %s", error)
    return ValidationResult(valid=False, error=error)

  if not any(child.type == "export_statement" for child in root.children):
    logger.warning("Component validation failed: %s", NO_EXPORTS_ERROR)
    return ValidationResult(valid=False, error=NO_EXPORTS_ERROR)

  return ValidationResult(valid=True)


def _first_problem_node(root: Node) -> Node | None:
  """Return the first ERROR or MISSING node in document order."""
  stack = [root]
  while stack:
    node = stack.pop()
    if node.type == "ERROR" or node.is_missing:
      return node
    if node.has_error:
      # Reverse so the leftmost child is visited first.
      stack.extend(reversed(node.children))
  return None


def _describe_problem(node: Node) -> str:
  row, column = node.start_point
  if node.is_missing and node.type in _QUOTE_CHARS:
    detail = "Unterminated string literal"
  elif node.is_missing:
    detail = f'Expected "{node.type}"'
  else:
    snippet = (node.text or b"").decode("utf-8", errors="replace").strip()
    first_line = snippet.splitlines()[0] if snippet else ""
    if first_line.startswith(_QUOTE_CHARS):
      detail = "Unterminated string literal"
    else:
      detail = f'Unexpected "{first_line[:40]}"'
  return f"Syntax error at line {row + 1}, column {column + 1}: {detail}"
