"""Rewrite template literals in generated component code into string concatenation.

The component validator and bundler reject backtick strings coming out of the
code model, so every template literal is converted into an equivalent
``"text " + (expr)`` expression. Everything else in the source is copied through
byte-for-byte, including backticks that sit inside ordinary quoted strings or
comments.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

BACKTICK = "`"

# Escapes that expand to a control character; any other escaped char is kept as-is.
_TEMPLATE_ESCAPES: dict[str, str] = {"n": "\n", "r": "\r", "t": "\t"}


def sanitize_template_literals(code: str) -> str:
  """Convert every template literal in ``code`` into a concatenation expression."""
  if BACKTICK not in code:
    return code

  result: list[str] = []
  index = 0
  length = len(code)

  while index < length:
    char = code[index]

    # Quoted strings are copied verbatim, backticks inside them included.
    if char in {"'", '"'}:
      end = _skip_string(code, index, char)
      result.append(code[index:end])
      index = end
      continue

    if code.startswith("//", index):
      newline = code.find("\n", index)
      end = length if newline == -1 else newline + 1
      result.append(code[index:end])
      index = end
      continue

    if code.startswith("/*", index):
      close = code.find("*/", index + 2)
      end = length if close == -1 else close + 2
      result.append(code[index:end])
      index = end
      continue

    if char == BACKTICK:
      replacement, index = _parse_template_literal(code, index + 1)
      result.append(replacement)
      continue

    result.append(char)
    index += 1

  sanitized = "".join(result)
  if sanitized != code:
    logger.info("Sanitized template literals (backticks remaining=%s)", BACKTICK in sanitized)
  return sanitized


def _skip_string(code: str, start: int, quote: str) -> int:
  """Return the index just past the quoted string opened at ``start``."""
  index = start + 1
  while index < len(code):
    if code[index] == "\\":
      index += 2
      continue
    if code[index] == quote:
      return index + 1
    index += 1
  # Unterminated string runs to the end of input.
  return len(code)


def _quote_segment(text: str) -> str:
  """Render raw literal text as a double-quoted string.

  Backslashes are doubled first so pre-existing escape sequences survive.
  """
  escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r")
  return f'"{escaped}"'


def _join_segments(parts: list[str]) -> str:
  if not parts:
    return '""'
  if len(parts) == 1:
    return parts[0]
  return " + ".join(parts)


def _parse_template_literal(code: str, start: int) -> tuple[str, int]:
  """Convert the template literal whose body starts at ``start``.

  Returns the replacement expression and the index after the closing backtick.
  """
  parts: list[str] = []
  buffer: list[str] = []
  index = start
  length = len(code)

  def flush() -> None:
    if buffer:
      parts.append(_quote_segment("".join(buffer)))
      buffer.clear()

  while index < length:
    char = code[index]

    if char == BACKTICK:
      flush()
      return _join_segments(parts), index + 1

    if char == "\\" and index + 1 < length:
      escaped = code[index + 1]
      buffer.append(_TEMPLATE_ESCAPES.get(escaped, escaped))
      index += 2
      continue

    if code.startswith("${", index):
      flush()
      body, index = _parse_interpolation(code, index + 2)
      parts.append(f"({body})")
      continue

    buffer.append(char)
    index += 1

  # Unterminated literal: keep whatever was collected.
  flush()
  return _join_segments(parts), length


def _parse_interpolation(code: str, start: int) -> tuple[str, int]:
  """Collect the expression inside ``${...}`` starting just after the brace.

  Nested template literals are converted recursively before being spliced in.
  Returns the expression text and the index after the closing brace.
  """
  depth = 1
  index = start
  pieces: list[str] = []
  length = len(code)

  while index < length:
    char = code[index]

    if char == BACKTICK:
      nested, index = _parse_template_literal(code, index + 1)
      pieces.append(nested)
      continue

    if char in {"'", '"'}:
      end = _skip_string(code, index, char)
      pieces.append(code[index:end])
      index = end
      continue

    if char == "{":
      depth += 1
    elif char == "}":
      depth -= 1
      if depth == 0:
        return "".join(pieces), index + 1

    pieces.append(char)
    index += 1

  return "".join(pieces), length
