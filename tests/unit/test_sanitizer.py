from __future__ import annotations

import logging

import pytest

from painpress.components.sanitizer import sanitize_template_literals

SAMPLES = [
  "const a = `x`;",
  "const greeting = `Hello ${name}!`;",
  "const nested = `a ${cond ? `b ${c}` : 'd'} e`;",
  "const multi = `line1\nline2 ${value}`;",
  'const s = "keep `this`"; // and `this`\n/* also `this` */ const t = `go`;',
]


def test_code_without_backticks_is_a_fixed_point() -> None:
  code = 'const label = "Hello " + name;\nexport default function A() { return null; }'
  assert sanitize_template_literals(code) is code


@pytest.mark.parametrize("code", SAMPLES)
def test_sanitizing_twice_changes_nothing(code: str) -> None:
  once = sanitize_template_literals(code)
  assert sanitize_template_literals(once) == once


@pytest.mark.parametrize("code", [sample for sample in SAMPLES if "keep" not in sample])
def test_no_backtick_survives_outside_strings_and_comments(code: str) -> None:
  assert "`" not in sanitize_template_literals(code)


def test_hello_example() -> None:
  assert sanitize_template_literals("const greeting = `Hello ${name}!`;") == 'const greeting = "Hello " + (name) + "!";'


def test_nested_template_is_converted_recursively() -> None:
  assert sanitize_template_literals("`a ${`b ${c}`}`") == '"a " + ("b " + (c))'


def test_strings_and_comments_are_copied_verbatim() -> None:
  code = 'const s = "keep `this`"; // and `this`\n/* also `this` */ const t = \'`x`\';'
  assert sanitize_template_literals(code) == code


def test_escapes_inside_template() -> None:
  assert sanitize_template_literals(r"`a\`b\${c}\n`") == '"a`b${c}\\n"'


def test_embedded_quotes_are_escaped() -> None:
  assert sanitize_template_literals('`say "hi"`') == '"say \\"hi\\""'


def test_empty_template_becomes_empty_string() -> None:
  assert sanitize_template_literals("const e = ``;") == 'const e = "";'


def test_whitespace_only_hole_is_kept_as_is() -> None:
  assert sanitize_template_literals("`${ }`") == "( )"


def test_unterminated_literal_keeps_collected_text() -> None:
  assert sanitize_template_literals("const x = `abc") == 'const x = "abc"'


def test_unterminated_interpolation_returns_partial_body() -> None:
  assert sanitize_template_literals("`a ${b") == '"a " + (b)'


def test_interpolation_with_object_literal_tracks_brace_depth() -> None:
  assert sanitize_template_literals("`${fmt({a: 1})}`") == "(fmt({a: 1}))"


def test_logs_when_code_changes(caplog: pytest.LogCaptureFixture) -> None:
  with caplog.at_level(logging.INFO, logger="painpress.components.sanitizer"):
    sanitize_template_literals("`x`")
  assert "Sanitized template literals" in caplog.text
