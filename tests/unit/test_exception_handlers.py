"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from painpress.core.exceptions import _error_payload, _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Validation errors stay JSON-serializable and never echo the request payload."""
  errors = [{"type": "value_error", "loc": ("body", "postId"), "msg": "Value error, bad id.", "input": {"postId": 42}, "ctx": {"error": ValueError("bad id."), "input": 42}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["loc"] == ["body", "postId"]
  assert sanitized[0]["ctx"]["error"] == "ValueError: bad id."
  assert "input" not in sanitized[0]["ctx"]


def test_error_payload_includes_request_id_only_when_known() -> None:
  assert _error_payload("nope") == {"detail": "nope"}
  assert _error_payload("nope", request_id="req-1") == {"detail": "nope", "requestId": "req-1"}
