from __future__ import annotations

import pytest

from painpress.ai import backoff
from painpress.ai.utils.usage import summarize_usage


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
  recorded: list[float] = []

  async def _sleep(seconds: float) -> None:
    recorded.append(seconds)

  monkeypatch.setattr(backoff.asyncio, "sleep", _sleep)
  monkeypatch.setattr(backoff.random, "uniform", lambda _a, _b: 0.0)
  return recorded


def _flaky(failures: list[Exception]):
  calls = {"count": 0}

  async def _call() -> str:
    calls["count"] += 1
    if failures:
      raise failures.pop(0)
    return "ok"

  return _call, calls


@pytest.mark.anyio
async def test_transient_errors_are_retried_with_growing_delay(sleeps) -> None:
  call, calls = _flaky([RuntimeError("429 Too Many Requests"), RuntimeError("request timed out")])
  assert await backoff.retry_with_backoff(call) == "ok"
  assert calls["count"] == 3
  assert sleeps == [1.0, 2.0]


@pytest.mark.anyio
async def test_non_transient_error_propagates_immediately(sleeps) -> None:
  call, calls = _flaky([ValueError("bad prompt")])
  with pytest.raises(ValueError):
    await backoff.retry_with_backoff(call)
  assert calls["count"] == 1
  assert sleeps == []


@pytest.mark.anyio
async def test_gives_up_after_max_retries(sleeps) -> None:
  call, calls = _flaky([RuntimeError("503 unavailable")] * 10)
  with pytest.raises(RuntimeError, match="503"):
    await backoff.retry_with_backoff(call)
  assert calls["count"] == backoff.MAX_RETRIES + 1


def test_summarize_usage_totals_and_groups_by_agent() -> None:
  summary = summarize_usage(
    [
      {"agent": "Voice", "prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
      {"agent": "Voice", "prompt_tokens": 4, "completion_tokens": None, "total_tokens": 4},
      {"agent": "Outline", "total_tokens": 7},
    ]
  )
  assert summary["totals"] == {"prompt_tokens": 14, "completion_tokens": 5, "total_tokens": 26, "calls": 3}
  assert summary["by_agent"] == {"Voice": 19, "Outline": 7}
  assert len(summary["entries"]) == 3
