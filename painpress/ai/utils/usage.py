from __future__ import annotations

from typing import Any

_TOKEN_KEYS = ("prompt_tokens", "completion_tokens", "total_tokens")


def summarize_usage(usage: list[dict[str, Any]]) -> dict[str, Any]:
  """Total token usage across model calls, keeping the per-call entries."""
  totals = dict.fromkeys(_TOKEN_KEYS, 0)
  by_agent: dict[str, int] = {}

  for entry in usage:
    # Providers omit counts on some calls; treat missing as zero.
    for key in _TOKEN_KEYS:
      totals[key] += int(entry.get(key) or 0)
    agent = str(entry.get("agent") or "unknown")
    by_agent[agent] = by_agent.get(agent, 0) + int(entry.get("total_tokens") or 0)

  return {"entries": list(usage), "totals": {**totals, "calls": len(usage)}, "by_agent": by_agent}
